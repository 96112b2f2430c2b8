import socket
import time

import pytest
import requests

import resolver as resolver_module
from exceptions import ConfigurationError, ResolutionError
from resolver import DohResolver, SystemResolver, build_resolver, call_with_timeout


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def json(self):
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload


class FakeSession:
    """Stands in for requests.Session; replies come from a callable or a queue"""

    def __init__(self, reply):
        self.headers = {}
        self.reply = reply
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append((url, params["name"], params["type"], timeout))
        if callable(self.reply):
            result = self.reply(params["name"], params["type"])
        else:
            result = self.reply.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


def answer(record_type, data):
    return FakeResponse({"Status": 0, "Answer": [{"name": "x", "type": record_type, "data": data}]})


def make_resolver(reply, **kwargs):
    session = FakeSession(reply)
    kwargs.setdefault("retry_delay", 0)
    return DohResolver(session=session, **kwargs), session


def test_a_record():
    resolver, session = make_resolver(lambda name, rtype: answer(1, "93.184.215.14"))

    assert resolver.resolve("example.com") == "93.184.215.14"
    assert session.calls == [("https://cloudflare-dns.com/dns-query", "example.com", "A", 2.0)]
    assert session.headers["Accept"] == "application/dns-json"


def test_cname_chain_skipped_to_address():
    payload = {"Status": 0, "Answer": [
        {"name": "www.example.com", "type": 5, "data": "example.com."},
        {"name": "example.com", "type": 1, "data": "93.184.215.14"},
    ]}
    resolver, _ = make_resolver(lambda name, rtype: FakeResponse(payload))

    assert resolver.resolve("www.example.com") == "93.184.215.14"


def test_falls_back_to_aaaa():
    def reply(name, rtype):
        if rtype == "A":
            return FakeResponse({"Status": 0})
        return answer(28, "2606:2800:21f:cb07::1")

    resolver, session = make_resolver(reply)

    assert resolver.resolve("v6only.test") == "2606:2800:21f:cb07::1"
    assert [call[2] for call in session.calls] == ["A", "AAAA"]


def test_nxdomain_fails_without_retry():
    resolver, session = make_resolver(lambda name, rtype: FakeResponse({"Status": 3}))

    with pytest.raises(ResolutionError) as excinfo:
        resolver.resolve("nope.invalid")

    assert excinfo.value.reason == "NXDOMAIN"
    assert len(session.calls) == 1


def test_no_records_is_a_resolution_error():
    resolver, _ = make_resolver(lambda name, rtype: FakeResponse({"Status": 0, "Answer": []}))

    with pytest.raises(ResolutionError):
        resolver.resolve("empty.test")


def test_network_errors_are_retried():
    replies = [requests.ConnectionError("down"), requests.Timeout("slow"), answer(1, "1.2.3.4")]
    resolver, session = make_resolver(replies)

    assert resolver.resolve("flaky.test") == "1.2.3.4"
    assert len(session.calls) == 3


def test_gives_up_after_max_retries():
    resolver, session = make_resolver(lambda name, rtype: requests.ConnectionError("down"),
                                      max_retries=2)

    with pytest.raises(ResolutionError) as excinfo:
        resolver.resolve("down.test")

    assert "down" in excinfo.value.reason
    assert len(session.calls) == 2


def test_http_error_and_bad_json_are_retried():
    replies = [FakeResponse({}, status_code=502), FakeResponse(ValueError("not json")),
               answer(1, "5.6.7.8")]
    resolver, _ = make_resolver(replies)

    assert resolver.resolve("x.test") == "5.6.7.8"


def test_configuration_from_environment(monkeypatch):
    monkeypatch.setenv("MUKO_DOH_URL", "https://dns.google/resolve")
    monkeypatch.setenv("MUKO_DNS_TIMEOUT", "2")
    monkeypatch.setenv("MUKO_DNS_MAX_RETRIES", "4")
    monkeypatch.setenv("MUKO_DNS_RETRY_DELAY", "0.5")

    resolver = DohResolver(session=FakeSession([]))

    assert resolver.url == "https://dns.google/resolve"
    assert resolver.timeout == 2.0
    assert resolver.max_retries == 4
    assert resolver.retry_delay == 0.5


@pytest.mark.parametrize("kwargs", [
    {"url": "ftp://example.com"},
    {"timeout": 60},
    {"max_retries": 11},
    {"retry_delay": 10},
])
def test_invalid_configuration(kwargs):
    with pytest.raises(ConfigurationError):
        DohResolver(session=FakeSession([]), **kwargs)


def test_system_resolver_prefers_ipv4(monkeypatch):
    infos = [
        (socket.AF_INET6, socket.SOCK_STREAM, 6, "", ("::1", 0, 0, 0)),
        (socket.AF_INET, socket.SOCK_STREAM, 6, "", ("127.0.0.1", 0)),
    ]
    monkeypatch.setattr(resolver_module.socket, "getaddrinfo", lambda *args, **kwargs: infos)

    assert SystemResolver().resolve("localhost") == "127.0.0.1"


def test_system_resolver_failure(monkeypatch):
    def fail(*args, **kwargs):
        raise socket.gaierror(-2, "Name or service not known")

    monkeypatch.setattr(resolver_module.socket, "getaddrinfo", fail)

    with pytest.raises(ResolutionError):
        SystemResolver().resolve("nope.invalid")


def test_build_resolver_selects_backend(monkeypatch):
    assert isinstance(build_resolver(), DohResolver)

    monkeypatch.setenv("MUKO_RESOLVER", "system")
    assert isinstance(build_resolver(), SystemResolver)

    monkeypatch.setenv("MUKO_RESOLVER", "carrier-pigeon")
    with pytest.raises(ConfigurationError):
        build_resolver()


def test_system_resolver_hung_lookup_times_out(monkeypatch):
    def hang(*args, **kwargs):
        time.sleep(3)
        return []

    monkeypatch.setattr(resolver_module.socket, "getaddrinfo", hang)

    start = time.monotonic()
    with pytest.raises(ResolutionError) as excinfo:
        SystemResolver(timeout=0.2).resolve("slow.test")

    assert "timed out" in excinfo.value.reason
    assert time.monotonic() - start < 2


def test_system_resolver_timeout_from_environment(monkeypatch):
    monkeypatch.setenv("MUKO_DNS_TIMEOUT", "4")
    assert SystemResolver().timeout == 4.0

    monkeypatch.setenv("MUKO_DNS_TIMEOUT", "fast")
    with pytest.raises(ConfigurationError):
        SystemResolver()


def test_call_with_timeout_passes_results_and_errors_through():
    assert call_with_timeout("x.test", lambda: "1.2.3.4", 1) == "1.2.3.4"

    def fail():
        raise ResolutionError("x.test", "NXDOMAIN")

    with pytest.raises(ResolutionError):
        call_with_timeout("x.test", fail, 1)


def test_non_numeric_environment_is_a_configuration_error(monkeypatch):
    monkeypatch.setenv("MUKO_DNS_MAX_RETRIES", "three")

    with pytest.raises(ConfigurationError) as excinfo:
        DohResolver(session=FakeSession([]))

    assert "MUKO_DNS_MAX_RETRIES" in str(excinfo.value)
