import pytest

from exceptions import ResolutionError
from logger import logger

SAMPLE_HOSTS = (
    "127.0.0.1 localhost\n"
    "::1 localhost ip6-localhost\n"
    "# manual entry not by muko\n"
    "\n"
    "127.0.0.1 example.com #muko: myapp\n"
    "#10.0.0.5 api.example.com #muko:\n"
    "192.168.1.10   nas.lan   # printed on the box\n"
)


class StubResolver:
    """Resolver answering from a dict; unknown domains fail"""

    def __init__(self, answers=None):
        self.answers = answers or {}
        self.calls = []

    def resolve(self, domain):
        self.calls.append(domain)
        if domain not in self.answers:
            raise ResolutionError(domain, "NXDOMAIN")
        return self.answers[domain]


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for name in ("MUKO_HOSTS_FILE", "MUKO_RESOLVER", "MUKO_DOH_URL", "MUKO_DNS_TIMEOUT",
                 "MUKO_DNS_MAX_RETRIES", "MUKO_DNS_RETRY_DELAY", "MUKO_DNS_WORKERS", "MUKO_DNS_DEADLINE",
                 "MUKO_BACKUP_DIR", "MUKO_MAX_BACKUPS"):
        monkeypatch.delenv(name, raising=False)
    logger.reset_metrics()


@pytest.fixture
def hosts_path(tmp_path):
    path = tmp_path / "hosts"
    path.write_text(SAMPLE_HOSTS)
    return path


@pytest.fixture
def stub_resolver():
    return StubResolver({"example.com": "93.184.215.14"})
