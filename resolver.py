"""
DNS lookups that report a domain's production address
"""

import os
import socket
import threading
import time
from typing import Optional

import requests

from logger import logger
from exceptions import ConfigurationError, ResolutionError
from settings import env_float, env_int

DEFAULT_DOH_URL = "https://cloudflare-dns.com/dns-query"

# DNS RR type codes used by the JSON DoH API
RECORD_TYPES = {"A": 1, "AAAA": 28}
NXDOMAIN = 3


class DohResolver:
    """DNS-over-HTTPS resolver (JSON API).

    Queries go straight to an upstream resolver over HTTPS, so entries in
    the local hosts file never affect the answer. A records are preferred
    and AAAA is tried when a domain has none.
    """

    def __init__(self, url: str = None, timeout: float = None, max_retries: int = None,
                 retry_delay: float = None, session: requests.Session = None):
        self.url = url or os.getenv('MUKO_DOH_URL', DEFAULT_DOH_URL)
        self.timeout = timeout or env_float('MUKO_DNS_TIMEOUT', '2')
        self.max_retries = max_retries or env_int('MUKO_DNS_MAX_RETRIES', '2')
        if retry_delay is None:
            retry_delay = env_float('MUKO_DNS_RETRY_DELAY', '0.1')
        self.retry_delay = retry_delay

        self.session = session or requests.Session()
        self.session.headers.update({'Accept': 'application/dns-json'})

        self._validate_configuration()

    def _validate_configuration(self):
        """Validate resolver configuration"""
        if not self.url.startswith(('http://', 'https://')):
            raise ConfigurationError(f"MUKO_DOH_URL must be an http(s) URL, got {self.url}")

        if self.timeout < 1 or self.timeout > 30:
            raise ConfigurationError(f"MUKO_DNS_TIMEOUT must be between 1 and 30 seconds, got {self.timeout}")

        if self.max_retries < 1 or self.max_retries > 10:
            raise ConfigurationError(f"MUKO_DNS_MAX_RETRIES must be between 1 and 10, got {self.max_retries}")

        if self.retry_delay < 0 or self.retry_delay > 5:
            raise ConfigurationError(f"MUKO_DNS_RETRY_DELAY must be between 0 and 5 seconds, got {self.retry_delay}")

        logger.debug("DoH resolver configuration validated",
                     url=self.url,
                     timeout=self.timeout,
                     max_retries=self.max_retries,
                     retry_delay=self.retry_delay)

    def resolve(self, domain: str) -> str:
        """Return the first upstream address for domain or raise ResolutionError"""
        last_error = "no response"

        for attempt in range(self.max_retries):
            try:
                for record_type in RECORD_TYPES:
                    answer = self._query(domain, record_type)
                    if answer is not None:
                        return answer
                raise ResolutionError(domain, "no A or AAAA records")
            except (requests.RequestException, ValueError) as e:
                last_error = str(e)
                logger.debug(f"DNS lookup attempt {attempt + 1} for {domain} failed: {e}")

                if attempt < self.max_retries - 1:
                    time.sleep(self.retry_delay)

        raise ResolutionError(domain, last_error)

    def _query(self, domain: str, record_type: str) -> Optional[str]:
        start_time = time.time()
        response = self.session.get(
            self.url,
            params={'name': domain, 'type': record_type},
            timeout=self.timeout
        )
        duration_ms = (time.time() - start_time) * 1000

        if response.status_code != 200:
            logger.dns_lookup(domain, False, duration_ms)
            raise requests.HTTPError(f"HTTP {response.status_code} from {self.url}", response=response)

        data = response.json()
        if not isinstance(data, dict):
            raise ValueError(f"Expected JSON object from DoH server, got {type(data).__name__}")

        status = data.get("Status")
        if status == NXDOMAIN:
            logger.dns_lookup(domain, False, duration_ms)
            raise ResolutionError(domain, "NXDOMAIN")
        if status != 0:
            logger.dns_lookup(domain, False, duration_ms)
            raise ResolutionError(domain, f"DNS status {status}")

        wanted = RECORD_TYPES[record_type]
        for record in data.get("Answer") or []:
            # CNAME records come before the final address
            if isinstance(record, dict) and record.get("type") == wanted and record.get("data"):
                logger.dns_lookup(domain, True, duration_ms, record["data"])
                return record["data"]

        return None


def call_with_timeout(domain: str, func, timeout: float):
    """Run func() in a daemon thread and wait at most timeout seconds.

    A call that does not return in time is abandoned; being a daemon
    thread it cannot keep the process alive at exit.
    """
    outcome = {}

    def target():
        try:
            outcome["value"] = func()
        except Exception as e:
            outcome["error"] = e

    thread = threading.Thread(target=target, name=f"muko-dns-{domain}", daemon=True)
    thread.start()
    thread.join(timeout)

    if thread.is_alive():
        raise ResolutionError(domain, f"timed out after {timeout:g}s")
    if "error" in outcome:
        raise outcome["error"]
    return outcome["value"]


class SystemResolver:
    """Resolver using the operating system's lookup path.

    The system path reads the hosts file, so a domain in DEV mode resolves
    to its own override here. Intended for machines without outbound HTTPS.
    getaddrinfo has no timeout of its own, so each call is cut off after
    MUKO_DNS_TIMEOUT seconds.
    """

    def __init__(self, timeout: float = None):
        self.timeout = timeout or env_float('MUKO_DNS_TIMEOUT', '2')

        if self.timeout <= 0 or self.timeout > 30:
            raise ConfigurationError(f"MUKO_DNS_TIMEOUT must be above 0 and at most 30 seconds, got {self.timeout}")

    def resolve(self, domain: str) -> str:
        start_time = time.time()
        try:
            infos = call_with_timeout(
                domain,
                lambda: socket.getaddrinfo(domain, None, proto=socket.IPPROTO_TCP),
                self.timeout
            )
        except (socket.gaierror, UnicodeError) as e:
            logger.dns_lookup(domain, False, (time.time() - start_time) * 1000)
            raise ResolutionError(domain, str(e)) from e
        except ResolutionError:
            logger.dns_lookup(domain, False, (time.time() - start_time) * 1000)
            raise

        duration_ms = (time.time() - start_time) * 1000
        for family in (socket.AF_INET, socket.AF_INET6):
            for info in infos:
                if info[0] == family:
                    answer = info[4][0]
                    logger.dns_lookup(domain, True, duration_ms, answer)
                    return answer

        logger.dns_lookup(domain, False, duration_ms)
        raise ResolutionError(domain, "no A or AAAA records")


def build_resolver():
    """Create the resolver selected by MUKO_RESOLVER"""
    kind = os.getenv('MUKO_RESOLVER', 'doh').lower()
    if kind == 'doh':
        return DohResolver()
    if kind == 'system':
        logger.warning("Using the system resolver: domains in DEV mode will show their local override")
        return SystemResolver()
    raise ConfigurationError(f"MUKO_RESOLVER must be 'doh' or 'system', got {kind}")
