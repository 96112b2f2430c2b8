"""
Pairs each muko entry with its domain's production address
"""

from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional

from models import Entry, ResolvedEntry
from logger import logger
from exceptions import ConfigurationError, ResolutionError
from resolver import call_with_timeout
from settings import env_float, env_int


class ResolutionComparator:
    """Resolves entry domains in parallel without touching the document"""

    def __init__(self, resolver, max_workers: int = None, deadline: float = None):
        self.resolver = resolver
        self.max_workers = max_workers or env_int('MUKO_DNS_WORKERS', '8')
        # Per-domain bound, counted from when that domain's lookup starts
        self.deadline = deadline or env_float('MUKO_DNS_DEADLINE', '5')

        self._validate_configuration()

    def _validate_configuration(self):
        """Validate comparator configuration"""
        if self.max_workers < 1 or self.max_workers > 64:
            raise ConfigurationError(f"MUKO_DNS_WORKERS must be between 1 and 64, got {self.max_workers}")

        if self.deadline <= 0 or self.deadline > 30:
            raise ConfigurationError(f"MUKO_DNS_DEADLINE must be above 0 and at most 30 seconds, got {self.deadline}")

    def _lookup(self, domain: str) -> Optional[str]:
        try:
            return call_with_timeout(domain, lambda: self.resolver.resolve(domain), self.deadline)
        except ResolutionError as e:
            logger.resolution_failed(domain, e.reason)
        except Exception as e:
            logger.resolution_failed(domain, f"unexpected error: {e}")
        return None

    def compare(self, entries: List[Entry]) -> List[ResolvedEntry]:
        """Return one ResolvedEntry per entry, in the same order.

        A domain that fails or does not answer within its deadline gets
        resolved_ip=None; the other domains are unaffected.
        """
        domains = list(dict.fromkeys(entry.domain for entry in entries))
        if not domains:
            return []

        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(domains)),
                                thread_name_prefix="muko-dns") as executor:
            answers: Dict[str, Optional[str]] = dict(zip(domains, executor.map(self._lookup, domains)))

        return [ResolvedEntry(entry, answers[entry.domain]) for entry in entries]
