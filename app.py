"""
muko application core

Each operation loads the hosts file fresh, applies at most one change and
writes the result back atomically. Nothing is kept between invocations.
"""

from typing import List, Optional, Tuple

from models import Entry, ResolvedEntry, DEFAULT_DEV_IP
from hosts_file import HostsFile
from toggler import set_mode
from comparator import ResolutionComparator
from resolver import build_resolver
from logger import logger


class MukoManager:
    """Add, toggle and list muko-managed hosts entries"""

    def __init__(self, hosts_file: HostsFile = None, resolver=None):
        self.hosts_file = hosts_file or HostsFile()
        self._resolver = resolver

    @property
    def resolver(self):
        # Built lazily so add/dev/prod never need DNS configuration
        if self._resolver is None:
            self._resolver = build_resolver()
        return self._resolver

    def add(self, domain: str, ip: str = DEFAULT_DEV_IP,
            alias: Optional[str] = None) -> Tuple[Entry, bool]:
        """Append a DEV entry for domain.

        Returns the new entry and whether earlier muko entries for the
        same domain were replaced.
        """
        document = self.hosts_file.load()
        replaced = any(entry.domain == domain for entry in document.entries)
        entry = document.add(domain, ip, alias)
        self.hosts_file.save(document)
        return entry, replaced

    def set_mode(self, key: str, active: bool) -> Entry:
        """Switch the entry named by domain or alias to DEV (True) or PROD (False)"""
        document = self.hosts_file.load()
        entry = set_mode(document, key, active)

        if document.dirty:
            self.hosts_file.save(document)
        else:
            logger.debug(f"{entry.domain} already in {entry.mode} mode, hosts file left untouched")
        return entry

    def entries(self) -> List[Entry]:
        return self.hosts_file.load().entries

    def list_entries(self) -> List[ResolvedEntry]:
        """All muko entries in file order with their upstream DNS answers"""
        entries = self.entries()
        return ResolutionComparator(self.resolver).compare(entries)
