"""
In-memory view of a hosts file: foreign lines plus muko entries, in file order
"""

from typing import List, Optional

from classifier import Line, classify_lines, is_valid_ip
from models import Entry, ForeignLine, DEFAULT_DEV_IP
from exceptions import InvalidEntryError
from logger import logger


class HostsDocument:
    """Ordered hosts-file lines with domain/alias lookup over muko entries"""

    def __init__(self, lines: Optional[List[Line]] = None):
        self.lines: List[Line] = list(lines or [])
        self.dirty = False

    @classmethod
    def parse(cls, text: str) -> "HostsDocument":
        return cls(classify_lines(text))

    def render(self) -> str:
        return "".join(line.render() for line in self.lines)

    @property
    def entries(self) -> List[Entry]:
        return [line for line in self.lines if isinstance(line, Entry)]

    @property
    def foreign_lines(self) -> List[ForeignLine]:
        return [line for line in self.lines if isinstance(line, ForeignLine)]

    def find(self, key: str) -> Optional[Entry]:
        """First entry in file order whose domain or alias equals key"""
        for entry in self.entries:
            if entry.matches(key):
                return entry
        return None

    def _newline(self) -> str:
        for line in self.lines:
            if line.newline:
                return line.newline
        return "\n"

    def add(self, domain: str, ip: str = DEFAULT_DEV_IP, alias: Optional[str] = None) -> Entry:
        """Append a new entry in DEV mode.

        Existing muko entries for the same domain are dropped first so a
        domain is only ever managed by one line. Foreign lines are left
        alone even when they mention the domain.
        """
        self._validate_entry(domain, ip, alias)

        previous = [line for line in self.lines
                    if isinstance(line, Entry) and line.domain == domain]
        if previous:
            self.lines = [line for line in self.lines
                          if not any(line is old for old in previous)]
            logger.entry_replaced(domain, len(previous))

        newline = self._newline()
        if self.lines and not self.lines[-1].newline:
            self.lines[-1].newline = newline

        entry = Entry(domain=domain, ip=ip, alias=alias or None, active=True,
                      newline=newline)
        self.lines.append(entry)
        self._renumber()
        self.dirty = True

        logger.entry_added(domain, ip, entry.alias)
        return entry

    def _renumber(self):
        for position, line in enumerate(self.lines):
            if isinstance(line, Entry):
                line.position = position

    @staticmethod
    def _validate_entry(domain: str, ip: str, alias: Optional[str]):
        """Reject values that would not survive a round trip through the tag grammar"""
        if not domain or any(ch.isspace() for ch in domain) or "#" in domain:
            raise InvalidEntryError(f"Invalid domain name: '{domain}'")

        if not is_valid_ip(ip):
            raise InvalidEntryError(f"Invalid IP address: '{ip}'")

        if alias is not None and (any(ch.isspace() for ch in alias) or "#" in alias):
            raise InvalidEntryError(f"Invalid alias: '{alias}'")
