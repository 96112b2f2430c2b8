"""
Data models for the muko hosts-file manager
"""

from dataclasses import dataclass, field
from typing import Dict, Optional

MUKO_TAG = "#muko:"
DEFAULT_DEV_IP = "127.0.0.1"

MODE_DEV = "DEV"
MODE_PROD = "PROD"


@dataclass
class ForeignLine:
    """A hosts-file line muko does not own, kept byte-for-byte"""
    text: str
    newline: str = "\n"

    def render(self) -> str:
        return self.text + self.newline


@dataclass
class Entry:
    """A muko-managed hosts-file line"""
    domain: str
    ip: str
    alias: Optional[str] = None
    active: bool = True
    newline: str = field(default="\n", compare=False)
    # Line text as read from disk; None for entries created in this run
    raw: Optional[str] = field(default=None, compare=False, repr=False)
    position: int = field(default=-1, compare=False)
    # Whether the leading "#" of raw was added by set_active(False)
    hash_added: bool = field(default=False, compare=False, repr=False)

    @property
    def mode(self) -> str:
        return MODE_DEV if self.active else MODE_PROD

    def matches(self, key: str) -> bool:
        """True when key names this entry by domain or alias"""
        return key == self.domain or (self.alias is not None and key == self.alias)

    def set_active(self, active: bool) -> bool:
        """Switch between DEV and PROD, returning whether anything changed"""
        if active == self.active:
            return False

        self.active = active
        if self.raw is not None:
            if not active:
                self.raw = "#" + self.raw
                self.hash_added = True
            elif self.hash_added:
                self.raw = self.raw[1:]
                self.hash_added = False
            else:
                # Commented on disk: drop the "#" and the spacing after it
                self.raw = self.raw[1:].lstrip()
        return True

    def to_line(self) -> str:
        """Canonical tag grammar, without line terminator"""
        line = f"{self.ip} {self.domain} {MUKO_TAG}"
        if self.alias:
            line = f"{line} {self.alias}"
        if not self.active:
            line = "#" + line
        return line

    def render(self) -> str:
        text = self.raw if self.raw is not None else self.to_line()
        return text + self.newline

    def to_dict(self) -> Dict:
        return {
            "domain": self.domain,
            "ip": self.ip,
            "alias": self.alias,
            "mode": self.mode,
        }


@dataclass
class ResolvedEntry:
    """An entry paired with the domain's upstream DNS answer"""
    entry: Entry
    resolved_ip: Optional[str] = None

    @property
    def resolved(self) -> bool:
        return self.resolved_ip is not None

    def to_dict(self) -> Dict:
        data = self.entry.to_dict()
        data["resolved_ip"] = self.resolved_ip
        return data
