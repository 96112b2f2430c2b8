"""
DEV/PROD switching for muko entries
"""

from models import Entry
from registry import HostsDocument
from exceptions import EntryNotFoundError
from logger import logger


def set_mode(document: HostsDocument, key: str, active: bool) -> Entry:
    """Put the first entry matching key (domain or alias) into DEV or PROD.

    Setting the mode an entry is already in leaves the document clean.
    Raises EntryNotFoundError when no muko entry matches.
    """
    entry = document.find(key)
    if entry is None:
        raise EntryNotFoundError(key)

    changed = entry.set_active(active)
    if changed:
        document.dirty = True

    logger.mode_changed(entry.domain, entry.mode, changed)
    return entry
