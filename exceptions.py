"""
Custom exceptions for the muko hosts-file manager
"""


class MukoError(Exception):
    """Base class for errors surfaced to the user"""
    pass


class ConfigurationError(MukoError):
    """Raised when configuration validation fails"""
    pass


class InvalidEntryError(MukoError):
    """Raised when a new entry has an unusable domain, IP or alias"""
    pass


class EntryNotFoundError(MukoError):
    """Raised when no muko-managed entry matches a domain or alias"""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"No muko-managed entry found for '{key}'")


class WriteDeniedError(MukoError):
    """Raised when the hosts file cannot be rewritten for lack of permission"""

    def __init__(self, path: str, reason: str = ""):
        self.path = path
        message = f"Permission denied writing {path} (try running with sudo)"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class HostsIOError(MukoError):
    """Raised when reading, writing or replacing the hosts file fails"""
    pass


class ResolutionError(MukoError):
    """Raised by a resolver when a domain cannot be resolved"""

    def __init__(self, domain: str, reason: str):
        self.domain = domain
        self.reason = reason
        super().__init__(f"Could not resolve {domain}: {reason}")
