"""
Structured logging with configurable levels and per-run counters
"""

import os
import json
import logging
import sys
from datetime import datetime
from typing import Dict, Any, Optional


class StructuredFormatter(logging.Formatter):
    """Custom formatter for structured JSON logging"""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as structured JSON"""
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if hasattr(record, 'extra_fields'):
            log_entry.update(record.extra_fields)

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """Human-readable console formatter"""

    def __init__(self):
        super().__init__(
            fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )


class Logger:
    """Logger wrapper with structured fields and hosts-file counters"""

    def __init__(self, name: str = "muko"):
        self.name = name
        self.logger = logging.getLogger(name)
        self._setup_logging()
        self._metrics = {
            "entries_added": 0,
            "entries_replaced": 0,
            "modes_changed": 0,
            "dns_lookups": 0,
            "resolution_failures": 0,
            "saves": 0,
            "errors": 0,
            "warnings": 0
        }

    def _setup_logging(self):
        """Setup logging configuration"""
        self.logger.handlers.clear()

        # stdout belongs to the entry table, so everything goes to stderr
        log_level = os.getenv('MUKO_LOG_LEVEL', 'WARNING').upper()
        self.logger.setLevel(getattr(logging, log_level, logging.WARNING))

        handler = logging.StreamHandler(sys.stderr)
        if os.getenv('MUKO_JSON_LOGGING', 'false').lower() == 'true':
            handler.setFormatter(StructuredFormatter())
        else:
            handler.setFormatter(ConsoleFormatter())
        self.logger.addHandler(handler)

        self.logger.propagate = False

    def _log_with_extra(self, level: int, message: str, extra_fields: Optional[Dict[str, Any]] = None):
        """Log with extra structured fields"""
        if extra_fields:
            self.logger.log(level, message, extra={'extra_fields': extra_fields})
        else:
            self.logger.log(level, message)

    def debug(self, message: str, **kwargs):
        """Log debug message with optional extra fields"""
        self._log_with_extra(logging.DEBUG, message, kwargs)

    def info(self, message: str, **kwargs):
        """Log info message with optional extra fields"""
        self._log_with_extra(logging.INFO, message, kwargs)

    def warning(self, message: str, **kwargs):
        """Log warning message with optional extra fields"""
        self._metrics["warnings"] += 1
        self._log_with_extra(logging.WARNING, message, kwargs)

    def error(self, message: str, **kwargs):
        """Log error message with optional extra fields"""
        self._metrics["errors"] += 1
        self._log_with_extra(logging.ERROR, message, kwargs)

    def hosts_loaded(self, path: str, entry_count: int, foreign_count: int):
        """Log a parsed hosts file"""
        self.debug(f"Loaded {path}: {entry_count} muko entries, {foreign_count} other lines",
                   operation="hosts_loaded",
                   path=path,
                   entry_count=entry_count,
                   foreign_count=foreign_count)

    def hosts_saved(self, path: str, entry_count: int, backup: str = None):
        """Log an atomic hosts file rewrite"""
        self._metrics["saves"] += 1
        self.info(f"Saved {path} with {entry_count} muko entries",
                  operation="hosts_saved",
                  path=path,
                  entry_count=entry_count,
                  backup=backup)

    def entry_added(self, domain: str, ip: str, alias: str = None):
        """Log entry creation"""
        self._metrics["entries_added"] += 1
        self.info(f"Added entry: {domain} -> {ip}",
                  operation="entry_added",
                  domain=domain,
                  ip=ip,
                  alias=alias)

    def entry_replaced(self, domain: str, count: int):
        """Log owned entries dropped in favour of a new one"""
        self._metrics["entries_replaced"] += count
        self.info(f"Replaced {count} existing entries for {domain}",
                  operation="entry_replaced",
                  domain=domain,
                  count=count)

    def mode_changed(self, domain: str, mode: str, changed: bool):
        """Log a DEV/PROD switch"""
        if changed:
            self._metrics["modes_changed"] += 1
        self.info(f"Set {domain} to {mode} mode" + ("" if changed else " (unchanged)"),
                  operation="mode_changed",
                  domain=domain,
                  mode=mode,
                  changed=changed)

    def dns_lookup(self, domain: str, success: bool, duration_ms: float = None, answer: str = None):
        """Log a single DNS lookup attempt"""
        self._metrics["dns_lookups"] += 1
        level = logging.DEBUG if success else logging.INFO
        message = f"DNS lookup {domain}: {answer if success else 'failed'}"

        extra_fields = {
            "operation": "dns_lookup",
            "domain": domain,
            "success": success
        }

        if duration_ms is not None:
            extra_fields["duration_ms"] = duration_ms
        if answer is not None:
            extra_fields["answer"] = answer

        self._log_with_extra(level, message, extra_fields)

    def resolution_failed(self, domain: str, reason: str):
        """Log a domain left unresolved in a listing"""
        self._metrics["resolution_failures"] += 1
        self.warning(f"Could not resolve {domain}: {reason}",
                     operation="resolution_failed",
                     domain=domain,
                     reason=reason)

    def get_metrics(self) -> Dict[str, Any]:
        """Get current metrics"""
        return dict(self._metrics)

    def reset_metrics(self):
        """Reset metrics counters"""
        for key in self._metrics:
            self._metrics[key] = 0


# Global logger instance
logger = Logger()
