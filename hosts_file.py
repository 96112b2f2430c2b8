"""
Hosts file persistence with atomic replace and optional backups
"""

import os
import glob
import shutil
import tempfile
from datetime import datetime
from typing import Optional, Tuple

from registry import HostsDocument
from logger import logger
from exceptions import ConfigurationError, HostsIOError, WriteDeniedError
from settings import env_int

DEFAULT_HOSTS_FILE = "/etc/hosts"

# Bytes that are not valid UTF-8 round-trip unchanged
ENCODING = "utf-8"
ENCODING_ERRORS = "surrogateescape"


class HostsFile:
    """Loads a hosts file into a HostsDocument and writes it back atomically"""

    def __init__(self, path: str = None, backup_dir: str = None, max_backups: int = None):
        self.path = path or os.getenv('MUKO_HOSTS_FILE', DEFAULT_HOSTS_FILE)
        self.backup_dir = backup_dir or os.getenv('MUKO_BACKUP_DIR') or None
        self.max_backups = max_backups or env_int('MUKO_MAX_BACKUPS', '5')

        self._validate_configuration()

    def _validate_configuration(self):
        """Validate hosts file configuration"""
        if self.max_backups < 1 or self.max_backups > 50:
            raise ConfigurationError(f"MUKO_MAX_BACKUPS must be between 1 and 50, got {self.max_backups}")

        if os.path.isdir(self.path):
            raise ConfigurationError(f"Hosts file path {self.path} is a directory")

        logger.debug("Hosts file configuration validated",
                     path=self.path,
                     backup_dir=self.backup_dir,
                     max_backups=self.max_backups)

    def load(self) -> HostsDocument:
        """Read and classify the whole hosts file"""
        try:
            with open(self.path, 'r', encoding=ENCODING, errors=ENCODING_ERRORS, newline='') as f:
                text = f.read()
        except FileNotFoundError:
            logger.warning(f"{self.path} does not exist, starting from an empty hosts file")
            text = ""
        except OSError as e:
            raise HostsIOError(f"Failed to read {self.path}: {e}") from e

        document = HostsDocument.parse(text)
        logger.hosts_loaded(self.path, len(document.entries), len(document.foreign_lines))
        return document

    def save(self, document: HostsDocument):
        """Replace the hosts file with the rendered document.

        The new content goes to a temporary file in the same directory
        which is then renamed over the original, so readers only ever
        see the old or the new file.
        """
        mode, uid, gid = self._file_metadata()
        backup = self._create_backup() if self.backup_dir else None

        directory = os.path.dirname(os.path.abspath(self.path))
        tmp_path = None
        try:
            with tempfile.NamedTemporaryFile(
                mode='w', encoding=ENCODING, errors=ENCODING_ERRORS, newline='',
                dir=directory, prefix='.hosts.', suffix='.muko', delete=False
            ) as tmp:
                tmp_path = tmp.name
                tmp.write(document.render())
                tmp.flush()
                os.fsync(tmp.fileno())

            os.chmod(tmp_path, mode)
            st = os.stat(tmp_path)
            if (st.st_uid, st.st_gid) != (uid, gid):
                os.chown(tmp_path, uid, gid)

            os.replace(tmp_path, self.path)
        except PermissionError as e:
            self._discard(tmp_path)
            raise WriteDeniedError(self.path, str(e)) from e
        except OSError as e:
            self._discard(tmp_path)
            raise HostsIOError(f"Failed to write {self.path}: {e}") from e

        document.dirty = False
        logger.hosts_saved(self.path, len(document.entries), backup)

    def _file_metadata(self) -> Tuple[int, int, int]:
        """Mode and ownership to carry over to the replacement file"""
        try:
            st = os.stat(self.path)
        except FileNotFoundError:
            return 0o644, os.getuid(), os.getgid()
        except OSError as e:
            raise HostsIOError(f"Failed to stat {self.path}: {e}") from e
        return st.st_mode & 0o7777, st.st_uid, st.st_gid

    def _discard(self, tmp_path: Optional[str]):
        """Remove a temporary file left behind by a failed write"""
        if not tmp_path:
            return
        try:
            os.unlink(tmp_path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Failed to remove temporary file {tmp_path}: {e}")

    def _create_backup(self) -> Optional[str]:
        """Create a timestamped copy of the current hosts file"""
        if not os.path.exists(self.path):
            return None

        try:
            os.makedirs(self.backup_dir, exist_ok=True)
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
            backup_name = os.path.join(self.backup_dir,
                                       f"{os.path.basename(self.path)}.backup.{timestamp}")
            shutil.copy2(self.path, backup_name)
            logger.debug(f"Created backup: {backup_name}")

            self._cleanup_old_backups()
            return backup_name
        except OSError as e:
            logger.warning(f"Failed to create backup: {e}")
            return None

    def _cleanup_old_backups(self):
        """Remove old backup files, keeping only the most recent ones"""
        backup_pattern = os.path.join(self.backup_dir,
                                      f"{glob.escape(os.path.basename(self.path))}.backup.*")
        backup_files = sorted(glob.glob(backup_pattern), reverse=True)

        for backup_file in backup_files[self.max_backups:]:
            try:
                os.remove(backup_file)
                logger.debug(f"Removed old backup: {backup_file}")
            except OSError as e:
                logger.warning(f"Failed to remove old backup {backup_file}: {e}")
