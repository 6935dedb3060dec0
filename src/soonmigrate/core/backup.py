"""
Single-slot backup management for Anchor.toml.

This module owns every destructive write to the live config file and to its
backup artifact. Writes go to a temporary file in the same directory and are
moved into place with ``os.replace`` so a crash never leaves a truncated file.
"""

import os
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Union
from uuid import uuid4

from soonmigrate.core.errors import BackupConflict, FilesystemError, NoBackupFound
from soonmigrate.utils.helpers import backup_path_for
from soonmigrate.utils.logging import get_logger

logger = get_logger("backup")


@dataclass
class BackupRecord:
    """State of the backup paired with a config file."""

    original_path: Path
    backup_path: Path
    created_at: datetime
    restored: bool = False
    size: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "original_path": str(self.original_path),
            "backup_path": str(self.backup_path),
            "created_at": self.created_at.isoformat(),
            "restored": self.restored,
            "size": self.size,
        }


def atomic_write(path: Path, data: bytes) -> None:
    """
    Replace ``path`` with ``data`` atomically.

    Raises:
        FilesystemError: If the temporary file cannot be written or moved into place
    """
    tmp_path = path.parent / f".{path.name}.tmp-{uuid4().hex}"
    try:
        with open(tmp_path, "wb") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, path)
    except OSError as e:
        raise FilesystemError(f"cannot write file: {e}", path, cause=e) from e
    finally:
        if tmp_path.exists():
            tmp_path.unlink(missing_ok=True)


def _read(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except OSError as e:
        raise FilesystemError(f"cannot read file: {e}", path, cause=e) from e


class BackupStore:
    """Manage the ``<config>.bak`` artifact next to a config file."""

    def record(self, path: Union[str, Path]) -> Optional[BackupRecord]:
        """
        Describe the current backup for ``path``.

        A backup counts as restored when the live file is byte-identical to it.

        Returns:
            BackupRecord, or None when no backup exists
        """
        original = Path(path)
        backup = backup_path_for(original)
        if not backup.is_file():
            return None

        try:
            stat = backup.stat()
        except OSError as e:
            raise FilesystemError(f"cannot stat backup: {e}", backup, cause=e) from e

        created_at = datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc)
        restored = original.is_file() and _read(original) == _read(backup)
        return BackupRecord(original, backup, created_at, restored, stat.st_size)

    def backup(self, path: Union[str, Path], overwrite: bool = False) -> BackupRecord:
        """
        Copy the live file byte-for-byte into its backup slot.

        Args:
            path: Live config file
            overwrite: Replace an existing backup even if it was never restored

        Returns:
            Record of the new backup

        Raises:
            BackupConflict: If an unrestored backup exists and ``overwrite`` is False
            FilesystemError: If reading or writing fails
        """
        original = Path(path)
        existing = self.record(original)
        if existing is not None and not existing.restored and not overwrite:
            raise BackupConflict(
                "an unrestored backup already exists; restore it or pass overwrite",
                existing.backup_path,
            )

        backup = backup_path_for(original)
        data = _read(original)
        atomic_write(backup, data)
        logger.info(f"Backup created: {backup}")
        return BackupRecord(original, backup, datetime.now(timezone.utc), size=len(data))

    def restore(self, path: Union[str, Path]) -> BackupRecord:
        """
        Overwrite the live file with the backup contents.

        The backup is kept, so restoring twice is harmless.

        Raises:
            NoBackupFound: If there is no backup for ``path``
            FilesystemError: If reading or writing fails
        """
        original = Path(path)
        backup = backup_path_for(original)
        if not backup.is_file():
            raise NoBackupFound("no backup to restore from", backup)

        atomic_write(original, _read(backup))
        logger.info(f"Restored {original} from {backup}")

        record = self.record(original)
        record.restored = True
        return record

    def commit(self, path: Union[str, Path], data: bytes) -> None:
        """Atomically write new contents to the live config file."""
        atomic_write(Path(path), data)
        logger.info(f"Wrote {path}")
