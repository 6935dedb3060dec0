"""
Helper utility functions for soon-migrate.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Union

ANCHOR_TOML = "Anchor.toml"
CARGO_TOML = "Cargo.toml"
BACKUP_SUFFIX = ".bak"

_SIZE_UNITS = ("KB", "MB", "GB", "TB")


@dataclass(frozen=True)
class ProjectLayout:
    """Fixed file layout of an Anchor project."""

    root: Path

    @classmethod
    def from_path(cls, project_path: Union[str, Path]) -> "ProjectLayout":
        return cls(Path(project_path).expanduser())

    @property
    def anchor_toml(self) -> Path:
        return self.root / ANCHOR_TOML

    @property
    def cargo_toml(self) -> Path:
        return self.root / CARGO_TOML


def backup_path_for(config_path: Union[str, Path]) -> Path:
    """Return the single backup slot for a config file (``Anchor.toml.bak``)."""
    path = Path(config_path)
    return path.with_name(path.name + BACKUP_SUFFIX)


def format_file_size(size_bytes: int) -> str:
    """
    Format a byte count for display, e.g. ``512 B`` or ``1.5 KB``.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted size string
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    size = float(size_bytes)
    for unit in _SIZE_UNITS:
        size /= 1024.0
        if size < 1024.0 or unit == _SIZE_UNITS[-1]:
            return f"{size:.1f} {unit}"
