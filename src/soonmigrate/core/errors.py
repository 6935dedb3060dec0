"""
Error kinds raised by the migration core.

Every failure carries the file path involved and a distinct exit code so the
CLI can report the kind without inspecting messages.
"""

from pathlib import Path
from typing import Any, Dict, Optional, Union


class MigrationError(Exception):
    """Base class for all migration failures."""

    kind = "MigrationError"
    exit_code = 1

    def __init__(self, message: str, path: Optional[Union[str, Path]] = None):
        self.path = Path(path) if path is not None else None
        self.message = message
        super().__init__(message)

    def __str__(self) -> str:
        if self.path is not None:
            return f"{self.kind}: {self.message} ({self.path})"
        return f"{self.kind}: {self.message}"


class NotAProject(MigrationError):
    """The target directory is not an Anchor project."""

    kind = "NotAProject"
    exit_code = 2


class MalformedConfig(MigrationError):
    """Anchor.toml is not well-formed TOML."""

    kind = "MalformedConfig"
    exit_code = 3


class MissingRequiredSection(MigrationError):
    """Anchor.toml has no cluster/network section at all."""

    kind = "MissingRequiredSection"
    exit_code = 4


class BackupConflict(MigrationError):
    """An unrestored backup exists and overwriting it was not requested."""

    kind = "BackupConflict"
    exit_code = 5


class NoBackupFound(MigrationError):
    """Restore was requested but no backup artifact exists."""

    kind = "NoBackupFound"
    exit_code = 6


class FilesystemError(MigrationError):
    """An OS-level read or write failed."""

    kind = "FilesystemError"
    exit_code = 7

    def __init__(self, message: str, path: Optional[Union[str, Path]] = None, cause: Optional[BaseException] = None):
        super().__init__(message, path)
        self.cause = cause


class UnrecognizedEndpoint(MigrationError):
    """
    An endpoint field whose value could not be classified.

    Collected as a warning by the rewriter; never raised by the core.
    """

    kind = "UnrecognizedEndpoint"

    def __init__(self, field_path: str, value: str):
        super().__init__(f"cannot classify endpoint {value!r} at {field_path}")
        self.field_path = field_path
        self.value = value


class UnknownNetwork(MigrationError):
    """The requested target network has no configured endpoint."""

    kind = "UnknownNetwork"
    exit_code = 8


class NetworkMismatch(MigrationError):
    """
    An endpoint names a different network than the selected target.

    Collected as a warning by the rewriter; never raised by the core.
    """

    kind = "NetworkMismatch"

    def __init__(
        self,
        field_path: str,
        value: str,
        found_network: Optional[str],
        target_network: Optional[str],
        rewritten: bool,
    ):
        found = found_network or "another"
        if rewritten:
            message = (
                f"{field_path} named the {found} network ({value!r}) "
                f"but was rewritten to the {target_network} target"
            )
        else:
            message = f"{field_path} points at the SOON {found} endpoint ({value!r}), not the selected target; left unchanged"
        super().__init__(message)
        self.field_path = field_path
        self.value = value
        self.found_network = found_network
        self.target_network = target_network
        self.rewritten = rewritten

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.field_path,
            "value": self.value,
            "found_network": self.found_network,
            "target_network": self.target_network,
            "rewritten": self.rewritten,
        }
