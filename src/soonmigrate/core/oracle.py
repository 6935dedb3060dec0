"""
Oracle usage detection.

Walks a project tree and matches every line of every source file against a
declarative table of provider signatures (crate names, import paths, program
IDs). Matching is plain case-sensitive text matching, so a signature inside
a comment or string literal is reported as well.
"""

import os
import re
from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Pattern, Tuple, Union

import yaml

from soonmigrate.core.settings import DATA_DIR
from soonmigrate.utils.logging import get_logger

logger = get_logger("oracle")

DEFAULT_SIGNATURES_PATH = DATA_DIR / "oracle_signatures.yaml"

DEFAULT_EXCLUDE_DIRS = (
    "target",
    "node_modules",
    ".git",
    ".anchor",
    "test-ledger",
    "dist",
    "build",
)
DEFAULT_EXCLUDE_FILES = ("Cargo.lock", "package-lock.json", "yarn.lock", "pnpm-lock.yaml")
DEFAULT_EXTENSIONS = (".rs", ".toml", ".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs", ".json", ".py")
DEFAULT_MAX_FILE_SIZE = 2 * 1024 * 1024

_BINARY_SNIFF_BYTES = 8192


class OracleProvider(Enum):
    """Oracle providers the detector can classify."""

    PYTH = "Pyth"
    SWITCHBOARD = "Switchboard"
    CHAINLINK = "Chainlink"
    OTHER = "Other"

    def __str__(self) -> str:
        return self.value


class Confidence(Enum):
    """How strongly a signature indicates real oracle usage."""

    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"

    @property
    def rank(self) -> int:
        return _CONFIDENCE_RANK[self]

    def __str__(self) -> str:
        return self.value


_CONFIDENCE_RANK = {Confidence.LOW: 0, Confidence.MEDIUM: 1, Confidence.HIGH: 2}


@dataclass(frozen=True)
class OracleFinding:
    """A single signature match in a source file."""

    file_path: Path
    line_number: int
    provider: OracleProvider
    matched_text: str
    column: int = 0
    confidence: Confidence = Confidence.HIGH

    @property
    def location(self) -> str:
        return f"{self.file_path.as_posix()}:{self.line_number}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file_path": self.file_path.as_posix(),
            "line_number": self.line_number,
            "column": self.column,
            "provider": self.provider.value,
            "matched_text": self.matched_text,
            "confidence": self.confidence.value,
        }


@dataclass(frozen=True)
class ScanNote:
    """A file the scan skipped instead of failing."""

    path: Path
    reason: str

    def to_dict(self) -> Dict[str, str]:
        return {"path": self.path.as_posix(), "reason": self.reason}


@dataclass
class ProviderSignatures:
    """Signatures and migration guidance for one provider."""

    provider: OracleProvider
    signatures: List[str] = field(default_factory=list)
    patterns: List[str] = field(default_factory=list)
    confidence: Confidence = Confidence.HIGH
    suggestion: str = ""
    before: str = ""
    after: str = ""

    def compile(self) -> Pattern:
        # Longest literal first so overlapping signatures match once
        literals = sorted(set(self.signatures), key=len, reverse=True)
        alternatives = [re.escape(literal) for literal in literals] + list(self.patterns)
        return re.compile("|".join(f"(?:{alt})" for alt in alternatives))


class SignatureTable:
    """Provider → signatures mapping, in table order."""

    def __init__(self, providers: Iterable[ProviderSignatures]):
        self.providers: Dict[OracleProvider, ProviderSignatures] = {}
        for entry in providers:
            self.providers[entry.provider] = entry
        self._compiled: List[Tuple[OracleProvider, Pattern]] = [
            (provider, entry.compile())
            for provider, entry in self.providers.items()
            if entry.signatures or entry.patterns
        ]

    def get(self, provider: OracleProvider) -> Optional[ProviderSignatures]:
        return self.providers.get(provider)

    def match_line(self, line: str) -> Iterator[Tuple[OracleProvider, int, str]]:
        """Yield (provider, column, matched_text) for every match in ``line``."""
        for provider, pattern in self._compiled:
            for match in pattern.finditer(line):
                if match.group(0):
                    yield provider, match.start(), match.group(0)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SignatureTable":
        """
        Build a table from its YAML structure.

        Raises:
            ValueError: If a provider name or field is invalid
        """
        providers = data.get("providers")
        if not isinstance(providers, dict) or not providers:
            raise ValueError("Signature table must define 'providers'")

        entries = []
        for name, config in providers.items():
            try:
                provider = OracleProvider(name)
            except ValueError:
                valid = ", ".join(p.value for p in OracleProvider)
                raise ValueError(f"Unknown oracle provider '{name}' (expected one of: {valid})")

            config = config or {}
            for key in ("signatures", "patterns"):
                values = config.get(key, [])
                if not isinstance(values, list) or not all(isinstance(v, str) and v for v in values):
                    raise ValueError(f"'{key}' for provider {name} must be a list of non-empty strings")
            for pattern in config.get("patterns", []):
                try:
                    re.compile(pattern)
                except re.error as e:
                    raise ValueError(f"Invalid pattern {pattern!r} for provider {name}: {e}")

            try:
                confidence = Confidence(config.get("confidence", Confidence.HIGH.value))
            except ValueError:
                valid = ", ".join(c.value for c in Confidence)
                raise ValueError(f"Invalid confidence for provider {name} (expected one of: {valid})")

            entries.append(
                ProviderSignatures(
                    provider=provider,
                    signatures=list(config.get("signatures", [])),
                    patterns=list(config.get("patterns", [])),
                    confidence=confidence,
                    suggestion=str(config.get("suggestion", "")).strip(),
                    before=str(config.get("before", "")).rstrip(),
                    after=str(config.get("after", "")).rstrip(),
                )
            )
        return cls(entries)


@lru_cache(maxsize=None)
def load_signature_table(path: Optional[str] = None) -> SignatureTable:
    """
    Load a signature table from YAML; each path is read once per process.

    Args:
        path: Optional table file; the packaged table is used when omitted

    Returns:
        Parsed SignatureTable
    """
    table_path = Path(path) if path else DEFAULT_SIGNATURES_PATH
    try:
        with open(table_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        raise FileNotFoundError(f"Signature table not found: {table_path}")
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in signature table {table_path}: {e}")
    return SignatureTable.from_dict(data)


@dataclass
class ScanOptions:
    """Which files the detector looks at."""

    exclude_dirs: Tuple[str, ...] = DEFAULT_EXCLUDE_DIRS
    exclude_files: Tuple[str, ...] = DEFAULT_EXCLUDE_FILES
    include_extensions: Optional[Tuple[str, ...]] = DEFAULT_EXTENSIONS
    max_file_size: int = DEFAULT_MAX_FILE_SIZE

    def wants(self, path: Path) -> bool:
        if path.name in self.exclude_files:
            return False
        if self.include_extensions is None:
            return True
        return path.suffix in self.include_extensions


class OracleDetector:
    """Scan a project tree for oracle provider signatures."""

    def __init__(self, table: Optional[SignatureTable] = None, options: Optional[ScanOptions] = None):
        self.table = table or load_signature_table()
        self.options = options or ScanOptions()
        self.skipped: List[ScanNote] = []

    def scan(self, project_root: Union[str, Path]) -> Iterator[OracleFinding]:
        """
        Lazily yield findings for every source file under ``project_root``.

        Files that cannot be read as text are recorded in ``self.skipped``.
        Consumers may stop iterating at any point.
        """
        root = Path(project_root)
        self.skipped = []
        for path in self.iter_files(root):
            text = self._read_text(path, root)
            if text is None:
                continue
            yield from self.scan_text(text, path.relative_to(root))

    def scan_text(self, text: str, file_path: Union[str, Path]) -> Iterator[OracleFinding]:
        """Yield findings for already-loaded file contents."""
        file_path = Path(file_path)
        for line_number, line in enumerate(text.splitlines(), start=1):
            for provider, column, matched in self.table.match_line(line):
                confidence = self.table.providers[provider].confidence
                yield OracleFinding(file_path, line_number, provider, matched, column, confidence)

    def detect_any(self, project_root: Union[str, Path]) -> bool:
        """True as soon as one finding exists."""
        return next(iter(self.scan(project_root)), None) is not None

    def iter_files(self, root: Path) -> Iterator[Path]:
        """Yield candidate files in a stable order, pruning excluded directories."""
        excluded = set(self.options.exclude_dirs)

        def on_error(error: OSError) -> None:
            self._skip(Path(error.filename or root), root, f"unreadable directory: {error.strerror}")

        for dirpath, dirnames, filenames in os.walk(root, onerror=on_error):
            dirnames[:] = sorted(d for d in dirnames if d not in excluded)
            for name in sorted(filenames):
                path = Path(dirpath) / name
                if self.options.wants(path):
                    yield path

    def _read_text(self, path: Path, root: Path) -> Optional[str]:
        try:
            if path.stat().st_size > self.options.max_file_size:
                self._skip(path, root, f"larger than {self.options.max_file_size} bytes")
                return None
            data = path.read_bytes()
        except OSError as e:
            self._skip(path, root, f"unreadable: {e.strerror or e}")
            return None

        if b"\x00" in data[:_BINARY_SNIFF_BYTES]:
            self._skip(path, root, "binary file")
            return None
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError:
            self._skip(path, root, "not UTF-8 text")
            return None

    def _skip(self, path: Path, root: Path, reason: str) -> None:
        try:
            shown = path.relative_to(root)
        except ValueError:
            shown = path
        note = ScanNote(shown, reason)
        self.skipped.append(note)
        logger.warning(f"Skipped {shown.as_posix()}: {reason}")

    @staticmethod
    def summarize(findings: Iterable[OracleFinding]) -> Dict[OracleProvider, int]:
        """Count findings per provider, in order of first occurrence."""
        counts: Dict[OracleProvider, int] = {}
        for finding in findings:
            counts[finding.provider] = counts.get(finding.provider, 0) + 1
        return counts

    @staticmethod
    def confidence_by_provider(findings: Iterable[OracleFinding]) -> Dict[OracleProvider, Confidence]:
        """Highest confidence seen per provider, in order of first occurrence."""
        levels: Dict[OracleProvider, Confidence] = {}
        for finding in findings:
            current = levels.get(finding.provider)
            if current is None or finding.confidence.rank > current.rank:
                levels[finding.provider] = finding.confidence
        return levels
