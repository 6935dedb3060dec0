"""
Anchor.toml document model.

Wraps a tomlkit document so that comments, key order, quoting and blank
lines survive a parse/serialize round trip untouched.
"""

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator, List, Optional, Union

import tomlkit
from tomlkit.exceptions import TOMLKitError
from tomlkit.toml_document import TOMLDocument

from soonmigrate.core.errors import FilesystemError, MalformedConfig, MissingRequiredSection

# At least one of these must exist for the file to describe a network
NETWORK_SECTIONS = ("provider", "clusters")

_BARE_KEY = re.compile(r"^[A-Za-z0-9_-]+$")
_PATH_TOKEN = re.compile(r'"([^"]*)"|([^.\[\]"]+)|\[(\d+)\]')


@dataclass
class Leaf:
    """A scalar value inside the document together with where it lives."""

    path: str
    section: str
    key: str
    value: Any
    parent: Any
    slot: Union[str, int]


def _join(base: str, key: str) -> str:
    part = key if _BARE_KEY.match(key) else f'"{key}"'
    return f"{base}.{part}" if base else part


class ConfigDocument:
    """Ordered, round-trippable view of an Anchor.toml file."""

    def __init__(self, document: TOMLDocument, source: Optional[Path] = None):
        self._doc = document
        self.source = source

    @property
    def raw(self) -> TOMLDocument:
        """The underlying tomlkit document."""
        return self._doc

    @property
    def sections(self) -> List[str]:
        """Names of the top-level tables, in file order."""
        return [key for key, value in self._doc.items() if isinstance(value, dict)]

    def has_section(self, name: str) -> bool:
        return isinstance(self._doc.get(name), dict)

    def get(self, path: str, default: Any = None) -> Any:
        """
        Look up a value by dotted path.

        Args:
            path: Path such as ``provider.cluster`` or ``test.genesis[0].program``

        Returns:
            The value found, or ``default``
        """
        node: Any = self._doc
        for quoted, bare, index in _PATH_TOKEN.findall(path):
            try:
                if index:
                    node = node[int(index)]
                else:
                    node = node[quoted or bare]
            except (KeyError, IndexError, TypeError):
                return default
        return node

    def walk(self) -> Iterator[Leaf]:
        """Yield every scalar leaf in document order."""
        for key, value in self._doc.items():
            if isinstance(value, (dict, list)):
                yield from self._walk(value, _join("", key), key, key)
            else:
                yield Leaf(_join("", key), "", key, value, self._doc, key)

    def _walk(self, node: Any, path: str, section: str, key: str) -> Iterator[Leaf]:
        if isinstance(node, dict):
            for child_key, value in node.items():
                child_path = _join(path, child_key)
                if isinstance(value, (dict, list)):
                    yield from self._walk(value, child_path, section, child_key)
                else:
                    yield Leaf(child_path, section, child_key, value, node, child_key)
        elif isinstance(node, list):
            for index, value in enumerate(node):
                child_path = f"{path}[{index}]"
                if isinstance(value, (dict, list)):
                    yield from self._walk(value, child_path, section, key)
                else:
                    yield Leaf(child_path, section, key, value, node, index)

    def copy(self) -> "ConfigDocument":
        """Return an independent document with identical content."""
        return ConfigDocument(tomlkit.parse(self.to_text()), source=self.source)

    def to_text(self) -> str:
        return self._doc.as_string()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ConfigDocument):
            return NotImplemented
        return self.to_text() == other.to_text()

    def __repr__(self) -> str:
        return f"ConfigDocument(sections={self.sections!r})"


def parse(data: bytes, source: Optional[Path] = None) -> ConfigDocument:
    """
    Parse Anchor.toml bytes into a ConfigDocument.

    Args:
        data: Raw file contents
        source: Path the bytes came from, used in error reports

    Returns:
        Parsed document

    Raises:
        MalformedConfig: If the bytes are not UTF-8 TOML
        MissingRequiredSection: If no cluster/network section is present
    """
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise MalformedConfig(f"not valid UTF-8: {e}", source) from e

    try:
        document = tomlkit.parse(text)
    except (TOMLKitError, ValueError) as e:
        raise MalformedConfig(f"invalid TOML: {e}", source) from e

    config = ConfigDocument(document, source=source)
    if not any(config.has_section(name) for name in NETWORK_SECTIONS):
        raise MissingRequiredSection(
            f"expected one of the sections {', '.join(NETWORK_SECTIONS)}", source
        )
    return config


def serialize(doc: ConfigDocument) -> bytes:
    """Serialize a document back to bytes; untouched input round-trips exactly."""
    return doc.to_text().encode("utf-8")


def load_config_file(file_path: Union[str, Path]) -> ConfigDocument:
    """
    Read and parse a config file from disk.

    Raises:
        FilesystemError: If the file cannot be read
    """
    path = Path(file_path)
    try:
        data = path.read_bytes()
    except OSError as e:
        raise FilesystemError(f"cannot read config file: {e}", path, cause=e) from e
    return parse(data, source=path)
