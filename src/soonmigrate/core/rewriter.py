"""
Endpoint rewriting for Anchor.toml.

Finds RPC/cluster endpoint references that point at the Solana source
networks and replaces them with the SOON target endpoint. The input document
is never modified; a rewritten copy and a diff are returned instead.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union
from urllib.parse import urlparse

import tomlkit
from tomlkit.items import String

from soonmigrate.core.document import ConfigDocument, Leaf
from soonmigrate.core.errors import NetworkMismatch, UnrecognizedEndpoint
from soonmigrate.core.settings import NETWORK_ALIASES, NetworkSettings
from soonmigrate.utils.logging import get_logger

logger = get_logger("rewriter")

_URL_SCHEMES = ("http", "https", "ws", "wss")


class EndpointKind(Enum):
    """Classification of an endpoint value."""

    SOURCE = "source"
    TARGET = "target"
    OTHER_TARGET = "other-target"
    LOCAL = "local"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class DiffEntry:
    """One replaced endpoint value."""

    path: str
    old_value: str
    new_value: str

    def to_dict(self) -> Dict[str, Any]:
        return {"path": self.path, "old_value": self.old_value, "new_value": self.new_value}

    def __repr__(self) -> str:
        return f"DiffEntry({self.path}: {self.old_value} → {self.new_value})"


@dataclass
class EndpointDiff:
    """Ordered record of endpoint replacements; empty means nothing was rewritten."""

    entries: List[DiffEntry] = field(default_factory=list)
    unrecognized: List[UnrecognizedEndpoint] = field(default_factory=list)
    mismatches: List[NetworkMismatch] = field(default_factory=list)

    def add(self, path: str, old_value: str, new_value: str) -> None:
        self.entries.append(DiffEntry(path, old_value, new_value))

    @property
    def paths(self) -> List[str]:
        return [entry.path for entry in self.entries]

    @property
    def warnings(self) -> List[Union[UnrecognizedEndpoint, NetworkMismatch]]:
        return [*self.unrecognized, *self.mismatches]

    @property
    def untouched(self) -> List[Union[UnrecognizedEndpoint, NetworkMismatch]]:
        """Endpoints that were left as they are although they differ from the target."""
        return [*self.unrecognized, *(m for m in self.mismatches if not m.rewritten)]

    def is_empty(self) -> bool:
        return not self.entries

    def __bool__(self) -> bool:
        return bool(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[DiffEntry]:
        return iter(self.entries)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "changes": [entry.to_dict() for entry in self.entries],
            "unrecognized": [
                {"path": warning.field_path, "value": warning.value} for warning in self.unrecognized
            ],
            "network_mismatches": [mismatch.to_dict() for mismatch in self.mismatches],
        }


def _url_host(value: str) -> Optional[str]:
    parsed = urlparse(value)
    if parsed.scheme not in _URL_SCHEMES:
        return None
    return parsed.hostname


class EndpointRewriter:
    """Replace known source-network endpoints with a target endpoint."""

    def __init__(self, settings: NetworkSettings):
        """
        Initialize the rewriter.

        Args:
            settings: Network settings naming the source networks and endpoint keys
        """
        self.settings = settings
        self._endpoint_keys = {key.lower() for key in settings.endpoint_keys}
        self._ignored_sections = set(settings.ignored_sections)
        self._source_networks = dict(settings.source_networks)
        self._target_hosts = settings.target_hosts
        self._local_hosts = {host.lower() for host in settings.local_hosts}
        self._local_monikers = {name.lower() for name in settings.local_monikers}

    def classify(self, value: str, target_endpoint: str) -> EndpointKind:
        """
        Classify an endpoint value.

        A SOON endpoint on the target's host is TARGET; one on another SOON
        network is OTHER_TARGET and is never rewritten.

        Args:
            value: The current field value
            target_endpoint: The URL the project is being migrated to

        Returns:
            EndpointKind for the value
        """
        text = value.strip()
        if text == target_endpoint:
            return EndpointKind.TARGET

        host = _url_host(text)
        if host is not None:
            host = host.lower()
            if host in self._source_networks:
                return EndpointKind.SOURCE
            target_host = _url_host(target_endpoint)
            if target_host is not None and host == target_host.lower():
                return EndpointKind.TARGET
            if host in self._target_hosts:
                return EndpointKind.OTHER_TARGET
            if host in self._local_hosts:
                return EndpointKind.LOCAL
            return EndpointKind.UNKNOWN

        moniker = text.lower()
        if moniker in self._source_networks:
            return EndpointKind.SOURCE
        if moniker in self._local_monikers:
            return EndpointKind.LOCAL
        return EndpointKind.UNKNOWN

    def network_of(self, value: str) -> Optional[str]:
        """Network named by a source or SOON endpoint value, or None."""
        text = value.strip()
        host = _url_host(text)
        if host is None:
            name = self._source_networks.get(text.lower())
        else:
            host = host.lower()
            name = self._source_networks.get(host) or self._target_hosts.get(host)
        return NETWORK_ALIASES.get(name, name) if name else None

    def is_endpoint_field(self, leaf: Leaf) -> bool:
        """True when the field's key names an RPC/cluster endpoint."""
        return leaf.key.lower() in self._endpoint_keys and leaf.section not in self._ignored_sections

    def is_source_url(self, value: str) -> bool:
        host = _url_host(value.strip())
        return host is not None and host.lower() in self._source_networks

    def rewrite(self, doc: ConfigDocument, target_endpoint: str) -> Tuple[ConfigDocument, EndpointDiff]:
        """
        Produce a rewritten copy of ``doc`` and the diff describing it.

        Args:
            doc: Parsed Anchor.toml
            target_endpoint: Replacement RPC URL

        Returns:
            Tuple of (new_document, diff)
        """
        new_doc = doc.copy()
        diff = EndpointDiff()
        target_network = self.settings.network_for_endpoint(target_endpoint)

        for leaf in list(new_doc.walk()):
            if not isinstance(leaf.value, str):
                continue

            value = str(leaf.value)
            by_key = self.is_endpoint_field(leaf)
            if not by_key and not self.is_source_url(value):
                continue

            kind = self.classify(value, target_endpoint)
            if kind is EndpointKind.SOURCE:
                leaf.parent[leaf.slot] = self._replacement(leaf.value, target_endpoint)
                diff.add(leaf.path, value, target_endpoint)
                logger.debug(f"Rewrote {leaf.path}: {value} -> {target_endpoint}")

                found = self.network_of(value)
                if target_network and found and found != target_network:
                    diff.mismatches.append(
                        NetworkMismatch(leaf.path, value, found, target_network, rewritten=True)
                    )
            elif kind is EndpointKind.OTHER_TARGET:
                mismatch = NetworkMismatch(
                    leaf.path, value, self.network_of(value), target_network, rewritten=False
                )
                diff.mismatches.append(mismatch)
                logger.debug(f"Left other SOON endpoint untouched: {mismatch.message}")
            elif kind is EndpointKind.UNKNOWN:
                warning = UnrecognizedEndpoint(leaf.path, value)
                diff.unrecognized.append(warning)
                logger.debug(f"Left unrecognized endpoint untouched: {warning.message}")

        return new_doc, diff

    @staticmethod
    def _replacement(old: Any, new_value: str) -> Any:
        # Keep single-quoted literals single-quoted
        if isinstance(old, String) and old.type.is_literal() and "'" not in new_value:
            return tomlkit.string(new_value, literal=True)
        return new_value
