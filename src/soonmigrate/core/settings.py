"""
Network settings management.

Loads the packaged network table (targets, source networks, endpoint keys)
and merges an optional user-supplied YAML file over it.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

import yaml

DATA_DIR = Path(__file__).resolve().parent.parent / "data"
DEFAULT_SETTINGS_PATH = DATA_DIR / "networks.yaml"

_LIST_FIELDS = (
    "local_monikers",
    "local_hosts",
    "endpoint_keys",
    "ignored_sections",
)
_MAPPING_FIELDS = ("targets", "source_networks")

# Network names that resolve to another configured target
NETWORK_ALIASES = {"mainnet-beta": "mainnet"}


@dataclass
class NetworkSettings:
    """Everything the rewriter needs to know about source and target networks."""

    targets: Dict[str, str]
    default_network: str = "devnet"
    source_networks: Dict[str, str] = field(default_factory=dict)
    local_monikers: List[str] = field(default_factory=list)
    local_hosts: List[str] = field(default_factory=list)
    endpoint_keys: List[str] = field(default_factory=list)
    ignored_sections: List[str] = field(default_factory=list)
    documentation_url: str = ""

    @property
    def target_hosts(self) -> Dict[str, str]:
        """Host of every target URL, mapped to its network name."""
        hosts = {}
        for name, url in self.targets.items():
            host = urlparse(url).hostname
            if host:
                hosts[host.lower()] = name
        return hosts

    def resolve_network(self, network: Optional[str] = None) -> str:
        """
        Normalize a network name and check that it has a target.

        Raises:
            ValueError: If the network is not configured
        """
        name = (network or self.default_network).lower()
        name = NETWORK_ALIASES.get(name, name)
        if name not in self.targets:
            known = ", ".join(sorted(self.targets))
            raise ValueError(f"Unknown target network '{name}' (known: {known})")
        return name

    def target_endpoint(self, network: Optional[str] = None) -> str:
        """
        Resolve the RPC URL for a target network.

        Args:
            network: Network name (devnet, testnet, mainnet); defaults to ``default_network``

        Returns:
            The target RPC URL

        Raises:
            ValueError: If the network is not configured
        """
        return self.targets[self.resolve_network(network)]

    def network_for_endpoint(self, endpoint: str) -> Optional[str]:
        """Name of the configured target whose URL is ``endpoint``, if any."""
        for name, url in self.targets.items():
            if url == endpoint:
                return name
        return None


def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        raise FileNotFoundError(f"Settings file not found: {path}")
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in settings file {path}: {e}")
    if not isinstance(data, dict):
        raise ValueError(f"Settings file must contain a mapping: {path}")
    return data


def _validate_settings(data: Dict[str, Any]) -> None:
    """
    Validate the merged settings structure.

    Raises:
        ValueError: If a field has the wrong shape
    """
    targets = data.get("targets")
    if not isinstance(targets, dict) or not targets:
        raise ValueError("Settings must define at least one entry under 'targets'")
    for name, url in targets.items():
        if not isinstance(url, str) or "://" not in url:
            raise ValueError(f"Invalid target URL for '{name}': {url!r}")

    default_network = data.get("default_network", "devnet")
    if default_network not in targets:
        raise ValueError(f"default_network '{default_network}' has no target URL")

    source_networks = data.get("source_networks", {})
    if not isinstance(source_networks, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in source_networks.items()
    ):
        raise ValueError("Settings field 'source_networks' must map host or moniker to network name")

    for name in _LIST_FIELDS:
        value = data.get(name, [])
        if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
            raise ValueError(f"Settings field '{name}' must be a list of strings")


def load_settings(path: Optional[str] = None) -> NetworkSettings:
    """
    Load network settings.

    Args:
        path: Optional YAML file whose top-level keys override the defaults.
            Mappings (``targets``, ``source_networks``) are merged key by key;
            lists replace the defaults.

    Returns:
        Validated NetworkSettings
    """
    data = _read_yaml(DEFAULT_SETTINGS_PATH)
    if path:
        overrides = _read_yaml(Path(path))
        for name in _MAPPING_FIELDS:
            if isinstance(overrides.get(name), dict):
                overrides[name] = {**data.get(name, {}), **overrides[name]}
        data.update(overrides)

    _validate_settings(data)

    return NetworkSettings(
        targets={str(k).lower(): v for k, v in data["targets"].items()},
        default_network=str(data.get("default_network", "devnet")).lower(),
        source_networks={k.lower(): v.lower() for k, v in data.get("source_networks", {}).items()},
        documentation_url=data.get("documentation_url", ""),
        **{name: list(data.get(name, [])) for name in _LIST_FIELDS},
    )
