"""Anchor project fixtures shared across test modules."""

from pathlib import Path
from typing import Dict, Optional

SOON_DEVNET = "https://rpc.devnet.soo.network/rpc"
SOLANA_DEVNET = "https://api.devnet.solana.com"

# Cluster given as a Solana devnet URL, with comments that must survive
ANCHOR_TOML_DEVNET_URL = """\
[toolchain]
anchor_version = "0.30.1"

[features]
resolution = true
skip-lint = false

[programs.localnet]
migration = "EtQdsPNDckBhME3gRjcj9Z4Z9tGEYAoHjWKv7aHJgBua"

[registry]
url = "https://api.apr.dev"

# Provider settings
[provider]
cluster = "https://api.devnet.solana.com" # devnet RPC
wallet = "~/.config/solana/id.json"

[scripts]
test = "yarn run ts-mocha -p ./tsconfig.json -t 1000000 tests/**/*.ts"
"""

# Cluster given as a moniker, plus a validator clone source
ANCHOR_TOML_MONIKER = """\
[programs.devnet]
counter = "Fg6PaFpoGXkYsidMpWTK6W2BeZ7FEfcYkg476zPFsLnS"

[provider]
cluster = "devnet"
wallet = "~/.config/solana/id.json"

[test.validator]
url = "https://api.mainnet-beta.solana.com"

[[test.validator.clone]]
address = "metaqbxxUerdq28cj1RbAWkYQm3ybzjb6a8bt518x1s"

[[test.genesis]]
address = "TokenkegQfeZyiNwAJbNbGYPFXkN5C4Yb4e6jZ4rQ2L"
program = "token.so"
"""

ANCHOR_TOML_MIGRATED = """\
[programs.localnet]
migration = "EtQdsPNDckBhME3gRjcj9Z4Z9tGEYAoHjWKv7aHJgBua"

[provider]
cluster = "https://rpc.devnet.soo.network/rpc"
wallet = "~/.config/solana/id.json"
"""

ANCHOR_TOML_NO_PROVIDER = """\
[programs.localnet]
migration = "EtQdsPNDckBhME3gRjcj9Z4Z9tGEYAoHjWKv7aHJgBua"

[scripts]
test = "yarn test"
"""

CARGO_TOML = """\
[workspace]
members = ["programs/*"]
resolver = "2"
"""

PYTH_PROGRAM = """\
use anchor_lang::prelude::*;
use pyth_sdk_solana;

pub fn read_price() -> Result<()> {
    Ok(())
}
"""


def create_project(
    root: Path,
    anchor_toml: Optional[str] = ANCHOR_TOML_DEVNET_URL,
    cargo_toml: Optional[str] = CARGO_TOML,
    files: Optional[Dict[str, str]] = None,
) -> Path:
    """Write an Anchor project under ``root`` and return ``root``."""
    root = Path(root)
    root.mkdir(parents=True, exist_ok=True)
    if anchor_toml is not None:
        (root / "Anchor.toml").write_text(anchor_toml, encoding="utf-8")
    if cargo_toml is not None:
        (root / "Cargo.toml").write_text(cargo_toml, encoding="utf-8")
    for relative, content in (files or {}).items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root
