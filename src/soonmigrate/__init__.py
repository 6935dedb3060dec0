"""soon-migrate: migrate Solana Anchor projects to SOON Network."""

__version__ = "0.2.0"
