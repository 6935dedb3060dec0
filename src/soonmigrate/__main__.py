"""
Main entry point for soon-migrate.

Usage: python -m soonmigrate <command> [options]
"""

from soonmigrate.cli.commands import cli


def main():
    """Main entry point for the soon-migrate CLI."""
    cli()


if __name__ == "__main__":
    main()
