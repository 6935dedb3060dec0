"""
Tests for CLI commands and user interface.
"""

import json
import shutil
import tempfile
from pathlib import Path

from click.testing import CliRunner

from fixtures.anchor_projects import (
    ANCHOR_TOML_DEVNET_URL,
    PYTH_PROGRAM,
    SOON_DEVNET,
    create_project,
)
from soonmigrate import __version__
from soonmigrate.cli.commands import cli, migrate, restore, scan


class TestCLICommands:
    """Test CLI commands and user interface."""

    def setup_method(self):
        """Set up test fixtures."""
        self.runner = CliRunner()
        self.temp_dir = Path(tempfile.mkdtemp())
        self.project = self.temp_dir / "app"
        self.anchor = self.project / "Anchor.toml"

    def teardown_method(self):
        """Clean up test fixtures."""
        shutil.rmtree(self.temp_dir)

    def test_migrate_command(self):
        """Test a full migration through the CLI."""
        create_project(self.project)

        result = self.runner.invoke(migrate, [str(self.project), "--no-oracle-scan"])

        assert result.exit_code == 0, result.output
        assert "Endpoint Changes" in result.output
        assert "Migration completed" in result.output
        assert SOON_DEVNET in self.anchor.read_text(encoding="utf-8")
        assert (self.project / "Anchor.toml.bak").exists()

    def test_migrate_dry_run(self):
        """Test that --dry-run previews without writing."""
        create_project(self.project)

        result = self.runner.invoke(migrate, [str(self.project), "--dry-run", "--no-oracle-scan"])

        assert result.exit_code == 0, result.output
        assert "Dry run enabled" in result.output
        assert "Anchor.toml (migrated)" in result.output
        assert self.anchor.read_text(encoding="utf-8") == ANCHOR_TOML_DEVNET_URL
        assert not (self.project / "Anchor.toml.bak").exists()

    def test_migrate_with_oracle_scan(self):
        """Test that oracle findings are reported after migrating."""
        create_project(self.project, files={"programs/app/src/lib.rs": PYTH_PROGRAM})

        result = self.runner.invoke(migrate, [str(self.project)])

        assert result.exit_code == 0, result.output
        assert "Oracle Detection Report" in result.output
        assert "Pyth: 1 match" in result.output
        assert "--show-guide" in result.output

    def test_migrate_not_a_project(self):
        """Test exit code for a directory without Cargo.toml."""
        create_project(self.project, cargo_toml=None)

        result = self.runner.invoke(migrate, [str(self.project)])

        assert result.exit_code == 2
        assert "NotAProject" in result.output

    def test_migrate_malformed_config(self):
        """Test exit code for invalid TOML."""
        create_project(self.project, anchor_toml="[provider\n")

        result = self.runner.invoke(migrate, [str(self.project), "--no-oracle-scan"])

        assert result.exit_code == 3
        assert "MalformedConfig" in result.output

    def test_migrate_report(self):
        """Test the JSON report output."""
        create_project(self.project)
        report = self.temp_dir / "out" / "report.json"

        result = self.runner.invoke(
            migrate, [str(self.project), "--dry-run", "--no-oracle-scan", "--report", str(report)]
        )

        assert result.exit_code == 0, result.output
        data = json.loads(report.read_text(encoding="utf-8"))
        assert data["mode"] == "dry-run"
        assert data["target_endpoint"] == SOON_DEVNET
        assert data["diff"]["changes"][0]["new_value"] == SOON_DEVNET

    def test_migrate_network_option(self):
        """Test --network selects the target endpoint."""
        create_project(self.project)

        result = self.runner.invoke(
            migrate, [str(self.project), "--network", "testnet", "--no-oracle-scan"]
        )

        assert result.exit_code == 0, result.output
        assert "rpc.testnet.soo.network" in self.anchor.read_text(encoding="utf-8")

    def test_migrate_invalid_network(self):
        """Test that unknown networks are rejected by click."""
        create_project(self.project)

        result = self.runner.invoke(migrate, [str(self.project), "--network", "moonnet"])

        assert result.exit_code == 2
        assert self.anchor.read_text(encoding="utf-8") == ANCHOR_TOML_DEVNET_URL

    def test_restore_command(self):
        """Test restoring after a migration."""
        create_project(self.project)
        self.runner.invoke(migrate, [str(self.project), "--no-oracle-scan"])

        result = self.runner.invoke(restore, [str(self.project)])

        assert result.exit_code == 0, result.output
        assert "Restored" in result.output
        assert self.anchor.read_text(encoding="utf-8") == ANCHOR_TOML_DEVNET_URL

    def test_restore_without_backup(self):
        """Test exit code when no backup exists."""
        create_project(self.project)

        result = self.runner.invoke(restore, [str(self.project)])

        assert result.exit_code == 6
        assert "NoBackupFound" in result.output

    def test_scan_command_writes_guide(self):
        """Test the scan command with a guide file."""
        create_project(self.project, files={"programs/app/src/lib.rs": PYTH_PROGRAM})
        guide = self.temp_dir / "guide.md"

        result = self.runner.invoke(scan, [str(self.project), "--guide-output", str(guide)])

        assert result.exit_code == 0, result.output
        assert "Oracle Findings" in result.output
        assert "## Migrating from Pyth" in guide.read_text(encoding="utf-8")
        assert self.anchor.read_text(encoding="utf-8") == ANCHOR_TOML_DEVNET_URL

    def test_scan_exclude_option(self):
        """Test --exclude replaces the default exclusions."""
        create_project(self.project, files={"vendor/lib.rs": PYTH_PROGRAM})

        result = self.runner.invoke(scan, [str(self.project), "--exclude", "vendor"])

        assert result.exit_code == 0, result.output
        assert "No oracle usage detected" in result.output

    def test_cli_help(self):
        """Test the command group help and version."""
        result = self.runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        for command in ("migrate", "restore", "scan"):
            assert command in result.output

        result = self.runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_migrate_network_from_settings(self):
        """Test --network accepts targets added by a settings file."""
        create_project(self.project)
        settings = self.temp_dir / "networks.yaml"
        settings.write_text("targets:\n  staging: https://rpc.staging.example/rpc\n", encoding="utf-8")

        result = self.runner.invoke(
            migrate,
            [str(self.project), "--settings", str(settings), "--network", "staging", "--no-oracle-scan"],
        )

        assert result.exit_code == 0, result.output
        assert "https://rpc.staging.example/rpc" in self.anchor.read_text(encoding="utf-8")

    def test_migrate_other_soon_network_not_reported_as_done(self):
        """Test that a project on another SOON network is not reported as already migrated."""
        create_project(self.project)
        self.runner.invoke(migrate, [str(self.project), "--no-oracle-scan"])
        on_devnet = self.anchor.read_text(encoding="utf-8")

        result = self.runner.invoke(
            migrate, [str(self.project), "--network", "testnet", "--no-oracle-scan"]
        )

        assert result.exit_code == 0, result.output
        assert "No endpoints rewritten" in result.output
        assert "already targets SOON" not in result.output
        assert "provider.cluster points at the SOON" in result.output
        assert self.anchor.read_text(encoding="utf-8") == on_devnet

    def test_migrate_reports_network_mismatch(self):
        """Test that rewriting a mainnet cluster to devnet is flagged."""
        create_project(self.project, anchor_toml='[provider]\ncluster = "mainnet-beta"\n')

        result = self.runner.invoke(migrate, [str(self.project), "--no-oracle-scan"])

        assert result.exit_code == 0, result.output
        assert "provider.cluster named the mainnet" in result.output
        assert SOON_DEVNET in self.anchor.read_text(encoding="utf-8")

    def test_scan_shows_confidence(self):
        """Test that scan output reports detection confidence."""
        create_project(self.project, files={"programs/app/src/lib.rs": PYTH_PROGRAM})

        result = self.runner.invoke(scan, [str(self.project)])

        assert result.exit_code == 0, result.output
        assert "Pyth: 1 match(es), high confidence" in result.output
        assert "Confidence" in result.output
