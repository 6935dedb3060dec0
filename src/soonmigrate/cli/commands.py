"""
CLI commands for soon-migrate.

Thin click/rich layer over MigrationOrchestrator: resolves options into a
RunConfig, renders results and maps error kinds to exit codes.
"""

import json
from pathlib import Path
from typing import Optional, Tuple

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from soonmigrate import __version__
from soonmigrate.core.errors import MigrationError
from soonmigrate.core.guide import GuideGenerator
from soonmigrate.core.oracle import (
    DEFAULT_EXCLUDE_DIRS,
    OracleDetector,
    ScanOptions,
    load_signature_table,
)
from soonmigrate.core.orchestrator import (
    MigrationEvent,
    MigrationOrchestrator,
    MigrationResult,
    Mode,
    RunConfig,
)
from soonmigrate.core.settings import load_settings
from soonmigrate.utils.helpers import format_file_size
from soonmigrate.utils.logging import level_for_flags, setup_logging

_EVENT_STYLES = {"info": "cyan", "warning": "yellow", "error": "red"}


def _event_printer(console: Console):
    def sink(event: MigrationEvent) -> None:
        style = _EVENT_STYLES.get(event.level, "white")
        console.print(f"[{style}]{event.message}[/{style}]")

    return sink


def _display_diff(console: Console, result: MigrationResult) -> None:
    """Display endpoint changes in a formatted table."""
    if result.diff:
        table = Table(title="Endpoint Changes", show_header=True, header_style="bold cyan")
        table.add_column("#", style="dim", width=3)
        table.add_column("Path", style="magenta", overflow="fold")
        table.add_column("Old Value", style="red", overflow="fold")
        table.add_column("New Value", style="green", overflow="fold")

        for i, entry in enumerate(result.diff, 1):
            table.add_row(str(i), entry.path, entry.old_value, entry.new_value)

        console.print(table)
    elif result.diff.untouched:
        console.print("[yellow]No endpoints rewritten - Anchor.toml points at endpoints outside the selected target[/yellow]")
    else:
        console.print("[green]✓ No endpoint changes needed - Anchor.toml already targets SOON[/green]")

    for warning in result.diff.unrecognized:
        console.print(f"[yellow]⚠️  Left untouched: {warning.field_path} = {warning.value!r}[/yellow]")
    for mismatch in result.diff.mismatches:
        console.print(f"[yellow]⚠️  {mismatch.message}[/yellow]")


def _display_findings(console: Console, result: MigrationResult, verbose: bool) -> None:
    """Display oracle findings grouped by provider."""
    if not result.findings:
        console.print("[green]✓ No oracle usage detected[/green]")
        return

    counts = OracleDetector.summarize(result.findings)
    levels = OracleDetector.confidence_by_provider(result.findings)
    console.print(
        Panel.fit(
            "[bold yellow]Oracle Detection Report[/bold yellow]\n"
            + "\n".join(
                f"{provider.value}: {count} match(es), {levels[provider].value.lower()} confidence"
                for provider, count in counts.items()
            ),
            border_style="yellow",
        )
    )

    if verbose:
        table = Table(title="Oracle Findings", show_header=True, header_style="bold cyan")
        table.add_column("Provider", style="magenta")
        table.add_column("Location", style="cyan", overflow="fold")
        table.add_column("Match", style="yellow", overflow="fold")
        table.add_column("Confidence", style="dim")
        for finding in result.findings:
            table.add_row(
                finding.provider.value, finding.location, finding.matched_text, finding.confidence.value
            )
        console.print(table)

    if result.skipped:
        console.print(f"[dim]{len(result.skipped)} file(s) skipped (binary or unreadable)[/dim]")


def _write_outputs(
    console: Console,
    result: MigrationResult,
    show_guide: bool,
    guide_output: Optional[Path],
    report: Optional[Path],
) -> None:
    if result.guide is not None:
        if show_guide:
            console.print(result.guide, markup=False, highlight=False)
        elif result.findings:
            console.print("[yellow]💡 Run with --show-guide to see the APRO integration guide[/yellow]")
        if guide_output:
            guide_output.write_text(result.guide, encoding="utf-8")
            console.print(f"[green]✓ Guide written to {guide_output}[/green]")

    if report:
        report.parent.mkdir(parents=True, exist_ok=True)
        with open(report, "w", encoding="utf-8") as f:
            json.dump(result.to_dict(), f, indent=2, ensure_ascii=False)
        console.print(f"[green]✓ Report written to {report}[/green]")


def _fail(console: Console, logger, error: MigrationError) -> None:
    logger.error(f"Error: {error}")
    console.print(f"[bold red]{error.kind}: {error.message}[/bold red]")
    if error.path is not None:
        console.print(f"[red]  path: {error.path}[/red]")
    raise click.exceptions.Exit(error.exit_code)


@click.command()
@click.argument("path", default=".", type=click.Path(path_type=Path))
@click.option("--dry-run", is_flag=True, help="Show changes without applying them")
@click.option(
    "--network",
    default=None,
    help="Target SOON network from the settings targets (default: devnet)",
)
@click.option("--endpoint", default=None, help="Explicit target RPC URL (overrides --network)")
@click.option("--force", is_flag=True, help="Overwrite an existing unrestored backup")
@click.option(
    "--oracle-scan/--no-oracle-scan",
    default=True,
    help="Scan project sources for oracle usage (default: on)",
)
@click.option("--show-guide", is_flag=True, help="Print the APRO integration guide")
@click.option("--guide-output", type=click.Path(path_type=Path), help="Write the guide to a file")
@click.option("--report", type=click.Path(path_type=Path), help="Write a JSON report of the run")
@click.option("--settings", type=click.Path(exists=True, path_type=Path), help="Network settings YAML file")
@click.option("-v", "--verbose", is_flag=True, help="Verbose output")
@click.option("--debug", is_flag=True, help="Debug output")
def migrate(
    path: Path,
    dry_run: bool,
    network: Optional[str],
    endpoint: Optional[str],
    force: bool,
    oracle_scan: bool,
    show_guide: bool,
    guide_output: Optional[Path],
    report: Optional[Path],
    settings: Optional[Path],
    verbose: bool,
    debug: bool,
):
    """
    Migrate an Anchor project's Anchor.toml to SOON Network.

    Rewrites Solana RPC/cluster endpoints to the SOON endpoint, keeping the
    rest of the file unchanged, after backing it up to Anchor.toml.bak.

    Arguments:
        PATH: Anchor project directory (default: current directory)
    """
    logger = setup_logging(level_for_flags(verbose, debug))
    console = Console()

    try:
        network_settings = load_settings(str(settings) if settings else None)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error: {e}[/bold red]")
        raise click.Abort()

    if network is not None:
        try:
            network = network_settings.resolve_network(network)
        except ValueError as e:
            raise click.BadParameter(str(e), param_hint="'--network'")

    orchestrator = MigrationOrchestrator(
        settings=network_settings,
        sink=_event_printer(console) if verbose or debug else None,
    )
    config = RunConfig(
        project_path=path,
        mode=Mode.DRY_RUN if dry_run else Mode.MIGRATE,
        verbose=verbose,
        oracle_scan=oracle_scan,
        overwrite_backup=force,
        network=network,
        target_endpoint=endpoint,
    )

    try:
        result = orchestrator.run(config)
    except MigrationError as e:
        _fail(console, logger, e)

    _display_diff(console, result)

    if dry_run:
        if result.preview:
            console.print(result.preview, markup=False, highlight=False)
        console.print("[yellow]Dry run enabled. Changes not written.[/yellow]")
    elif result.config_updated:
        console.print(
            f"[cyan]Backup: {result.backup.backup_path} ({format_file_size(result.backup.size)})[/cyan]"
        )

    if oracle_scan:
        _display_findings(console, result, verbose)
    _write_outputs(console, result, show_guide, guide_output, report)

    console.print(
        Panel.fit(
            f"[bold green]Migration {'preview' if dry_run else 'completed'}![/bold green]\n"
            f"Target endpoint: {result.target_endpoint}\n"
            + "\n".join(result.next_steps),
            title="soon-migrate",
            border_style="green",
        )
    )
    logger.info("Migration finished successfully")


@click.command()
@click.argument("path", default=".", type=click.Path(path_type=Path))
@click.option("-v", "--verbose", is_flag=True, help="Verbose output")
@click.option("--debug", is_flag=True, help="Debug output")
def restore(path: Path, verbose: bool, debug: bool):
    """
    Restore Anchor.toml from Anchor.toml.bak.

    The backup is kept, so restoring again is safe.

    Arguments:
        PATH: Anchor project directory (default: current directory)
    """
    logger = setup_logging(level_for_flags(verbose, debug))
    console = Console()

    orchestrator = MigrationOrchestrator(sink=_event_printer(console) if verbose or debug else None)
    try:
        result = orchestrator.run(RunConfig(project_path=path, mode=Mode.RESTORE, verbose=verbose))
    except MigrationError as e:
        _fail(console, logger, e)

    console.print(f"[bold green]✓ Restored {result.backup.original_path} from backup[/bold green]")
    logger.info("Restore complete")


@click.command()
@click.argument("path", default=".", type=click.Path(path_type=Path))
@click.option("--show-guide", is_flag=True, help="Print the APRO integration guide")
@click.option("--guide-output", type=click.Path(path_type=Path), help="Write the guide to a file")
@click.option("--report", type=click.Path(path_type=Path), help="Write a JSON report of the scan")
@click.option("--signatures", type=click.Path(exists=True, path_type=Path), help="Oracle signature table YAML")
@click.option(
    "--exclude",
    multiple=True,
    help=f"Directory name to skip (repeatable; default: {', '.join(DEFAULT_EXCLUDE_DIRS)})",
)
@click.option("-v", "--verbose", is_flag=True, help="Verbose output")
@click.option("--debug", is_flag=True, help="Debug output")
def scan(
    path: Path,
    show_guide: bool,
    guide_output: Optional[Path],
    report: Optional[Path],
    signatures: Optional[Path],
    exclude: Tuple[str, ...],
    verbose: bool,
    debug: bool,
):
    """
    Scan an Anchor project for oracle usage without migrating it.

    Arguments:
        PATH: Anchor project directory (default: current directory)
    """
    logger = setup_logging(level_for_flags(verbose, debug))
    console = Console()

    try:
        network_settings = load_settings()
        table = load_signature_table(str(signatures) if signatures else None)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error: {e}[/bold red]")
        raise click.Abort()

    options = ScanOptions(exclude_dirs=tuple(exclude)) if exclude else ScanOptions()
    orchestrator = MigrationOrchestrator(
        settings=network_settings,
        detector=OracleDetector(table, options),
        guide=GuideGenerator(table, documentation_url=network_settings.documentation_url),
        sink=_event_printer(console) if verbose or debug else None,
    )

    try:
        result = orchestrator.run(RunConfig(project_path=path, mode=Mode.SCAN, verbose=verbose))
    except MigrationError as e:
        _fail(console, logger, e)

    _display_findings(console, result, verbose=True)
    _write_outputs(console, result, show_guide, guide_output, report)
    logger.info("Oracle scan complete")


@click.group()
@click.version_option(version=__version__, prog_name="soon-migrate")
def cli():
    """soon-migrate - Migrate Solana Anchor projects to SOON Network with oracle detection."""


cli.add_command(migrate)
cli.add_command(restore)
cli.add_command(scan)
