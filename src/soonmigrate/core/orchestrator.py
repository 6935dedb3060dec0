"""
Migration orchestration.

Drives one invocation through the stages:

    migrate:  VALIDATING -> REWRITING -> BACKING_UP -> APPLYING -> [SCANNING] -> DONE
    dry run:  VALIDATING -> REWRITING -> REPORTING -> [SCANNING] -> DONE
    restore:  VALIDATING -> RESTORING -> DONE
    scan:     VALIDATING -> SCANNING -> DONE

Any MigrationError moves the run to FAILED and is re-raised unchanged. The
live config file is only ever written by BackupStore.commit, after the new
contents have been fully computed and the backup taken.
"""

import difflib
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from soonmigrate.core.backup import BackupRecord, BackupStore
from soonmigrate.core.document import load_config_file, serialize
from soonmigrate.core.errors import MigrationError, NotAProject, UnknownNetwork
from soonmigrate.core.guide import GuideGenerator
from soonmigrate.core.oracle import Confidence, OracleDetector, OracleFinding, ScanNote
from soonmigrate.core.rewriter import EndpointDiff, EndpointRewriter
from soonmigrate.core.settings import NetworkSettings, load_settings
from soonmigrate.utils.helpers import ANCHOR_TOML, CARGO_TOML, ProjectLayout
from soonmigrate.utils.logging import get_logger

logger = get_logger("orchestrator")


class Mode(Enum):
    """Execution mode selected by the caller."""

    MIGRATE = "migrate"
    DRY_RUN = "dry-run"
    RESTORE = "restore"
    SCAN = "scan"


class Stage(Enum):
    VALIDATING = "validating"
    REWRITING = "rewriting"
    BACKING_UP = "backing-up"
    APPLYING = "applying"
    REPORTING = "reporting"
    SCANNING = "scanning"
    RESTORING = "restoring"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class Migrate:
    dry_run: bool = False


@dataclass(frozen=True)
class Restore:
    pass


@dataclass(frozen=True)
class Scan:
    pass


Action = Union[Migrate, Restore, Scan]


@dataclass
class RunConfig:
    """Resolved options for one invocation."""

    project_path: Union[str, Path]
    mode: Mode = Mode.MIGRATE
    verbose: bool = False
    oracle_scan: bool = False
    overwrite_backup: bool = False
    network: Optional[str] = None
    target_endpoint: Optional[str] = None

    def action(self) -> Action:
        if self.mode is Mode.RESTORE:
            return Restore()
        if self.mode is Mode.SCAN:
            return Scan()
        return Migrate(dry_run=self.mode is Mode.DRY_RUN)


@dataclass
class MigrationEvent:
    """Structured event for the console/log sink."""

    level: str
    message: str
    kind: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"level": self.level, "message": self.message, "kind": self.kind}


@dataclass
class MigrationResult:
    """Everything a run produced."""

    mode: Mode
    project_path: Path
    target_endpoint: Optional[str] = None
    diff: EndpointDiff = field(default_factory=EndpointDiff)
    config_updated: bool = False
    backup: Optional[BackupRecord] = None
    preview: str = ""
    findings: List[OracleFinding] = field(default_factory=list)
    skipped: List[ScanNote] = field(default_factory=list)
    guide: Optional[str] = None
    warnings: List[str] = field(default_factory=list)
    next_steps: List[str] = field(default_factory=list)
    states: List[Stage] = field(default_factory=list)
    events: List[MigrationEvent] = field(default_factory=list)

    @property
    def final_state(self) -> Optional[Stage]:
        return self.states[-1] if self.states else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mode": self.mode.value,
            "project_path": str(self.project_path),
            "target_endpoint": self.target_endpoint,
            "config_updated": self.config_updated,
            "diff": self.diff.to_dict(),
            "backup": self.backup.to_dict() if self.backup else None,
            "oracle_findings": [finding.to_dict() for finding in self.findings],
            "skipped_files": [note.to_dict() for note in self.skipped],
            "warnings": list(self.warnings),
            "next_steps": list(self.next_steps),
            "states": [stage.value for stage in self.states],
        }


EventSink = Callable[[MigrationEvent], None]

_LOG_LEVELS = {"info": logging.INFO, "warning": logging.WARNING, "error": logging.ERROR}


class MigrationOrchestrator:
    """Sequence validation, rewrite, backup, apply/report and oracle scan."""

    def __init__(
        self,
        settings: Optional[NetworkSettings] = None,
        rewriter: Optional[EndpointRewriter] = None,
        backups: Optional[BackupStore] = None,
        detector: Optional[OracleDetector] = None,
        guide: Optional[GuideGenerator] = None,
        sink: Optional[EventSink] = None,
    ):
        self.settings = settings or load_settings()
        self.rewriter = rewriter or EndpointRewriter(self.settings)
        self.backups = backups or BackupStore()
        self.detector = detector or OracleDetector()
        self.guide = guide or GuideGenerator(
            self.detector.table, documentation_url=self.settings.documentation_url
        )
        self.sink = sink
        self.last_result: Optional[MigrationResult] = None

    def run(self, config: RunConfig) -> MigrationResult:
        """
        Execute one invocation.

        Args:
            config: Resolved run options

        Returns:
            MigrationResult describing what happened

        Raises:
            MigrationError: Any component failure, after the run is marked FAILED
        """
        layout = ProjectLayout.from_path(config.project_path)
        action = config.action()
        result = MigrationResult(mode=config.mode, project_path=layout.root)
        self.last_result = result

        try:
            self._enter(result, Stage.VALIDATING)
            self._validate(layout, needs_config=isinstance(action, Migrate))

            if isinstance(action, Restore):
                self._restore(layout, result)
            elif isinstance(action, Scan):
                self._scan(layout, result)
            else:
                self._migrate(layout, config, action.dry_run, result)
                if config.oracle_scan:
                    self._scan(layout, result)
                result.next_steps = self._next_steps(result)

            self._enter(result, Stage.DONE)
        except MigrationError as e:
            self._enter(result, Stage.FAILED)
            self._emit(result, "error", str(e), e.kind)
            raise

        return result

    def _validate(self, layout: ProjectLayout, needs_config: bool) -> None:
        if not layout.root.is_dir():
            raise NotAProject("project directory does not exist", layout.root)
        if not layout.cargo_toml.is_file():
            raise NotAProject(f"{CARGO_TOML} not found", layout.cargo_toml)
        if needs_config and not layout.anchor_toml.is_file():
            raise NotAProject(f"{ANCHOR_TOML} not found", layout.anchor_toml)
        logger.debug(f"Validated Anchor project at {layout.root}")

    def _migrate(self, layout: ProjectLayout, config: RunConfig, dry_run: bool, result: MigrationResult) -> None:
        self._enter(result, Stage.REWRITING)
        path = layout.anchor_toml
        target = self._resolve_target(config)
        result.target_endpoint = target

        document = load_config_file(path)
        original = serialize(document)
        new_document, diff = self.rewriter.rewrite(document, target)
        updated = serialize(new_document)
        result.diff = diff

        for warning in diff.warnings:
            self._emit(result, "warning", warning.message, warning.kind)

        if dry_run:
            self._enter(result, Stage.REPORTING)
            result.preview = self._preview(original, updated)
            self._emit(result, "info", f"Dry run: {len(diff)} endpoint change(s) not written")
            return

        if not diff:
            untouched = diff.untouched
            if untouched:
                self._emit(
                    result,
                    "info",
                    f"No endpoints rewritten; {len(untouched)} endpoint(s) left untouched, see warnings",
                )
            else:
                self._emit(result, "info", f"{ANCHOR_TOML} already points at {target}; nothing to do")
            return

        self._enter(result, Stage.BACKING_UP)
        result.backup = self.backups.backup(path, overwrite=config.overwrite_backup)

        self._enter(result, Stage.APPLYING)
        self.backups.commit(path, updated)
        result.config_updated = True
        self._emit(result, "info", f"Updated {len(diff)} endpoint(s) in {ANCHOR_TOML}")

    def _resolve_target(self, config: RunConfig) -> str:
        if config.target_endpoint:
            return config.target_endpoint
        try:
            return self.settings.target_endpoint(config.network)
        except ValueError as e:
            raise UnknownNetwork(str(e)) from e

    def _restore(self, layout: ProjectLayout, result: MigrationResult) -> None:
        self._enter(result, Stage.RESTORING)
        result.backup = self.backups.restore(layout.anchor_toml)
        result.config_updated = True
        self._emit(result, "info", f"Restored {ANCHOR_TOML} from {result.backup.backup_path.name}")

    def _scan(self, layout: ProjectLayout, result: MigrationResult) -> None:
        self._enter(result, Stage.SCANNING)
        result.findings = list(self.detector.scan(layout.root))
        result.skipped = list(self.detector.skipped)
        result.guide = self.guide.generate(result.findings)

        for note in result.skipped:
            self._emit(result, "warning", f"Skipped {note.path.as_posix()}: {note.reason}", "ScanSkipped")

        if not result.findings:
            self._emit(result, "info", "No oracle usage detected")
            return

        counts = OracleDetector.summarize(result.findings)
        levels = OracleDetector.confidence_by_provider(result.findings)
        if any(level is Confidence.HIGH for level in levels.values()):
            result.warnings.append(
                "Oracle usage detected in your project. Review the oracle migration guide."
            )
        for provider, count in counts.items():
            level = levels[provider]
            if level is Confidence.HIGH:
                self._emit(
                    result,
                    "warning",
                    f"{provider.value} oracle detected ({count} match(es)) - migration required for SOON compatibility",
                    "OracleDetected",
                )
            else:
                self._emit(
                    result,
                    "info",
                    f"Possible {provider.value} oracle reference ({count} match(es), {level.value.lower()} confidence) - review manually",
                    "OracleDetected",
                )

    @staticmethod
    def _preview(original: bytes, updated: bytes) -> str:
        return "".join(
            difflib.unified_diff(
                original.decode("utf-8").splitlines(keepends=True),
                updated.decode("utf-8").splitlines(keepends=True),
                fromfile=ANCHOR_TOML,
                tofile=f"{ANCHOR_TOML} (migrated)",
            )
        )

    @staticmethod
    def _next_steps(result: MigrationResult) -> List[str]:
        steps = ["Update your dependencies if you use oracles", "Test your project on SOON devnet"]
        if result.findings:
            steps.append("Follow the oracle migration guide for each detected provider")
        steps.append("Deploy to SOON Network")
        return [f"{i}. {step}" for i, step in enumerate(steps, 1)]

    def _enter(self, result: MigrationResult, stage: Stage) -> None:
        result.states.append(stage)
        logger.debug(f"Stage: {stage.value}")

    def _emit(self, result: MigrationResult, level: str, message: str, kind: Optional[str] = None) -> None:
        event = MigrationEvent(level, message, kind)
        result.events.append(event)
        if level == "warning":
            result.warnings.append(message)
        logger.log(_LOG_LEVELS.get(level, logging.INFO), message)
        if self.sink is not None:
            self.sink(event)
