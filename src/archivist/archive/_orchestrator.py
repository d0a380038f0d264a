"""Archival orchestration.

The orchestrator ties detection, policy and archival together for one
pass over the specs root and reports what happened to every spec it saw.
It keeps no state between runs.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Final

from archivist.exceptions import ArchivistError
from archivist.utils._dates import utc_now
from archivist.utils._logging import create_null_logger

from ._detector import SpecCompletionDetector
from ._engine import ArchivalEngine
from ._index import ArchiveIndexManager
from ._models import RunReport, SpecOutcome, SpecReport

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from structlog.typing import FilteringBoundLogger

    from archivist.config import ArchivalConfig, ConfigurationManager

__all__ = ["ArchivalOrchestrator", "resolve_archive_root"]


@dataclass(frozen=True, slots=True)
class _RunContext:
    config: ArchivalConfig
    detector: SpecCompletionDetector
    engine: ArchivalEngine
    now: datetime
    dry_run: bool
    respect_enabled: bool = True
    respect_delay: bool = True


def resolve_archive_root(specs_root: Path, config: ArchivalConfig) -> Path:
    """Resolve the configured archive location against the specs root."""
    location = Path(config.archive_location)
    return location if location.is_absolute() else specs_root / location


class ArchivalOrchestrator:
    """Run archival passes over a specs root.

    Collaborators not passed in are built for each run from the current
    configuration, so a run always sees the latest archive location.

    Attributes:
        specs_root: Directory whose immediate subdirectories are specs.
        config_manager: Source of the archival policy.
    """

    __slots__: Final = ("_clock", "_detector", "_engine", "_logger", "config_manager", "specs_root")

    specs_root: Path
    config_manager: ConfigurationManager
    _detector: SpecCompletionDetector | None
    _engine: ArchivalEngine | None
    _logger: FilteringBoundLogger
    _clock: Callable[[], datetime]

    def __init__(
        self,
        specs_root: Path,
        *,
        config_manager: ConfigurationManager,
        detector: SpecCompletionDetector | None = None,
        engine: ArchivalEngine | None = None,
        logger: FilteringBoundLogger | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.specs_root = specs_root
        self.config_manager = config_manager
        self._detector = detector
        self._engine = engine
        self._logger = logger if logger is not None else create_null_logger()
        self._clock = clock if clock is not None else utc_now

    def _collaborators(self, config: ArchivalConfig) -> tuple[SpecCompletionDetector, ArchivalEngine]:
        archive_root = resolve_archive_root(self.specs_root, config)
        detector = self._detector
        if detector is None:
            detector = SpecCompletionDetector(self.specs_root, archive_location=archive_root, logger=self._logger)
        engine = self._engine
        if engine is None:
            index_manager = ArchiveIndexManager(archive_root, backup=config.backup_enabled, logger=self._logger)
            engine = ArchivalEngine(archive_root, index_manager=index_manager, logger=self._logger, clock=self._clock)
        return detector, engine

    # -------------------------------------------------------------------------
    # Per-spec decision
    # -------------------------------------------------------------------------

    def _evaluate(self, spec_path: Path, ctx: _RunContext) -> SpecReport:
        config = ctx.config
        detector = ctx.detector
        status = detector.check_spec_completion(spec_path)
        report = SpecReport(
            spec_name=spec_path.name,
            spec_path=spec_path,
            outcome=SpecOutcome.SKIPPED_INCOMPLETE,
            total_tasks=status.total_tasks,
            completed_tasks=status.completed_tasks,
        )

        if not status.is_complete:
            reason = "no tasks document" if status.last_modified is None else "tasks remain incomplete"
            return _with(report, SpecOutcome.SKIPPED_INCOMPLETE, reason=reason)

        if ctx.respect_enabled and not config.enabled:
            return _with(report, SpecOutcome.SKIPPED_DISABLED, reason="archival is disabled")

        if ctx.respect_delay and not detector.is_stale(status, config.delay_minutes, ctx.now):
            reason = f"modified within the last {config.delay_minutes} minutes"
            return _with(report, SpecOutcome.SKIPPED_DELAY, reason=reason)

        if ctx.dry_run:
            return _with(report, SpecOutcome.WOULD_ARCHIVE)

        result = ctx.engine.archive_spec(spec_path)
        if not result.success:
            return _with(report, SpecOutcome.FAILED, reason=result.error, warnings=result.warnings)
        return _with(
            report,
            SpecOutcome.ARCHIVED,
            archive_path=result.archive_path,
            warnings=result.warnings,
        )

    def _process(self, spec_path: Path, ctx: _RunContext) -> SpecReport:
        try:
            report = self._evaluate(spec_path, ctx)
        except ArchivistError as e:
            self._logger.warning("spec_processing_failed", spec=spec_path.name, error=str(e))
            return SpecReport(spec_name=spec_path.name, spec_path=spec_path, outcome=SpecOutcome.FAILED, reason=str(e))
        except Exception as e:  # noqa: BLE001 - one spec must never stop the batch
            self._logger.exception("spec_processing_crashed", spec=spec_path.name)
            return SpecReport(
                spec_name=spec_path.name,
                spec_path=spec_path,
                outcome=SpecOutcome.FAILED,
                reason=f"unexpected error: {e}",
            )

        self._logger.debug("spec_processed", spec=spec_path.name, outcome=str(report.outcome), reason=report.reason)
        return report

    # -------------------------------------------------------------------------
    # Entry points
    # -------------------------------------------------------------------------

    def run(self, *, dry_run: bool = False) -> RunReport:
        """Evaluate every spec and archive the eligible ones.

        Args:
            dry_run: Report what would be archived without touching disk.

        Returns:
            A RunReport with one SpecReport per spec directory found.
        """
        started_at = self._clock()
        config = self.config_manager.load_config()
        detector, engine = self._collaborators(config)
        ctx = _RunContext(config=config, detector=detector, engine=engine, now=started_at, dry_run=dry_run)

        reports = [self._process(spec_path, ctx) for spec_path in detector.list_spec_dirs()]
        report = RunReport(started_at=started_at, dry_run=dry_run, enabled=config.enabled, specs=tuple(reports))
        self._logger.info(
            "archival_run_finished",
            dry_run=dry_run,
            specs=len(reports),
            archived=report.archived,
            failed=report.failed,
            skipped=report.skipped,
        )
        return report

    def check_spec(self, spec_name: str) -> SpecReport:
        """Report what a run would do with one spec, without archiving it."""
        config = self.config_manager.load_config()
        detector, engine = self._collaborators(config)
        ctx = _RunContext(config=config, detector=detector, engine=engine, now=self._clock(), dry_run=True)
        return self._process(self.specs_root / spec_name, ctx)

    def archive_now(self, spec_name: str, *, force: bool = False) -> SpecReport:
        """Archive one spec on request.

        A manual request ignores the ``enabled`` switch, which only governs
        automatic runs. The delay window still applies unless ``force``.

        Args:
            spec_name: Directory name of the spec under the specs root.
            force: Archive even if the tasks document was edited recently.

        Returns:
            The spec's report.
        """
        config = self.config_manager.load_config()
        detector, engine = self._collaborators(config)
        ctx = _RunContext(
            config=config,
            detector=detector,
            engine=engine,
            now=self._clock(),
            dry_run=False,
            respect_enabled=False,
            respect_delay=not force,
        )
        return self._process(self.specs_root / spec_name, ctx)


def _with(
    report: SpecReport,
    outcome: SpecOutcome,
    *,
    reason: str | None = None,
    archive_path: Path | None = None,
    warnings: tuple[str, ...] = (),
) -> SpecReport:
    return SpecReport(
        spec_name=report.spec_name,
        spec_path=report.spec_path,
        outcome=outcome,
        total_tasks=report.total_tasks,
        completed_tasks=report.completed_tasks,
        reason=reason,
        archive_path=archive_path,
        warnings=warnings,
    )
