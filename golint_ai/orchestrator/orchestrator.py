"""Lint orchestrator: runs the pipeline over every Go file of a run."""

import asyncio
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Union

from ..config import LintConfig
from ..frontend import GoFrontend
from ..models import AggregatedIssue, ApplyMode, ApplyOutcome, Diagnostic, FixTask
from ..pipeline import (
    FeedbackLoop,
    FixDispatcher,
    LoopOutcome,
    Operator,
    PatchApplier,
    aggregate_issues,
    scan_unit,
)
from ..tools import ClaudeFixService, FixService, Verifier, build_verifier
from ..utils import RunMetrics, get_logger


@dataclass
class UnitReport:
    """Result of running the pipeline over one file."""
    unit_id: str
    issues: List[AggregatedIssue] = field(default_factory=list)
    outcome: Optional[ApplyOutcome] = None
    loop: Optional[LoopOutcome] = None
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None

    @property
    def diagnostics(self) -> List[Diagnostic]:
        return self.outcome.diagnostics if self.outcome else []


@dataclass
class RunSummary:
    """All unit reports of one run plus its metrics."""
    mode: ApplyMode
    reports: List[UnitReport] = field(default_factory=list)
    metrics: RunMetrics = field(default_factory=RunMetrics)

    @property
    def diagnostics(self) -> List[Diagnostic]:
        return [d for report in self.reports for d in report.diagnostics]

    @property
    def issue_count(self) -> int:
        return sum(len(report.issues) for report in self.reports)

    @property
    def failed_units(self) -> List[UnitReport]:
        return [report for report in self.reports if report.failed]


def discover_sources(
    paths: Iterable[Union[str, Path]],
    exclude_dirs: Sequence[str] = ("vendor", "testdata"),
) -> List[Path]:
    """
    Expand files and directories into the .go files to scan.

    Directories are searched recursively, skipping ``exclude_dirs`` and
    hidden directories. Explicitly named files are always kept.
    """
    logger = get_logger()
    found: List[Path] = []

    for raw in paths:
        path = Path(raw)
        if path.is_file():
            if path.suffix == ".go":
                found.append(path)
            continue
        if not path.is_dir():
            logger.warning(f"Skipping {path}: no such file or directory")
            continue
        for candidate in sorted(path.rglob("*.go")):
            parents = candidate.relative_to(path).parts[:-1]
            if any(part in exclude_dirs or part.startswith(".") for part in parents):
                continue
            found.append(candidate)

    unique = list(dict.fromkeys(found))
    logger.debug(f"Discovered {len(unique)} Go file(s)")
    return unique


class LintOrchestrator:
    """
    Runs scan → aggregate → fix → verify → apply for many units.

    Features:
    - Per-unit isolation: one failing file never stops the others
    - One dispatcher for the run, so fix requests are bounded process-wide
    - One lock for operator prompts and file writes
    """

    def __init__(
        self,
        config: Optional[LintConfig] = None,
        service: Optional[FixService] = None,
        verifier: Optional[Verifier] = None,
        operator: Optional[Operator] = None,
        frontend: Optional[GoFrontend] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            config: Run configuration
            service: Fix service (defaults to ClaudeFixService)
            verifier: Verifier for fix mode (defaults to config.verifier)
            operator: Confirmation channel for interactive fixes
            frontend: Go frontend (one is created when omitted)
        """
        self.config = config or LintConfig()
        self.frontend = frontend or GoFrontend()
        self.operator = operator
        self.logger = get_logger()
        self._service = service
        self._verifier = verifier

    @property
    def service(self) -> FixService:
        if self._service is None:
            self._service = ClaudeFixService(self.config.fix_service)
        return self._service

    @property
    def verifier(self) -> Optional[Verifier]:
        if self._verifier is None:
            self._verifier = build_verifier(self.config.verifier, self.config.go_binary)
        return self._verifier

    async def scan(self, paths: Iterable[Union[str, Path]]) -> RunSummary:
        """Report-only run."""
        return await self.run(paths, ApplyMode.REPORT)

    async def fix(self, paths: Iterable[Union[str, Path]]) -> RunSummary:
        """Fix run: interactive, or AUTO when config.auto_apply is set."""
        mode = ApplyMode.AUTO if self.config.auto_apply else ApplyMode.INTERACTIVE
        return await self.run(paths, mode)

    async def run(self, paths: Iterable[Union[str, Path]], mode: ApplyMode) -> RunSummary:
        """
        Run the pipeline over every discovered file.

        Args:
            paths: Files and directories
            mode: How patches are treated

        Returns:
            RunSummary with one report per file
        """
        started = time.monotonic()
        files = discover_sources(paths, self.config.exclude_dirs)
        summary = RunSummary(mode=mode)
        self.logger.info(f"Scanning {len(files)} file(s) in {mode.value} mode")

        wants_fixes = mode is not ApplyMode.REPORT or self.config.suggest_fixes
        dispatcher = None
        if wants_fixes:
            dispatcher = FixDispatcher(
                self.service,
                workers=self.config.workers,
                queue_size=self.config.queue_size,
            )
        loop = None
        if dispatcher is not None and mode is not ApplyMode.REPORT:
            loop = FeedbackLoop(dispatcher, self.verifier, max_retries=self.config.max_retries)
        applier = PatchApplier(
            mode=mode,
            operator=self.operator,
            lock=asyncio.Lock(),
            verifier=self.verifier if mode is ApplyMode.INTERACTIVE else None,
        )

        results = await asyncio.gather(
            *(self._process(path, mode, dispatcher, loop, applier, summary.metrics) for path in files),
            return_exceptions=True,
        )

        for path, result in zip(files, results):
            if isinstance(result, BaseException):
                self.logger.error(f"{path}: {result}")
                summary.metrics.units_failed += 1
                summary.reports.append(UnitReport(unit_id=str(path), error=str(result)))
            else:
                summary.reports.append(result)

        summary.metrics.duration_ms = int((time.monotonic() - started) * 1000)
        self.logger.info(
            f"Done: {summary.issue_count} issue(s) in {len(files)} file(s), "
            f"{summary.metrics.units_failed} failed"
        )
        return summary

    async def _process(
        self,
        path: Path,
        mode: ApplyMode,
        dispatcher: Optional[FixDispatcher],
        loop: Optional[FeedbackLoop],
        applier: PatchApplier,
        metrics: RunMetrics,
    ) -> UnitReport:
        unit = self.frontend.parse_file(path)
        issues = scan_unit(unit)
        aggregated = aggregate_issues(unit.unit_id, issues)
        metrics.units_scanned += 1
        metrics.record_issues(issues, aggregated)

        report = UnitReport(unit_id=unit.unit_id, issues=aggregated)
        if not aggregated:
            report.outcome = applier.report(unit, [])
            return report

        self.logger.info(f"{unit.unit_id}: {len(aggregated)} issue(s)")

        if mode is ApplyMode.REPORT:
            results = []
            if dispatcher is not None:
                results = await dispatcher.dispatch([FixTask(issue=i) for i in aggregated])
                metrics.record_results(results)
            report.outcome = applier.report(unit, aggregated, results)
            return report

        report.loop = await loop.run(unit, aggregated)
        metrics.verification_attempts += report.loop.attempts
        metrics.record_results(report.loop.results)
        report.outcome = await applier.apply(unit, report.loop.results, aggregated)
        metrics.record_outcome(report.outcome)
        return report
