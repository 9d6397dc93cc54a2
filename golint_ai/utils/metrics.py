"""Run metrics for scan and fix sessions."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..models import AggregatedIssue, ApplyOutcome, Category, Issue, PatchResult


@dataclass
class RunMetrics:
    """Counters collected across every unit of one run."""

    # Units
    units_scanned: int = 0
    units_failed: int = 0

    # Findings
    raw_issues: int = 0
    aggregated_issues: int = 0
    by_category: Dict[str, int] = field(
        default_factory=lambda: {c.value: 0 for c in Category}
    )

    # Fix generation
    fixes_succeeded: int = 0
    fixes_failed: int = 0
    verification_attempts: int = 0

    # Application
    patches_applied: int = 0
    patches_skipped: int = 0
    patches_rejected: int = 0

    # Timing
    duration_ms: Optional[int] = None

    @property
    def fix_success_rate(self) -> float:
        total = self.fixes_succeeded + self.fixes_failed
        return self.fixes_succeeded / total if total else 0.0

    def record_issues(self, issues: List[Issue], aggregated: List[AggregatedIssue]) -> None:
        self.raw_issues += len(issues)
        self.aggregated_issues += len(aggregated)
        for issue in issues:
            self.by_category[issue.category.value] += 1

    def record_results(self, results: List[PatchResult]) -> None:
        for result in results:
            if result.ok:
                self.fixes_succeeded += 1
            else:
                self.fixes_failed += 1

    def record_outcome(self, outcome: ApplyOutcome) -> None:
        self.patches_applied += len(outcome.applied)
        self.patches_skipped += len(outcome.skipped)
        self.patches_rejected += len(outcome.rejected)


def format_metrics_report(metrics: RunMetrics) -> str:
    """
    Format metrics as a human-readable report.

    Args:
        metrics: RunMetrics object

    Returns:
        Formatted report string
    """
    lines = [
        "## golint-ai Metrics",
        "",
        "### Summary",
        f"- Units scanned: {metrics.units_scanned}",
        f"- Units failed: {metrics.units_failed}",
        f"- Raw issues: {metrics.raw_issues}",
        f"- Aggregated issues: {metrics.aggregated_issues}",
        "",
        "### Category Breakdown",
    ]
    for category, count in metrics.by_category.items():
        lines.append(f"- {category}: {count}")

    if metrics.fixes_succeeded or metrics.fixes_failed:
        lines.extend([
            "",
            "### Fixes",
            f"- Succeeded: {metrics.fixes_succeeded}",
            f"- Failed: {metrics.fixes_failed}",
            f"- Success rate: {metrics.fix_success_rate:.1%}",
            f"- Verification attempts: {metrics.verification_attempts}",
            f"- Patches applied: {metrics.patches_applied}",
            f"- Patches skipped: {metrics.patches_skipped}",
            f"- Patches rejected: {metrics.patches_rejected}",
        ])

    if metrics.duration_ms:
        lines.append("")
        lines.append("### Performance")
        lines.append(f"- Run duration: {metrics.duration_ms / 1000:.2f}s")

    return "\n".join(lines)
