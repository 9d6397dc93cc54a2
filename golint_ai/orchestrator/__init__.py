"""Run orchestration over many source units."""

from .orchestrator import LintOrchestrator, RunSummary, UnitReport, discover_sources

__all__ = [
    "LintOrchestrator",
    "RunSummary",
    "UnitReport",
    "discover_sources",
]
