"""Data models for defect detection and patching."""

from .issue import Category, PositionRange, Issue, AggregatedIssue
from .fix import (
    ApplyMode,
    FixTask,
    FixRequest,
    PatchResult,
    VerificationResult,
    Diagnostic,
    ApplyOutcome,
)

__all__ = [
    "Category",
    "PositionRange",
    "Issue",
    "AggregatedIssue",
    "ApplyMode",
    "FixTask",
    "FixRequest",
    "PatchResult",
    "VerificationResult",
    "Diagnostic",
    "ApplyOutcome",
]
