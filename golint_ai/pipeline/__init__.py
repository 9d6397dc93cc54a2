"""Pipeline stages: scan, aggregate, dispatch, apply, verify."""

from .stage1_scan import scan_unit
from .stage2_aggregate import IssueAggregator, aggregate_issues
from .stage3_dispatch import CATEGORY_DIRECTIVES, FixDispatcher, build_request
from .stage4_apply import (
    ConsoleOperator,
    Operator,
    PatchApplier,
    apply_patches,
    format_patch_prompt,
    make_diagnostic,
    order_patches,
    splice,
)
from .feedback_loop import (
    FeedbackLoop,
    LoopOutcome,
    LoopResult,
    LoopStatus,
    run_feedback_loop_sync,
)

__all__ = [
    "scan_unit",
    "IssueAggregator",
    "aggregate_issues",
    "CATEGORY_DIRECTIVES",
    "FixDispatcher",
    "build_request",
    "ConsoleOperator",
    "Operator",
    "PatchApplier",
    "apply_patches",
    "format_patch_prompt",
    "make_diagnostic",
    "order_patches",
    "splice",
    "FeedbackLoop",
    "LoopOutcome",
    "LoopResult",
    "LoopStatus",
    "run_feedback_loop_sync",
]
