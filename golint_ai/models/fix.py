"""Data models for fix generation, verification and reporting."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from .issue import AggregatedIssue, Category, PositionRange


class ApplyMode(Enum):
    """How the patch applier treats completed patches."""
    REPORT = "report"             # never touch the buffer, emit diagnostics
    INTERACTIVE = "interactive"   # ask the operator before every patch
    AUTO = "auto"                 # apply every successful patch


@dataclass
class FixTask:
    """One request for a fix; carries verifier output on retries."""
    issue: AggregatedIssue
    prior_feedback: Optional[str] = None
    attempt: int = 0


@dataclass(frozen=True)
class FixRequest:
    """Payload sent to the fix service."""
    subject_name: str
    snippet: str
    categories: List[Category]
    prior_feedback: Optional[str] = None
    directives: List[str] = field(default_factory=list)


@dataclass
class PatchResult:
    """Outcome of one fix task. Exactly one of patch_text / error is set."""
    task: FixTask
    patch_text: Optional[str] = None
    error: Optional[Exception] = None

    def __post_init__(self):
        if (self.patch_text is None) == (self.error is None):
            raise ValueError("PatchResult needs exactly one of patch_text or error")

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def issue(self) -> AggregatedIssue:
        return self.task.issue

    @property
    def range(self) -> PositionRange:
        return self.task.issue.range


@dataclass(frozen=True)
class VerificationResult:
    """Verdict of compiling or re-parsing a candidate buffer."""
    ok: bool
    diagnostic_text: str = ""


@dataclass
class Diagnostic:
    """Structured record for one aggregated issue."""
    unit_id: str
    line: int
    column: int
    offset: int
    categories: List[Category]
    messages: List[str]
    suggestion: Optional[str] = None

    @property
    def category_label(self) -> str:
        return "&".join(c.value for c in self.categories)

    def format(self) -> str:
        """Render as a lint line: path:line:col: [A&B] msg; msg"""
        return (
            f"{self.unit_id}:{self.line}:{self.column}: "
            f"[{self.category_label}] {'; '.join(self.messages)}"
        )

    def to_dict(self) -> dict:
        return {
            "file": self.unit_id,
            "line": self.line,
            "column": self.column,
            "offset": self.offset,
            "categories": [c.value for c in self.categories],
            "messages": list(self.messages),
            "suggestion": self.suggestion,
        }


@dataclass
class ApplyOutcome:
    """What the applier did with one unit's patches."""
    unit_id: str
    mode: ApplyMode
    applied: List[PatchResult] = field(default_factory=list)
    skipped: List[PatchResult] = field(default_factory=list)    # operator said no
    rejected: List[PatchResult] = field(default_factory=list)   # overlap or failed fix
    diagnostics: List[Diagnostic] = field(default_factory=list)
    written: bool = False
    buffer: Optional[bytes] = None   # content after patching
