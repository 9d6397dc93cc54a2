"""Data models for detected issues."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List


class Category(Enum):
    """Defect categories produced by the checker set."""
    UNHANDLED_ERROR = "UnhandledError"    # error value never checked
    NIL_DEREF = "NilDeref"                # value used before its error is checked
    RESOURCE_LEAK = "ResourceLeak"        # closer without deferred Close
    HARDCODED_SECRET = "HardcodedSecret"  # credential literal in source
    TAINTED_QUERY = "TaintedQuery"        # dynamic string reaching a query sink


@dataclass(frozen=True)
class PositionRange:
    """Half-open byte range [start, end) inside one source unit."""
    start: int
    end: int

    def __post_init__(self):
        if self.start > self.end:
            raise ValueError(f"Invalid range: start {self.start} > end {self.end}")

    def __len__(self) -> int:
        return self.end - self.start

    def overlaps(self, other: "PositionRange") -> bool:
        return self.start < other.end and other.start < self.end


@dataclass(frozen=True)
class Issue:
    """A single finding emitted by one checker."""
    range: PositionRange
    subject_name: str
    snippet: str
    message: str
    category: Category


@dataclass
class AggregatedIssue:
    """All findings that share one start position in a unit."""
    range: PositionRange
    subject_name: str
    snippet: str
    unit_id: str
    categories: List[Category] = field(default_factory=list)
    messages: List[str] = field(default_factory=list)

    @property
    def position(self) -> int:
        return self.range.start

    @property
    def category_label(self) -> str:
        """Categories joined the way diagnostics print them."""
        return "&".join(c.value for c in self.categories)
