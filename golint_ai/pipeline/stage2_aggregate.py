"""Stage 2: Aggregation - merge issues that start at the same position."""

from typing import Dict, Iterable, List, Tuple

from ..models import AggregatedIssue, Issue


class IssueAggregator:
    """
    Groups issues by (unit_id, range.start).

    The first issue seen at a position decides range, subject and snippet.
    Categories are kept once each in first-seen order; messages are kept in
    arrival order.
    """

    def __init__(self):
        self._groups: Dict[Tuple[str, int], AggregatedIssue] = {}

    def add(self, unit_id: str, issue: Issue) -> AggregatedIssue:
        key = (unit_id, issue.range.start)
        group = self._groups.get(key)
        if group is None:
            group = AggregatedIssue(
                range=issue.range,
                subject_name=issue.subject_name,
                snippet=issue.snippet,
                unit_id=unit_id,
            )
            self._groups[key] = group
        if issue.category not in group.categories:
            group.categories.append(issue.category)
        group.messages.append(issue.message)
        return group

    def add_all(self, unit_id: str, issues: Iterable[Issue]) -> None:
        for issue in issues:
            self.add(unit_id, issue)

    def issues(self) -> List[AggregatedIssue]:
        """Aggregated issues ordered by unit, then position."""
        return [self._groups[key] for key in sorted(self._groups)]

    def __len__(self) -> int:
        return len(self._groups)


def aggregate_issues(unit_id: str, issues: Iterable[Issue]) -> List[AggregatedIssue]:
    """Aggregate one unit's issues."""
    aggregator = IssueAggregator()
    aggregator.add_all(unit_id, issues)
    return aggregator.issues()
