"""Stage 1: Scan - run every checker over one source unit."""

from typing import Callable, List, Sequence

from ..checkers import ALL_CHECKERS
from ..frontend import SourceUnit
from ..models import Issue
from ..utils import get_logger

Checker = Callable[[SourceUnit], List[Issue]]


def scan_unit(unit: SourceUnit, checkers: Sequence[Checker] = ALL_CHECKERS) -> List[Issue]:
    """
    Stage 1: Collect issues from every checker.

    A checker that raises is logged and contributes nothing; the remaining
    checkers still run.

    Args:
        unit: Parsed source unit
        checkers: Checker functions, run in order

    Returns:
        Issues in checker order, then document order
    """
    logger = get_logger()
    issues: List[Issue] = []

    for checker in checkers:
        try:
            found = checker(unit)
        except Exception as e:
            logger.warning(f"{unit.unit_id}: checker {checker.__name__} failed: {e}")
            continue
        if found:
            logger.debug(f"{unit.unit_id}: {checker.__name__} found {len(found)} issue(s)")
        issues.extend(found)

    return issues
