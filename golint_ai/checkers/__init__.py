"""Defect checkers. Each is a pure function SourceUnit -> List[Issue]."""

from .unhandled_error import scan_unhandled_error
from .nil_deref import scan_nil_deref
from .resource_leak import scan_resource_leak
from .hardcoded_secret import scan_hardcoded_secret
from .tainted_query import scan_tainted_query

ALL_CHECKERS = (
    scan_unhandled_error,
    scan_nil_deref,
    scan_resource_leak,
    scan_hardcoded_secret,
    scan_tainted_query,
)

__all__ = [
    "ALL_CHECKERS",
    "scan_unhandled_error",
    "scan_nil_deref",
    "scan_resource_leak",
    "scan_hardcoded_secret",
    "scan_tainted_query",
]
