"""Utility functions."""

from .logging import setup_logging, get_logger
from .metrics import RunMetrics, format_metrics_report

__all__ = [
    "setup_logging",
    "get_logger",
    "RunMetrics",
    "format_metrics_report",
]
