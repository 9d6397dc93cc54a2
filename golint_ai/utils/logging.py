"""Logging utilities."""

import logging
import sys
from typing import Optional, TextIO


def setup_logging(
    level: int = logging.INFO,
    format_str: Optional[str] = None,
    stream: Optional[TextIO] = None,
) -> logging.Logger:
    """
    Setup logging for golint-ai.

    Only the ``golint_ai`` logger gets a handler, so agent SDK and PyGithub
    loggers stay at the root default. Output goes to stderr; stdout carries
    diagnostics.

    Args:
        level: Logging level (default: INFO)
        format_str: Custom format string
        stream: Destination stream (default: sys.stderr)

    Returns:
        Configured logger
    """
    if format_str is None:
        format_str = "[%(asctime)s] %(levelname)s - %(message)s"

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter(format_str))

    logger = logging.getLogger("golint_ai")
    logger.handlers = [handler]
    logger.setLevel(level)
    logger.propagate = False

    return logger


def get_logger(name: str = "golint_ai") -> logging.Logger:
    """Get a logger instance."""
    return logging.getLogger(name)
