"""Exceptions raised by the fix pipeline."""


class GolintError(Exception):
    """Base class for golint-ai errors."""


class FixServiceError(GolintError):
    """The fix service failed: transport, error response or unusable output."""


class VerificationError(GolintError):
    """Patches kept failing verification after every retry."""

    def __init__(self, message: str, diagnostic_text: str = "", attempts: int = 0):
        super().__init__(message)
        self.diagnostic_text = diagnostic_text
        self.attempts = attempts


class ApplyError(GolintError):
    """The target file could not be read, written, or changed underneath us."""
