"""golint-ai: Go defect detection with AI-generated fixes."""

__version__ = "0.1.0"
