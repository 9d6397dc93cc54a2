"""Configuration for golint-ai."""

from dataclasses import dataclass, field
from typing import List, Optional
import os


@dataclass
class FixServiceConfig:
    """Settings for the Claude fix service client."""
    model: Optional[str] = None        # None lets the SDK pick its default
    max_turns: int = 5
    request_timeout: float = 120.0     # seconds per fix request


@dataclass
class LintConfig:
    """Configuration for one scan or fix run."""

    # Fix generation
    workers: int = 5                   # in-flight fix requests, process-wide
    queue_size: int = 20               # capacity of each dispatch queue
    max_retries: int = 3               # re-submissions after a failed verification
    suggest_fixes: bool = True         # ask the fix service in scan mode

    # Verification: syntax, go, none
    verifier: str = "syntax"
    go_binary: str = "go"

    # Application
    auto_apply: bool = False           # fix mode without prompting
    output_format: str = "text"        # text, json

    # Discovery
    exclude_dirs: List[str] = field(default_factory=lambda: ["vendor", "testdata"])

    # GitHub reporting
    github_repo: str = ""
    pr_number: int = 0
    github_token: Optional[str] = None

    fix_service: FixServiceConfig = field(default_factory=FixServiceConfig)

    @classmethod
    def from_env(cls) -> "LintConfig":
        """Create config from environment variables."""
        return cls(
            workers=int(os.environ.get("GOLINT_AI_WORKERS", "5")),
            queue_size=int(os.environ.get("GOLINT_AI_QUEUE_SIZE", "20")),
            max_retries=int(os.environ.get("GOLINT_AI_MAX_RETRIES", "3")),
            suggest_fixes=os.environ.get("GOLINT_AI_SUGGEST", "true").lower() == "true",
            verifier=os.environ.get("GOLINT_AI_VERIFIER", "syntax"),
            go_binary=os.environ.get("GOLINT_AI_GO_BINARY", "go"),
            auto_apply=os.environ.get("GOLINT_AI_AUTO_APPLY", "false").lower() == "true",
            output_format=os.environ.get("GOLINT_AI_FORMAT", "text"),
            github_repo=os.environ.get("GITHUB_REPOSITORY", ""),
            pr_number=int(os.environ.get("PR_NUMBER", "0") or "0"),
            github_token=os.environ.get("GITHUB_TOKEN"),
            fix_service=FixServiceConfig(
                model=os.environ.get("GOLINT_AI_MODEL") or None,
                max_turns=int(os.environ.get("GOLINT_AI_MAX_TURNS", "5")),
                request_timeout=float(os.environ.get("GOLINT_AI_REQUEST_TIMEOUT", "120")),
            ),
        )

