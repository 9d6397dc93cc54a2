"""GitHub reporting: diagnostics as pull request review comments."""

import os
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from github import Github, GithubException
from github.PullRequest import PullRequest

from ..models import Diagnostic
from ..utils import get_logger


def format_diagnostic_comment(diagnostic: Diagnostic) -> str:
    """Format a diagnostic as a review comment body."""
    parts = [f"**{' & '.join(c.value for c in diagnostic.categories)}**\n"]
    for message in diagnostic.messages:
        parts.append(f"\n- {message}")
    parts.append("\n")

    if diagnostic.suggestion:
        parts.append(f"\n**Suggested Fix:**\n```go\n{diagnostic.suggestion}\n```\n")

    return "".join(parts)


def format_summary(diagnostics: Sequence[Diagnostic]) -> str:
    """Summary comment grouping diagnostics by category."""
    body_parts = ["## golint-ai Summary\n"]

    if not diagnostics:
        body_parts.append("No defects found.\n")
    else:
        by_category: Dict[str, List[Diagnostic]] = {}
        for diagnostic in diagnostics:
            for category in diagnostic.categories:
                by_category.setdefault(category.value, []).append(diagnostic)

        body_parts.append(f"Found **{len(diagnostics)}** issues:\n")
        for category, items in by_category.items():
            body_parts.append(f"\n### {category} ({len(items)})\n")
            for diagnostic in items:
                body_parts.append(
                    f"- **{diagnostic.unit_id}:{diagnostic.line}** - {diagnostic.messages[0]}"
                )

    body_parts.append("\n\n---\n*Reported by golint-ai*")
    return "\n".join(body_parts)


class GitHubReporter:
    """
    Posts diagnostics on a pull request.

    Handles:
    - Inline review comments, one per diagnostic
    - A summary comment
    """

    def __init__(
        self,
        repo: str,
        pr_number: int,
        token: Optional[str] = None,
        root: Optional[Path] = None,
    ):
        """
        Initialize the reporter.

        Args:
            repo: Repository in format "owner/repo"
            pr_number: Pull request number
            token: GitHub token (defaults to GITHUB_TOKEN env var)
            root: Repository checkout root; paths are made relative to it
        """
        self.token = token or os.environ.get("GITHUB_TOKEN")
        if not self.token:
            raise ValueError("GitHub token required. Set GITHUB_TOKEN env var or pass token parameter.")

        self.gh = Github(self.token)
        self.repo = self.gh.get_repo(repo)
        self.pr_number = pr_number
        self.root = (root or Path.cwd()).resolve()
        self.logger = get_logger()
        self._pr: Optional[PullRequest] = None

    @property
    def pr(self) -> PullRequest:
        """Get the pull request object (cached)."""
        if self._pr is None:
            self._pr = self.repo.get_pull(self.pr_number)
        return self._pr

    def _relative(self, unit_id: str) -> str:
        path = Path(unit_id).resolve()
        try:
            return path.relative_to(self.root).as_posix()
        except ValueError:
            return unit_id

    def post_diagnostic(self, diagnostic: Diagnostic) -> bool:
        """
        Post one review comment.

        Returns:
            True if the comment was posted
        """
        commit = self.repo.get_commit(self.pr.head.sha)
        try:
            self.pr.create_review_comment(
                body=format_diagnostic_comment(diagnostic),
                commit=commit,
                path=self._relative(diagnostic.unit_id),
                line=diagnostic.line,
                side="RIGHT",
            )
            return True
        except GithubException as e:
            # lines outside the PR diff cannot carry review comments
            self.logger.warning(f"Failed to post comment for {diagnostic.unit_id}:{diagnostic.line}: {e}")
            return False

    def post_report(self, diagnostics: Sequence[Diagnostic]) -> int:
        """Post every diagnostic and a summary; returns the number of inline comments."""
        posted = sum(1 for d in diagnostics if self.post_diagnostic(d))
        self.pr.create_issue_comment(format_summary(diagnostics))
        return posted
