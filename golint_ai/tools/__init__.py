"""Collaborators: fix service, verifiers, diagnostic sinks and GitHub."""

from .fix_service import ClaudeFixService, FixService, PatchCollector, build_prompt, clean_patch
from .verifier import GoBuildVerifier, SyntaxVerifier, Verifier, build_verifier
from .sinks import ConsoleSink, JsonSink
from .github_tool import GitHubReporter, format_diagnostic_comment, format_summary

__all__ = [
    "ClaudeFixService",
    "FixService",
    "PatchCollector",
    "build_prompt",
    "clean_patch",
    "GoBuildVerifier",
    "SyntaxVerifier",
    "Verifier",
    "build_verifier",
    "ConsoleSink",
    "JsonSink",
    "GitHubReporter",
    "format_diagnostic_comment",
    "format_summary",
]
