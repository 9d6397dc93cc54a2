#!/usr/bin/env python3
"""
golint-ai - Main Entry Point

Finds defect patterns in Go source (unhandled errors, nil dereferences,
resource leaks, hardcoded secrets, tainted queries) and asks Claude for
fixes through the Claude Agent SDK.

Usage:
    golint-ai scan ./...
    golint-ai fix ./cmd/server --verifier go
    golint-ai init

Or via GitHub Actions (see `golint-ai init`)
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from .config import LintConfig
from .orchestrator import LintOrchestrator, RunSummary
from .tools import ConsoleSink, GitHubReporter, JsonSink
from .utils import setup_logging, get_logger, format_metrics_report


def _paths(args) -> list:
    # "./..." is the usual Go spelling of "this tree"
    return [p[:-4] or "." if p.endswith("/...") else p for p in args.paths]


def build_config(args) -> LintConfig:
    """Environment defaults overridden by command-line flags."""
    config = LintConfig.from_env()

    if getattr(args, "workers", None):
        config.workers = args.workers
    if getattr(args, "max_retries", None) is not None:
        config.max_retries = args.max_retries
    if getattr(args, "verifier", None):
        config.verifier = args.verifier
    if getattr(args, "no_suggest", False):
        config.suggest_fixes = False
    if getattr(args, "yes", False):
        config.auto_apply = True
    if getattr(args, "format", None):
        config.output_format = args.format
    if getattr(args, "github_repo", None):
        config.github_repo = args.github_repo
    if getattr(args, "pr_number", None):
        config.pr_number = args.pr_number
    if getattr(args, "model", None):
        config.fix_service.model = args.model

    return config


def emit_report(summary: RunSummary, config: LintConfig) -> None:
    """Write diagnostics to stdout in the configured format."""
    if config.output_format == "json":
        sink = JsonSink()
        sink.emit(summary.diagnostics)
        sink.close()
    else:
        ConsoleSink(show_suggestions=config.suggest_fixes).emit(summary.diagnostics)


def cmd_init(args):
    """Handle 'init' subcommand."""
    from .cli import init_repository

    target = Path(args.path) if args.path else Path.cwd()
    success = init_repository(target)
    sys.exit(0 if success else 1)


def cmd_scan(args):
    """Handle 'scan' subcommand."""
    setup_logging(level=logging.DEBUG if args.debug else logging.INFO)
    logger = get_logger()
    config = build_config(args)

    try:
        summary = asyncio.run(LintOrchestrator(config).scan(_paths(args)))
    except Exception as e:
        logger.exception(f"Scan failed: {e}")
        sys.exit(2)

    emit_report(summary, config)
    logger.info("\n" + format_metrics_report(summary.metrics))

    if config.github_repo and config.pr_number:
        logger.info(f"Posting {len(summary.diagnostics)} diagnostic(s) to {config.github_repo} PR #{config.pr_number}")
        try:
            reporter = GitHubReporter(config.github_repo, config.pr_number, token=config.github_token)
            reporter.post_report(summary.diagnostics)
        except Exception as e:
            logger.exception(f"GitHub reporting failed: {e}")
            sys.exit(2)

    sys.exit(1 if summary.issue_count else 0)


def cmd_fix(args):
    """Handle 'fix' subcommand."""
    setup_logging(level=logging.DEBUG if args.debug else logging.INFO)
    logger = get_logger()
    config = build_config(args)

    try:
        summary = asyncio.run(LintOrchestrator(config).fix(_paths(args)))
    except Exception as e:
        logger.exception(f"Fix failed: {e}")
        sys.exit(2)

    for report in summary.reports:
        if report.failed:
            print(f"[Failed] {report.unit_id}: {report.error}")
            continue
        if report.outcome is None or not report.issues:
            continue
        outcome = report.outcome
        print(
            f"[Fix] {report.unit_id}: {len(outcome.applied)} applied, "
            f"{len(outcome.skipped)} skipped, {len(outcome.rejected)} rejected"
        )
        for result in outcome.rejected:
            if result.error is not None:
                print(f"  - {result.issue.subject_name} at byte {result.range.start}: {result.error}")

    print("\n" + format_metrics_report(summary.metrics))
    sys.exit(1 if summary.failed_units else 0)


def main():
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Go defect scanner with AI-generated fixes"
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # init command
    init_parser = subparsers.add_parser("init", help="Add a golint-ai GitHub workflow to a repository")
    init_parser.add_argument(
        "path",
        nargs="?",
        help="Target repository path (default: current directory)"
    )

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "paths",
        nargs="*",
        default=["."],
        help="Go files or directories (default: current directory)"
    )
    common.add_argument(
        "--workers",
        type=int,
        help="Concurrent fix requests (default: 5)"
    )
    common.add_argument(
        "--model",
        type=str,
        help="Model used by the fix service"
    )
    common.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )

    # scan command
    scan_parser = subparsers.add_parser("scan", parents=[common], help="Report defects (no files are changed)")
    scan_parser.add_argument(
        "--no-suggest",
        action="store_true",
        help="Do not request fix suggestions"
    )
    scan_parser.add_argument(
        "--format",
        choices=["text", "json"],
        help="Output format (default: text)"
    )
    scan_parser.add_argument(
        "--github-repo",
        type=str,
        help="Post results to this repository (owner/repo)"
    )
    scan_parser.add_argument(
        "--pr-number",
        type=int,
        help="Pull request number to comment on"
    )

    # fix command
    fix_parser = subparsers.add_parser("fix", parents=[common], help="Generate, verify and apply fixes")
    fix_parser.add_argument(
        "--yes", "-y",
        action="store_true",
        help="Apply every verified fix without asking"
    )
    fix_parser.add_argument(
        "--verifier",
        choices=["syntax", "go", "none"],
        help="How candidate patches are verified (default: syntax)"
    )
    fix_parser.add_argument(
        "--max-retries",
        type=int,
        help="Re-submissions after a failed verification (default: 3)"
    )

    args = parser.parse_args()

    if args.command == "init":
        cmd_init(args)
    elif args.command == "scan":
        cmd_scan(args)
    elif args.command == "fix":
        cmd_fix(args)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
