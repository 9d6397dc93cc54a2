"""Tests for run orchestration, configuration and the CLI surface.

- Client-perspective behavior verification
- Given-When-Then structure
- Minimal mocking (only the fix service, verifier and operator)
"""

import argparse
import asyncio
import itertools

import pytest

from conftest import FakeFixService, ScriptedOperator, ScriptedVerifier
from golint_ai.cli import init_repository
from golint_ai import config as config_module
from golint_ai.config import LintConfig
from golint_ai.exceptions import ApplyError
from golint_ai.frontend import GoFrontend
from golint_ai.main import build_config
from golint_ai.models import ApplyMode, Category
from golint_ai.orchestrator import LintOrchestrator, discover_sources
from golint_ai.utils.metrics import RunMetrics, format_metrics_report


LEAKY = '''package store

import "os"

func Load() {
	f, err := os.Open("data.txt")
	_ = f
}
'''

TWO_LEAKS = '''package store

import "os"

func Load() {
	f, err := os.Open("a.txt")
	_ = f
	g, err2 := os.Open("b.txt")
	_ = g
}
'''

CLEAN = '''package store

func Add(a, b int) int {
	return a + b
}
'''


def _tree(tmp_path):
    (tmp_path / "store").mkdir()
    (tmp_path / "store" / "load.go").write_text(LEAKY)
    (tmp_path / "store" / "add.go").write_text(CLEAN)
    (tmp_path / "vendor" / "lib").mkdir(parents=True)
    (tmp_path / "vendor" / "lib" / "lib.go").write_text(LEAKY)
    (tmp_path / ".cache").mkdir()
    (tmp_path / ".cache" / "gen.go").write_text(LEAKY)
    (tmp_path / "README.md").write_text("docs")
    return tmp_path


class BrokenFileFrontend(GoFrontend):
    """Fails to read one specific file."""

    def parse_file(self, path):
        if path.name == "add.go":
            raise ApplyError(f"Cannot read {path}: permission denied")
        return super().parse_file(path)


class TestDiscovery:
    """Tests for source discovery."""

    def test_skips_vendor_and_hidden(self, tmp_path):
        """Given a tree with vendor and hidden dirs, should only keep project files."""
        # Given
        root = _tree(tmp_path)

        # When
        files = discover_sources([root])

        # Then
        assert sorted(p.name for p in files) == ["add.go", "load.go"]

    def test_explicit_file_and_duplicates(self, tmp_path):
        """Given a file named twice, should list it once."""
        # Given
        root = _tree(tmp_path)
        load = root / "store" / "load.go"

        # When
        files = discover_sources([load, root / "store"])

        # Then
        assert files.count(load) == 1
        assert len(files) == 2


class TestLintOrchestrator:
    """Tests for end-to-end runs with a fake fix service."""

    def test_scan_reports_without_writing(self, tmp_path):
        """Given a leaky file, should report merged diagnostics and leave it untouched."""
        # Given
        root = _tree(tmp_path)
        service = FakeFixService()
        orchestrator = LintOrchestrator(LintConfig(), service=service)

        # When
        summary = asyncio.run(orchestrator.scan([root]))

        # Then
        assert summary.mode is ApplyMode.REPORT
        assert summary.issue_count == 1
        diagnostic = summary.diagnostics[0]
        assert diagnostic.categories == [Category.UNHANDLED_ERROR, Category.RESOURCE_LEAK]
        assert diagnostic.line == 6
        assert diagnostic.suggestion == "// fixed err"
        assert (root / "store" / "load.go").read_text() == LEAKY
        assert summary.metrics.units_scanned == 2
        assert summary.metrics.by_category["ResourceLeak"] == 1

    def test_scan_without_suggestions(self, tmp_path):
        """Given suggest_fixes off, should never call the fix service."""
        # Given
        root = _tree(tmp_path)
        service = FakeFixService()
        orchestrator = LintOrchestrator(LintConfig(suggest_fixes=False), service=service)

        # When
        summary = asyncio.run(orchestrator.scan([root]))

        # Then
        assert service.requests == []
        assert summary.diagnostics[0].suggestion is None

    def test_auto_fix_writes_verified_patch(self, tmp_path):
        """Given auto mode and a valid patch, should rewrite the file."""
        # Given
        root = _tree(tmp_path)
        patch = 'f, err := os.Open("data.txt")\n\tif err != nil {\n\t\treturn\n\t}\n\tdefer f.Close()'
        service = FakeFixService(patches={"err": patch})
        config = LintConfig(auto_apply=True, verifier="syntax")
        orchestrator = LintOrchestrator(config, service=service)

        # When
        summary = asyncio.run(orchestrator.fix([root / "store"]))

        # Then
        assert summary.mode is ApplyMode.AUTO
        content = (root / "store" / "load.go").read_text()
        assert "defer f.Close()" in content
        assert summary.metrics.patches_applied == 1
        assert summary.metrics.verification_attempts == 1

    def test_interactive_prompts_do_not_interleave(self, tmp_path):
        """Given two files fixed concurrently, should prompt for each file in one run."""
        # Given
        for name in ("a.go", "b.go"):
            (tmp_path / name).write_text(TWO_LEAKS)
        operator = ScriptedOperator([True] * 4, delay=0.01)
        orchestrator = LintOrchestrator(
            LintConfig(),
            service=FakeFixService(),
            verifier=ScriptedVerifier([True]),
            operator=operator,
        )

        # When
        summary = asyncio.run(orchestrator.fix([tmp_path]))

        # Then
        assert summary.mode is ApplyMode.INTERACTIVE
        units = [prompt.strip().split(":", 1)[0] for prompt in operator.prompts]
        assert len(units) == 4
        assert len(set(units)) == 2
        assert len([unit for unit, _ in itertools.groupby(units)]) == 2
        assert summary.metrics.patches_applied == 4
        for name in ("a.go", "b.go"):
            assert "// fixed err" in (tmp_path / name).read_text()

    def test_unit_failure_is_isolated(self, tmp_path):
        """Given one unreadable file, should still scan the others."""
        # Given
        root = _tree(tmp_path)
        orchestrator = LintOrchestrator(
            LintConfig(suggest_fixes=False),
            frontend=BrokenFileFrontend(),
        )

        # When
        summary = asyncio.run(orchestrator.scan([root]))

        # Then
        assert len(summary.failed_units) == 1
        assert "permission denied" in summary.failed_units[0].error
        assert summary.issue_count == 1
        assert summary.metrics.units_failed == 1


class TestConfig:
    """Tests for configuration sources."""

    def test_defaults(self):
        """Given no overrides, should use the documented defaults."""
        config = LintConfig()
        assert (config.workers, config.queue_size, config.max_retries) == (5, 20, 3)
        assert config.verifier == "syntax"
        assert config.fix_service.model is None

    def test_configs_do_not_share_state(self):
        """Given two configs, should keep their mutable fields separate."""
        # Given
        first = LintConfig()
        second = LintConfig()

        # When
        first.exclude_dirs.append("gen")
        first.fix_service.max_turns = 1

        # Then
        assert second.exclude_dirs == ["vendor", "testdata"]
        assert second.fix_service.max_turns == 5
        assert not any(isinstance(value, LintConfig) for value in vars(config_module).values())

    def test_from_env(self, monkeypatch):
        """Given GOLINT_AI_* variables, should read them."""
        # Given
        monkeypatch.setenv("GOLINT_AI_WORKERS", "2")
        monkeypatch.setenv("GOLINT_AI_MAX_RETRIES", "1")
        monkeypatch.setenv("GOLINT_AI_MODEL", "claude-test")
        monkeypatch.setenv("GITHUB_REPOSITORY", "acme/api")
        monkeypatch.setenv("PR_NUMBER", "42")

        # When
        config = LintConfig.from_env()

        # Then
        assert config.workers == 2
        assert config.max_retries == 1
        assert config.fix_service.model == "claude-test"
        assert (config.github_repo, config.pr_number) == ("acme/api", 42)

    def test_cli_flags_override_env(self, monkeypatch):
        """Given flags and environment, should prefer the flags."""
        # Given
        monkeypatch.setenv("GOLINT_AI_WORKERS", "2")
        args = argparse.Namespace(
            paths=["."], workers=8, model=None, debug=False,
            yes=True, verifier="none", max_retries=0,
        )

        # When
        config = build_config(args)

        # Then
        assert config.workers == 8
        assert config.auto_apply is True
        assert config.verifier == "none"
        assert config.max_retries == 0


class TestInitCommand:
    """Tests for workflow scaffolding."""

    def test_creates_workflow(self, tmp_path, capsys):
        """Given a git repository, should write the workflow once."""
        # Given
        (tmp_path / ".git").mkdir()

        # When
        assert init_repository(tmp_path)
        assert init_repository(tmp_path)

        # Then
        workflow = tmp_path / ".github" / "workflows" / "golint-ai.yml"
        assert "golint-ai scan" in workflow.read_text()
        assert "Already exists" in capsys.readouterr().out

    def test_rejects_non_repository(self, tmp_path):
        """Given a plain directory, should refuse."""
        assert init_repository(tmp_path) is False


class TestMetrics:
    """Tests for run metrics rendering."""

    def test_report_includes_fix_section_only_when_fixing(self):
        """Given fix counters, should render the fixes section."""
        # Given
        metrics = RunMetrics(units_scanned=3, raw_issues=4, aggregated_issues=3)

        # When
        scan_report = format_metrics_report(metrics)
        metrics.fixes_succeeded, metrics.fixes_failed = 3, 1
        fix_report = format_metrics_report(metrics)

        # Then
        assert "- Units scanned: 3" in scan_report
        assert "### Fixes" not in scan_report
        assert "- Success rate: 75.0%" in fix_report
