"""Tests for aggregation, dispatch and patch application.

- Client-perspective behavior verification
- Given-When-Then structure
- Minimal mocking (only the fix service, verifier and operator)
"""

import asyncio

import pytest

from conftest import (
    FakeFixService,
    GatedFixService,
    ScriptedOperator,
    ScriptedVerifier,
    make_result,
)
from golint_ai.exceptions import ApplyError, FixServiceError
from golint_ai.models import (
    ApplyMode,
    Category,
    FixTask,
    Issue,
    PatchResult,
    PositionRange,
)
from golint_ai.pipeline import (
    CATEGORY_DIRECTIVES,
    FixDispatcher,
    IssueAggregator,
    PatchApplier,
    aggregate_issues,
    apply_patches,
    build_request,
    scan_unit,
    splice,
)


OPEN_WITHOUT_CHECKS = '''package main

import "os"

func run() {
	f, err := os.Open("x")
	_ = f
}
'''


def _issue(start, end, category, message="m", subject="x"):
    return Issue(
        range=PositionRange(start, end),
        subject_name=subject,
        snippet="snippet",
        message=message,
        category=category,
    )


class TestIssueAggregator:
    """Tests for position-keyed aggregation."""

    def test_same_start_merges(self):
        """Given two issues at one start, should produce one aggregated issue."""
        # Given
        issues = [
            _issue(10, 20, Category.UNHANDLED_ERROR, "first", subject="err"),
            _issue(10, 25, Category.RESOURCE_LEAK, "second", subject="f"),
        ]

        # When
        aggregated = aggregate_issues("a.go", issues)

        # Then
        assert len(aggregated) == 1
        merged = aggregated[0]
        assert merged.categories == [Category.UNHANDLED_ERROR, Category.RESOURCE_LEAK]
        assert merged.messages == ["first", "second"]
        assert merged.subject_name == "err"
        assert merged.range == PositionRange(10, 20)
        assert merged.category_label == "UnhandledError&ResourceLeak"

    def test_at_most_one_per_position(self):
        """Given many issues, should key strictly by (unit, start)."""
        # Given
        aggregator = IssueAggregator()
        for start in (30, 10, 30, 10, 50):
            aggregator.add("a.go", _issue(start, start + 5, Category.NIL_DEREF))
        aggregator.add("b.go", _issue(10, 15, Category.NIL_DEREF))

        # When
        aggregated = aggregator.issues()

        # Then
        keys = [(a.unit_id, a.position) for a in aggregated]
        assert keys == [("a.go", 10), ("a.go", 30), ("a.go", 50), ("b.go", 10)]
        assert all(a.categories == [Category.NIL_DEREF] for a in aggregated)

    def test_scanned_statement_with_two_defects(self, parse):
        """Given os.Open with no check and no Close, should send one fix request."""
        # Given
        unit = parse(OPEN_WITHOUT_CHECKS)
        service = FakeFixService()
        dispatcher = FixDispatcher(service)

        # When
        aggregated = aggregate_issues(unit.unit_id, scan_unit(unit))
        results = asyncio.run(dispatcher.dispatch([FixTask(issue=i) for i in aggregated]))

        # Then
        assert len(aggregated) == 1
        assert set(aggregated[0].categories) == {Category.UNHANDLED_ERROR, Category.RESOURCE_LEAK}
        assert len(service.requests) == 1
        assert len(results) == 1 and results[0].ok


class TestFixDispatcher:
    """Tests for the bounded worker pool."""

    def _tasks(self, *subjects):
        return [make_result(i * 10, i * 10 + 5, patch="p").task for i, _ in enumerate(subjects)]

    def test_results_keep_task_order(self):
        """Given several tasks, should return results in task order."""
        # Given
        service = FakeFixService(delay=0.01)
        tasks = self._tasks("a", "b", "c", "d")

        # When
        results = asyncio.run(FixDispatcher(service, workers=2).dispatch(tasks))

        # Then
        assert [r.task for r in results] == tasks
        assert [r.patch_text for r in results] == [f"// fixed s{i * 10}" for i in range(4)]

    def test_failed_request_is_isolated(self):
        """Given one failing request, should not affect sibling tasks."""
        # Given
        service = FakeFixService(fail_for=["s10"])
        tasks = self._tasks("a", "b", "c")

        # When
        results = asyncio.run(FixDispatcher(service, workers=3).dispatch(tasks))

        # Then
        assert [r.ok for r in results] == [True, False, True]
        assert isinstance(results[1].error, RuntimeError)
        assert results[1].patch_text is None

    def test_empty_patch_is_an_error(self):
        """Given an empty answer, should produce a FixServiceError result."""
        # Given
        service = FakeFixService(patches={"s0": ""})

        # When
        results = asyncio.run(FixDispatcher(service).dispatch(self._tasks("a")))

        # Then
        assert isinstance(results[0].error, FixServiceError)

    def test_in_flight_requests_are_bounded(self):
        """Given a small pool and queue, should never exceed the worker count."""
        # Given
        service = FakeFixService(delay=0.01)
        dispatcher = FixDispatcher(service, workers=2, queue_size=1)
        tasks = self._tasks(*"abcdefgh")

        # When
        results = asyncio.run(dispatcher.dispatch(tasks))

        # Then
        assert len(results) == 8 and all(r.ok for r in results)
        assert service.max_in_flight == 2

    def test_producer_waits_on_full_queue(self, monkeypatch):
        """Given busy workers, should hold at most queue_size tasks and block the producer."""
        # Given
        queues = []

        class RecordingQueue(asyncio.Queue):
            def __init__(self, *args, **kwargs):
                super().__init__(*args, **kwargs)
                self.peak = 0
                queues.append(self)

            def put_nowait(self, item):
                super().put_nowait(item)
                self.peak = max(self.peak, self.qsize())

        monkeypatch.setattr(asyncio, "Queue", RecordingQueue)
        service = GatedFixService()
        dispatcher = FixDispatcher(service, workers=1, queue_size=2)
        tasks = self._tasks(*"abcdef")

        async def run():
            pending = asyncio.ensure_future(dispatcher.dispatch(tasks))
            for _ in range(10):
                await asyncio.sleep(0)
            held = (service.waiting, queues[0].qsize(), pending.done())
            service.gate.set()
            return held, await pending

        # When
        (waiting, queued, done), results = asyncio.run(run())

        # Then
        assert (waiting, queued, done) == (1, 2, False)
        assert queues[0].peak == 2
        assert len(results) == 6 and all(r.ok for r in results)

    def test_limit_is_shared_between_dispatch_calls(self):
        """Given two units dispatching at once, should share one request limit."""
        # Given
        service = FakeFixService(delay=0.01)
        dispatcher = FixDispatcher(service, workers=2)

        async def both():
            return await asyncio.gather(
                dispatcher.dispatch(self._tasks(*"abcd")),
                dispatcher.dispatch(self._tasks(*"efgh")),
            )

        # When
        first, second = asyncio.run(both())

        # Then
        assert len(first) == len(second) == 4
        assert service.max_in_flight <= 2

    def test_invalid_pool_size(self):
        """Given zero workers, should raise ValueError."""
        with pytest.raises(ValueError):
            FixDispatcher(FakeFixService(), workers=0)

    def test_build_request_carries_directives_and_feedback(self):
        """Given a retry task, should include directives per category and the feedback."""
        # Given
        result = make_result(0, 5, patch="p", categories=[Category.NIL_DEREF, Category.RESOURCE_LEAK])
        task = FixTask(issue=result.issue, prior_feedback="undefined: x", attempt=1)

        # When
        request = build_request(task)

        # Then
        assert request.categories == [Category.NIL_DEREF, Category.RESOURCE_LEAK]
        assert request.directives == [
            CATEGORY_DIRECTIVES[Category.NIL_DEREF],
            CATEGORY_DIRECTIVES[Category.RESOURCE_LEAK],
        ]
        assert request.prior_feedback == "undefined: x"


class TestApplyPatches:
    """Tests for descending-order splicing."""

    def test_descending_order_matches_independent_splice(self):
        """Given [10,20) and [30,40), should equal splicing both against original offsets."""
        # Given
        original = bytes(range(65, 65 + 50))
        low = make_result(10, 20, patch="LOW")
        high = make_result(30, 40, patch="HIGHER")

        # When
        patched, applied, rejected = apply_patches(original, [low, high])

        # Then
        expected = original[:10] + b"LOW" + original[20:30] + b"HIGHER" + original[40:]
        assert patched == expected
        assert applied == [high, low]
        assert rejected == []

    def test_overlapping_patch_is_rejected(self):
        """Given overlapping ranges, should apply the later one and reject the other."""
        # Given
        original = b"0123456789" * 3
        first = make_result(5, 15, patch="A")
        second = make_result(10, 20, patch="B")

        # When
        patched, applied, rejected = apply_patches(original, [first, second])

        # Then
        assert applied == [second]
        assert rejected == [first]
        assert patched == original[:10] + b"B" + original[20:]

    def test_failed_results_are_ignored(self):
        """Given an error result, should leave its range untouched."""
        # Given
        original = b"abcdefghij"
        failed = make_result(0, 3, error=RuntimeError("x"))
        ok = make_result(5, 7, patch="Z")

        # When
        patched, applied, _ = apply_patches(original, [failed, ok])

        # Then
        assert patched == b"abcdeZhij"
        assert applied == [ok]

    def test_range_beyond_buffer(self):
        """Given a range past the end, should raise ApplyError."""
        with pytest.raises(ApplyError):
            splice(b"abc", PositionRange(1, 10), b"x")

    def test_patch_result_requires_exactly_one_outcome(self):
        """Given both or neither of patch/error, should raise ValueError."""
        task = make_result(0, 1, patch="p").task
        with pytest.raises(ValueError):
            PatchResult(task=task)
        with pytest.raises(ValueError):
            PatchResult(task=task, patch_text="p", error=RuntimeError())


SOURCE_WITH_TWO_ISSUES = '''package main

import "os"

func run() {
	token := "abcdef123"
	f, _ := os.Open(token)
	_ = f
}
'''


class TestPatchApplier:
    """Tests for report, interactive and auto modes."""

    def _setup(self, frontend, tmp_path):
        path = tmp_path / "main.go"
        path.write_text(SOURCE_WITH_TWO_ISSUES)
        unit = frontend.parse_file(path)
        aggregated = aggregate_issues(unit.unit_id, scan_unit(unit))
        results = [
            PatchResult(task=FixTask(issue=issue), patch_text=f"/* {issue.subject_name} */")
            for issue in aggregated
        ]
        return path, unit, aggregated, results

    def test_report_mode_emits_diagnostics(self, frontend, tmp_path):
        """Given report mode, should not write and should emit one diagnostic per issue."""
        # Given
        path, unit, aggregated, results = self._setup(frontend, tmp_path)
        applier = PatchApplier(mode=ApplyMode.REPORT)

        # When
        outcome = asyncio.run(applier.apply(unit, results, aggregated))

        # Then
        assert path.read_text() == SOURCE_WITH_TWO_ISSUES
        assert not outcome.written
        assert [d.line for d in outcome.diagnostics] == [6, 7]
        assert outcome.diagnostics[0].categories == [Category.HARDCODED_SECRET]
        assert outcome.diagnostics[1].suggestion == "/* f */"

    def test_interactive_applies_only_confirmed(self, frontend, tmp_path):
        """Given yes then no, should apply the last patch only and ask in descending order."""
        # Given
        path, unit, aggregated, results = self._setup(frontend, tmp_path)
        operator = ScriptedOperator([True, False])
        applier = PatchApplier(mode=ApplyMode.INTERACTIVE, operator=operator)

        # When
        outcome = asyncio.run(applier.apply(unit, results, aggregated))

        # Then
        assert len(operator.prompts) == 2
        assert "main.go:7 [ResourceLeak]" in operator.prompts[0]
        assert "+/* f */" in operator.prompts[0]
        assert [r.issue.subject_name for r in outcome.applied] == ["f"]
        assert [r.issue.subject_name for r in outcome.skipped] == ["token"]
        content = path.read_text()
        assert "/* f */" in content
        assert 'token := "abcdef123"' in content

    def test_declined_patch_reverifies_accepted_subset(self, frontend, tmp_path):
        """Given a declined patch and a failing subset, should leave the file unchanged."""
        # Given
        path, unit, aggregated, results = self._setup(frontend, tmp_path)
        verifier = ScriptedVerifier([False])
        applier = PatchApplier(
            mode=ApplyMode.INTERACTIVE,
            operator=ScriptedOperator([True, False]),
            verifier=verifier,
        )

        # When
        outcome = asyncio.run(applier.apply(unit, results, aggregated))

        # Then
        assert len(verifier.candidates) == 1
        assert b"/* f */" in verifier.candidates[0]
        assert b"/* token */" not in verifier.candidates[0]
        assert outcome.applied == []
        assert not outcome.written
        assert [r.issue.subject_name for r in outcome.rejected] == ["f"]
        assert path.read_text() == SOURCE_WITH_TWO_ISSUES

    def test_all_accepted_skips_reverification(self, frontend, tmp_path):
        """Given every patch accepted, should write without verifying again."""
        # Given
        path, unit, aggregated, results = self._setup(frontend, tmp_path)
        verifier = ScriptedVerifier([False])
        applier = PatchApplier(
            mode=ApplyMode.INTERACTIVE,
            operator=ScriptedOperator([True, True]),
            verifier=verifier,
        )

        # When
        outcome = asyncio.run(applier.apply(unit, results, aggregated))

        # Then
        assert verifier.candidates == []
        assert outcome.written
        assert len(outcome.applied) == 2

    def test_auto_applies_everything(self, frontend, tmp_path):
        """Given auto mode, should apply every successful patch without prompting."""
        # Given
        path, unit, aggregated, results = self._setup(frontend, tmp_path)
        applier = PatchApplier(mode=ApplyMode.AUTO, operator=ScriptedOperator([]))

        # When
        outcome = asyncio.run(applier.apply(unit, results, aggregated))

        # Then
        assert outcome.written
        assert path.read_bytes() == outcome.buffer
        assert "/* token */" in path.read_text()
        assert "/* f */" in path.read_text()

    def test_stale_file_is_not_overwritten(self, frontend, tmp_path):
        """Given the file changed after scanning, should raise ApplyError."""
        # Given
        path, unit, aggregated, results = self._setup(frontend, tmp_path)
        path.write_text(SOURCE_WITH_TWO_ISSUES + "\n// edited\n")
        applier = PatchApplier(mode=ApplyMode.AUTO)

        # When / Then
        with pytest.raises(ApplyError):
            asyncio.run(applier.apply(unit, results, aggregated))
        assert path.read_text().endswith("// edited\n")
