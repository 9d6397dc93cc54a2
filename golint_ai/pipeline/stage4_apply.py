"""Stage 4: Patch application - descending-order splicing into the buffer."""

import asyncio
import difflib
from pathlib import Path
from typing import Iterable, List, Optional, Protocol, Sequence, Tuple

from ..exceptions import ApplyError
from ..frontend import SourceUnit
from ..models import (
    AggregatedIssue,
    ApplyMode,
    ApplyOutcome,
    Diagnostic,
    PatchResult,
    PositionRange,
)
from ..tools.verifier import Verifier
from ..utils import get_logger


class Operator(Protocol):
    """Answers confirmation prompts in interactive mode."""

    async def confirm(self, prompt: str) -> bool:
        ...


class ConsoleOperator:
    """Asks on stdin; only y/yes applies."""

    async def confirm(self, prompt: str) -> bool:
        print(prompt)
        try:
            answer = await asyncio.to_thread(input, "Apply this fix? [y/N] ")
        except EOFError:
            return False
        return answer.strip().lower() in ("y", "yes")


def order_patches(results: Iterable[PatchResult]) -> List[PatchResult]:
    """Successful patches, last position first."""
    return sorted((r for r in results if r.ok), key=lambda r: r.range.start, reverse=True)


def splice(buffer: bytes, rng: PositionRange, replacement: bytes) -> bytes:
    """Replace buffer[rng.start:rng.end] with ``replacement``."""
    if rng.end > len(buffer):
        raise ApplyError(f"Patch range [{rng.start}, {rng.end}) exceeds buffer of {len(buffer)} bytes")
    return buffer[:rng.start] + replacement + buffer[rng.end:]


def apply_patches(
    buffer: bytes,
    results: Iterable[PatchResult],
) -> Tuple[bytes, List[PatchResult], List[PatchResult]]:
    """
    Splice every successful patch into ``buffer``.

    Patches are applied from the highest start down, so a replacement never
    moves the offsets of the patches still pending. A patch reaching past the
    start of the previously applied one overlaps it and is rejected.

    Args:
        buffer: Original unit content the ranges were computed against
        results: Patch results; failed ones are ignored

    Returns:
        Tuple of (new buffer, applied results, rejected results)
    """
    applied: List[PatchResult] = []
    rejected: List[PatchResult] = []
    boundary: Optional[int] = None

    for result in order_patches(results):
        if boundary is not None and result.range.end > boundary:
            rejected.append(result)
            continue
        buffer = splice(buffer, result.range, result.patch_text.encode("utf-8"))
        boundary = result.range.start
        applied.append(result)

    return buffer, applied, rejected


def make_diagnostic(
    unit: SourceUnit,
    issue: AggregatedIssue,
    suggestion: Optional[str] = None,
) -> Diagnostic:
    line, column = unit.location(issue.position)
    return Diagnostic(
        unit_id=issue.unit_id,
        line=line,
        column=column,
        offset=issue.position,
        categories=list(issue.categories),
        messages=list(issue.messages),
        suggestion=suggestion,
    )


def format_patch_prompt(unit: SourceUnit, result: PatchResult) -> str:
    """Location, categories and a unified diff of the proposed patch."""
    issue = result.issue
    line, _ = unit.location(issue.position)
    diff = difflib.unified_diff(
        issue.snippet.splitlines(),
        result.patch_text.splitlines(),
        fromfile="current",
        tofile="suggested",
        lineterm="",
    )
    categories = " & ".join(c.value for c in issue.categories)
    return "\n".join([
        f"\n{unit.unit_id}:{line} [{categories}]",
        *issue.messages,
        *diff,
    ])


class PatchApplier:
    """
    Applies one unit's completed patches.

    In REPORT mode nothing is written and one diagnostic is produced per
    aggregated issue. INTERACTIVE asks the operator about every patch; AUTO
    applies them all. Prompts and file writes of every applier sharing
    ``lock`` are serialized. When the operator declines some patches, the
    accepted subset is verified again before it is written.
    """

    def __init__(
        self,
        mode: ApplyMode = ApplyMode.REPORT,
        operator: Optional[Operator] = None,
        lock: Optional[asyncio.Lock] = None,
        verifier: Optional[Verifier] = None,
    ):
        self.mode = mode
        self.operator = operator or ConsoleOperator()
        self.lock = lock or asyncio.Lock()
        self.verifier = verifier
        self.logger = get_logger()

    def report(
        self,
        unit: SourceUnit,
        issues: Sequence[AggregatedIssue],
        results: Sequence[PatchResult] = (),
    ) -> ApplyOutcome:
        """Diagnostics only; successful patches become suggestions."""
        suggestions = {r.range.start: r.patch_text for r in results if r.ok}
        return ApplyOutcome(
            unit_id=unit.unit_id,
            mode=ApplyMode.REPORT,
            diagnostics=[
                make_diagnostic(unit, issue, suggestions.get(issue.position))
                for issue in issues
            ],
        )

    async def apply(
        self,
        unit: SourceUnit,
        results: Sequence[PatchResult],
        issues: Optional[Sequence[AggregatedIssue]] = None,
    ) -> ApplyOutcome:
        """
        Apply patches to the unit according to the mode.

        Args:
            unit: Unit the patch ranges refer to
            results: Every PatchResult for the unit (failed ones included)
            issues: Aggregated issues for diagnostics; defaults to the results' issues

        Returns:
            ApplyOutcome describing what happened

        Raises:
            ApplyError: The file could not be written or changed on disk
        """
        if issues is None:
            issues = [r.issue for r in results]
        if self.mode is ApplyMode.REPORT:
            return self.report(unit, issues, results)

        outcome = ApplyOutcome(unit_id=unit.unit_id, mode=self.mode)
        outcome.diagnostics = self.report(unit, issues, results).diagnostics
        outcome.rejected.extend(r for r in results if not r.ok)

        buffer = unit.buffer
        boundary: Optional[int] = None

        async with self.lock:
            for result in order_patches(results):
                if boundary is not None and result.range.end > boundary:
                    self.logger.warning(
                        f"{unit.unit_id}: skipping patch at {result.range.start}, "
                        f"it overlaps the patch at {boundary}"
                    )
                    outcome.rejected.append(result)
                    continue

                if self.mode is ApplyMode.INTERACTIVE:
                    accepted = await self.operator.confirm(format_patch_prompt(unit, result))
                    if not accepted:
                        outcome.skipped.append(result)
                        continue

                buffer = splice(buffer, result.range, result.patch_text.encode("utf-8"))
                boundary = result.range.start
                outcome.applied.append(result)

            if outcome.applied and outcome.skipped and self.verifier is not None:
                # only the full set of patches was verified by the feedback loop
                verification = await self.verifier.validate(unit, buffer)
                if not verification.ok:
                    self.logger.warning(
                        f"{unit.unit_id}: accepted patches fail verification without the "
                        f"declined ones, leaving the file unchanged\n{verification.diagnostic_text}"
                    )
                    outcome.rejected.extend(outcome.applied)
                    outcome.applied = []

            if outcome.applied:
                self._write(unit, buffer)
                outcome.written = True
                outcome.buffer = buffer

        return outcome

    def _write(self, unit: SourceUnit, buffer: bytes) -> None:
        path = unit.path or Path(unit.unit_id)
        try:
            current = path.read_bytes()
        except OSError as e:
            raise ApplyError(f"Cannot read {path}: {e}") from e
        if current != unit.buffer:
            raise ApplyError(f"{path} changed on disk since it was scanned")
        try:
            path.write_bytes(buffer)
        except OSError as e:
            raise ApplyError(f"Cannot write {path}: {e}") from e
        self.logger.info(f"Wrote {path}")
