"""Feedback Loop: Dispatch → Splice → Verify → Re-dispatch with compiler output.

No patch leaves this loop unverified when a verifier is configured: either
the spliced candidate passes, or every patch is turned into a
VerificationError result once the retry budget is used up.
"""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence

from ..exceptions import VerificationError
from ..frontend import SourceUnit
from ..models import AggregatedIssue, FixTask, PatchResult
from ..tools.verifier import Verifier
from ..utils import get_logger
from .stage3_dispatch import FixDispatcher
from .stage4_apply import apply_patches


class LoopResult(Enum):
    """Result of the feedback loop."""
    VERIFIED = "verified"              # candidate passed verification
    UNVERIFIED = "unverified"          # no verifier configured
    NOTHING_TO_VERIFY = "nothing"      # no fix request succeeded
    EXHAUSTED = "exhausted"            # still failing after max_retries


@dataclass
class LoopStatus:
    """One verification attempt."""
    attempt: int
    patches: int
    ok: bool
    diagnostic_text: str = ""


@dataclass
class LoopOutcome:
    """Final patch results for one unit plus the attempt history."""
    result: LoopResult
    results: List[PatchResult]
    statuses: List[LoopStatus] = field(default_factory=list)
    candidate: Optional[bytes] = None

    @property
    def attempts(self) -> int:
        return len(self.statuses)


class FeedbackLoop:
    """Bounded fix/verify retry loop for one unit at a time."""

    def __init__(
        self,
        dispatcher: FixDispatcher,
        verifier: Optional[Verifier] = None,
        max_retries: int = 3,
    ):
        if max_retries < 0:
            raise ValueError("max_retries must not be negative")
        self.dispatcher = dispatcher
        self.verifier = verifier
        self.max_retries = max_retries
        self.logger = get_logger()

    async def run(self, unit: SourceUnit, issues: Sequence[AggregatedIssue]) -> LoopOutcome:
        """
        Request fixes for ``issues`` and verify the spliced candidate.

        On a failed verification, every issue that contributed a patch is
        re-submitted with the verifier output as prior feedback. At most
        ``1 + max_retries`` verifications run.

        Args:
            unit: Unit the issues were found in
            issues: Aggregated issues of the unit

        Returns:
            LoopOutcome with one PatchResult per issue, in issue order
        """
        results = await self.dispatcher.dispatch([FixTask(issue=i) for i in issues])

        if self.verifier is None:
            return LoopOutcome(result=LoopResult.UNVERIFIED, results=results)

        statuses: List[LoopStatus] = []
        for attempt in range(1, self.max_retries + 2):
            patched = [r for r in results if r.ok]
            if not patched:
                return LoopOutcome(LoopResult.NOTHING_TO_VERIFY, results, statuses)

            candidate, applied, _ = apply_patches(unit.buffer, patched)
            verdict = await self.verifier.validate(unit, candidate)
            statuses.append(LoopStatus(
                attempt=attempt,
                patches=len(applied),
                ok=verdict.ok,
                diagnostic_text=verdict.diagnostic_text,
            ))

            if verdict.ok:
                self.logger.info(f"{unit.unit_id}: candidate verified on attempt {attempt}")
                return LoopOutcome(LoopResult.VERIFIED, results, statuses, candidate)

            self.logger.info(f"{unit.unit_id}: verification attempt {attempt} failed")
            self.logger.debug(verdict.diagnostic_text)
            if attempt > self.max_retries:
                break

            retry_tasks = [
                FixTask(issue=r.issue, prior_feedback=verdict.diagnostic_text, attempt=attempt)
                for r in patched
            ]
            retried = {r.range.start: r for r in await self.dispatcher.dispatch(retry_tasks)}
            results = [retried.get(r.range.start, r) for r in results]

        last = statuses[-1]
        error = VerificationError(
            f"{unit.unit_id}: patches still fail verification after {last.attempt} attempt(s)",
            diagnostic_text=last.diagnostic_text,
            attempts=last.attempt,
        )
        self.logger.error(str(error))
        results = [PatchResult(task=r.task, error=error) if r.ok else r for r in results]
        return LoopOutcome(LoopResult.EXHAUSTED, results, statuses)


# Synchronous wrapper
def run_feedback_loop_sync(
    loop: FeedbackLoop,
    unit: SourceUnit,
    issues: Sequence[AggregatedIssue],
) -> LoopOutcome:
    """Synchronous wrapper for FeedbackLoop.run."""
    return asyncio.run(loop.run(unit, issues))
