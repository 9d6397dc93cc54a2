"""Shared fixtures: the real tree-sitter frontend and in-memory fakes."""

import asyncio
from typing import Dict, List, Optional, Sequence

import pytest

from golint_ai.frontend import GoFrontend
from golint_ai.models import (
    AggregatedIssue,
    Category,
    FixRequest,
    FixTask,
    PatchResult,
    PositionRange,
    VerificationResult,
)


@pytest.fixture(scope="session")
def frontend() -> GoFrontend:
    return GoFrontend()


@pytest.fixture
def parse(frontend):
    """Parse an inline Go snippet into a unit."""
    def _parse(source: str, unit_id: str = "main.go"):
        return frontend.parse_source(source, unit_id=unit_id)
    return _parse


class FakeFixService:
    """Returns canned patches; raises for subjects listed in ``fail_for``."""

    def __init__(
        self,
        patches: Optional[Dict[str, str]] = None,
        fail_for: Sequence[str] = (),
        delay: float = 0.0,
    ):
        self.patches = patches or {}
        self.fail_for = set(fail_for)
        self.delay = delay
        self.requests: List[FixRequest] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def request_fix(self, request: FixRequest) -> str:
        self.requests.append(request)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            if request.subject_name in self.fail_for:
                raise RuntimeError(f"service unavailable for {request.subject_name}")
            return self.patches.get(request.subject_name, f"// fixed {request.subject_name}")
        finally:
            self.in_flight -= 1


class GatedFixService(FakeFixService):
    """Holds every request until ``gate`` is set."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.gate = asyncio.Event()
        self.waiting = 0

    async def request_fix(self, request: FixRequest) -> str:
        self.waiting += 1
        await self.gate.wait()
        return await super().request_fix(request)


class ScriptedVerifier:
    """Answers verifications from a script; the last answer repeats."""

    def __init__(self, verdicts: Sequence[bool], diagnostic: str = "main.go:3:2: undefined: x"):
        self.verdicts = list(verdicts)
        self.diagnostic = diagnostic
        self.candidates: List[bytes] = []

    async def validate(self, unit, candidate: bytes) -> VerificationResult:
        self.candidates.append(candidate)
        index = min(len(self.candidates), len(self.verdicts)) - 1
        if self.verdicts[index]:
            return VerificationResult(ok=True)
        return VerificationResult(ok=False, diagnostic_text=self.diagnostic)


class ScriptedOperator:
    """Answers confirmation prompts in order and records them."""

    def __init__(self, answers: Sequence[bool], delay: float = 0.0):
        self.answers = list(answers)
        self.delay = delay
        self.prompts: List[str] = []

    async def confirm(self, prompt: str) -> bool:
        index = len(self.prompts)
        self.prompts.append(prompt)
        await asyncio.sleep(self.delay)
        return self.answers[index]


def make_result(
    start: int,
    end: int,
    patch: Optional[str] = None,
    error: Optional[Exception] = None,
    snippet: str = "",
    unit_id: str = "main.go",
    categories: Sequence[Category] = (Category.UNHANDLED_ERROR,),
) -> PatchResult:
    """PatchResult for a hand-made aggregated issue at [start, end)."""
    issue = AggregatedIssue(
        range=PositionRange(start, end),
        subject_name=f"s{start}",
        snippet=snippet,
        unit_id=unit_id,
        categories=list(categories),
        messages=[f"issue at {start}"],
    )
    return PatchResult(task=FixTask(issue=issue), patch_text=patch, error=error)
