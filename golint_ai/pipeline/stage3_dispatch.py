"""Stage 3: Fix dispatch - bounded worker pool over the fix service."""

import asyncio
from typing import Dict, List, Optional, Sequence

from ..exceptions import FixServiceError
from ..models import Category, FixRequest, FixTask, PatchResult
from ..tools.fix_service import FixService
from ..utils import get_logger


CATEGORY_DIRECTIVES: Dict[Category, str] = {
    Category.UNHANDLED_ERROR: (
        "Check the error immediately after the call. Return it wrapped with "
        "context (fmt.Errorf(\"...: %w\", err)) or handle it explicitly."
    ),
    Category.NIL_DEREF: (
        "Check the error before the returned value is used and return early "
        "when it is non-nil."
    ),
    Category.RESOURCE_LEAK: (
        "Release the resource with `defer x.Close()` right after the error check."
    ),
    Category.HARDCODED_SECRET: (
        "Remove the literal credential and read the value from the environment "
        "(os.Getenv) or configuration instead."
    ),
    Category.TAINTED_QUERY: (
        "Use a parameterized query: keep the SQL text constant with placeholders "
        "and pass the dynamic values as arguments."
    ),
}


def build_request(task: FixTask) -> FixRequest:
    """Combine subject, snippet, category directives and feedback."""
    issue = task.issue
    return FixRequest(
        subject_name=issue.subject_name,
        snippet=issue.snippet,
        categories=list(issue.categories),
        prior_feedback=task.prior_feedback,
        directives=[CATEGORY_DIRECTIVES[c] for c in issue.categories],
    )


class FixDispatcher:
    """
    Turns FixTasks into PatchResults through a fixed pool of workers.

    Every ``dispatch`` call drains its own bounded queue; the producer waits
    when the queue is full. The in-flight fix service calls of all concurrent
    ``dispatch`` calls share one semaphore sized to ``workers``.
    """

    def __init__(self, service: FixService, workers: int = 5, queue_size: int = 20):
        """
        Initialize the dispatcher.

        Args:
            service: Fix service client
            workers: Worker count and process-wide in-flight request limit
            queue_size: Capacity of each dispatch queue
        """
        if workers < 1:
            raise ValueError("workers must be at least 1")
        if queue_size < 1:
            raise ValueError("queue_size must be at least 1")

        self.service = service
        self.workers = workers
        self.queue_size = queue_size
        self.logger = get_logger()
        self._semaphore = asyncio.Semaphore(workers)

    async def dispatch(self, tasks: Sequence[FixTask]) -> List[PatchResult]:
        """
        Request a fix for every task and wait for all of them.

        Args:
            tasks: Fix tasks for one unit

        Returns:
            One PatchResult per task, in task order
        """
        if not tasks:
            return []

        queue: asyncio.Queue = asyncio.Queue(maxsize=self.queue_size)
        results: List[Optional[PatchResult]] = [None] * len(tasks)
        worker_count = min(self.workers, len(tasks))

        async def produce():
            for index, task in enumerate(tasks):
                await queue.put((index, task))
            for _ in range(worker_count):
                await queue.put(None)

        async def work():
            while True:
                item = await queue.get()
                if item is None:
                    return
                index, task = item
                results[index] = await self._run(task)

        await asyncio.gather(produce(), *(work() for _ in range(worker_count)))
        return results

    async def _run(self, task: FixTask) -> PatchResult:
        issue = task.issue
        where = f"{issue.unit_id}@{issue.position} [{issue.category_label}]"
        request = build_request(task)

        try:
            async with self._semaphore:
                self.logger.debug(f"Requesting fix for {where} (attempt {task.attempt + 1})")
                patch = await self.service.request_fix(request)
            if not patch:
                raise FixServiceError("fix service returned an empty patch")
        except Exception as e:
            self.logger.warning(f"Fix request failed for {where}: {e}")
            return PatchResult(task=task, error=e)

        return PatchResult(task=task, patch_text=patch)
