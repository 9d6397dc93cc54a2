"""Fix service: asks Claude for a replacement snippet."""

import asyncio
import re
from typing import Any, List, Optional, Protocol

from claude_agent_sdk import (
    ClaudeSDKClient,
    ClaudeAgentOptions,
    ClaudeSDKError,
    tool,
    create_sdk_mcp_server,
    AssistantMessage,
    TextBlock,
    ResultMessage,
)

from ..config import FixServiceConfig
from ..exceptions import FixServiceError
from ..models import FixRequest
from ..utils import get_logger


class FixService(Protocol):
    """Request/response interface of a fix generator."""

    async def request_fix(self, request: FixRequest) -> str:
        ...


FIX_PROMPT = """
You are fixing a defect that a static analyzer reported in Go source code.

## Defect
- Subject: `{subject}`
- Categories: {categories}

## Required Changes
{directives}

## Code to Replace
```go
{snippet}
```
{feedback}
## Instructions
1. Rewrite ONLY the code shown above. Your text replaces exactly that code.
2. The first line must not be indented; keep the indentation of the following lines.
3. Do not add package clauses, imports or new functions.
4. Call the `submit_patch` tool once with the complete replacement code.
"""

FEEDBACK_SECTION = """
## Previous Attempt Failed Verification
```
{feedback}
```
Make sure this attempt resolves these errors.
"""

SYSTEM_PROMPT = """You are a senior Go developer. You make minimal, compilable fixes
to the exact snippet you are given and return them through the submit_patch tool."""

_FENCE = re.compile(r"^```[\w+-]*\n(.*?)\n?```$", re.DOTALL)


def build_prompt(request: FixRequest) -> str:
    feedback = ""
    if request.prior_feedback:
        feedback = FEEDBACK_SECTION.format(feedback=request.prior_feedback)
    return FIX_PROMPT.format(
        subject=request.subject_name,
        categories=", ".join(c.value for c in request.categories),
        directives="\n".join(f"- {d}" for d in request.directives),
        snippet=request.snippet,
        feedback=feedback,
    )


def clean_patch(text: str) -> str:
    """Strip surrounding whitespace and a Markdown code fence."""
    text = text.strip()
    match = _FENCE.match(text)
    if match:
        text = match.group(1).strip()
    return text


class PatchCollector:
    """
    Collects patches submitted through the tool call.

    One collector per request, so concurrent requests never see each
    other's output.
    """

    def __init__(self):
        self._values: List[str] = []

    def store(self, value: str) -> dict[str, Any]:
        """Tool function response in MCP format."""
        self._values.append(value)
        return {
            "content": [{
                "type": "text",
                "text": "Patch stored."
            }]
        }

    @property
    def last(self) -> Optional[str]:
        return self._values[-1] if self._values else None

    def __len__(self) -> int:
        return len(self._values)


class ClaudeFixService:
    """FixService backed by the Claude Agent SDK."""

    def __init__(self, config: Optional[FixServiceConfig] = None):
        self.config = config or FixServiceConfig()
        self.logger = get_logger()

    async def request_fix(self, request: FixRequest) -> str:
        """
        Ask for a replacement of ``request.snippet``.

        Args:
            request: Subject, snippet, categories and optional feedback

        Returns:
            Replacement text

        Raises:
            FixServiceError: Transport failure, error result, timeout or empty patch
        """
        try:
            return await asyncio.wait_for(
                self._query(request),
                timeout=self.config.request_timeout,
            )
        except asyncio.TimeoutError as e:
            raise FixServiceError(
                f"Fix request for {request.subject_name} timed out after "
                f"{self.config.request_timeout}s"
            ) from e
        except ClaudeSDKError as e:
            raise FixServiceError(f"Fix request for {request.subject_name} failed: {e}") from e

    async def _query(self, request: FixRequest) -> str:
        collector = PatchCollector()

        @tool(
            "submit_patch",
            "Submit the replacement code for the snippet",
            {"patch": str}
        )
        async def submit_patch(args: dict[str, Any]) -> dict[str, Any]:
            return collector.store(args.get("patch", ""))

        fixer_server = create_sdk_mcp_server(
            name="fixer",
            version="1.0.0",
            tools=[submit_patch]
        )

        options = ClaudeAgentOptions(
            system_prompt=SYSTEM_PROMPT,
            mcp_servers={"fixer": fixer_server},
            allowed_tools=["mcp__fixer__submit_patch"],
            max_turns=self.config.max_turns,
            model=self.config.model,
        )

        last_text: Optional[str] = None
        async with ClaudeSDKClient(options=options) as client:
            await client.query(build_prompt(request))

            async for message in client.receive_response():
                if isinstance(message, AssistantMessage):
                    for block in message.content:
                        if isinstance(block, TextBlock):
                            last_text = block.text

                elif isinstance(message, ResultMessage):
                    self.logger.debug(
                        f"Fix for {request.subject_name} completed in {message.duration_ms}ms"
                    )
                    if message.is_error:
                        raise FixServiceError(
                            f"Fix service returned an error for {request.subject_name}: {message.result}"
                        )

        patch = clean_patch(collector.last if len(collector) else (last_text or ""))
        if not patch:
            raise FixServiceError(f"No patch returned for {request.subject_name}")
        return patch
