"""Verifiers: decide whether a patched candidate buffer is acceptable."""

import asyncio
import json
import os
import shutil
import tempfile
from pathlib import Path
from typing import List, Optional, Protocol

from tree_sitter_language_pack import get_parser

from ..frontend import SourceUnit
from ..models import VerificationResult
from ..utils import get_logger

MAX_REPORTED_ERRORS = 20


class Verifier(Protocol):
    """Validates a candidate replacement of one unit."""

    async def validate(self, unit: SourceUnit, candidate: bytes) -> VerificationResult:
        ...


class SyntaxVerifier:
    """Re-parses the candidate; any error or missing node fails it."""

    def __init__(self):
        self._parser = get_parser("go")

    async def validate(self, unit: SourceUnit, candidate: bytes) -> VerificationResult:
        tree = self._parser.parse(candidate)
        if not tree.root_node.has_error:
            return VerificationResult(ok=True)

        problems: List[str] = []
        stack = [tree.root_node]
        while stack and len(problems) < MAX_REPORTED_ERRORS:
            node = stack.pop()
            line, column = node.start_point[0] + 1, node.start_point[1] + 1
            if node.is_missing:
                problems.append(f"{unit.unit_id}:{line}:{column}: missing {node.type}")
            elif node.type == "ERROR":
                text = candidate[node.start_byte:node.end_byte].decode("utf-8", errors="replace")
                problems.append(f"{unit.unit_id}:{line}:{column}: syntax error near {text[:40]!r}")
                continue
            stack.extend(reversed([c for c in node.children if c.has_error or c.is_missing]))

        if not problems:
            problems.append(f"{unit.unit_id}: syntax error")
        return VerificationResult(ok=False, diagnostic_text="\n".join(problems))


class GoBuildVerifier:
    """
    Compiles the unit's package with the candidate swapped in.

    Uses ``go build -overlay`` so the file on disk is never touched.
    """

    def __init__(self, go_binary: str = "go", timeout: float = 120.0):
        """
        Args:
            go_binary: Name or path of the go tool
            timeout: Seconds to wait for one build

        Raises:
            ValueError: The go tool cannot be found
        """
        resolved = shutil.which(go_binary)
        if resolved is None:
            raise ValueError(f"Go toolchain not found: {go_binary}")
        self.go_binary = resolved
        self.timeout = timeout
        self.logger = get_logger()

    async def validate(self, unit: SourceUnit, candidate: bytes) -> VerificationResult:
        source = (unit.path or Path(unit.unit_id)).resolve()

        with tempfile.TemporaryDirectory(prefix="golint-ai-") as tmp:
            replacement = Path(tmp) / source.name
            replacement.write_bytes(candidate)
            overlay = Path(tmp) / "overlay.json"
            overlay.write_text(json.dumps({"Replace": {str(source): str(replacement)}}))

            process = await asyncio.create_subprocess_exec(
                self.go_binary, "build", f"-overlay={overlay}", "-o", os.devnull, ".",
                cwd=str(source.parent),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            try:
                _, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
            except asyncio.TimeoutError:
                process.kill()
                await process.wait()
                return VerificationResult(ok=False, diagnostic_text=f"go build timed out after {self.timeout}s")

        if process.returncode == 0:
            return VerificationResult(ok=True)
        diagnostic = stderr.decode("utf-8", errors="replace").strip()
        self.logger.debug(f"go build failed for {unit.unit_id}:\n{diagnostic}")
        return VerificationResult(ok=False, diagnostic_text=diagnostic or f"go build exited with {process.returncode}")


def build_verifier(name: str, go_binary: str = "go") -> Optional[Verifier]:
    """Verifier for a --verifier choice: syntax, go or none."""
    if name == "none":
        return None
    if name == "syntax":
        return SyntaxVerifier()
    if name == "go":
        return GoBuildVerifier(go_binary)
    raise ValueError(f"Unknown verifier: {name}")
