"""Diagnostic sinks: where report-mode output goes."""

import json
import sys
from typing import List, Optional, Sequence, TextIO

from ..models import Diagnostic


class ConsoleSink:
    """go vet style lines, optionally followed by the suggested fix."""

    def __init__(self, stream: Optional[TextIO] = None, show_suggestions: bool = True):
        self.stream = stream or sys.stdout
        self.show_suggestions = show_suggestions

    def emit(self, diagnostics: Sequence[Diagnostic]) -> None:
        for diagnostic in diagnostics:
            print(diagnostic.format(), file=self.stream)
            if self.show_suggestions and diagnostic.suggestion:
                print("  suggested fix:", file=self.stream)
                for line in diagnostic.suggestion.splitlines():
                    print(f"    {line}", file=self.stream)


class JsonSink:
    """One JSON document with every diagnostic."""

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream or sys.stdout
        self._diagnostics: List[Diagnostic] = []

    def emit(self, diagnostics: Sequence[Diagnostic]) -> None:
        self._diagnostics.extend(diagnostics)

    def close(self) -> None:
        json.dump(
            {"diagnostics": [d.to_dict() for d in self._diagnostics]},
            self.stream,
            indent=2,
        )
        self.stream.write("\n")
