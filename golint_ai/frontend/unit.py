"""Capability interface the checkers are written against.

Checkers never talk to a parser directly. They walk syntax nodes and ask the
unit four kinds of questions: where a node is (``position_range``), what a
binding's type looks like (``type_classification``), which block holds a
statement (``enclosing_block_of``) and where an identifier was declared
(``declaration_of``). Any frontend that answers these can back the checkers.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, FrozenSet, Iterable, Iterator, List, Optional, Protocol, Tuple

from ..models import PositionRange


class TypeClass(Enum):
    """Type classifications the checkers care about."""
    FAILURE = "failure"   # may represent an operation failure (Go: error)
    CLOSER = "closer"     # exposes a Close/release capability


@dataclass(eq=False)
class Binding:
    """One declared name. Identity is the object itself."""
    name: str
    ident: Any                       # defining identifier node
    decl: Any                        # declaring statement or spec node
    index: int = 0                   # position among the declared names
    type_text: Optional[str] = None  # inferred type, None when unknown


def node_key(node) -> Tuple[int, int, str]:
    """Stable identity for a syntax node within one tree."""
    return (node.start_byte, node.end_byte, node.type)


class SourceUnit(Protocol):
    """One parsed source unit as seen by the checkers."""

    unit_id: str
    buffer: bytes
    root: Any
    path: Optional[Path]

    def walk(self, types: Optional[Iterable[str]] = None, start=None) -> Iterator[Any]:
        ...

    def text(self, node) -> str:
        ...

    def position_range(self, node) -> PositionRange:
        ...

    def snippet(self, rng: PositionRange) -> str:
        ...

    def location(self, offset: int) -> Tuple[int, int]:
        ...

    def binding_of(self, ident) -> Optional[Binding]:
        ...

    def uses_of(self, binding: Binding) -> List[Any]:
        ...

    def type_classification(self, ident) -> FrozenSet[TypeClass]:
        ...

    def enclosing_block_of(self, node) -> Optional[Any]:
        ...

    def block_statements(self, block) -> List[Any]:
        ...

    def declaration_of(self, ident) -> Optional[Any]:
        ...
