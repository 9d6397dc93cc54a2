"""Source frontends that produce checker-ready units."""

from .unit import SourceUnit, Binding, TypeClass, node_key
from .go_parser import GoFrontend, GoSourceUnit, unwrap_parens, named_children

__all__ = [
    "SourceUnit",
    "Binding",
    "TypeClass",
    "node_key",
    "GoFrontend",
    "GoSourceUnit",
    "unwrap_parens",
    "named_children",
]
