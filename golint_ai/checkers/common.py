"""Helpers shared by the checkers."""

from typing import Iterator, List, Optional, Tuple

from ..frontend import SourceUnit, unwrap_parens, named_children
from ..models import Category, Issue

ASSIGNMENT_NODES = ("short_var_declaration", "assignment_statement")
SPEC_NODES = ("var_spec", "const_spec")
STRING_LITERALS = ("interpreted_string_literal", "raw_string_literal")

# Handler calls that consume an error value: log.Fatal(err), errors.Wrap(err, ...)
HANDLER_METHODS = frozenset({
    "Fatal", "Fatalf", "Fatalln",
    "Panic", "Panicf", "Panicln",
    "Errorf", "Wrap", "Wrapf", "WithStack", "WithMessage",
})
HANDLER_FUNCTIONS = frozenset({"panic"})


def lhs_identifiers(stmt) -> list:
    return named_children(stmt.child_by_field_name("left"))


def rhs_expressions(stmt) -> list:
    return named_children(stmt.child_by_field_name("right"))


def is_blank(unit: SourceUnit, ident) -> bool:
    return ident.type != "identifier" or unit.text(ident) == "_"


def declared_values(unit: SourceUnit, decl) -> Tuple[list, list]:
    """(names, values) of an assignment or var/const spec."""
    if decl.type in ASSIGNMENT_NODES:
        return lhs_identifiers(decl), rhs_expressions(decl)
    if decl.type in SPEC_NODES:
        names = [n for n in decl.children_by_field_name("name") if n.type == "identifier"]
        return names, named_children(decl.child_by_field_name("value"))
    return [], []


def ancestors(node, stop_at: str = "block") -> Iterator:
    """Parents of ``node`` up to (not including) the nearest ``stop_at`` node."""
    parent = node.parent
    while parent is not None and parent.type != stop_at:
        yield parent
        parent = parent.parent


def call_name(unit: SourceUnit, call) -> Tuple[Optional[str], Optional[str]]:
    """(operand, name) of a call: fmt.Sprintf -> ("fmt", "Sprintf"), panic -> (None, "panic")."""
    function = unwrap_parens(call.child_by_field_name("function"))
    if function is None:
        return None, None
    if function.type == "identifier":
        return None, unit.text(function)
    if function.type == "selector_expression":
        operand = unwrap_parens(function.child_by_field_name("operand"))
        field = function.child_by_field_name("field")
        operand_name = None
        if operand is not None and operand.type == "identifier":
            operand_name = unit.text(operand)
        return operand_name, unit.text(field) if field is not None else None
    return None, None


def string_literal_value(unit: SourceUnit, node) -> Optional[str]:
    """Content of a string literal without its quotes, None for anything else."""
    node = unwrap_parens(node)
    if node is None or node.type not in STRING_LITERALS:
        return None
    text = unit.text(node)
    return text[1:-1] if len(text) >= 2 else ""


def make_issue(
    unit: SourceUnit,
    node,
    subject: str,
    message: str,
    category: Category,
) -> Issue:
    rng = unit.position_range(node)
    return Issue(
        range=rng,
        subject_name=subject,
        snippet=unit.snippet(rng),
        message=message,
        category=category,
    )


def statement_index(statements: List, stmt) -> int:
    key = (stmt.start_byte, stmt.end_byte, stmt.type)
    for i, candidate in enumerate(statements):
        if (candidate.start_byte, candidate.end_byte, candidate.type) == key:
            return i
    return -1
