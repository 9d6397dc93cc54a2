"""TaintedQuery: dynamically built strings reaching database query calls."""

from typing import List

from ..frontend import SourceUnit, node_key, unwrap_parens, named_children
from ..models import Category, Issue
from .common import ASSIGNMENT_NODES, SPEC_NODES, call_name, declared_values, make_issue

# sink method -> index of the query argument
QUERY_SINKS = {
    "Query": 0,
    "Exec": 0,
    "QueryRow": 0,
    "Select": 0,
    "QueryContext": 1,
    "ExecContext": 1,
    "QueryRowContext": 1,
}
FORMAT_FUNCTIONS = frozenset({"Sprintf", "Sprint", "Sprintln"})


def scan_tainted_query(unit: SourceUnit) -> List[Issue]:
    """
    Flag query calls whose query argument is built dynamically.

    The argument is tainted when it is a fmt.Sprintf-style call or a ``+``
    concatenation, or an identifier whose declaration assigns one. Only the
    declaration is followed; later reassignments are not tracked.
    """
    issues = []
    for call in unit.walk(("call_expression",)):
        function = unwrap_parens(call.child_by_field_name("function"))
        if function is None or function.type != "selector_expression":
            continue
        _, name = call_name(unit, call)
        index = QUERY_SINKS.get(name)
        if index is None:
            continue
        args = named_children(call.child_by_field_name("arguments"))
        if len(args) <= index:
            continue
        if _is_tainted(unit, unwrap_parens(args[index])):
            issues.append(make_issue(
                unit,
                _issue_node(call),
                name,
                f"query passed to {name} is built from a dynamic string; use placeholders and arguments",
                Category.TAINTED_QUERY,
            ))
    return issues


def _issue_node(call):
    """The whole statement when the sink call is all of it, else the call."""
    parent = call.parent
    if parent is None:
        return call
    if parent.type == "expression_statement":
        return parent
    if parent.type != "expression_list" or len(named_children(parent)) != 1:
        return call
    owner = parent.parent
    if owner is None or owner.type not in ASSIGNMENT_NODES + SPEC_NODES:
        return call
    values = owner.child_by_field_name("right" if owner.type in ASSIGNMENT_NODES else "value")
    if values is not None and node_key(values) == node_key(parent):
        return owner
    return call


def _is_tainted(unit: SourceUnit, expr) -> bool:
    if _is_dynamic_string(unit, expr):
        return True
    if expr.type != "identifier":
        return False

    binding = unit.binding_of(expr)
    decl = unit.declaration_of(expr)
    if binding is None or decl is None:
        return False
    names, values = declared_values(unit, decl)
    if not values:
        return False
    if len(values) == len(names) and binding.index < len(values):
        return _is_dynamic_string(unit, values[binding.index])
    return any(_is_dynamic_string(unit, value) for value in values)


def _is_dynamic_string(unit: SourceUnit, expr) -> bool:
    expr = unwrap_parens(expr)
    if expr is None:
        return False
    if expr.type == "call_expression":
        operand, name = call_name(unit, expr)
        return operand == "fmt" and name in FORMAT_FUNCTIONS
    if expr.type == "binary_expression":
        operator = expr.child_by_field_name("operator")
        return operator is not None and operator.type == "+"
    return False
