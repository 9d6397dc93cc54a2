"""UnhandledError: error values that are never checked, returned or consumed."""

from typing import List, Optional

from ..frontend import Binding, SourceUnit, TypeClass, unwrap_parens, node_key
from ..models import Category, Issue
from .common import (
    ASSIGNMENT_NODES,
    HANDLER_FUNCTIONS,
    HANDLER_METHODS,
    ancestors,
    call_name,
    is_blank,
    lhs_identifiers,
    make_issue,
)

COMPOSITE_NODES = ("literal_value", "keyed_element", "literal_element", "composite_literal")


def scan_unhandled_error(unit: SourceUnit) -> List[Issue]:
    """
    Find error bindings that are never handled before the name is reassigned.

    For each assignment binding an error, only uses inside
    [assignment end, next reassignment of the same name) count. A use handles
    the error when it is compared against nil or used as a branch condition,
    returned, passed to a handler (panic, log.Fatal, fmt.Errorf, errors.Wrap),
    or stored into a composite literal.

    Args:
        unit: Parsed source unit

    Returns:
        One UnhandledError issue per unhandled binding
    """
    issues = []
    assignments = list(unit.walk(ASSIGNMENT_NODES))

    for stmt in assignments:
        for ident in lhs_identifiers(stmt):
            if is_blank(unit, ident):
                continue
            binding = unit.binding_of(ident)
            if binding is None or TypeClass.FAILURE not in unit.type_classification(ident):
                continue

            name = unit.text(ident)
            start = stmt.end_byte
            end = _next_assignment_start(unit, name, start, assignments)

            if not _is_handled_in_interval(unit, binding, start, end):
                issues.append(make_issue(
                    unit,
                    stmt,
                    name,
                    f"error variable {name} is not checked, returned or handled",
                    Category.UNHANDLED_ERROR,
                ))
    return issues


def _next_assignment_start(
    unit: SourceUnit,
    name: str,
    after: int,
    assignments: list,
) -> Optional[int]:
    """Start of the next assignment to ``name``; None when there is none."""
    for stmt in assignments:
        if stmt.start_byte <= after:
            continue
        for ident in lhs_identifiers(stmt):
            if ident.type == "identifier" and unit.text(ident) == name:
                return stmt.start_byte
    return None


def _is_handled_in_interval(
    unit: SourceUnit,
    binding: Binding,
    start: int,
    end: Optional[int],
) -> bool:
    for use in unit.uses_of(binding):
        if use.start_byte <= start or (end is not None and use.start_byte >= end):
            continue
        if _is_escaped(use):
            return True
        if _is_compared(use):
            return True
        if _is_returned(use):
            return True
        if _is_handled_by_sink(unit, use):
            return True
    return False


def _climb(node):
    """Skip parenthesis wrappers; returns (outermost wrapped node, its parent)."""
    parent = node.parent
    while parent is not None and parent.type == "parenthesized_expression":
        node = parent
        parent = parent.parent
    return node, parent


def _is_escaped(use) -> bool:
    # Result{Err: err}, []error{err}
    return any(a.type in COMPOSITE_NODES for a in ancestors(use))


def _is_compared(use) -> bool:
    node, parent = _climb(use)
    if parent is None:
        return False
    if parent.type == "binary_expression":
        operator = parent.child_by_field_name("operator")
        if operator is None or operator.type not in ("==", "!="):
            return False
        left = parent.child_by_field_name("left")
        right = parent.child_by_field_name("right")
        other = right if left is not None and node_key(left) == node_key(node) else left
        other = unwrap_parens(other)
        return other is not None and other.type == "nil"
    if parent.type == "if_statement":
        condition = parent.child_by_field_name("condition")
        return condition is not None and node_key(condition) == node_key(node)
    return False


def _is_returned(use) -> bool:
    node, parent = _climb(use)
    if parent is not None and parent.type == "expression_list":
        parent = parent.parent
    return parent is not None and parent.type == "return_statement"


def _is_handled_by_sink(unit: SourceUnit, use) -> bool:
    for node in ancestors(use):
        if node.type != "call_expression":
            continue
        arguments = node.child_by_field_name("arguments")
        if arguments is None or not (arguments.start_byte <= use.start_byte < arguments.end_byte):
            continue
        _, name = call_name(unit, node)
        function = unwrap_parens(node.child_by_field_name("function"))
        if function is not None and function.type == "identifier" and name in HANDLER_FUNCTIONS:
            return True
        if function is not None and function.type == "selector_expression" and name in HANDLER_METHODS:
            return True
    return False
