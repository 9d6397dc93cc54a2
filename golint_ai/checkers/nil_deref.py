"""NilDeref: a value used before the error from the same call is checked."""

from typing import List

from ..frontend import Binding, SourceUnit, TypeClass, unwrap_parens
from ..models import Category, Issue
from .common import (
    ASSIGNMENT_NODES,
    is_blank,
    lhs_identifiers,
    make_issue,
    rhs_expressions,
    statement_index,
)


def scan_nil_deref(unit: SourceUnit) -> List[Issue]:
    """
    Find ``v, err := call()`` followed by ``v.x`` before any ``if`` on err.

    Only the statements of the immediately enclosing block are scanned, in
    order. The first statement dereferencing the value raises the issue; the
    first ``if`` whose condition mentions the error ends the scan.
    """
    issues = []
    for stmt in unit.walk(ASSIGNMENT_NODES):
        lhs = lhs_identifiers(stmt)
        rhs = rhs_expressions(stmt)
        if len(lhs) < 2 or len(rhs) != 1:
            continue
        if unwrap_parens(rhs[0]).type != "call_expression":
            continue

        value_ident = err_ident = None
        for ident in lhs:
            if is_blank(unit, ident) or unit.binding_of(ident) is None:
                continue
            if TypeClass.FAILURE in unit.type_classification(ident):
                err_ident = ident
            else:
                value_ident = ident

        if value_ident is None or err_ident is None:
            continue

        value = unit.binding_of(value_ident)
        err = unit.binding_of(err_ident)
        if _is_risk_before_check(unit, stmt, value, err):
            issues.append(make_issue(
                unit,
                stmt,
                value.name,
                f"{value.name} may be nil: it is used before {err.name} is checked",
                Category.NIL_DEREF,
            ))
    return issues


def _is_risk_before_check(unit: SourceUnit, stmt, value: Binding, err: Binding) -> bool:
    block = unit.enclosing_block_of(stmt)
    if block is None:
        return False
    statements = unit.block_statements(block)
    start = statement_index(statements, stmt)
    if start < 0:
        # e.g. an if-initializer; not a statement of the block itself
        return False

    for later in statements[start + 1:]:
        # dereference first: a use inside `if err == nil { v.x }` still counts
        if _is_dereferenced(unit, later, value):
            return True
        if _is_error_checked(unit, later, err):
            return False
    return False


def _is_dereferenced(unit: SourceUnit, stmt, value: Binding) -> bool:
    for selector in unit.walk(("selector_expression",), start=stmt):
        operand = unwrap_parens(selector.child_by_field_name("operand"))
        if operand is not None and operand.type == "identifier" and unit.binding_of(operand) is value:
            return True
    return False


def _is_error_checked(unit: SourceUnit, stmt, err: Binding) -> bool:
    if stmt.type != "if_statement":
        return False
    condition = stmt.child_by_field_name("condition")
    if condition is None:
        return False
    return any(unit.binding_of(ident) is err for ident in unit.walk(("identifier",), start=condition))
