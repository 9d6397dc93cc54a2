"""ResourceLeak: closers that are never released by a deferred Close."""

from typing import List, Optional, Set

from ..frontend import Binding, SourceUnit, TypeClass, unwrap_parens, named_children
from ..models import Category, Issue
from .common import ASSIGNMENT_NODES, is_blank, lhs_identifiers, make_issue

RELEASE_METHODS = frozenset({"Close"})


def scan_resource_leak(unit: SourceUnit) -> List[Issue]:
    """Flag closer bindings with no ``defer x.Close()`` anywhere in the unit."""
    released = _released_bindings(unit)
    issues = []
    for stmt in unit.walk(ASSIGNMENT_NODES):
        for ident in lhs_identifiers(stmt):
            if is_blank(unit, ident):
                continue
            binding = unit.binding_of(ident)
            if binding is None or TypeClass.CLOSER not in unit.type_classification(ident):
                continue
            if binding in released:
                continue
            issues.append(make_issue(
                unit,
                stmt,
                binding.name,
                f"resource {binding.name} is never released with defer {binding.name}.Close()",
                Category.RESOURCE_LEAK,
            ))
    return issues


def _released_bindings(unit: SourceUnit) -> Set[Binding]:
    """Bindings closed by ``defer x.Close()`` or ``defer func() { x.Close() }()``."""
    released: Set[Binding] = set()
    for defer in unit.walk(("defer_statement",)):
        children = named_children(defer)
        if not children:
            continue
        call = unwrap_parens(children[0])
        if call.type != "call_expression":
            continue
        function = unwrap_parens(call.child_by_field_name("function"))
        if function is not None and function.type == "func_literal":
            calls = unit.walk(("call_expression",), start=function)
        else:
            calls = [call]
        for inner in calls:
            binding = _release_target(unit, inner)
            if binding is not None:
                released.add(binding)
    return released


def _release_target(unit: SourceUnit, call) -> Optional[Binding]:
    function = unwrap_parens(call.child_by_field_name("function"))
    if function is None or function.type != "selector_expression":
        return None
    field = function.child_by_field_name("field")
    if field is None or unit.text(field) not in RELEASE_METHODS:
        return None
    operand = unwrap_parens(function.child_by_field_name("operand"))
    if operand is None or operand.type != "identifier":
        return None
    return unit.binding_of(operand)
