"""HardcodedSecret: credential-looking names assigned a string literal."""

import re
from typing import List

from ..frontend import SourceUnit
from ..models import Category, Issue
from .common import ASSIGNMENT_NODES, SPEC_NODES, declared_values, make_issue, string_literal_value

SECRET_NAME = re.compile(r"(api_key|password|passwd|secret|token|credential|access_id)", re.IGNORECASE)
MIN_SECRET_LENGTH = 5


def scan_hardcoded_secret(unit: SourceUnit) -> List[Issue]:
    """Syntactic check: ``token := "abcdef123"``, ``const password = "..."``."""
    issues = []
    for stmt in unit.walk(ASSIGNMENT_NODES + SPEC_NODES):
        names, values = declared_values(unit, stmt)
        for i, ident in enumerate(names):
            if ident.type != "identifier" or i >= len(values):
                continue
            name = unit.text(ident)
            if not SECRET_NAME.search(name):
                continue
            literal = string_literal_value(unit, values[i])
            if literal is None or len(literal) <= MIN_SECRET_LENGTH:
                continue
            issues.append(make_issue(
                unit,
                stmt,
                name,
                f"{name} looks like a hardcoded secret; load it from the environment instead",
                Category.HARDCODED_SECRET,
            ))
    return issues
