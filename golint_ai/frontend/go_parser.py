"""Go frontend: tree-sitter parsing, scope resolution and type classification."""

import bisect
import re
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, Iterator, List, Optional, Set, Tuple, Union

from tree_sitter_language_pack import get_parser

from ..exceptions import ApplyError
from ..models import PositionRange
from ..utils import get_logger
from .stdlib import (
    BUILTIN_RESULTS,
    FAILURE_TYPES,
    KNOWN_CLOSERS,
    KNOWN_FIELDS,
    KNOWN_FUNCTIONS,
    KNOWN_METHODS,
)
from .unit import Binding, TypeClass, node_key


FUNCTION_NODES = ("function_declaration", "method_declaration", "func_literal")
SCOPE_NODES = (
    "block",
    "if_statement",
    "for_statement",
    "expression_switch_statement",
    "select_statement",
    "expression_case",
    "type_case",
    "default_case",
    "communication_case",
)
SKIP_NODES = (
    "comment",
    "field_identifier",
    "type_identifier",
    "package_identifier",
    "label_name",
    "interpreted_string_literal",
    "raw_string_literal",
    "import_declaration",
    "package_clause",
    "type_declaration",
)
STRING_LITERALS = ("interpreted_string_literal", "raw_string_literal")
# case clauses are implicit blocks
BLOCK_NODES = ("block", "expression_case", "type_case", "default_case", "communication_case")

# Go convention for error variables: err, errRead, readErr
ERR_NAME = re.compile(r"^err([A-Z0-9_].*)?$|Err$")


def normalize_type(text: str) -> str:
    return "".join(text.split())


def base_type(type_text: str) -> str:
    """Strip pointer stars and type arguments: *pkg.T[int] -> pkg.T"""
    base = type_text.lstrip("*")
    bracket = base.find("[")
    if bracket > 0:
        base = base[:bracket]
    return base


def unwrap_parens(node):
    while node is not None and node.type == "parenthesized_expression":
        inner = [c for c in node.named_children if c.type != "comment"]
        if not inner:
            break
        node = inner[0]
    return node


def named_children(node) -> list:
    if node is None:
        return []
    return [c for c in node.named_children if c.type != "comment"]


class _TypeIndex:
    """Signatures and method sets declared in one unit."""

    def __init__(self, unit: "GoSourceUnit"):
        self.functions: Dict[str, List[str]] = {}
        self.methods: Dict[Tuple[str, str], List[str]] = {}
        self.type_methods: Dict[str, Set[str]] = {}
        self._unit = unit
        self._build(unit.root)

    def _build(self, root):
        for node in root.named_children:
            if node.type == "function_declaration":
                name = node.child_by_field_name("name")
                if name is not None:
                    self.functions[self._unit.text(name)] = self.result_types(
                        node.child_by_field_name("result")
                    )
            elif node.type == "method_declaration":
                receiver = self._receiver_type(node.child_by_field_name("receiver"))
                name = node.child_by_field_name("name")
                if receiver and name is not None:
                    method = self._unit.text(name)
                    self.methods[(receiver, method)] = self.result_types(
                        node.child_by_field_name("result")
                    )
                    self.type_methods.setdefault(receiver, set()).add(method)
            elif node.type == "type_declaration":
                for spec in self._unit.walk(("type_spec",), start=node):
                    self._index_interface(spec)

    def _index_interface(self, spec):
        name = spec.child_by_field_name("name")
        body = spec.child_by_field_name("type")
        if name is None or body is None or body.type != "interface_type":
            return
        methods = self.type_methods.setdefault(self._unit.text(name), set())
        for elem in body.named_children:
            if elem.type in ("method_elem", "method_spec"):
                method = elem.child_by_field_name("name")
                if method is not None:
                    methods.add(self._unit.text(method))
            elif elem.type in ("type_elem", "constraint_elem", "qualified_type", "type_identifier"):
                # embedded interfaces such as io.Closer
                embedded = normalize_type(self._unit.text(elem))
                if embedded in KNOWN_CLOSERS:
                    methods.add("Close")
                if embedded in FAILURE_TYPES:
                    methods.add("Error")

    def _receiver_type(self, receiver) -> Optional[str]:
        for param in named_children(receiver):
            type_node = param.child_by_field_name("type")
            if type_node is not None:
                return base_type(normalize_type(self._unit.text(type_node)))
        return None

    def result_types(self, result) -> List[str]:
        if result is None:
            return []
        if result.type != "parameter_list":
            return [normalize_type(self._unit.text(result))]
        types: List[str] = []
        for param in named_children(result):
            type_node = param.child_by_field_name("type")
            if type_node is None:
                continue
            names = [n for n in param.children_by_field_name("name") if n.type == "identifier"]
            types.extend([normalize_type(self._unit.text(type_node))] * max(1, len(names)))
        return types

    def has_method(self, type_text: str, method: str) -> bool:
        return method in self.type_methods.get(base_type(type_text), set())


class _ScopeResolver:
    """Walks the tree once, binding identifiers to declarations.

    ``:=`` introduces a binding unless the name already lives in the innermost
    scope. Every other identifier occurrence is a reference to the nearest
    enclosing binding of that name.
    """

    def __init__(self, unit: "GoSourceUnit", index: _TypeIndex):
        self.unit = unit
        self.index = index
        self.scopes: List[Dict[str, Binding]] = []
        self.binding_at: Dict[Tuple[int, int, str], Binding] = {}
        self.uses: Dict[Binding, list] = {}

    def resolve(self, root) -> None:
        self._push()
        for child in root.named_children:
            if child.type in ("var_declaration", "const_declaration"):
                for spec in self._specs(child):
                    self._declare_spec(spec)
        for child in root.named_children:
            if child.type in ("var_declaration", "const_declaration"):
                for spec in self._specs(child):
                    self._visit(spec.child_by_field_name("value"))
            else:
                self._visit(child)
        self._pop()

    # ---- scopes ----

    def _push(self):
        self.scopes.append({})

    def _pop(self):
        self.scopes.pop()

    def lookup(self, name: str) -> Optional[Binding]:
        for scope in reversed(self.scopes):
            if name in scope:
                return scope[name]
        return None

    def _define(self, ident, decl, index: int, type_text: Optional[str]) -> Binding:
        binding = Binding(
            name=self.unit.text(ident),
            ident=ident,
            decl=decl,
            index=index,
            type_text=type_text,
        )
        self.scopes[-1][binding.name] = binding
        self.binding_at[node_key(ident)] = binding
        self.uses[binding] = []
        return binding

    def _reference(self, ident) -> None:
        binding = self.lookup(self.unit.text(ident))
        if binding is None:
            return
        self.binding_at[node_key(ident)] = binding
        self.uses[binding].append(ident)

    # ---- traversal ----

    def _visit(self, node) -> None:
        if node is None:
            return
        kind = node.type
        if kind in SKIP_NODES:
            return
        if kind == "identifier":
            self._reference(node)
        elif kind in FUNCTION_NODES:
            self._visit_function(node)
        elif kind == "type_switch_statement":
            self._visit_type_switch(node)
        elif kind in SCOPE_NODES:
            self._push()
            self._visit_children(node)
            self._pop()
        elif kind == "short_var_declaration":
            self._visit_short_var(node)
        elif kind == "assignment_statement":
            self._visit(node.child_by_field_name("right"))
            self._visit(node.child_by_field_name("left"))
        elif kind in ("var_declaration", "const_declaration"):
            for spec in self._specs(node):
                self._visit(spec.child_by_field_name("value"))
                self._declare_spec(spec)
        elif kind == "range_clause":
            self._visit_range(node)
        elif kind == "selector_expression":
            # the field is never a variable
            self._visit(node.child_by_field_name("operand"))
        else:
            self._visit_children(node)

    def _visit_children(self, node) -> None:
        for child in node.named_children:
            self._visit(child)

    def _visit_function(self, node) -> None:
        self._push()
        for field in ("receiver", "parameters", "result"):
            params = node.child_by_field_name(field)
            if params is not None and params.type == "parameter_list":
                self._declare_params(params)
        body = node.child_by_field_name("body")
        if body is not None:
            self._visit_children(body)
        self._pop()

    def _visit_type_switch(self, node) -> None:
        self._push()
        alias = node.child_by_field_name("alias")
        for child in node.named_children:
            if alias is not None and node_key(child) == node_key(alias):
                continue
            if child.type in ("type_case", "default_case") and alias is not None:
                self._push()
                for ident in named_children(alias):
                    if ident.type == "identifier" and self.unit.text(ident) != "_":
                        self._define(ident, node, 0, None)
                self._visit_children(child)
                self._pop()
            else:
                self._visit(child)
        self._pop()

    def _visit_short_var(self, node) -> None:
        right = node.child_by_field_name("right")
        self._visit(right)
        lhs = named_children(node.child_by_field_name("left"))
        rhs = named_children(right)
        scope = self.scopes[-1]
        for i, ident in enumerate(lhs):
            if ident.type != "identifier":
                self._visit(ident)
                continue
            name = self.unit.text(ident)
            if name == "_":
                continue
            if name in scope:
                self._reference(ident)
            else:
                self._define(ident, node, i, self._infer(lhs, rhs, i))

    def _visit_range(self, node) -> None:
        self._visit(node.child_by_field_name("right"))
        left = node.child_by_field_name("left")
        if left is None:
            return
        defines = any(not c.is_named and c.type == ":=" for c in node.children)
        for i, ident in enumerate(named_children(left)):
            if defines and ident.type == "identifier":
                if self.unit.text(ident) != "_":
                    self._define(ident, node, i, None)
            else:
                self._visit(ident)

    def _specs(self, decl) -> Iterator:
        for child in decl.named_children:
            if child.type in ("var_spec", "const_spec"):
                yield child
            elif child.type in ("var_spec_list", "const_spec_list"):
                for spec in child.named_children:
                    if spec.type in ("var_spec", "const_spec"):
                        yield spec

    def _declare_spec(self, spec) -> None:
        names = [n for n in spec.children_by_field_name("name") if n.type == "identifier"]
        type_node = spec.child_by_field_name("type")
        values = named_children(spec.child_by_field_name("value"))
        declared = normalize_type(self.unit.text(type_node)) if type_node is not None else None
        for i, ident in enumerate(names):
            if self.unit.text(ident) == "_":
                continue
            self._define(ident, spec, i, declared or self._infer(names, values, i))

    def _declare_params(self, params) -> None:
        for param in named_children(params):
            if param.type not in ("parameter_declaration", "variadic_parameter_declaration"):
                continue
            type_node = param.child_by_field_name("type")
            type_text = normalize_type(self.unit.text(type_node)) if type_node is not None else None
            if type_text and param.type == "variadic_parameter_declaration":
                type_text = "[]" + type_text
            names = [n for n in param.children_by_field_name("name") if n.type == "identifier"]
            for i, ident in enumerate(names):
                if self.unit.text(ident) != "_":
                    self._define(ident, param, i, type_text)

    # ---- type inference ----

    def _infer(self, lhs: list, rhs: list, i: int) -> Optional[str]:
        inferred: Optional[str] = None
        source = None
        if len(rhs) == len(lhs):
            source = unwrap_parens(rhs[i])
            inferred = self.expr_type(source)
        elif len(rhs) == 1:
            source = unwrap_parens(rhs[0])
            if source.type == "call_expression":
                results = self.call_results(source)
                if results and len(results) == len(lhs):
                    inferred = results[i]
            elif i == 1 and source.type in ("index_expression", "type_assertion_expression", "unary_expression"):
                inferred = "bool"   # comma-ok forms
            elif i == 0 and source.type == "type_assertion_expression":
                inferred = self.expr_type(source)
        if (
            inferred is None
            and source is not None
            and source.type == "call_expression"
            and i == len(lhs) - 1
            and ERR_NAME.search(self.unit.text(lhs[i]))
        ):
            inferred = "error"
        return inferred

    def expr_type(self, expr) -> Optional[str]:
        expr = unwrap_parens(expr)
        if expr is None:
            return None
        kind = expr.type
        if kind == "call_expression":
            results = self.call_results(expr)
            if results and len(results) == 1:
                return results[0]
            return None
        if kind == "composite_literal":
            type_node = expr.child_by_field_name("type")
            return normalize_type(self.unit.text(type_node)) if type_node is not None else None
        if kind == "unary_expression":
            operator = expr.child_by_field_name("operator")
            operand = unwrap_parens(expr.child_by_field_name("operand"))
            if operator is not None and operator.type == "&" and operand is not None:
                inner = self.expr_type(operand)
                return "*" + inner if inner else None
            return None
        if kind in STRING_LITERALS:
            return "string"
        if kind == "int_literal":
            return "int"
        if kind == "float_literal":
            return "float64"
        if kind in ("true", "false"):
            return "bool"
        if kind == "identifier":
            binding = self.lookup(self.unit.text(expr))
            return binding.type_text if binding else None
        if kind == "type_assertion_expression":
            type_node = expr.child_by_field_name("type")
            return normalize_type(self.unit.text(type_node)) if type_node is not None else None
        if kind == "selector_expression":
            operand_type = self.expr_type(expr.child_by_field_name("operand"))
            field = expr.child_by_field_name("field")
            if operand_type and field is not None:
                return KNOWN_FIELDS.get(f"{base_type(operand_type)}.{self.unit.text(field)}")
        return None

    def call_results(self, call) -> Optional[List[str]]:
        function = unwrap_parens(call.child_by_field_name("function"))
        if function is None:
            return None
        if function.type == "identifier":
            name = self.unit.text(function)
            if self.lookup(name) is not None:
                return None
            if name in self.index.functions:
                return self.index.functions[name]
            args = named_children(call.child_by_field_name("arguments"))
            if name == "new" and args:
                return ["*" + normalize_type(self.unit.text(args[0]))]
            if name == "make" and args:
                return [normalize_type(self.unit.text(args[0]))]
            builtin = BUILTIN_RESULTS.get(name)
            return list(builtin) if builtin else None
        if function.type != "selector_expression":
            return None
        operand = unwrap_parens(function.child_by_field_name("operand"))
        field = function.child_by_field_name("field")
        if operand is None or field is None:
            return None
        method = self.unit.text(field)
        receiver: Optional[str] = None
        if operand.type == "identifier":
            binding = self.lookup(self.unit.text(operand))
            if binding is None:
                known = KNOWN_FUNCTIONS.get(f"{self.unit.text(operand)}.{method}")
                return list(known) if known else None
            receiver = binding.type_text
        else:
            receiver = self.expr_type(operand)
        if not receiver:
            return None
        receiver = base_type(receiver)
        if (receiver, method) in self.index.methods:
            return self.index.methods[(receiver, method)]
        known = KNOWN_METHODS.get(f"{receiver}.{method}")
        return list(known) if known else None


class GoSourceUnit:
    """A parsed Go file exposing the checker capability interface."""

    def __init__(self, unit_id: str, buffer: bytes, tree, path: Optional[Path] = None):
        self.unit_id = unit_id
        self.buffer = buffer
        self.tree = tree
        self.root = tree.root_node
        self.path = path
        self._line_starts = [0] + [i + 1 for i, b in enumerate(buffer) if b == 0x0A]
        self._index = _TypeIndex(self)
        self._resolver = _ScopeResolver(self, self._index)
        self._resolver.resolve(self.root)

    @property
    def has_syntax_errors(self) -> bool:
        return self.root.has_error

    def walk(self, types: Optional[Iterable[str]] = None, start=None) -> Iterator:
        """Pre-order traversal, optionally filtered by node type."""
        wanted = set(types) if types is not None else None
        stack = [start if start is not None else self.root]
        while stack:
            node = stack.pop()
            if wanted is None or node.type in wanted:
                yield node
            stack.extend(reversed(node.children))

    def text(self, node) -> str:
        return self.buffer[node.start_byte:node.end_byte].decode("utf-8", errors="replace")

    def position_range(self, node) -> PositionRange:
        return PositionRange(node.start_byte, node.end_byte)

    def snippet(self, rng: PositionRange) -> str:
        return self.buffer[rng.start:rng.end].decode("utf-8", errors="replace")

    def location(self, offset: int) -> Tuple[int, int]:
        """1-based (line, column) of a byte offset."""
        line = bisect.bisect_right(self._line_starts, offset)
        return line, offset - self._line_starts[line - 1] + 1

    def binding_of(self, ident) -> Optional[Binding]:
        return self._resolver.binding_at.get(node_key(ident))

    def uses_of(self, binding: Binding) -> list:
        return list(self._resolver.uses.get(binding, []))

    def declaration_of(self, ident):
        binding = self.binding_of(ident)
        return binding.decl if binding else None

    def type_of(self, ident) -> Optional[str]:
        binding = self.binding_of(ident)
        return binding.type_text if binding else None

    def type_classification(self, ident) -> FrozenSet[TypeClass]:
        type_text = self.type_of(ident)
        if not type_text:
            return frozenset()
        classes = set()
        base = base_type(type_text)
        if type_text in FAILURE_TYPES or self._index.has_method(base, "Error"):
            classes.add(TypeClass.FAILURE)
        if base in KNOWN_CLOSERS or self._index.has_method(base, "Close"):
            classes.add(TypeClass.CLOSER)
        return frozenset(classes)

    def enclosing_block_of(self, node):
        parent = node.parent
        while parent is not None and parent.type not in BLOCK_NODES:
            parent = parent.parent
        return parent

    def block_statements(self, block) -> list:
        statements = []
        for child in named_children(block):
            if child.type == "statement_list":
                statements.extend(named_children(child))
            else:
                statements.append(child)
        return statements


class GoFrontend:
    """Parses Go source into ``GoSourceUnit`` objects."""

    def __init__(self):
        self._parser = get_parser("go")
        self.logger = get_logger()

    def parse_source(
        self,
        source: Union[bytes, str],
        unit_id: str = "<memory>",
        path: Optional[Path] = None,
    ) -> GoSourceUnit:
        if isinstance(source, str):
            source = source.encode("utf-8")
        tree = self._parser.parse(source)
        unit = GoSourceUnit(unit_id, source, tree, path=path)
        if unit.has_syntax_errors:
            self.logger.debug(f"{unit_id}: syntax errors present, scanning partial tree")
        return unit

    def parse_file(self, path: Union[str, Path]) -> GoSourceUnit:
        path = Path(path)
        try:
            source = path.read_bytes()
        except OSError as e:
            raise ApplyError(f"Cannot read {path}: {e}") from e
        return self.parse_source(source, unit_id=str(path), path=path)
