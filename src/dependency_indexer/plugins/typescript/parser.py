"""TypeScript / JavaScript import-export extraction via Tree-sitter.

A single visitor walks the syntax tree and dispatches on node type:
- `import_statement` -> default / named / namespace / side-effect / `import x = require(...)`
- `call_expression` whose callee is `import` or `require` -> dynamic / require
- `export_statement` -> declared names, export clauses, re-exports, default exports

Only statically known specifiers (plain string literals, substitution-free
template strings) are extracted.
"""

from __future__ import annotations

import os
import re
import threading
from dataclasses import dataclass
from typing import Iterator, Optional

import structlog
from tree_sitter_language_pack import get_parser

from dependency_indexer.core.inventory import infer_language
from dependency_indexer.core.records import ExportStatement, ImportKind, ImportStatement, ParsedFile


logger = structlog.get_logger(__name__)

_QUOTED_RE = re.compile(r"^['\"`](.*)['\"`]$", re.DOTALL)

_NAMED_DECLARATIONS = frozenset(
    {
        "function_declaration",
        "generator_function_declaration",
        "function_signature",
        "class_declaration",
        "abstract_class_declaration",
        "interface_declaration",
        "type_alias_declaration",
        "enum_declaration",
        "module",
        "internal_module",
    }
)
_VARIABLE_DECLARATIONS = frozenset({"lexical_declaration", "variable_declaration"})
_NAMED_DEFAULT_VALUES = frozenset({"function_expression", "function", "generator_function", "class"})


def _text(node) -> str:
    return node.text.decode("utf-8", errors="replace")


def _line(node) -> int:
    return int(node.start_point[0]) + 1


def _child_of_type(node, node_type: str):
    for child in node.children:
        if child.type == node_type:
            return child
    return None


def _strip_quotes(raw: str) -> str:
    m = _QUOTED_RE.match(raw)
    return m.group(1) if m else raw


def _static_string(node) -> Optional[str]:
    """Return the literal value of a string node, or None when not static."""

    if node is None:
        return None
    if node.type == "string":
        return _strip_quotes(_text(node))
    if node.type == "template_string":
        if any(c.type == "template_substitution" for c in node.named_children):
            return None
        return _strip_quotes(_text(node))
    return None


def _source_of(node) -> Optional[str]:
    src = node.child_by_field_name("source")
    if src is None:
        src = _child_of_type(node, "string")
    return _static_string(src)


def _binding_names(node) -> Iterator[str]:
    """Names bound by a declarator target (identifier or destructuring pattern)."""

    t = node.type
    if t in ("identifier", "shorthand_property_identifier_pattern"):
        yield _text(node)
    elif t in ("object_pattern", "array_pattern", "rest_pattern"):
        for child in node.named_children:
            yield from _binding_names(child)
    elif t == "pair_pattern":
        value = node.child_by_field_name("value")
        if value is not None:
            yield from _binding_names(value)
    elif t in ("assignment_pattern", "object_assignment_pattern"):
        left = node.child_by_field_name("left")
        if left is not None:
            yield from _binding_names(left)


def _declared_names(decl) -> list[str]:
    if decl.type in _NAMED_DECLARATIONS:
        name = decl.child_by_field_name("name")
        return [_strip_quotes(_text(name))] if name is not None else []
    if decl.type in _VARIABLE_DECLARATIONS:
        names: list[str] = []
        for declarator in decl.named_children:
            if declarator.type != "variable_declarator":
                continue
            target = declarator.child_by_field_name("name")
            if target is not None:
                names.extend(_binding_names(target))
        return names
    if decl.type == "ambient_declaration":
        names = []
        for child in decl.named_children:
            names.extend(_declared_names(child))
        return names
    return []


def iter_nodes(tree) -> Iterator:
    """Pre-order traversal of every node using a tree cursor (no recursion)."""

    cursor = tree.walk()
    descended = False
    while True:
        if not descended:
            yield cursor.node
            if cursor.goto_first_child():
                continue
        if cursor.goto_next_sibling():
            descended = False
        elif cursor.goto_parent():
            descended = True
        else:
            return


@dataclass(frozen=True)
class SyntaxErrorMetrics:
    total_nodes: int
    error_nodes: int
    missing_nodes: int
    first_error_line: Optional[int]

    @property
    def error_ratio(self) -> float:
        return (self.error_nodes + self.missing_nodes) / max(self.total_nodes, 1)


def measure_syntax_errors(tree) -> SyntaxErrorMetrics:
    total = errors = missing = 0
    first_line: Optional[int] = None
    for node in iter_nodes(tree):
        total += 1
        bad = False
        if node.type == "ERROR" or node.is_error:
            errors += 1
            bad = True
        if node.is_missing:
            missing += 1
            bad = True
        if bad and first_line is None:
            first_line = _line(node)
    return SyntaxErrorMetrics(total_nodes=total, error_nodes=errors, missing_nodes=missing, first_error_line=first_line)


class _ModuleVisitor:
    """Collects import/export statements while the tree is walked."""

    def __init__(self) -> None:
        self.imports: list[ImportStatement] = []
        self.exports: list[ExportStatement] = []
        self._handlers = {
            "import_statement": self.visit_import_statement,
            "call_expression": self.visit_call_expression,
            "export_statement": self.visit_export_statement,
        }

    def visit(self, tree) -> None:
        for node in iter_nodes(tree):
            handler = self._handlers.get(node.type)
            if handler is not None:
                handler(node)

    def visit_import_statement(self, node) -> None:
        line = _line(node)

        require_clause = _child_of_type(node, "import_require_clause")
        if require_clause is not None:
            source = _source_of(require_clause)
            if source is None:
                return
            ident = _child_of_type(require_clause, "identifier")
            ids = (_text(ident),) if ident is not None else ()
            self.imports.append(ImportStatement(source=source, kind="require", identifiers=ids, line_number=line))
            return

        source = _source_of(node)
        if source is None:
            return

        clause = _child_of_type(node, "import_clause")
        if clause is None:
            self.imports.append(ImportStatement(source=source, kind="side-effect", line_number=line))
            return

        identifiers: list[str] = []
        has_default = has_namespace = False
        for child in clause.named_children:
            if child.type == "identifier":
                identifiers.append(_text(child))
                has_default = True
            elif child.type == "namespace_import":
                ident = _child_of_type(child, "identifier")
                if ident is not None:
                    identifiers.append(_text(ident))
                has_namespace = True
            elif child.type == "named_imports":
                for spec in child.named_children:
                    if spec.type != "import_specifier":
                        continue
                    bound = spec.child_by_field_name("alias") or spec.child_by_field_name("name")
                    if bound is not None:
                        identifiers.append(_strip_quotes(_text(bound)))

        kind: ImportKind = "default" if has_default else "namespace" if has_namespace else "named"
        self.imports.append(
            ImportStatement(source=source, kind=kind, identifiers=tuple(identifiers), line_number=line)
        )

    def visit_call_expression(self, node) -> None:
        callee = node.child_by_field_name("function")
        if callee is None:
            return
        if callee.type == "import":
            kind: ImportKind = "dynamic"
        elif callee.type == "identifier" and _text(callee) == "require":
            kind = "require"
        else:
            return

        args = node.child_by_field_name("arguments")
        if args is None:
            return
        first = next((a for a in args.named_children if a.type != "comment"), None)
        source = _static_string(first)
        if source is None:
            return

        identifiers: tuple[str, ...] = ()
        parent = node.parent
        if kind == "require" and parent is not None and parent.type == "variable_declarator":
            target = parent.child_by_field_name("name")
            if target is not None:
                identifiers = tuple(_binding_names(target))
        self.imports.append(
            ImportStatement(source=source, kind=kind, identifiers=identifiers, line_number=_line(node))
        )

    def visit_export_statement(self, node) -> None:
        is_default = any(c.type == "default" for c in node.children)
        identifiers: list[str] = []

        decl = node.child_by_field_name("declaration")
        if decl is not None:
            identifiers.extend(_declared_names(decl))
        elif is_default:
            value = node.child_by_field_name("value")
            if value is not None and value.type in _NAMED_DEFAULT_VALUES:
                name = value.child_by_field_name("name")
                if name is not None:
                    identifiers.append(_text(name))

        clause = _child_of_type(node, "export_clause")
        if clause is not None:
            for spec in clause.named_children:
                if spec.type != "export_specifier":
                    continue
                name = spec.child_by_field_name("name")
                if name is not None:
                    identifiers.append(_strip_quotes(_text(name)))

        ns_export = _child_of_type(node, "namespace_export")
        if ns_export is not None:
            ident = next((c for c in ns_export.named_children if c.type in ("identifier", "string")), None)
            if ident is not None:
                identifiers.append(_strip_quotes(_text(ident)))

        if is_default and not identifiers:
            identifiers.append("default")

        self.exports.append(
            ExportStatement(
                identifiers=tuple(identifiers),
                source=_static_string(node.child_by_field_name("source")),
                is_default=is_default,
                line_number=_line(node),
            )
        )


def grammar_for(file_path: str) -> str:
    # The tsx grammar is a superset for JSX-bearing sources; plain .ts keeps `<T>expr` assertions parseable.
    ext = os.path.splitext(file_path)[1].lower()
    return "typescript" if ext in (".ts", ".mts", ".cts") else "tsx"


class TypeScriptParser:
    language = "typescript"
    supported_extensions: tuple[str, ...] = (".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs")

    def __init__(self, *, max_error_ratio: float = 0.0) -> None:
        self.max_error_ratio = max_error_ratio
        # Tree-sitter parsers are not shared between indexing worker threads.
        self._local = threading.local()

    def _parser_for(self, file_path: str):
        grammar = grammar_for(file_path)
        cache = getattr(self._local, "parsers", None)
        if cache is None:
            cache = self._local.parsers = {}
        if grammar not in cache:
            cache[grammar] = get_parser(grammar)
        return cache[grammar]

    def parse_file(self, file_path: str, content: str) -> ParsedFile:
        language = infer_language(os.path.splitext(file_path)[1])
        try:
            tree = self._parser_for(file_path).parse(content.encode("utf-8"))
            metrics = measure_syntax_errors(tree)
            if tree.root_node.has_error and metrics.error_ratio > self.max_error_ratio:
                msg = (
                    f"Parse error in {file_path}: {metrics.error_nodes + metrics.missing_nodes} syntax error node(s) "
                    f"starting at line {metrics.first_error_line} (error ratio {metrics.error_ratio:.3f})"
                )
                logger.warning("parse.syntax_error", file_path=file_path, error_ratio=metrics.error_ratio)
                return ParsedFile(file_path=file_path, language=language, errors=(msg,))

            visitor = _ModuleVisitor()
            visitor.visit(tree)
        except Exception as e:
            logger.warning("parse.failed", file_path=file_path, error=str(e))
            return ParsedFile(file_path=file_path, language=language, errors=(f"Parse error in {file_path}: {e}",))

        return ParsedFile(
            file_path=file_path,
            language=language,
            imports=tuple(visitor.imports),
            exports=tuple(visitor.exports),
        )

    def extract_imports(self, file_path: str, content: str) -> list[ImportStatement]:
        return list(self.parse_file(file_path, content).imports)

    def extract_exports(self, file_path: str, content: str) -> list[ExportStatement]:
        return list(self.parse_file(file_path, content).exports)
