"""Tree-sitter based structural parsing for Lua files.

Only top-level statements are lifted into :mod:`luasyntax.nodes`; comments
are collected from the whole tree. Node shapes follow the
``tree-sitter-lua`` grammar; anything unexpected degrades to
``OtherStatement`` / ``OtherExpression`` instead of failing.
"""

from __future__ import annotations

import threading

from tree_sitter import Language, Node, Parser
from tree_sitter_lua import language as get_lua_language

from errors import UnrecognizedStructuralForm
from luasyntax.nodes import (
    AssignmentStatement,
    BooleanLiteral,
    Chunk,
    Comment,
    Expression,
    FunctionExpression,
    FunctionStatement,
    Identifier,
    IndexExpression,
    LocalStatement,
    MemberExpression,
    NilLiteral,
    NumericLiteral,
    OtherExpression,
    OtherStatement,
    ReturnStatement,
    SourceSpan,
    Statement,
    StringLiteral,
    TableConstructor,
    TableEntry,
    UnaryExpression,
    VarargLiteral,
)

_LOCAL = threading.local()
_LANGUAGE: Language | None = None
_LANGUAGE_LOCK = threading.Lock()


def _get_language() -> Language:
    global _LANGUAGE
    with _LANGUAGE_LOCK:
        if _LANGUAGE is None:
            _LANGUAGE = Language(get_lua_language())
    return _LANGUAGE


def _get_parser() -> Parser:
    """Return this thread's parser; tree-sitter parsers are not thread-safe."""
    parser = getattr(_LOCAL, "parser", None)
    if parser is None:
        parser = Parser(_get_language())
        _LOCAL.parser = parser
    return parser


def _text(source_bytes: bytes, node: Node | None) -> str:
    if node is None:
        return ""
    return source_bytes[node.start_byte : node.end_byte].decode("utf8", errors="replace")


def _span(node: Node) -> SourceSpan:
    return SourceSpan(
        start_line=node.start_point[0] + 1,
        start_col=node.start_point[1] + 1,
        end_line=node.end_point[0] + 1,
        end_col=node.end_point[1] + 1,
    )


def _named_children(node: Node) -> list[Node]:
    return [child for child in node.named_children if child.type != "comment"]


class _ChunkBuilder:
    def __init__(self, source_bytes: bytes) -> None:
        self.source_bytes = source_bytes
        self.unrecognized: list[UnrecognizedStructuralForm] = []

    def text(self, node: Node | None) -> str:
        return _text(self.source_bytes, node)

    # -- expressions ---------------------------------------------------------

    def expression(self, node: Node | None) -> Expression:
        if node is None:
            return OtherExpression("missing")

        kind = node.type
        if kind == "identifier":
            return Identifier(self.text(node))
        if kind in ("dot_index_expression", "method_index_expression"):
            base = self.expression(node.child_by_field_name("table"))
            member = node.child_by_field_name("field") or node.child_by_field_name(
                "method"
            )
            indexer = ":" if kind == "method_index_expression" else "."
            return MemberExpression(base, indexer, self.text(member))
        if kind == "bracket_index_expression":
            return IndexExpression(
                self.expression(node.child_by_field_name("table")),
                self.expression(node.child_by_field_name("field")),
            )
        if kind == "string":
            return StringLiteral(self._string_value(node))
        if kind == "number":
            return NumericLiteral(self.text(node))
        if kind in ("true", "false"):
            return BooleanLiteral(kind == "true")
        if kind == "nil":
            return NilLiteral()
        if kind == "vararg_expression":
            return VarargLiteral()
        if kind == "unary_expression":
            operand = node.child_by_field_name("operand")
            if operand is None:
                named = _named_children(node)
                operand = named[-1] if named else None
            operator = self.text(node.children[0]) if node.children else ""
            return UnaryExpression(operator, self.expression(operand))
        if kind == "table_constructor":
            return TableConstructor(tuple(self._table_entries(node)))
        if kind == "function_definition":
            return FunctionExpression(self._parameters(node))
        if kind == "parenthesized_expression":
            named = _named_children(node)
            if len(named) == 1:
                return self.expression(named[0])
        return OtherExpression(kind, self.text(node))

    def _string_value(self, node: Node) -> str:
        content = node.child_by_field_name("content")
        if content is not None:
            return self.text(content)
        raw = self.text(node)
        if len(raw) >= 2 and raw[0] in "'\"" and raw[-1] == raw[0]:
            return raw[1:-1]
        return raw

    def _table_entries(self, node: Node) -> list[TableEntry]:
        entries: list[TableEntry] = []
        for child in _named_children(node):
            if child.type != "field":
                continue
            value = self.expression(child.child_by_field_name("value"))
            key_node = child.child_by_field_name("name")
            if key_node is None:
                entries.append(TableEntry(value=value))
            elif any(c.type == "[" for c in child.children):
                entries.append(TableEntry(value=value, key=self.expression(key_node)))
            else:
                entries.append(TableEntry(value=value, name=self.text(key_node)))
        return entries

    def _parameters(self, node: Node) -> tuple[str, ...]:
        params_node = node.child_by_field_name("parameters")
        if params_node is None:
            return ()
        names: list[str] = []
        for child in _named_children(params_node):
            if child.type == "identifier":
                names.append(self.text(child))
            elif child.type == "vararg_expression":
                names.append("...")
        return tuple(names)

    # -- statements ----------------------------------------------------------

    def statement(self, node: Node) -> Statement | None:
        kind = node.type
        if kind == "ERROR":
            self.unrecognized.append(
                UnrecognizedStructuralForm(
                    "statement", node.start_point[0] + 1, self.text(node)
                )
            )
            return None
        if kind == "variable_declaration":
            return self._local(node)
        if kind == "assignment_statement":
            targets, values = self._assignment_parts(node)
            return AssignmentStatement(_span(node), tuple(targets), tuple(values))
        if kind in ("function_declaration", "local_function_declaration"):
            return self._function(node)
        if kind == "return_statement":
            values: list[Expression] = []
            for child in _named_children(node):
                if child.type == "expression_list":
                    values.extend(
                        self.expression(value) for value in _named_children(child)
                    )
                else:
                    values.append(self.expression(child))
            return ReturnStatement(_span(node), tuple(values))
        return OtherStatement(_span(node), kind)

    def _assignment_parts(self, node: Node) -> tuple[list[Expression], list[Expression]]:
        targets: list[Expression] = []
        values: list[Expression] = []
        for child in _named_children(node):
            if child.type == "variable_list":
                targets.extend(self.expression(c) for c in _named_children(child))
            elif child.type == "expression_list":
                values.extend(self.expression(c) for c in _named_children(child))
        return targets, values

    def _local(self, node: Node) -> Statement:
        for child in _named_children(node):
            if child.type == "assignment_statement":
                targets, values = self._assignment_parts(child)
                names = tuple(
                    target.name for target in targets if isinstance(target, Identifier)
                )
                return LocalStatement(_span(node), names, tuple(values))
            if child.type in ("attribute_name_list", "variable_list"):
                names = tuple(
                    self.text(c) for c in _named_children(child) if c.type == "identifier"
                )
                return LocalStatement(_span(node), names, ())
            if child.type in ("function_declaration", "local_function_declaration"):
                return self._function(child, is_local=True)
        return OtherStatement(_span(node), node.type)

    def _function(self, node: Node, *, is_local: bool = False) -> FunctionStatement:
        if any(child.type == "local" for child in node.children):
            is_local = True
        return FunctionStatement(
            span=_span(node),
            identifier=self.expression(node.child_by_field_name("name")),
            parameters=self._parameters(node),
            is_local=is_local,
        )


def _collect_comments(root: Node, source_bytes: bytes) -> list[Comment]:
    comments: list[Comment] = []
    stack = [root]
    while stack:
        node = stack.pop()
        if node.type == "comment":
            comments.append(
                Comment(
                    raw=_text(source_bytes, node),
                    line=node.start_point[0] + 1,
                    end_line=node.end_point[0] + 1,
                )
            )
            continue
        stack.extend(reversed(node.children))
    comments.sort(key=lambda c: (c.line, c.end_line))
    return comments


def parse_chunk(source: str) -> tuple[Chunk, list[UnrecognizedStructuralForm]]:
    """Parse Lua source into a :class:`Chunk`.

    Returns the chunk and the unrecognized top-level forms (syntax errors),
    which callers report as warnings.
    """
    source_bytes = source.encode("utf8")
    tree = _get_parser().parse(source_bytes)
    builder = _ChunkBuilder(source_bytes)

    body: list[Statement] = []
    for child in _named_children(tree.root_node):
        if child.type == "hash_bang_line":
            continue
        statement = builder.statement(child)
        if statement is not None:
            body.append(statement)

    comments = _collect_comments(tree.root_node, source_bytes)
    return Chunk(body=tuple(body), comments=tuple(comments)), builder.unrecognized


__all__ = ["parse_chunk"]
