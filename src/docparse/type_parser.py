"""Recursive-descent parser for annotation type expressions.

Grammar (informal)::

    type     := option ("|" option)*
    option   := option "?"            optional
              | type "," type ...     static tuple
              | option "[]"           array
              | "(" type ")"          grouping
              | "{" "[" type "]" ":" type ("," ...)* "}"
              | "fun" "(" params ")" (":" type)?
              | "function"
              | Name "<" type ("," type)* ">"
              | Name
"""

from __future__ import annotations

import re

from docparse.splitter import (
    find_closing,
    is_balanced,
    split_top_level,
    wraps_whole,
)
from docparse.types import (
    ANY,
    VOID,
    ArrayType,
    FunctionParam,
    FunctionType,
    GenericType,
    OptionalType,
    SimpleType,
    StaticArrayType,
    TableField,
    TableType,
    TypeNode,
    UnionType,
)
from errors import MalformedType

# Annotation keywords mapped onto TypeScript primitives. Fixed table.
PRIMITIVE_NAMES: dict[str, str] = {
    "integer": "number",
    "int": "number",
    "float": "number",
    "number": "number",
    "nil": "null",
    "string": "string",
    "boolean": "boolean",
    "any": "any",
    "unknown": "unknown",
}

RECORD_KEYWORDS = frozenset({"table", "lightuserdata", "userdata"})

RECORD_TYPE = GenericType("Record", (SimpleType("string"), ANY))

_GENERIC_RE = re.compile(r"^([\w$.]+)\s*<")
_FUNCTION_RE = re.compile(r"^fun\s*\(")
_TABLE_FIELD_RE = re.compile(r"^\[(.+)\]\s*:\s*(.+)$")
_VARIADIC_RE = re.compile(r"^\.\.\.(?:\s*:\s*(.+))?$")
_NAMED_PARAM_RE = re.compile(r"^([A-Za-z_$][\w$]*\??)\s*:\s*(.+)$")
_IDENTIFIER_RE = re.compile(r"^[A-Za-z_$][\w$]*\??$")


def canonical_name(name: str) -> TypeNode:
    """Map an annotation type name onto its canonical node."""
    if name.endswith("::Type"):
        name = name[: -len("::Type")]
    if name in RECORD_KEYWORDS:
        return RECORD_TYPE
    return SimpleType(PRIMITIVE_NAMES.get(name, name))


def _is_function(text: str) -> bool:
    return text == "function" or _FUNCTION_RE.match(text) is not None


class TypeExprParser:
    """Parses one annotation type string into a :class:`TypeNode`.

    ``line`` and ``source`` only feed error messages.
    """

    def __init__(self, *, line: int | None = None, source: str | None = None) -> None:
        self.line = line
        self.source = source

    def _error(self, message: str) -> MalformedType:
        return MalformedType(message, line=self.line, text=self.source)

    def parse(self, text: str) -> TypeNode:
        stripped = (text or "").strip()
        if not stripped:
            raise self._error("Empty type")
        if not is_balanced(stripped):
            raise self._error(f"Unterminated brackets in type: {stripped}")

        options = split_top_level(stripped, "|")
        if len(options) > 1:
            return UnionType(tuple(self._parse_single(option) for option in options))
        if not options:
            raise self._error("Empty type")
        return self._parse_single(options[0])

    def _parse_single(self, text: str) -> TypeNode:
        value = text.strip()
        if not value:
            raise self._error("Empty type")

        if value.endswith("?"):
            return OptionalType(self.parse(value[:-1]))

        if (
            "," in value
            and not value.startswith("{")
            and not _is_function(value)
            and not value.endswith("[]")
        ):
            elements = split_top_level(value, ",")
            if len(elements) > 1:
                return StaticArrayType(tuple(self.parse(e) for e in elements))

        if value.endswith("[]"):
            return ArrayType(self.parse(value[:-2]))

        if wraps_whole(value, "("):
            return self.parse(value[1:-1])

        if wraps_whole(value, "{"):
            return self._parse_table(value)

        if _is_function(value):
            return self._parse_function(value)

        generic = _GENERIC_RE.match(value)
        if generic and value.endswith(">"):
            open_index = value.index("<")
            if find_closing(value, open_index) == len(value) - 1:
                return self._parse_generic(generic.group(1), value[open_index + 1 : -1])

        return canonical_name(value)

    def _parse_generic(self, base: str, inner: str) -> TypeNode:
        params = tuple(self.parse(p) for p in split_top_level(inner, ","))
        if not params:
            raise self._error(f"Generic '{base}' without parameters")
        if base in RECORD_KEYWORDS:
            base = "Record"
        return GenericType(base, params)

    def _parse_table(self, text: str) -> TableType:
        content = text[1:-1].strip()
        if not content:
            return TableType(())
        fields: list[TableField] = []
        for part in split_top_level(content, ","):
            match = _TABLE_FIELD_RE.match(part)
            if match is None:
                raise self._error(f"Invalid table field: {part}")
            fields.append(
                TableField(key=self.parse(match.group(1)), value=self.parse(match.group(2)))
            )
        return TableType(tuple(fields))

    def _parse_function(self, text: str) -> FunctionType:
        if text == "function":
            return FunctionType((), VOID)

        open_index = text.index("(")
        close_index = find_closing(text, open_index)
        if close_index < 0:
            raise self._error(f"Invalid function type: {text}")

        tail = text[close_index + 1 :].strip()
        return_type: TypeNode = VOID
        if tail:
            if not tail.startswith(":"):
                raise self._error(f"Invalid function type: {text}")
            return_type = self.parse(tail[1:])

        params_raw = text[open_index + 1 : close_index]
        params = tuple(self._parse_param(p) for p in split_top_level(params_raw, ","))
        return FunctionType(params, return_type)

    def _parse_param(self, text: str) -> FunctionParam:
        variadic = _VARIADIC_RE.match(text)
        if variadic:
            element = self.parse(variadic.group(1)) if variadic.group(1) else ANY
            return FunctionParam(type=element, name="...")
        named = _NAMED_PARAM_RE.match(text)
        if named:
            return FunctionParam(type=self.parse(named.group(2)), name=named.group(1))
        if _IDENTIFIER_RE.match(text):
            return FunctionParam(type=ANY, name=text)
        return FunctionParam(type=self.parse(text))


def parse_type(
    text: str, *, line: int | None = None, source: str | None = None
) -> TypeNode:
    """Parse ``text`` into a type node.

    Raises:
        MalformedType: on empty input, unbalanced brackets, a table entry
            without a ``[key]: value`` shape, or a broken function header.
    """
    return TypeExprParser(line=line, source=source).parse(text)


__all__ = [
    "PRIMITIVE_NAMES",
    "RECORD_KEYWORDS",
    "RECORD_TYPE",
    "TypeExprParser",
    "canonical_name",
    "parse_type",
]
