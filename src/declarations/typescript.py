"""Render annotation type nodes as TypeScript type text.

Every render returns the referenced type names alongside the text, so callers
accumulate used names as plain values rather than through shared state.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from docparse.types import (
    ANY,
    ArrayType,
    FunctionType,
    GenericType,
    OptionalType,
    SimpleType,
    StaticArrayType,
    TableType,
    TypeNode,
    UnionType,
)

# Names that never need an import or a stub.
INTERNALS = frozenset(
    {
        "string",
        "number",
        "boolean",
        "function",
        "unknown",
        "any",
        "void",
        "null",
        "undefined",
        "never",
        "object",
        "symbol",
        "bigint",
        "this",
        "Record",
        "Array",
    }
)

_NAME_RE = re.compile(r"^\w+$")

RESERVED_WORDS = frozenset(
    {
        "break",
        "case",
        "catch",
        "class",
        "const",
        "continue",
        "debugger",
        "default",
        "delete",
        "do",
        "else",
        "enum",
        "export",
        "extends",
        "false",
        "finally",
        "for",
        "function",
        "if",
        "import",
        "in",
        "instanceof",
        "new",
        "null",
        "return",
        "super",
        "switch",
        "this",
        "throw",
        "true",
        "try",
        "typeof",
        "var",
        "void",
        "while",
        "with",
    }
)


@dataclass(frozen=True)
class RenderedType:
    text: str
    names: frozenset[str] = frozenset()


def is_referenceable(name: str) -> bool:
    """True when ``name`` may need an import or a fallback stub.

    Single-character names are treated as generic parameters.
    """
    if len(name) <= 1 or name in INTERNALS:
        return False
    return _NAME_RE.match(name) is not None


def safe_identifier(name: str) -> str:
    """Rename a parameter that collides with a reserved word."""
    if name in RESERVED_WORDS:
        return f"{name}_"
    return name


class _Renderer:
    def __init__(self) -> None:
        self.names: set[str] = set()

    def note(self, name: str) -> None:
        if is_referenceable(name):
            self.names.add(name)

    def render(self, node: TypeNode) -> str:
        if isinstance(node, SimpleType):
            self.note(node.name)
            return node.name
        if isinstance(node, GenericType):
            self.note(node.base)
            params = ", ".join(self.render(p) for p in node.params)
            return f"{node.base}<{params}>"
        if isinstance(node, UnionType):
            return " | ".join(self._grouped(option) for option in node.options)
        if isinstance(node, OptionalType):
            return f"{self._grouped(node.inner)} | undefined"
        if isinstance(node, FunctionType):
            return self._function(node)
        if isinstance(node, TableType):
            if not node.fields:
                return "{}"
            return " & ".join(
                f"Record<{self.render(f.key)}, {self.render(f.value)}>"
                for f in node.fields
            )
        if isinstance(node, ArrayType):
            return f"Array<{self.render(node.element)}>"
        if isinstance(node, StaticArrayType):
            return f"[{', '.join(self.render(e) for e in node.elements)}]"
        raise AssertionError(f"unknown type node: {node!r}")

    def _grouped(self, node: TypeNode) -> str:
        text = self.render(node)
        if isinstance(node, FunctionType):
            return f"({text})"
        return text

    def _function(self, node: FunctionType) -> str:
        params: list[str] = []
        for index, param in enumerate(node.params):
            if param.is_variadic:
                params.append(f"...args: Array<{self.render(param.type)}>")
            elif param.name:
                optional = param.name.endswith("?")
                name = safe_identifier(param.name.rstrip("?"))
                params.append(
                    f"{name}{'?' if optional else ''}: {self.render(param.type)}"
                )
            else:
                params.append(f"arg{index}: {self.render(param.type)}")
        return f"({', '.join(params)}) => {self.render(node.return_type)}"


def render_type(node: TypeNode) -> RenderedType:
    """Render ``node`` as TypeScript and collect the type names it references."""
    renderer = _Renderer()
    text = renderer.render(node)
    return RenderedType(text=text, names=frozenset(renderer.names))


def render_variadic(node: TypeNode = ANY) -> RenderedType:
    """Render the element type of a ``...args`` parameter as ``Array<T>``."""
    inner = render_type(node)
    return RenderedType(text=f"Array<{inner.text}>", names=inner.names)


def render_index_signatures(table: TableType) -> tuple[list[str], frozenset[str]]:
    """Render a table shape as class index-signature lines."""
    renderer = _Renderer()
    lines: list[str] = []
    for field in table.fields:
        key = renderer.render(field.key)
        value = renderer.render(field.value)
        key_type = "number" if key == "number" else "string"
        lines.append(f"[key: {key_type}]: {value};")
    return lines, frozenset(renderer.names)


__all__ = [
    "INTERNALS",
    "RESERVED_WORDS",
    "RenderedType",
    "is_referenceable",
    "render_index_signatures",
    "render_type",
    "render_variadic",
    "safe_identifier",
]
