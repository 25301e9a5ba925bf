"""Type-expression AST nodes for annotation type strings.

Nodes are immutable and hold tuples only, so a parsed tree can be shared
between threads and used as a dictionary key.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class SimpleType:
    name: str


@dataclass(frozen=True)
class OptionalType:
    inner: TypeNode


@dataclass(frozen=True)
class GenericType:
    base: str
    params: tuple[TypeNode, ...]


@dataclass(frozen=True)
class UnionType:
    options: tuple[TypeNode, ...]


@dataclass(frozen=True)
class FunctionParam:
    type: TypeNode
    name: str | None = None

    @property
    def is_variadic(self) -> bool:
        return self.name == "..."


@dataclass(frozen=True)
class FunctionType:
    params: tuple[FunctionParam, ...]
    return_type: TypeNode


@dataclass(frozen=True)
class TableField:
    key: TypeNode
    value: TypeNode


@dataclass(frozen=True)
class TableType:
    fields: tuple[TableField, ...]


@dataclass(frozen=True)
class ArrayType:
    element: TypeNode


@dataclass(frozen=True)
class StaticArrayType:
    elements: tuple[TypeNode, ...]


TypeNode = Union[
    SimpleType,
    OptionalType,
    GenericType,
    UnionType,
    FunctionType,
    TableType,
    ArrayType,
    StaticArrayType,
]

VOID = SimpleType("void")
ANY = SimpleType("any")


def _needs_group(node: TypeNode) -> bool:
    return isinstance(node, (UnionType, FunctionType, StaticArrayType, OptionalType))


def format_type(node: TypeNode) -> str:
    """Render a type node back into annotation syntax."""
    if isinstance(node, SimpleType):
        return node.name
    if isinstance(node, OptionalType):
        inner = format_type(node.inner)
        if isinstance(node.inner, (UnionType, FunctionType)):
            inner = f"({inner})"
        return f"{inner}?"
    if isinstance(node, GenericType):
        return f"{node.base}<{', '.join(format_type(p) for p in node.params)}>"
    if isinstance(node, UnionType):
        return "|".join(format_type(option) for option in node.options)
    if isinstance(node, FunctionType):
        params = []
        for param in node.params:
            if param.is_variadic:
                params.append(
                    "..." if param.type == ANY else f"...: {format_type(param.type)}"
                )
            elif param.name:
                params.append(f"{param.name}: {format_type(param.type)}")
            else:
                params.append(format_type(param.type))
        text = f"fun({', '.join(params)})"
        if node.return_type != VOID:
            text += f": {format_type(node.return_type)}"
        return text
    if isinstance(node, TableType):
        fields = ", ".join(
            f"[{format_type(f.key)}]: {format_type(f.value)}" for f in node.fields
        )
        return "{" + fields + "}"
    if isinstance(node, ArrayType):
        element = format_type(node.element)
        if _needs_group(node.element):
            element = f"({element})"
        return f"{element}[]"
    if isinstance(node, StaticArrayType):
        return ", ".join(format_type(element) for element in node.elements)
    raise AssertionError(f"unknown type node: {node!r}")


__all__ = [
    "ANY",
    "ArrayType",
    "FunctionParam",
    "FunctionType",
    "GenericType",
    "OptionalType",
    "SimpleType",
    "StaticArrayType",
    "TableField",
    "TableType",
    "TypeNode",
    "UnionType",
    "VOID",
    "format_type",
]
