"""Structural syntax nodes for Lua source.

A closed set of frozen variants produced by the tree-sitter adapter. Anything
the adapter does not recognise becomes ``OtherStatement`` /
``OtherExpression`` so downstream code can ignore it explicitly.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class SourceSpan:
    start_line: int
    start_col: int
    end_line: int
    end_col: int


# ---------------------------------------------------------------------------
# Expressions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Identifier:
    name: str


@dataclass(frozen=True)
class MemberExpression:
    """``base.name`` or ``base:name``; ``indexer`` is ``.`` or ``:``."""

    base: Expression
    indexer: str
    identifier: str


@dataclass(frozen=True)
class IndexExpression:
    """``base[key]``."""

    base: Expression
    key: Expression


@dataclass(frozen=True)
class StringLiteral:
    value: str


@dataclass(frozen=True)
class NumericLiteral:
    raw: str


@dataclass(frozen=True)
class BooleanLiteral:
    value: bool


@dataclass(frozen=True)
class NilLiteral:
    pass


@dataclass(frozen=True)
class VarargLiteral:
    pass


@dataclass(frozen=True)
class UnaryExpression:
    operator: str
    argument: Expression


@dataclass(frozen=True)
class TableEntry:
    """One table constructor entry.

    ``key`` is None for positional entries; ``name`` is set for ``name = value``.
    """

    value: Expression
    name: str | None = None
    key: Expression | None = None


@dataclass(frozen=True)
class TableConstructor:
    entries: tuple[TableEntry, ...]


@dataclass(frozen=True)
class FunctionExpression:
    parameters: tuple[str, ...]


@dataclass(frozen=True)
class OtherExpression:
    kind: str
    text: str = ""


Expression = Union[
    Identifier,
    MemberExpression,
    IndexExpression,
    StringLiteral,
    NumericLiteral,
    BooleanLiteral,
    NilLiteral,
    VarargLiteral,
    UnaryExpression,
    TableConstructor,
    FunctionExpression,
    OtherExpression,
]


# ---------------------------------------------------------------------------
# Statements
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LocalStatement:
    span: SourceSpan
    variables: tuple[str, ...]
    init: tuple[Expression, ...]


@dataclass(frozen=True)
class AssignmentStatement:
    span: SourceSpan
    targets: tuple[Expression, ...]
    init: tuple[Expression, ...]


@dataclass(frozen=True)
class FunctionStatement:
    """``function a.b:c(...) end`` or ``local function f(...) end``.

    Parameters are names in order; a vararg parameter is ``"..."``.
    """

    span: SourceSpan
    identifier: Expression
    parameters: tuple[str, ...]
    is_local: bool = False


@dataclass(frozen=True)
class ReturnStatement:
    span: SourceSpan
    arguments: tuple[Expression, ...]


@dataclass(frozen=True)
class OtherStatement:
    span: SourceSpan
    kind: str


Statement = Union[
    LocalStatement,
    AssignmentStatement,
    FunctionStatement,
    ReturnStatement,
    OtherStatement,
]


@dataclass(frozen=True)
class Comment:
    """A raw comment token; ``raw`` includes the leading dashes."""

    raw: str
    line: int
    end_line: int


@dataclass(frozen=True)
class Chunk:
    body: tuple[Statement, ...]
    comments: tuple[Comment, ...]


def expression_name(expr: Expression) -> str | None:
    """Return the dotted/colon name of an identifier or member chain."""
    if isinstance(expr, Identifier):
        return expr.name
    if isinstance(expr, MemberExpression):
        base = expression_name(expr.base)
        if base is None:
            return None
        return f"{base}{expr.indexer}{expr.identifier}"
    if isinstance(expr, IndexExpression) and isinstance(expr.key, StringLiteral):
        base = expression_name(expr.base)
        if base is None:
            return None
        return f"{base}.{expr.key.value}"
    return None


__all__ = [
    "AssignmentStatement",
    "BooleanLiteral",
    "Chunk",
    "Comment",
    "Expression",
    "FunctionExpression",
    "FunctionStatement",
    "Identifier",
    "IndexExpression",
    "LocalStatement",
    "MemberExpression",
    "NilLiteral",
    "NumericLiteral",
    "OtherExpression",
    "OtherStatement",
    "ReturnStatement",
    "SourceSpan",
    "Statement",
    "StringLiteral",
    "TableConstructor",
    "TableEntry",
    "UnaryExpression",
    "VarargLiteral",
    "expression_name",
]
