"""Directive parsing for LuaLS-style documentation comments.

A block of raw comment lines is turned into a flat, ordered list of
directives. Lines starting with ``---@`` carry a tag; lines starting with
``---`` (but not ``---@`` or ``---|``) are plain comment text.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Union

from docparse.splitter import (
    partition_top_level,
    split_top_level,
    split_type_and_description,
)
from docparse.type_parser import parse_type
from docparse.types import TableType, TypeNode, UnionType
from errors import MalformedDirective, MalformedType

if TYPE_CHECKING:
    from collections.abc import Sequence

COMMENT_MARKER = "---"
DIRECTIVE_MARKER = "---@"
VARIANT_MARKER = "---|"

_CLASS_HEADER_RE = re.compile(r"^([\w$.]+)(?:<(.+)>)?$")
_ATTRIBUTE_PREFIX_RE = re.compile(r"^\([\w\s,]*\)\s*")
_FIELD_MODIFIERS = frozenset({"public", "private", "protected", "package"})


@dataclass(frozen=True)
class ParamDirective:
    line: int
    name: str
    type: TypeNode
    description: str | None = None


@dataclass(frozen=True)
class ReturnDirective:
    line: int
    type: TypeNode
    description: str | None = None


@dataclass(frozen=True)
class FieldDirective:
    line: int
    name: str
    type: TypeNode
    description: str | None = None


@dataclass(frozen=True)
class ClassDirective:
    line: int
    name: str
    generics: tuple[str, ...] = field(default_factory=tuple)
    extends: str | None = None
    table_type: TableType | None = None


@dataclass(frozen=True)
class AliasDirective:
    line: int
    name: str
    type: TypeNode


@dataclass(frozen=True)
class EnumDirective:
    line: int
    name: str


@dataclass(frozen=True)
class GenericDirective:
    line: int
    names: tuple[str, ...]


@dataclass(frozen=True)
class MetaDirective:
    line: int


@dataclass(frozen=True)
class CommentDirective:
    line: int
    text: str


Directive = Union[
    ParamDirective,
    ReturnDirective,
    FieldDirective,
    ClassDirective,
    AliasDirective,
    EnumDirective,
    GenericDirective,
    MetaDirective,
    CommentDirective,
]


def _split_once(text: str, sep: str = " ") -> tuple[str, str]:
    index = text.find(sep)
    if index < 0:
        return text.strip(), ""
    return text[:index].strip(), text[index + len(sep) :].strip()


def _strip_attributes(text: str) -> str:
    """Drop a leading ``(exact)`` / ``(key)`` style attribute list."""
    return _ATTRIBUTE_PREFIX_RE.sub("", text.strip(), count=1)


def _strip_variant_comment(text: str) -> str:
    """Drop the ``# description`` trailer of an alias variant line."""
    index = text.find(" #")
    if index >= 0:
        text = text[:index]
    if text.startswith("#"):
        return ""
    return text.strip()


class DirectiveParser:
    """Parses comment lines into directives.

    ``line_numbers`` maps each entry of ``lines`` to its source line; when it
    is omitted lines are numbered from 1.
    """

    def __init__(
        self,
        lines: Sequence[str],
        *,
        line_numbers: Sequence[int] | None = None,
    ) -> None:
        self.lines = [line.strip() for line in lines]
        if line_numbers is None:
            line_numbers = range(1, len(self.lines) + 1)
        self.line_numbers = list(line_numbers)

    def parse(self) -> list[Directive]:
        directives: list[Directive] = []
        index = 0
        while index < len(self.lines):
            raw = self.lines[index]
            line_no = self.line_numbers[index]
            consumed = 1

            if raw.startswith(DIRECTIVE_MARKER):
                tag, rest = _split_once(raw[len(DIRECTIVE_MARKER) :].strip())
                directive, consumed = self._parse_tag(tag, rest, index)
                if directive is not None:
                    directives.append(directive)
            elif raw.startswith(COMMENT_MARKER) and not raw.startswith(VARIANT_MARKER):
                directives.append(
                    CommentDirective(line=line_no, text=raw[len(COMMENT_MARKER) :].strip())
                )

            index += consumed
        return directives

    def _parse_tag(
        self, tag: str, rest: str, index: int
    ) -> tuple[Directive | None, int]:
        line_no = self.line_numbers[index]
        raw = self.lines[index]

        if tag == "meta":
            return MetaDirective(line=line_no), 1
        if tag == "enum":
            return EnumDirective(line=line_no, name=_split_once(_strip_attributes(rest))[0]), 1
        if tag == "alias":
            return self._parse_alias(rest, index)
        if tag == "class":
            return self._parse_class(rest, line_no, raw), 1
        if tag == "generic":
            names = tuple(
                _split_once(part, ":")[0] for part in split_top_level(rest, ",")
            )
            return GenericDirective(line=line_no, names=names), 1
        if tag in ("param", "field"):
            return self._parse_named(tag, rest, line_no, raw), 1
        if tag == "return":
            type_text, description = split_type_and_description(rest)
            return (
                ReturnDirective(
                    line=line_no,
                    type=parse_type(type_text, line=line_no, source=raw),
                    description=description or None,
                ),
                1,
            )
        return None, 1

    def _parse_named(
        self, tag: str, rest: str, line_no: int, raw: str
    ) -> ParamDirective | FieldDirective:
        name, remainder = _split_once(rest)
        if tag == "field" and name in _FIELD_MODIFIERS:
            name, remainder = _split_once(remainder)
        if not name:
            raise MalformedDirective(
                f"Missing name in @{tag} directive", line=line_no, text=raw
            )
        type_text, description = split_type_and_description(remainder)
        try:
            type_node = parse_type(type_text, line=line_no, source=raw)
        except MalformedType as exc:
            raise MalformedDirective(
                f"Invalid type in @{tag} '{name}': {exc.message}",
                line=line_no,
                text=raw,
            ) from exc
        if tag == "param":
            return ParamDirective(
                line=line_no, name=name, type=type_node, description=description or None
            )
        return FieldDirective(
            line=line_no, name=name, type=type_node, description=description or None
        )

    def _parse_alias(self, rest: str, index: int) -> tuple[AliasDirective, int]:
        line_no = self.line_numbers[index]
        name, remainder = _split_once(rest)

        variants: list[tuple[str, int]] = []
        cursor = index + 1
        while cursor < len(self.lines) and self.lines[cursor].startswith(VARIANT_MARKER):
            variant = _strip_variant_comment(
                self.lines[cursor][len(VARIANT_MARKER) :].strip()
            )
            if variant:
                variants.append((variant, cursor))
            cursor += 1

        if variants:
            options = tuple(
                parse_type(v, line=self.line_numbers[i], source=self.lines[i])
                for v, i in variants
            )
            alias_type = options[0] if len(options) == 1 else UnionType(options)
            return AliasDirective(line=line_no, name=name, type=alias_type), cursor - index

        alias_type = parse_type(remainder, line=line_no, source=self.lines[index])
        return AliasDirective(line=line_no, name=name, type=alias_type), 1

    def _parse_class(self, text: str, line_no: int, raw: str) -> ClassDirective:
        header, extends = partition_top_level(_strip_attributes(text), ":")
        match = _CLASS_HEADER_RE.match(header.strip())
        if match is None:
            raise MalformedDirective(
                f"Invalid @class declaration: {text}", line=line_no, text=raw
            )
        name = match.group(1)
        generics = tuple(
            _split_once(g, ":")[0] for g in split_top_level(match.group(2) or "", ",")
        )
        if not extends:
            return ClassDirective(line=line_no, name=name, generics=generics)

        if extends.startswith("{"):
            table = parse_type(extends, line=line_no, source=raw)
            if not isinstance(table, TableType):
                raise MalformedDirective(
                    f"Invalid table shape in @class: {extends}", line=line_no, text=raw
                )
            return ClassDirective(
                line=line_no, name=name, generics=generics, table_type=table
            )
        return ClassDirective(line=line_no, name=name, generics=generics, extends=extends)


def parse_directives(
    lines: Sequence[str],
    *,
    line_numbers: Sequence[int] | None = None,
) -> list[Directive]:
    """Parse comment lines into an ordered list of directives.

    Unknown tags are skipped.

    Raises:
        MalformedDirective: for an unparsable ``@class`` header or a
            ``@field``/``@param`` with an invalid type expression.
        MalformedType: for an invalid ``@return``/``@alias`` type.
    """
    return DirectiveParser(lines, line_numbers=line_numbers).parse()


__all__ = [
    "AliasDirective",
    "ClassDirective",
    "CommentDirective",
    "Directive",
    "DirectiveParser",
    "EnumDirective",
    "FieldDirective",
    "GenericDirective",
    "MetaDirective",
    "ParamDirective",
    "ReturnDirective",
    "parse_directives",
]
