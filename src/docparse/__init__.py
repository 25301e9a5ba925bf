"""Annotation comment parsing: type expressions and directives."""

from docparse.directives import Directive, DirectiveParser, parse_directives
from docparse.type_parser import TypeExprParser, parse_type
from docparse.types import TypeNode, format_type

__all__ = [
    "Directive",
    "DirectiveParser",
    "TypeExprParser",
    "TypeNode",
    "format_type",
    "parse_directives",
    "parse_type",
]
