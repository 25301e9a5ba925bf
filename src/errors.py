"""Error taxonomy for luats."""

from __future__ import annotations


class LuatsError(Exception):
    """Base class for all luats errors."""


class AnnotationError(LuatsError):
    """Raised when an annotation comment cannot be parsed.

    Carries enough context (path, line and offending text) to point the
    operator at the exact comment that needs fixing.
    """

    def __init__(
        self,
        message: str,
        *,
        line: int | None = None,
        text: str | None = None,
        path: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.line = line
        self.text = text
        self.path = path

    def with_path(self, path: str) -> AnnotationError:
        self.path = path
        return self

    def location(self) -> str:
        if self.path is None and self.line is None:
            return "<unknown>"
        if self.line is None:
            return str(self.path)
        return f"{self.path or '<source>'}:{self.line}"

    def __str__(self) -> str:
        detail = f"{self.location()}: {self.message}"
        if self.text:
            detail += f" [{self.text.strip()}]"
        return detail


class MalformedType(AnnotationError):
    """A type expression violates the annotation type grammar."""


class MalformedDirective(AnnotationError):
    """A directive header (e.g. ``---@class``) cannot be parsed."""


class UnrecognizedStructuralForm(LuatsError):
    """A source statement matches none of the recognized structural shapes."""

    def __init__(self, kind: str, line: int, text: str = "") -> None:
        super().__init__(f"line {line}: unrecognized {kind} [{text.strip()[:60]}]")
        self.kind = kind
        self.line = line
        self.text = text


class UnresolvedSymbol(LuatsError):
    """A referenced type name has no known owner after cross-file resolution."""

    def __init__(self, name: str, path: str) -> None:
        super().__init__(f"{path}: unresolved type '{name}'")
        self.name = name
        self.path = path


class ConfigError(LuatsError):
    """Raised when config file exists but cannot be parsed."""


__all__ = [
    "AnnotationError",
    "ConfigError",
    "LuatsError",
    "MalformedDirective",
    "MalformedType",
    "UnrecognizedStructuralForm",
    "UnresolvedSymbol",
]
