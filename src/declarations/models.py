"""Declaration records synthesized from annotated Lua statements.

Type positions hold already-rendered TypeScript text; the names they
reference travel separately as ``Synthesis.used_names``.
"""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field

DeclarationKind = Literal["class", "enum", "alias", "function", "object", "export"]

INSTANCE_SEPARATOR = ":"
STATIC_SEPARATOR = "."


class ParamInfo(BaseModel):
    """A rendered function parameter."""

    type: str
    description: str | None = None


class FieldInfo(BaseModel):
    """A rendered class field."""

    name: str
    type: str
    description: str | None = None


class ClassDeclaration(BaseModel):
    kind: Literal["class"] = "class"
    name: str
    generics: list[str] = Field(default_factory=list)
    extends: str | None = None
    fields: list[FieldInfo] = Field(default_factory=list)
    table_shape: list[str] = Field(
        default_factory=list,
        description="Index signature lines for a `@class Name : {...}` shape",
    )
    is_alias_like: bool = Field(
        default=False,
        description="Supertype is a bare primitive; rendered as a type alias",
    )
    comments: list[str] = Field(default_factory=list)


class EnumDeclaration(BaseModel):
    kind: Literal["enum"] = "enum"
    name: str
    entries: list[tuple[str, str]] = Field(default_factory=list)
    comments: list[str] = Field(default_factory=list)


class AliasDeclaration(BaseModel):
    kind: Literal["alias"] = "alias"
    name: str
    type: str
    comments: list[str] = Field(default_factory=list)


class FunctionDeclaration(BaseModel):
    """A function or method.

    ``qualified_name`` is ``Owner:method`` for instance methods,
    ``Owner.method`` for static members, or a bare name for free functions.
    """

    kind: Literal["function"] = "function"
    qualified_name: str
    is_static: bool = False
    generics: list[str] = Field(default_factory=list)
    params: dict[str, ParamInfo] = Field(default_factory=dict)
    return_type: str | None = None
    comments: list[str] = Field(default_factory=list)

    @property
    def owner(self) -> str | None:
        index = max(
            self.qualified_name.rfind(INSTANCE_SEPARATOR),
            self.qualified_name.rfind(STATIC_SEPARATOR),
        )
        if index < 0:
            return None
        return self.qualified_name[:index]

    @property
    def member_name(self) -> str:
        index = max(
            self.qualified_name.rfind(INSTANCE_SEPARATOR),
            self.qualified_name.rfind(STATIC_SEPARATOR),
        )
        return self.qualified_name[index + 1 :]


class DeclaredObject(BaseModel):
    kind: Literal["object"] = "object"
    name: str
    comments: list[str] = Field(default_factory=list)


class ExportMarker(BaseModel):
    kind: Literal["export"] = "export"
    name: str


Declaration = Union[
    ClassDeclaration,
    EnumDeclaration,
    AliasDeclaration,
    FunctionDeclaration,
    DeclaredObject,
    ExportMarker,
]


class FileDeclarations(BaseModel):
    """Everything synthesized from one source file, in source order.

    Functions sharing a qualified name have already been merged.
    """

    path: str
    declarations: list[Annotated[Declaration, Field(discriminator="kind")]] = Field(
        default_factory=list
    )
    used_names: list[str] = Field(
        default_factory=list, description="Sorted foreign-name candidates"
    )

    def of_kind(self, kind: DeclarationKind) -> list[Declaration]:
        return [d for d in self.declarations if d.kind == kind]

    def exported_names(self) -> list[str]:
        names = {
            d.name
            for d in self.declarations
            if isinstance(d, (ClassDeclaration, EnumDeclaration, AliasDeclaration))
        }
        names.update(
            d.qualified_name
            for d in self.declarations
            if isinstance(d, FunctionDeclaration) and d.owner is None
        )
        return sorted(names)


__all__ = [
    "AliasDeclaration",
    "ClassDeclaration",
    "Declaration",
    "DeclarationKind",
    "DeclaredObject",
    "EnumDeclaration",
    "ExportMarker",
    "FieldInfo",
    "FileDeclarations",
    "FunctionDeclaration",
    "INSTANCE_SEPARATOR",
    "ParamInfo",
    "STATIC_SEPARATOR",
]
