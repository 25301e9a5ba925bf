"""Declaration records, their synthesis and overload merging."""

from declarations.models import (
    AliasDeclaration,
    ClassDeclaration,
    Declaration,
    DeclaredObject,
    EnumDeclaration,
    ExportMarker,
    FileDeclarations,
    FunctionDeclaration,
)
from declarations.overloads import merge
from declarations.synthesize import DeclarationSynthesizer, Synthesis, synthesize_chunk

__all__ = [
    "AliasDeclaration",
    "ClassDeclaration",
    "Declaration",
    "DeclarationSynthesizer",
    "DeclaredObject",
    "EnumDeclaration",
    "ExportMarker",
    "FileDeclarations",
    "FunctionDeclaration",
    "Synthesis",
    "merge",
    "synthesize_chunk",
]
