"""Render declarations as TypeScript and resolve names across files.

Rendering is per file and pure; resolution needs every file's exports, so
:func:`emit` runs once after all files are synthesized.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import orjson

from contract.artifacts import FILE_HEADER, UNRESOLVED_FOOTER, UNRESOLVED_HEADER
from declarations.models import (
    AliasDeclaration,
    ClassDeclaration,
    DeclaredObject,
    EnumDeclaration,
    ExportMarker,
    FileDeclarations,
    FunctionDeclaration,
)
from declarations.typescript import INTERNALS
from log import get_logger
from utils import relative_import

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from cache.build_cache import SymbolGraph

logger = get_logger(__name__)

INDENT = "    "

# Stubs for well-known opaque handle types; an empty string emits nothing.
FALLBACK_DEFS: dict[str, str] = {
    "TWeakObjectPtr": "type TWeakObjectPtr<T = any> = unknown;",
    "TObjectPtr": "type TObjectPtr<T = any> = unknown;",
    "TFieldPath": "type TFieldPath<T = any> = unknown;",
    "TLazyObjectPtr": "type TLazyObjectPtr<T = any> = unknown;",
    "RemoteObject": "",
}


@dataclass(frozen=True)
class RenderedFile:
    path: str
    body: str
    exported: frozenset[str]
    foreign: frozenset[str]


@dataclass(frozen=True)
class EmittedFile:
    """Final text for one file plus the name sets recorded in the cache."""

    path: str
    text: str
    exports: tuple[str, ...]
    imports: tuple[str, ...]
    missing: tuple[str, ...]
    import_map: dict[str, tuple[str, ...]] = field(default_factory=dict)


@dataclass(frozen=True)
class OwnerIndex:
    """Exported name -> defining path, plus names exported more than once."""

    owners: dict[str, str]
    duplicates: dict[str, tuple[str, ...]]


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def _doc_comment(comments: Sequence[str], *, indent: str = "") -> str:
    if not comments:
        return ""
    lines = [f"{indent}/**"]
    lines.extend(f"{indent} * {comment}".rstrip() for comment in comments)
    lines.append(f"{indent} */")
    return "\n".join(lines) + "\n"


def _function_docs(func: FunctionDeclaration) -> list[str]:
    docs = list(func.comments)
    for name, info in func.params.items():
        if info.description:
            docs.append(f"@param {name.rstrip('?')} {info.description}")
    return docs


def _member_name(name: str) -> str:
    bare = name.rstrip("?")
    if bare.isidentifier():
        return name
    return orjson.dumps(bare).decode() + ("?" if name.endswith("?") else "")


def _generic_clause(generics: Sequence[str], *, default: str | None = None) -> str:
    if not generics:
        return ""
    if default is None:
        return f"<{', '.join(generics)}>"
    return f"<{', '.join(f'{g} = {default}' for g in generics)}>"


def _signature(func: FunctionDeclaration, *, name: str, static_this: bool) -> str:
    params = [f"{param}: {info.type}" for param, info in func.params.items()]
    if static_this:
        params.insert(0, "this: void")
    return_type = func.return_type or "void"
    return f"{name}{_generic_clause(func.generics)}({', '.join(params)}): {return_type}"


class _FileRenderer:
    def __init__(self, declarations: FileDeclarations) -> None:
        self.declarations = declarations
        self.functions = [
            d for d in declarations.declarations if isinstance(d, FunctionDeclaration)
        ]
        self.exported: set[str] = set()
        self.claimed: set[str] = set()
        self.out: list[str] = []

    def members_of(self, owner: str) -> list[FunctionDeclaration]:
        members = [f for f in self.functions if f.owner == owner]
        self.claimed.update(f.qualified_name for f in members)
        return members

    def render(self) -> str:
        decls = self.declarations.declarations
        for decl in decls:
            if isinstance(decl, EnumDeclaration):
                self.enum(decl)
        for decl in decls:
            if isinstance(decl, AliasDeclaration):
                self.alias(decl)
        for func in self.functions:
            if func.owner is None:
                self.free_function(func)
        for decl in decls:
            if isinstance(decl, DeclaredObject):
                self.declared_object(decl)
        for decl in decls:
            if isinstance(decl, ClassDeclaration):
                self.class_(decl)
        for decl in decls:
            if isinstance(decl, ExportMarker):
                self.out.append(f"export default {decl.name};\n\n")

        for func in self.functions:
            if func.owner is not None and func.qualified_name not in self.claimed:
                logger.debug(
                    "%s: no class or object '%s' for %s",
                    self.declarations.path,
                    func.owner,
                    func.qualified_name,
                )
        return "".join(self.out)

    def enum(self, decl: EnumDeclaration) -> None:
        self.exported.add(decl.name)
        self.out.append(_doc_comment(decl.comments))
        self.out.append(f"export enum {decl.name} {{\n")
        for key, value in decl.entries:
            self.out.append(f"{INDENT}{key} = {value},\n")
        self.out.append("}\n\n")

    def alias(self, decl: AliasDeclaration) -> None:
        self.exported.add(decl.name)
        self.out.append(_doc_comment(decl.comments))
        self.out.append(f"export type {decl.name} = {decl.type};\n")

    def free_function(self, func: FunctionDeclaration) -> None:
        self.exported.add(func.qualified_name)
        self.out.append(_doc_comment(_function_docs(func)))
        signature = _signature(func, name=func.qualified_name, static_this=False)
        self.out.append(f"export function {signature};\n")

    def member(self, func: FunctionDeclaration, *, in_class: bool) -> None:
        self.out.append(_doc_comment(_function_docs(func), indent=INDENT))
        signature = _signature(
            func, name=_member_name(func.member_name), static_this=func.is_static
        )
        prefix = "static " if in_class and func.is_static else ""
        self.out.append(f"{INDENT}{prefix}{signature};\n")

    def declared_object(self, decl: DeclaredObject) -> None:
        members = self.members_of(decl.name)
        self.out.append(_doc_comment(decl.comments))
        if not members:
            self.out.append(f"declare const {decl.name}: any;\n")
            return
        self.out.append(f"declare const {decl.name}: {{\n")
        for func in members:
            self.member(func, in_class=False)
        self.out.append("};\n\n")

    def class_(self, decl: ClassDeclaration) -> None:
        self.exported.add(decl.name)
        self.out.append(_doc_comment(decl.comments))

        if decl.is_alias_like:
            self.out.append(
                f"export type {decl.name}{_generic_clause(decl.generics)} = {decl.extends};\n"
            )
            return

        generics = _generic_clause(decl.generics, default="unknown")
        extends = f" extends {decl.extends}" if decl.extends else ""
        self.out.append(f"export class {decl.name}{generics}{extends} {{\n")
        for line in decl.table_shape:
            self.out.append(f"{INDENT}{line}\n")
        for func in self.members_of(decl.name):
            self.member(func, in_class=True)
        for field_info in decl.fields:
            if field_info.description:
                self.out.append(f"{INDENT}/** {field_info.description} */\n")
            self.out.append(
                f"{INDENT}{_member_name(field_info.name)}: {field_info.type};\n"
            )
        self.out.append("}\n\n")


def render_file(declarations: FileDeclarations) -> RenderedFile:
    """Render one file's declarations in the fixed section order.

    Enums, aliases, free functions, declared objects, classes, then
    ``export default`` markers.
    """
    renderer = _FileRenderer(declarations)
    body = renderer.render()
    exported = frozenset(renderer.exported)
    foreign = frozenset(
        name
        for name in declarations.used_names
        if name not in exported and name not in INTERNALS
    )
    return RenderedFile(
        path=declarations.path, body=body, exported=exported, foreign=foreign
    )


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


def build_owner_index(
    rendered: Mapping[str, RenderedFile], graph: SymbolGraph
) -> OwnerIndex:
    """Map each exported name to one defining path.

    Processed files win over cached entries; within each group the last path
    in sorted order wins. Cached entries for processed files are ignored.
    """
    exporters: dict[str, list[str]] = {}
    cached_owners: dict[str, str] = {}
    for path in sorted(graph):
        if path in rendered:
            continue
        for name in graph[path].exports:
            exporters.setdefault(name, []).append(path)
            cached_owners[name] = path

    processed_owners: dict[str, str] = {}
    for path in sorted(rendered):
        for name in sorted(rendered[path].exported):
            exporters.setdefault(name, []).append(path)
            processed_owners[name] = path

    owners = {**cached_owners, **processed_owners}
    duplicates = {
        name: tuple(sorted(paths))
        for name, paths in sorted(exporters.items())
        if len(paths) > 1
    }
    return OwnerIndex(owners=dict(sorted(owners.items())), duplicates=duplicates)


def fallback_stub(name: str, fallback_types: Mapping[str, str]) -> str:
    if name in fallback_types:
        return fallback_types[name]
    if name in FALLBACK_DEFS:
        return FALLBACK_DEFS[name]
    return f"type {name} = unknown;"


def _assemble(
    rendered: RenderedFile,
    index: OwnerIndex,
    fallback_types: Mapping[str, str],
) -> EmittedFile:
    import_map: dict[str, list[str]] = {}
    missing: list[str] = []
    for name in sorted(rendered.foreign):
        owner = index.owners.get(name)
        if owner is None:
            missing.append(name)
        else:
            import_map.setdefault(owner, []).append(name)

    parts: list[str] = []
    if import_map:
        lines = [
            f'import type {{ {", ".join(names)} }} from "{relative_import(rendered.path, owner)}";'
            for owner, names in sorted(import_map.items())
        ]
        parts.append("\n".join(lines) + "\n\n")
    parts.append(FILE_HEADER)
    parts.append(rendered.body)
    if missing:
        parts.append(UNRESOLVED_HEADER)
        for name in missing:
            stub = fallback_stub(name, fallback_types)
            if stub:
                parts.append(f"{stub}\n")
        parts.append(UNRESOLVED_FOOTER)

    return EmittedFile(
        path=rendered.path,
        text="".join(parts),
        exports=tuple(sorted(rendered.exported)),
        imports=tuple(sorted(rendered.foreign)),
        missing=tuple(missing),
        import_map={owner: tuple(names) for owner, names in sorted(import_map.items())},
    )


def emit(
    files: Sequence[FileDeclarations],
    graph: SymbolGraph,
    *,
    fallback_types: Mapping[str, str] | None = None,
) -> dict[str, EmittedFile]:
    """Render every file and resolve its foreign names.

    Names no file exports become local stubs and are listed in
    ``EmittedFile.missing``. Output is keyed and ordered by path.
    """
    rendered = {f.path: render_file(f) for f in sorted(files, key=lambda f: f.path)}
    index = build_owner_index(rendered, graph)
    for name, paths in index.duplicates.items():
        logger.warning(
            "'%s' is exported by %s; using %s", name, ", ".join(paths), index.owners[name]
        )
    return {
        path: _assemble(file, index, fallback_types or {})
        for path, file in rendered.items()
    }


__all__ = [
    "FALLBACK_DEFS",
    "EmittedFile",
    "OwnerIndex",
    "RenderedFile",
    "build_owner_index",
    "emit",
    "fallback_stub",
    "render_file",
]
