from __future__ import annotations

import logging

import pytest

from cache.build_cache import CacheEntry
from contract.artifacts import FILE_HEADER
from declarations.models import (
    AliasDeclaration,
    ClassDeclaration,
    DeclaredObject,
    EnumDeclaration,
    ExportMarker,
    FieldInfo,
    FileDeclarations,
    FunctionDeclaration,
    ParamInfo,
)
from emit.emitter import build_owner_index, emit, render_file
from utils import relative_import


def _class_file(path: str, name: str) -> FileDeclarations:
    return FileDeclarations(
        path=path,
        declarations=[ClassDeclaration(name=name, fields=[FieldInfo(name="x", type="number")])],
    )


def _consumer(path: str, *names: str) -> FileDeclarations:
    return FileDeclarations(
        path=path,
        declarations=[AliasDeclaration(name="Ref", type=" | ".join(names))],
        used_names=sorted(names),
    )


def test_class_file_renders_header_and_body() -> None:
    emitted = emit([_class_file("a.lua", "Foo")], {})

    assert emitted["a.lua"].text == FILE_HEADER + "export class Foo {\n    x: number;\n}\n\n"
    assert emitted["a.lua"].exports == ("Foo",)
    assert emitted["a.lua"].missing == ()


def test_foreign_name_from_other_file_is_imported_once() -> None:
    emitted = emit([_class_file("a.lua", "Foo"), _consumer("b.lua", "Foo")], {})

    text = emitted["b.lua"].text
    assert text.startswith('import type { Foo } from "./a";\n\n' + FILE_HEADER)
    assert text.count("import type") == 1
    assert emitted["b.lua"].imports == ("Foo",)
    assert emitted["b.lua"].import_map == {"a.lua": ("Foo",)}


def test_unknown_name_gets_local_stub() -> None:
    emitted = emit([_consumer("c.lua", "Bar")], {})

    result = emitted["c.lua"]
    assert "import type" not in result.text
    assert result.text.endswith(
        "// Unresolved dependencies\ntype Bar = unknown;\n// -------------\n\n"
    )
    assert result.missing == ("Bar",)


def test_fallback_stub_tables() -> None:
    emitted = emit(
        [_consumer("c.lua", "TWeakObjectPtr", "RemoteObject", "Bar")],
        {},
        fallback_types={"Bar": "type Bar = number;"},
    )

    text = emitted["c.lua"].text
    assert "type TWeakObjectPtr<T = any> = unknown;\n" in text
    assert "type Bar = number;\n" in text
    assert "RemoteObject =" not in text
    assert emitted["c.lua"].missing == ("Bar", "RemoteObject", "TWeakObjectPtr")


def test_names_from_cached_graph_resolve() -> None:
    graph = {"lib/shapes.lua": CacheEntry(content_hash="h", exports=["Shape"])}

    emitted = emit([_consumer("ui/view.lua", "Shape")], graph)

    assert emitted["ui/view.lua"].text.startswith(
        'import type { Shape } from "../lib/shapes";'
    )


def test_processed_file_overrides_stale_cache_entry() -> None:
    graph = {"a.lua": CacheEntry(content_hash="h", exports=["Foo"])}

    emitted = emit(
        [FileDeclarations(path="a.lua"), _consumer("b.lua", "Foo")], graph
    )

    assert emitted["b.lua"].missing == ("Foo",)


def test_duplicate_exports_last_path_wins_with_warning(
    caplog: pytest.LogCaptureFixture,
) -> None:
    files = [_class_file("x.lua", "Foo"), _class_file("y.lua", "Foo"), _consumer("z.lua", "Foo")]

    with caplog.at_level(logging.WARNING, logger="luats"):
        emitted = emit(files, {})

    assert emitted["z.lua"].import_map == {"y.lua": ("Foo",)}
    assert "'Foo' is exported by x.lua, y.lua; using y.lua" in caplog.text


def test_imports_are_grouped_and_sorted() -> None:
    files = [
        FileDeclarations(
            path="types.lua",
            declarations=[
                AliasDeclaration(name="Zed", type="string"),
                AliasDeclaration(name="Alpha", type="number"),
            ],
        ),
        _consumer("use.lua", "Zed", "Alpha"),
    ]

    emitted = emit(files, {})

    assert emitted["use.lua"].text.startswith(
        'import type { Alpha, Zed } from "./types";\n\n'
    )


def test_render_sections_in_fixed_order() -> None:
    declarations = FileDeclarations(
        path="m.lua",
        declarations=[
            ClassDeclaration(name="Foo", comments=["A foo."]),
            FunctionDeclaration(qualified_name="Foo.new", is_static=True, return_type="Foo"),
            FunctionDeclaration(
                qualified_name="Foo:bar",
                params={"a": ParamInfo(type="string", description="the input")},
                return_type="boolean",
            ),
            DeclaredObject(name="M"),
            FunctionDeclaration(
                qualified_name="M.go",
                is_static=True,
                params={"n": ParamInfo(type="number")},
                return_type="string",
            ),
            FunctionDeclaration(qualified_name="helper", params={"...args": ParamInfo(type="Array<any>")}),
            AliasDeclaration(name="Id", type="string | number"),
            EnumDeclaration(name="Color", entries=[("Red", "1"), ("Blue", '"b"')]),
            ExportMarker(name="M"),
        ],
    )

    rendered = render_file(declarations)

    assert rendered.body == (
        "export enum Color {\n"
        "    Red = 1,\n"
        '    Blue = "b",\n'
        "}\n\n"
        "export type Id = string | number;\n"
        "export function helper(...args: Array<any>): void;\n"
        "declare const M: {\n"
        "    go(this: void, n: number): string;\n"
        "};\n\n"
        "/**\n"
        " * A foo.\n"
        " */\n"
        "export class Foo {\n"
        "    static new(this: void): Foo;\n"
        "    /**\n"
        "     * @param a the input\n"
        "     */\n"
        "    bar(a: string): boolean;\n"
        "}\n\n"
        "export default M;\n\n"
    )
    assert rendered.exported == frozenset({"Color", "Id", "helper", "Foo"})


def test_class_variants() -> None:
    declarations = FileDeclarations(
        path="m.lua",
        declarations=[
            ClassDeclaration(name="Handle", extends="number", is_alias_like=True),
            ClassDeclaration(
                name="Box",
                generics=["T"],
                extends="Container",
                table_shape=["[key: string]: T;"],
                fields=[
                    FieldInfo(name="value", type="T", description="Boxed value"),
                    FieldInfo(name="my-key", type="string"),
                ],
            ),
            DeclaredObject(name="Empty"),
        ],
    )

    body = render_file(declarations).body

    assert "declare const Empty: any;\n" in body
    assert "export type Handle = number;\n" in body
    assert (
        "export class Box<T = unknown> extends Container {\n"
        "    [key: string]: T;\n"
        "    /** Boxed value */\n"
        "    value: T;\n"
        '    "my-key": string;\n'
        "}\n"
    ) in body


def test_foreign_names_exclude_own_exports_and_builtins() -> None:
    declarations = FileDeclarations(
        path="m.lua",
        declarations=[AliasDeclaration(name="Own", type="Other")],
        used_names=["Other", "Own", "Record"],
    )

    assert render_file(declarations).foreign == frozenset({"Other"})


def test_build_owner_index_orders_processed_after_cached() -> None:
    graph = {
        "b.lua": CacheEntry(content_hash="h", exports=["Foo", "Bar"]),
        "c.lua": CacheEntry(content_hash="h", exports=["Bar"]),
    }
    rendered = {"a.lua": render_file(_class_file("a.lua", "Foo"))}

    index = build_owner_index(rendered, graph)

    assert index.owners == {"Bar": "c.lua", "Foo": "a.lua"}
    assert index.duplicates == {"Bar": ("b.lua", "c.lua"), "Foo": ("a.lua", "b.lua")}


def test_emit_is_deterministic_regardless_of_input_order() -> None:
    files = [_consumer("b.lua", "Foo"), _class_file("a.lua", "Foo")]

    first = emit(files, {})
    second = emit(list(reversed(files)), {})

    assert list(first) == ["a.lua", "b.lua"]
    assert first == second


def test_relative_import_paths() -> None:
    assert relative_import("ui/button.lua", "shared/types.lua") == "../shared/types"
    assert relative_import("ui/button.lua", "ui/label.lua") == "./label"
    assert relative_import("main.lua", "lib/deep/mod.lua") == "./lib/deep/mod"
