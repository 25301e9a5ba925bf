from __future__ import annotations

import shutil
from pathlib import Path

import orjson
import pytest

from cache.build_cache import BuildCache
from contract.artifacts import CACHE_FILENAME, FILE_HEADER, INDEX_FILENAME, SYMBOLS_JSON
from emit.write import generate_declarations

FIXTURE_PROJECT = Path(__file__).parent / "fixtures" / "mini_project"

EXPECTED_TYPES = (
    FILE_HEADER
    + "export type ItemId = string | number;\n"
    "/**\n"
    " * A thing stored in an inventory.\n"
    " */\n"
    "export class Item {\n"
    "    static new(this: void, id: ItemId): Item;\n"
    "    isEmpty(): boolean;\n"
    "    id: ItemId;\n"
    "    /** Number of stacked items */\n"
    "    count: number;\n"
    "}\n\n"
    "export default Item;\n\n"
)

EXPECTED_INVENTORY = (
    'import type { Item } from "../shared/types";\n\n'
    + FILE_HEADER
    + "export enum SlotKind {\n"
    "    Bag = 1,\n"
    "    Equipped = 2,\n"
    "}\n\n"
    "export class Inventory extends Base {\n"
    "    add(item: Item, slot?: number): void;\n"
    "    slots: Record<number, Item>;\n"
    "    kind: SlotKind;\n"
    "}\n\n"
    "// Unresolved dependencies\n"
    "type Base = unknown;\n"
    "// -------------\n\n"
)


def _write(root: Path, rel_path: str, text: str) -> None:
    path = root / rel_path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def _copy_fixture(root: Path) -> None:
    shutil.copytree(FIXTURE_PROJECT, root)


def _fail_if_parsed(path: str, source: str, **_: object) -> None:
    msg = f"{path} should have been served from the cache"
    raise AssertionError(msg)


def test_class_with_integer_field(tmp_path: Path) -> None:
    _write(tmp_path, "foo.lua", "---@class Foo\n---@field x integer\nlocal Foo = {}\n")

    result = generate_declarations(root=tmp_path)

    out_dir = tmp_path / "types"
    assert result.ok
    assert result.written == ("foo.lua",)
    assert (out_dir / "foo.d.ts").read_text(encoding="utf-8") == (
        FILE_HEADER + "export class Foo {\n    x: number;\n}\n\n"
    )
    graph = BuildCache(out_dir / CACHE_FILENAME).load()
    assert graph["foo.lua"].exports == ["Foo"]


def test_fixture_project_output(tmp_path: Path) -> None:
    root = tmp_path / "project"
    _copy_fixture(root)
    out_dir = tmp_path / "out"

    result = generate_declarations(root=root, out_dir=out_dir)

    assert result.ok
    assert result.written == ("shared/types.lua", "ui/inventory.lua")
    assert (out_dir / "shared" / "types.d.ts").read_text(encoding="utf-8") == EXPECTED_TYPES
    assert (out_dir / "ui" / "inventory.d.ts").read_text(
        encoding="utf-8"
    ) == EXPECTED_INVENTORY
    assert (out_dir / INDEX_FILENAME).read_text(encoding="utf-8") == (
        'export * from "./shared/types";\nexport * from "./ui/inventory";\n'
    )
    assert [(u.name, u.path) for u in result.unresolved] == [("Base", "ui/inventory.lua")]
    assert not (out_dir / SYMBOLS_JSON).exists()


def test_symbol_index_maps_names_to_sources(tmp_path: Path) -> None:
    root = tmp_path / "project"
    _copy_fixture(root)

    generate_declarations(root=root, out_dir=tmp_path / "out", write_symbol_index=True)

    symbols = orjson.loads((tmp_path / "out" / SYMBOLS_JSON).read_bytes())
    assert symbols == {
        "Inventory": "ui/inventory.lua",
        "Item": "shared/types.lua",
        "ItemId": "shared/types.lua",
        "SlotKind": "ui/inventory.lua",
    }


def test_unchanged_files_are_served_from_cache(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    root = tmp_path / "project"
    _copy_fixture(root)
    out_dir = tmp_path / "out"
    generate_declarations(root=root, out_dir=out_dir)
    first_graph = BuildCache(out_dir / CACHE_FILENAME).load()

    monkeypatch.setattr("emit.write.synthesize_source", _fail_if_parsed)
    result = generate_declarations(root=root, out_dir=out_dir)

    assert result.ok
    assert result.written == ()
    assert result.skipped == ("shared/types.lua", "ui/inventory.lua")
    assert BuildCache(out_dir / CACHE_FILENAME).load() == first_graph
    assert (out_dir / "shared" / "types.d.ts").read_text(encoding="utf-8") == EXPECTED_TYPES


def test_one_character_change_invalidates_only_that_file(tmp_path: Path) -> None:
    _write(tmp_path, "a.lua", "---@class A\nlocal A = {}\n")
    _write(tmp_path, "b.lua", "---@class B\nlocal B = {}\n")
    generate_declarations(root=tmp_path)

    _write(tmp_path, "b.lua", "---@class C\nlocal B = {}\n")
    result = generate_declarations(root=tmp_path)

    assert result.written == ("b.lua",)
    assert result.skipped == ("a.lua",)
    assert "export class C {" in (tmp_path / "types" / "b.d.ts").read_text(
        encoding="utf-8"
    )


def test_missing_output_forces_regeneration(tmp_path: Path) -> None:
    _write(tmp_path, "a.lua", "---@class A\nlocal A = {}\n")
    generate_declarations(root=tmp_path)
    (tmp_path / "types" / "a.d.ts").unlink()

    result = generate_declarations(root=tmp_path)

    assert result.written == ("a.lua",)
    assert (tmp_path / "types" / "a.d.ts").is_file()


def test_force_ignores_cache(tmp_path: Path) -> None:
    _write(tmp_path, "a.lua", "---@class A\nlocal A = {}\n")
    generate_declarations(root=tmp_path)

    result = generate_declarations(root=tmp_path, force=True)

    assert result.written == ("a.lua",)
    assert result.skipped == ()


def test_removed_export_rerenders_cached_dependents(tmp_path: Path) -> None:
    _write(tmp_path, "a.lua", "---@class Item\nlocal Item = {}\n")
    _write(tmp_path, "b.lua", "---@class Bag\n---@field item Item\nlocal Bag = {}\n")
    generate_declarations(root=tmp_path)
    assert 'import type { Item } from "./a";' in (tmp_path / "types" / "b.d.ts").read_text(
        encoding="utf-8"
    )

    _write(tmp_path, "a.lua", "local x = 1\n")
    result = generate_declarations(root=tmp_path)

    assert result.written == ("a.lua", "b.lua")
    text = (tmp_path / "types" / "b.d.ts").read_text(encoding="utf-8")
    assert "import type" not in text
    assert "type Item = unknown;" in text


def test_new_export_rerenders_dependent_that_stubbed_it(tmp_path: Path) -> None:
    _write(tmp_path, "b.lua", "---@class Bag\n---@field item Item\nlocal Bag = {}\n")
    generate_declarations(root=tmp_path)
    assert "type Item = unknown;" in (tmp_path / "types" / "b.d.ts").read_text(
        encoding="utf-8"
    )

    _write(tmp_path, "a.lua", "---@class Item\nlocal Item = {}\n")
    result = generate_declarations(root=tmp_path)

    assert result.written == ("a.lua", "b.lua")
    assert result.unresolved == ()
    text = (tmp_path / "types" / "b.d.ts").read_text(encoding="utf-8")
    assert 'import type { Item } from "./a";' in text
    assert "type Item = unknown;" not in text


def test_failing_file_drops_its_previous_output(tmp_path: Path) -> None:
    _write(tmp_path, "a.lua", "---@class Item\nlocal Item = {}\n")
    _write(tmp_path, "b.lua", "---@class Bag\n---@field item Item\nlocal Bag = {}\n")
    generate_declarations(root=tmp_path)

    _write(tmp_path, "a.lua", "---@class Item\n---@field x Map<string\nlocal Item = {}\n")
    result = generate_declarations(root=tmp_path)

    assert result.failed == ("a.lua",)
    assert result.written == ("b.lua",)
    assert not (tmp_path / "types" / "a.d.ts").exists()
    assert (tmp_path / "types" / INDEX_FILENAME).read_text(encoding="utf-8") == (
        'export * from "./b";\n'
    )
    text = (tmp_path / "types" / "b.d.ts").read_text(encoding="utf-8")
    assert 'from "./a"' not in text
    assert "type Item = unknown;" in text


def test_deleted_source_removes_its_output(tmp_path: Path) -> None:
    _write(tmp_path, "a.lua", "---@class A\nlocal A = {}\n")
    _write(tmp_path, "b.lua", "---@class B\nlocal B = {}\n")
    generate_declarations(root=tmp_path)

    (tmp_path / "a.lua").unlink()
    result = generate_declarations(root=tmp_path)

    assert result.removed == ("a.lua",)
    assert not (tmp_path / "types" / "a.d.ts").exists()
    assert (tmp_path / "types" / INDEX_FILENAME).read_text(encoding="utf-8") == (
        'export * from "./b";\n'
    )
    assert "a.lua" not in BuildCache(tmp_path / "types" / CACHE_FILENAME).load()


def test_malformed_annotation_fails_file_and_skips_cache(tmp_path: Path) -> None:
    _write(tmp_path, "good.lua", "---@class Good\nlocal Good = {}\n")
    _write(tmp_path, "bad.lua", "---@param x Map<string\nfunction f(x) end\n")

    result = generate_declarations(root=tmp_path)

    assert not result.ok
    assert result.failed == ("bad.lua",)
    assert not result.cache_saved
    assert (tmp_path / "types" / "good.d.ts").is_file()
    assert not (tmp_path / "types" / "bad.d.ts").exists()
    assert not (tmp_path / "types" / CACHE_FILENAME).exists()


def test_config_fixers_and_exclusions(tmp_path: Path) -> None:
    _write(
        tmp_path,
        "luats.toml",
        'exclude = ["vendor/*"]\n\n'
        "[[fixers]]\n"
        'file_name = "legacy.lua"\n'
        'find = "---@klass"\n'
        'replace = "---@class"\n',
    )
    _write(tmp_path, "legacy.lua", "---@klass Old\nlocal Old = {}\n")
    _write(tmp_path, "vendor/lib.lua", "---@class Vendored\nlocal V = {}\n")

    result = generate_declarations(root=tmp_path)

    assert result.written == ("legacy.lua",)
    assert "export class Old {" in (tmp_path / "types" / "legacy.d.ts").read_text(
        encoding="utf-8"
    )


def test_worker_count_does_not_change_output(tmp_path: Path) -> None:
    for index in range(8):
        _write(
            tmp_path / "src",
            f"m{index}.lua",
            f"---@class C{index}\n---@field next C{(index + 1) % 8}\nlocal C{index} = {{}}\n",
        )

    generate_declarations(root=tmp_path / "src", out_dir=tmp_path / "serial", workers=1)
    generate_declarations(root=tmp_path / "src", out_dir=tmp_path / "parallel", workers=8)

    serial = {
        p.relative_to(tmp_path / "serial"): p.read_bytes()
        for p in (tmp_path / "serial").rglob("*.d.ts")
    }
    parallel = {
        p.relative_to(tmp_path / "parallel"): p.read_bytes()
        for p in (tmp_path / "parallel").rglob("*.d.ts")
    }
    assert len(serial) == 9
    assert serial == parallel
