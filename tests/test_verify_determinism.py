from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from emit.write import generate_declarations
from verify.verify import DeterminismResult, verify_determinism

if TYPE_CHECKING:
    from pathlib import Path


def _write_minimal_project(root: Path) -> None:
    (root / "pkg").mkdir(parents=True, exist_ok=True)
    (root / "pkg" / "module.lua").write_text(
        "---@class Module\nlocal Module = {}\nreturn Module\n",
        encoding="utf-8",
    )


def test_verify_determinism_requires_out_dir(tmp_path: Path) -> None:
    project_root = tmp_path / "project"
    _write_minimal_project(project_root)

    missing_dir = tmp_path / "missing"
    with pytest.raises(FileNotFoundError, match="Output directory does not exist"):
        verify_determinism(root=project_root, out_dir=missing_dir)


def test_verify_determinism_rejects_file_out_dir(tmp_path: Path) -> None:
    project_root = tmp_path / "project"
    _write_minimal_project(project_root)
    not_a_dir = tmp_path / "file.txt"
    not_a_dir.write_text("x", encoding="utf-8")

    with pytest.raises(NotADirectoryError, match="not a directory"):
        verify_determinism(root=project_root, out_dir=not_a_dir)


def test_verify_determinism_relative_paths_and_sorted_mismatches(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    project_root = tmp_path / "project"
    _write_minimal_project(project_root)

    out_dir = tmp_path / "declarations"
    out_dir.mkdir()

    for rel_path, content in (
        ("b.d.ts", "b-original"),
        ("a.d.ts", "a-original"),
        ("old.d.ts", "stale"),
    ):
        (out_dir / rel_path).write_text(content, encoding="utf-8")

    def _fake_generate_declarations(*, root: Path, out_dir: Path, **_: object) -> None:
        (out_dir / "a.d.ts").write_text("a-original", encoding="utf-8")
        (out_dir / "b.d.ts").write_text("b-regenerated", encoding="utf-8")
        (out_dir / "new.d.ts").write_text("new", encoding="utf-8")

    monkeypatch.setattr(
        "verify.verify.generate_declarations",
        _fake_generate_declarations,
    )

    result = verify_determinism(root=project_root, out_dir=out_dir)

    assert result == DeterminismResult(
        ok=False,
        mismatches=("b.d.ts",),
        missing=("old.d.ts",),
        extra=("new.d.ts",),
    )


def test_verify_ignores_cache_file(tmp_path: Path) -> None:
    project_root = tmp_path / "project"
    _write_minimal_project(project_root)
    out_dir = tmp_path / "declarations"
    generate_declarations(root=project_root, out_dir=out_dir)

    (out_dir / "luats-meta.json").write_text("{}", encoding="utf-8")
    result = verify_determinism(root=project_root, out_dir=out_dir)

    assert result == DeterminismResult(ok=True)


def test_verify_compares_symbol_index_when_present(tmp_path: Path) -> None:
    project_root = tmp_path / "project"
    _write_minimal_project(project_root)
    out_dir = tmp_path / "declarations"
    generate_declarations(root=project_root, out_dir=out_dir, write_symbol_index=True)

    (out_dir / "symbols.json").write_text("{}", encoding="utf-8")
    result = verify_determinism(root=project_root, out_dir=out_dir)

    assert result.mismatches == ("symbols.json",)
