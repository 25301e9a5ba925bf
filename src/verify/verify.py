"""Determinism verification for generated declarations."""

from __future__ import annotations

import filecmp
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from contract.artifacts import CACHE_FILENAME, SYMBOLS_JSON
from emit.write import generate_declarations

if TYPE_CHECKING:
    from config.settings import LuatsConfig

# Depends on run history rather than on the sources alone.
_UNCOMPARED = frozenset({Path(CACHE_FILENAME)})


@dataclass(frozen=True)
class DeterminismResult:
    ok: bool
    mismatches: tuple[str, ...] = field(default_factory=tuple)
    missing: tuple[str, ...] = field(default_factory=tuple)
    extra: tuple[str, ...] = field(default_factory=tuple)


def _list_relative_files(root: Path) -> set[Path]:
    return {
        path.relative_to(root)
        for path in root.rglob("*")
        if path.is_file() and path.relative_to(root) not in _UNCOMPARED
    }


def verify_determinism(
    *, root: Path, out_dir: Path, config: LuatsConfig | None = None
) -> DeterminismResult:
    """Verify that ``out_dir`` matches a clean regeneration byte for byte.

    Regenerates every file (ignoring the cache) into a temporary directory
    and compares relative file sets and contents. The cache file is not
    compared.

    Raises:
        FileNotFoundError: If out_dir does not exist.
        NotADirectoryError: If out_dir is not a directory.
    """
    if not out_dir.exists():
        msg = f"Output directory does not exist: {out_dir}"
        raise FileNotFoundError(msg)
    if not out_dir.is_dir():
        msg = f"Output path is not a directory: {out_dir}"
        raise NotADirectoryError(msg)

    with tempfile.TemporaryDirectory() as temp_dir:
        temp_path = Path(temp_dir)
        generate_declarations(
            root=root,
            out_dir=temp_path,
            config=config,
            force=True,
            write_symbol_index=(out_dir / SYMBOLS_JSON).is_file(),
        )

        original_files = _list_relative_files(out_dir)
        regenerated_files = _list_relative_files(temp_path)

        missing = sorted(str(path) for path in original_files - regenerated_files)
        extra = sorted(str(path) for path in regenerated_files - original_files)
        mismatches = sorted(
            str(path)
            for path in original_files & regenerated_files
            if not filecmp.cmp(out_dir / path, temp_path / path, shallow=False)
        )

    ok = not missing and not extra and not mismatches
    return DeterminismResult(
        ok=ok,
        mismatches=tuple(mismatches),
        missing=tuple(missing),
        extra=tuple(extra),
    )


__all__ = ["DeterminismResult", "verify_determinism"]
