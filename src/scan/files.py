"""Deterministic discovery of Lua source files."""

from __future__ import annotations

import os
from fnmatch import fnmatch
from pathlib import Path
from typing import TYPE_CHECKING, cast

from gitignore_parser import parse_gitignore  # type: ignore[import-untyped]

from contract.artifacts import SOURCE_SUFFIX

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Sequence

# Tool and VCS directories never hold sources we document.
SKIPPED_DIRECTORIES = frozenset({".git", ".hg", ".svn", ".luarocks", "lua_modules"})


def _resolves_inside(path: Path, root: Path) -> bool:
    try:
        path.resolve().relative_to(root)
    except (OSError, ValueError):
        return False
    return True


def _build_gitignore_matcher(
    root: Path, *, nested_gitignore: bool
) -> Callable[[str], bool] | None:
    """Compose the root ``.gitignore`` (or every nested one) into one predicate.

    Symlinked ``.gitignore`` files are ignored.
    """
    if not nested_gitignore:
        gitignore_path = root / ".gitignore"
        if gitignore_path.is_file() and not gitignore_path.is_symlink():
            return cast("Callable[[str], bool]", parse_gitignore(gitignore_path))
        return None

    sources = [
        p
        for p in sorted(
            root.rglob(".gitignore"), key=lambda p: p.relative_to(root).as_posix()
        )
        if p.is_file() and not p.is_symlink()
    ]
    if not sources:
        return None

    matchers = [parse_gitignore(path) for path in sources]

    def ignored(path_str: str) -> bool:
        for matcher in matchers:
            try:
                if matcher(path_str):
                    return True
            except ValueError:
                # Path outside this .gitignore's base directory.
                continue
        return False

    return ignored


def _matches_any(rel_path: str, patterns: Sequence[str] | None) -> bool:
    return any(fnmatch(rel_path, pattern) for pattern in patterns or ())


def _walk_sources(root: Path, output_prefix: tuple[str, ...]) -> Iterator[Path]:
    """Yield regular ``.lua`` files, pruning skipped and output directories."""
    for dirpath, dirnames, filenames in os.walk(root):
        current = Path(dirpath)
        rel_parts = current.relative_to(root).parts
        dirnames[:] = [
            name
            for name in dirnames
            if name not in SKIPPED_DIRECTORIES
            and not (current / name).is_symlink()
            and (not output_prefix or (*rel_parts, name) != output_prefix)
        ]
        for name in filenames:
            if not name.endswith(SOURCE_SUFFIX):
                continue
            path = current / name
            if path.is_symlink() or not path.is_file():
                continue
            yield path


def find_lua_files(
    directory: Path,
    *,
    output_dir: str = "types",
    include_patterns: list[str] | None = None,
    exclude_patterns: list[str] | None = None,
    nested_gitignore: bool = False,
) -> Iterator[Path]:
    """Find all Lua files under ``directory``, respecting .gitignore.

    Args:
        directory: Root to search
        output_dir: Output directory relative to the root; never scanned
        include_patterns: fnmatch patterns on the POSIX relative path; when
            given, a file must match at least one
        exclude_patterns: fnmatch patterns; a matching file is skipped
        nested_gitignore: Also honour .gitignore files below the root

    Yields:
        Paths sorted by relative POSIX path.
    """
    root = directory.resolve()
    ignored = _build_gitignore_matcher(directory, nested_gitignore=nested_gitignore)
    output_prefix = tuple(
        part for part in output_dir.replace("\\", "/").split("/") if part and part != "."
    )

    selected: list[tuple[str, Path]] = []
    for path in _walk_sources(directory, output_prefix):
        if not _resolves_inside(path, root):
            continue
        if ignored is not None and ignored(str(path)):
            continue
        rel_path = path.relative_to(directory).as_posix()
        if include_patterns and not _matches_any(rel_path, include_patterns):
            continue
        if _matches_any(rel_path, exclude_patterns):
            continue
        selected.append((rel_path, path))

    for _, path in sorted(selected):
        yield path


__all__ = ["SKIPPED_DIRECTORIES", "find_lua_files"]
