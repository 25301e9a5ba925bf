"""Shared path and output utilities for luats."""

from __future__ import annotations

import os
import posixpath
import tempfile
from pathlib import Path

import orjson

from contract.artifacts import DECLARATION_SUFFIX, SOURCE_SUFFIX


def write_bytes_atomic(path: Path, data: bytes) -> None:
    """Write ``data`` through a sibling temp file and ``os.replace``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, temp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
        os.replace(temp_name, path)
    except BaseException:
        Path(temp_name).unlink(missing_ok=True)
        raise


def write_json(path: Path, obj: object) -> None:
    opts = orjson.OPT_SORT_KEYS | orjson.OPT_INDENT_2
    write_bytes_atomic(path, orjson.dumps(obj, option=opts))


def normalize_source_path(file_path: str | Path) -> str:
    """Normalize a source path to POSIX form without drive or ``./`` prefix.

    Examples:
        >>> normalize_source_path("C:\\\\game\\\\ui\\\\Button.lua")
        'game/ui/Button.lua'
        >>> normalize_source_path(Path("./shared/Types.lua"))
        'shared/Types.lua'
    """
    path_str = file_path.as_posix() if isinstance(file_path, Path) else str(file_path)
    path_str = path_str.replace("\\", "/")
    if len(path_str) > 1 and path_str[1] == ":":
        path_str = path_str[2:]
    parts = [part for part in path_str.split("/") if part and part != "."]
    return "/".join(parts)


def declaration_path(source_path: str | Path) -> str:
    """Map ``a/b.lua`` to ``a/b.d.ts`` (relative to the output directory)."""
    normalized = normalize_source_path(source_path)
    if normalized.endswith(SOURCE_SUFFIX):
        normalized = normalized[: -len(SOURCE_SUFFIX)]
    return normalized + DECLARATION_SUFFIX


def module_specifier(source_path: str | Path) -> str:
    """Import specifier of a source file's declarations: no extension."""
    return declaration_path(source_path)[: -len(DECLARATION_SUFFIX)]


def relative_import(consumer: str | Path, provider: str | Path) -> str:
    """Relative module path from ``consumer``'s output file to ``provider``'s.

    Always starts with ``./`` or ``../``.

    Examples:
        >>> relative_import("ui/Button.lua", "shared/Types.lua")
        '../shared/Types'
        >>> relative_import("ui/Button.lua", "ui/Label.lua")
        './Label'
    """
    consumer_dir = posixpath.dirname(declaration_path(consumer)) or "."
    rel = posixpath.relpath(module_specifier(provider), consumer_dir)
    if not rel.startswith("."):
        rel = "./" + rel
    return rel


__all__ = [
    "declaration_path",
    "module_specifier",
    "normalize_source_path",
    "relative_import",
    "write_bytes_atomic",
    "write_json",
]
