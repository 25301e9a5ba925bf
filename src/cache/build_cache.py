"""Content-hash cache and persisted symbol graph for incremental runs.

Stored as one JSON document; name lists are comma-joined strings on disk
and sorted lists in memory.
"""

from __future__ import annotations

import hashlib
from typing import TYPE_CHECKING, Any

import orjson
from pydantic import BaseModel, Field, ValidationError, field_serializer, field_validator

from contract.artifacts import TOOL_VERSION
from log import get_logger
from utils import write_json

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

logger = get_logger(__name__)


def _sha256(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def _split_names(value: Any) -> Any:
    if isinstance(value, str):
        return sorted({name for name in value.split(",") if name})
    return value


class CacheEntry(BaseModel):
    """One file's row in the symbol graph."""

    content_hash: str
    imports: list[str] = Field(default_factory=list)
    missing_deps: list[str] = Field(default_factory=list)
    exports: list[str] = Field(default_factory=list)
    fn_hash: str = ""
    fc_hash: str = ""

    @field_validator("imports", "missing_deps", "exports", mode="before")
    @classmethod
    def split_names(cls, v: Any) -> Any:
        """Accept the comma-joined on-disk form; empty string is no names."""
        return _split_names(v)

    @field_serializer("imports", "missing_deps", "exports")
    def join_names(self, names: list[str]) -> str:
        return ",".join(sorted(names))


class CacheDocument(BaseModel):
    tool_version: str = TOOL_VERSION
    entries: dict[str, CacheEntry] = Field(default_factory=dict)


SymbolGraph = dict[str, CacheEntry]


class BuildCache:
    """Per-file hashes plus the exported/imported/missing name sets.

    Call :meth:`load` before use and :meth:`save` once at the end of a
    successful run.
    """

    def __init__(self, path: Path, *, tool_version: str = TOOL_VERSION) -> None:
        self.path = path
        self.tool_version = tool_version
        self.entries: SymbolGraph = {}

    def fn_hash(self, path: str) -> str:
        return _sha256(f"{self.tool_version}::{path}")

    def fc_hash(self, path: str, source: str) -> str:
        return _sha256(f"{self.tool_version}::{path}::{source}")

    def load(self) -> SymbolGraph:
        """Read the persisted graph; a missing or corrupt file yields an empty one."""
        self.entries = {}
        if not self.path.is_file():
            logger.debug("No cache at %s", self.path)
            return self.entries

        try:
            document = CacheDocument.model_validate(orjson.loads(self.path.read_bytes()))
        except (OSError, orjson.JSONDecodeError, ValidationError) as exc:
            logger.warning("Ignoring unreadable cache %s: %s", self.path, exc)
            return self.entries

        if document.tool_version != self.tool_version:
            logger.info(
                "Cache written by %s, now %s; rebuilding all files",
                document.tool_version,
                self.tool_version,
            )
            return self.entries

        self.entries = dict(document.entries)
        logger.debug("Loaded cache with %d entries", len(self.entries))
        return self.entries

    def entry(self, path: str) -> CacheEntry | None:
        return self.entries.get(path)

    def should_skip(self, path: str, source: str) -> bool:
        """True iff ``source`` hashes to the stored value for ``path``."""
        entry = self.entries.get(path)
        return entry is not None and entry.fc_hash == self.fc_hash(path, source)

    def record_result(
        self,
        path: str,
        *,
        source: str,
        exports: Iterable[str],
        imports: Iterable[str],
        missing_deps: Iterable[str],
    ) -> CacheEntry:
        entry = CacheEntry(
            content_hash=_sha256(source),
            exports=sorted(set(exports)),
            imports=sorted(set(imports)),
            missing_deps=sorted(set(missing_deps)),
            fn_hash=self.fn_hash(path),
            fc_hash=self.fc_hash(path, source),
        )
        self.entries[path] = entry
        return entry

    def prune(self, paths: Iterable[str]) -> list[str]:
        """Drop entries for files not in ``paths``; return the dropped paths."""
        keep = set(paths)
        removed = sorted(path for path in self.entries if path not in keep)
        for path in removed:
            del self.entries[path]
        return removed

    def save(self) -> None:
        """Atomically rewrite the cache file."""
        document = CacheDocument(
            tool_version=self.tool_version,
            entries=dict(sorted(self.entries.items())),
        )
        write_json(self.path, document.model_dump())
        logger.debug("Saved cache with %d entries to %s", len(self.entries), self.path)


__all__ = ["BuildCache", "CacheDocument", "CacheEntry", "SymbolGraph"]
