"""Stable output contract for luats.

File names and markers that generated trees, the cache and downstream
TypeScript tooling rely on.
"""

from contract.artifacts import (
    CACHE_FILENAME,
    DECLARATION_SUFFIX,
    FILE_HEADER,
    INDEX_FILENAME,
    SOURCE_SUFFIX,
    SYMBOLS_JSON,
    TOOL_VERSION,
)

__all__ = [
    "CACHE_FILENAME",
    "DECLARATION_SUFFIX",
    "FILE_HEADER",
    "INDEX_FILENAME",
    "SOURCE_SUFFIX",
    "SYMBOLS_JSON",
    "TOOL_VERSION",
]
