"""Output contract definitions.

File names, extensions and the tool version salt that every generated
artifact and cache entry depends on.
"""

from __future__ import annotations

# Bumping this invalidates every cache entry.
TOOL_VERSION = "0.3.0"

SOURCE_SUFFIX = ".lua"
DECLARATION_SUFFIX = ".d.ts"

CACHE_FILENAME = "luats-meta.json"
INDEX_FILENAME = "index.d.ts"
SYMBOLS_JSON = "symbols.json"

FILE_HEADER = "/**\n ** luats generated file\n*/\n\n\n"
UNRESOLVED_HEADER = "// Unresolved dependencies\n"
UNRESOLVED_FOOTER = "// -------------\n\n"


__all__ = [
    "CACHE_FILENAME",
    "DECLARATION_SUFFIX",
    "FILE_HEADER",
    "INDEX_FILENAME",
    "SOURCE_SUFFIX",
    "SYMBOLS_JSON",
    "TOOL_VERSION",
    "UNRESOLVED_FOOTER",
    "UNRESOLVED_HEADER",
]
