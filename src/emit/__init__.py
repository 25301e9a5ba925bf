"""TypeScript emission: rendering, cross-file resolution and the write driver."""

from emit.emitter import EmittedFile, build_owner_index, emit, render_file
from emit.fixers import BUILTIN_FIXERS, apply_fixers
from emit.write import GenerationResult, generate_declarations, synthesize_source

__all__ = [
    "BUILTIN_FIXERS",
    "EmittedFile",
    "GenerationResult",
    "apply_fixers",
    "build_owner_index",
    "emit",
    "generate_declarations",
    "render_file",
    "synthesize_source",
]
