"""Two-phase declaration generation.

Scatter: read, fix and synthesize files independently on a thread pool.
Gather: resolve names across all files, write outputs, update the cache.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from cache.build_cache import BuildCache
from config.settings import load_config, resolve_output_dir
from contract.artifacts import CACHE_FILENAME, INDEX_FILENAME, SYMBOLS_JSON
from declarations.synthesize import synthesize_chunk
from emit.emitter import build_owner_index, emit
from emit.fixers import BUILTIN_FIXERS, apply_fixers, fixers_from_config
from errors import AnnotationError, UnresolvedSymbol
from log import get_logger
from luasyntax.associate import associate
from luasyntax.treesitter_lua import parse_chunk
from scan.files import find_lua_files
from utils import declaration_path, module_specifier, write_json

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from config.settings import LuatsConfig
    from declarations.models import FileDeclarations
    from emit.fixers import Fixer

logger = get_logger(__name__)


@dataclass(frozen=True)
class GenerationResult:
    out_dir: Path
    written: tuple[str, ...] = ()
    skipped: tuple[str, ...] = ()
    failed: tuple[str, ...] = ()
    removed: tuple[str, ...] = ()
    unresolved: tuple[UnresolvedSymbol, ...] = field(default_factory=tuple)
    cache_saved: bool = False

    @property
    def ok(self) -> bool:
        return not self.failed


def synthesize_source(
    path: str, source: str, *, fixers: Sequence[Fixer] = BUILTIN_FIXERS
) -> FileDeclarations:
    """Run one file through fixers, the Lua parser, association and synthesis.

    Raises:
        MalformedType, MalformedDirective: the annotation grammar was violated.
    """
    text = apply_fixers(path, source, fixers)
    chunk, unrecognized = parse_chunk(text)
    for problem in unrecognized:
        logger.warning("%s: %s", path, problem)
    association = associate(chunk.body, chunk.comments)
    return synthesize_chunk(chunk, association, path=path)


def _output_dir_name(out_dir: Path, root: Path) -> str:
    try:
        return out_dir.resolve().relative_to(root.resolve()).as_posix()
    except ValueError:
        return ""


def _read_sources(root: Path, files: Iterable[Path]) -> tuple[dict[str, str], list[str]]:
    sources: dict[str, str] = {}
    failed: list[str] = []
    for path in files:
        rel = path.relative_to(root).as_posix()
        try:
            sources[rel] = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.error("%s: cannot read source: %s", rel, exc)
            failed.append(rel)
    return sources, failed


def _scatter(
    paths: Sequence[str],
    sources: dict[str, str],
    *,
    fixers: Sequence[Fixer],
    workers: int,
) -> tuple[dict[str, FileDeclarations], list[str]]:
    parsed: dict[str, FileDeclarations] = {}
    failed: list[str] = []
    if not paths:
        return parsed, failed

    with ThreadPoolExecutor(max_workers=max(1, min(workers, len(paths)))) as executor:
        futures = {
            executor.submit(synthesize_source, path, sources[path], fixers=fixers): path
            for path in paths
        }
        for future in as_completed(futures):
            path = futures[future]
            try:
                parsed[path] = future.result()
            except AnnotationError as exc:
                logger.error("%s", exc.with_path(path))
                failed.append(path)
            else:
                logger.debug("Parsed %s", path)

    return parsed, sorted(failed)


def _changed_names(
    cache: BuildCache, parsed: dict[str, FileDeclarations], removed: Iterable[str]
) -> set[str]:
    """Names whose exporting file set may have changed this run."""
    changed: set[str] = set()
    for path, declarations in parsed.items():
        entry = cache.entry(path)
        previous = set(entry.exports) if entry else set()
        changed.update(previous.symmetric_difference(declarations.exported_names()))
    return changed | set(removed)


def generate_declarations(
    *,
    root: Path,
    out_dir: Path | None = None,
    config: LuatsConfig | None = None,
    force: bool = False,
    workers: int | None = None,
    write_symbol_index: bool | None = None,
) -> GenerationResult:
    """Generate ``.d.ts`` files for every Lua file under ``root``.

    Unchanged files whose output still exists are skipped, unless a name
    they import changed owner this run. The cache is saved only when every
    file succeeded.

    Args:
        root: Project root to scan
        out_dir: Output directory; defaults to ``config.output_dir``
        config: Loaded configuration; read from ``root`` when omitted
        force: Ignore the cache and reprocess every file
        workers: Override ``config.workers``
        write_symbol_index: Override ``config.write_symbol_index``
    """
    if config is None:
        config = load_config(root)
    if out_dir is None:
        out_dir = resolve_output_dir(root, config.output_dir)
    workers = workers or config.workers
    if write_symbol_index is None:
        write_symbol_index = config.write_symbol_index
    fixers = (*BUILTIN_FIXERS, *fixers_from_config(config.fixers))

    cache = BuildCache(out_dir / CACHE_FILENAME)
    if not force:
        cache.load()

    files = find_lua_files(
        root,
        output_dir=_output_dir_name(out_dir, root),
        include_patterns=config.include or None,
        exclude_patterns=config.exclude or None,
        nested_gitignore=config.nested_gitignore,
    )
    sources, failed = _read_sources(root, files)

    removed_exports = {
        name
        for path, entry in cache.entries.items()
        if path not in sources
        for name in entry.exports
    }
    removed_paths = cache.prune(sources)
    for path in removed_paths:
        stale = out_dir / declaration_path(path)
        if stale.is_file():
            stale.unlink()
            logger.info("Removed %s", stale)

    def skippable(path: str) -> bool:
        return cache.should_skip(path, sources[path]) and (
            out_dir / declaration_path(path)
        ).is_file()

    ordered = sorted(sources)
    to_parse = [p for p in ordered if force or not skippable(p)]
    parse_set = set(to_parse)
    skipped = [p for p in ordered if p not in parse_set]

    parsed, parse_failed = _scatter(to_parse, sources, fixers=fixers, workers=workers)
    failed.extend(parse_failed)

    # A failed file contributes no output, so its previous exports are gone too.
    failed_exports = {
        name
        for path in parse_failed
        if (entry := cache.entry(path)) is not None
        for name in entry.exports
    }
    failed_paths = set(parse_failed)
    cache.prune(p for p in list(cache.entries) if p not in failed_paths)

    # Skipped files importing a name whose owner changed need a fresh render.
    changed = _changed_names(cache, parsed, removed_exports | failed_exports)
    stale_dependents = [
        path
        for path in skipped
        if (entry := cache.entry(path)) is not None
        and not changed.isdisjoint({*entry.imports, *entry.missing_deps})
    ]
    if stale_dependents:
        logger.info("Re-rendering %d dependent file(s)", len(stale_dependents))
        more, more_failed = _scatter(
            stale_dependents, sources, fixers=fixers, workers=workers
        )
        parsed.update(more)
        failed.extend(more_failed)
        skipped = [p for p in skipped if p not in more and p not in more_failed]

    for path in sorted(set(failed)):
        stale = out_dir / declaration_path(path)
        if stale.is_file():
            stale.unlink()
            logger.info("Removed stale output %s", stale)

    emitted = emit(
        list(parsed.values()), cache.entries, fallback_types=config.fallback_types
    )

    unresolved: list[UnresolvedSymbol] = []
    for path, result in emitted.items():
        output_path = out_dir / declaration_path(path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(result.text, encoding="utf-8", newline="\n")
        cache.record_result(
            path,
            source=sources[path],
            exports=result.exports,
            imports=result.imports,
            missing_deps=result.missing,
        )
        unresolved.extend(UnresolvedSymbol(name, path) for name in result.missing)
        logger.debug("Wrote %s", output_path)

    index_lines = [
        f'export * from "./{module_specifier(path)}";'
        for path in ordered
        if (out_dir / declaration_path(path)).is_file()
    ]
    out_dir.mkdir(parents=True, exist_ok=True)
    (out_dir / INDEX_FILENAME).write_text(
        "\n".join(index_lines) + ("\n" if index_lines else ""),
        encoding="utf-8",
        newline="\n",
    )

    if write_symbol_index:
        write_json(out_dir / SYMBOLS_JSON, build_owner_index({}, cache.entries).owners)

    if unresolved:
        logger.warning(
            "Unresolved types (declared as local stubs):\n  %s",
            "\n  ".join(str(problem) for problem in unresolved),
        )

    failed = sorted(set(failed))
    cache_saved = False
    if failed:
        logger.error("%d file(s) failed; cache not saved", len(failed))
    else:
        cache.save()
        cache_saved = True

    logger.info(
        "Generated %d file(s), skipped %d unchanged, %d failed",
        len(emitted),
        len(skipped),
        len(failed),
    )
    return GenerationResult(
        out_dir=out_dir,
        written=tuple(sorted(emitted)),
        skipped=tuple(skipped),
        failed=tuple(failed),
        removed=tuple(removed_paths),
        unresolved=tuple(unresolved),
        cache_saved=cache_saved,
    )


__all__ = ["GenerationResult", "generate_declarations", "synthesize_source"]
