"""Command-line interface for luats."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from config.settings import load_config, resolve_output_dir
from emit.write import generate_declarations
from errors import ConfigError
from log import configure_logging
from verify.verify import verify_determinism


def _add_common_paths(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "root",
        nargs="?",
        default=".",
        help="Project root (default: .)",
    )
    parser.add_argument(
        "--out-dir",
        default=None,
        help="Declaration output directory (default: config output dir)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log debug detail",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="luats")
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate_parser = subparsers.add_parser(
        "generate", help="Generate .d.ts declarations from Lua annotations"
    )
    _add_common_paths(generate_parser)
    generate_parser.add_argument(
        "--force",
        action="store_true",
        help="Ignore the cache and regenerate every file",
    )
    generate_parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Parallel parse workers (default: config workers)",
    )
    generate_parser.add_argument(
        "--symbol-index",
        action="store_true",
        default=None,
        help="Also write symbols.json",
    )

    verify_parser = subparsers.add_parser(
        "verify", help="Verify that declarations are up to date and deterministic"
    )
    _add_common_paths(verify_parser)

    return parser


def _resolve_out_dir(root: Path, out_dir: str | None) -> Path:
    if out_dir is None:
        config = load_config(root)
        return resolve_output_dir(root, config.output_dir)
    return Path(out_dir).expanduser().resolve()


def _handle_generate(args: argparse.Namespace, root: Path) -> int:
    if args.workers is not None and args.workers < 1:
        sys.stderr.write("error: --workers must be at least 1\n")
        return 2
    result = generate_declarations(
        root=root,
        out_dir=_resolve_out_dir(root, args.out_dir),
        force=args.force,
        workers=args.workers,
        write_symbol_index=args.symbol_index,
    )
    return 0 if result.ok else 1


def _handle_verify(args: argparse.Namespace, root: Path) -> int:
    out_dir = _resolve_out_dir(root, args.out_dir)
    try:
        result = verify_determinism(root=root, out_dir=out_dir)
    except (FileNotFoundError, NotADirectoryError) as exc:
        sys.stderr.write(f"out-dir: {out_dir}\n")
        sys.stderr.write(f"error: {exc}\n")
        return 2
    if not result.ok:
        for label, paths in (
            ("missing", result.missing),
            ("extra", result.extra),
            ("mismatches", result.mismatches),
        ):
            for path in paths:
                sys.stderr.write(f"{label}: {path}\n")
        return 1
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    configure_logging(verbose=args.verbose)

    root = Path(args.root).expanduser().resolve()

    try:
        if args.command == "generate":
            return _handle_generate(args, root)
        if args.command == "verify":
            return _handle_verify(args, root)
    except ConfigError as exc:
        sys.stderr.write(f"config error: {exc}\n")
        return 2

    raise AssertionError


if __name__ == "__main__":
    raise SystemExit(main())
