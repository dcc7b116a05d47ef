"""fnpack CLI — package serverless functions from the command line.

Usage::

    fnpack SRC DEST [options]
    python -m fnpack SRC DEST [options]

Options::

    --search-root DIR        Extra module search root (repeatable)
    --flag NAME              Enable a feature flag, ``!NAME`` disables (repeatable)
    --tree-shake             Tree-shake every dependency
    --tree-shake-entry NAME  Entry-point basename that triggers tree-shaking (repeatable)
    --workers N              Number of functions packaged in parallel
    --json                   Print results as JSON
    --verbose / -v           Enable verbose logging
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from fnpack.dependencies.walker import DEFAULT_TREE_SHAKE_ENTRIES
from fnpack.packager import (
    FunctionResult,
    PackagerConfig,
    load_feature_flags,
    parse_feature_flags,
    zip_functions,
)


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="fnpack",
        description="Zip serverless functions and their dependencies for deployment.",
    )
    parser.add_argument("source", type=Path, help="Directory containing the functions")
    parser.add_argument("destination", type=Path, help="Directory the archives are written to")
    parser.add_argument(
        "--search-root",
        action="append",
        default=[],
        metavar="DIR",
        help="Additional directory searched for Node.js modules",
    )
    parser.add_argument(
        "--flag",
        action="append",
        default=[],
        metavar="NAME",
        help="Enable a feature flag (prefix with ! to disable)",
    )
    parser.add_argument(
        "--tree-shake",
        action="store_true",
        default=False,
        help="Include only the files each dependency requires",
    )
    parser.add_argument(
        "--tree-shake-entry",
        action="append",
        default=None,
        metavar="NAME",
        help=f"Entry-point name that triggers tree-shaking (default: {', '.join(DEFAULT_TREE_SHAKE_ENTRIES)})",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Number of functions packaged in parallel",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        default=False,
        help="Print results as JSON",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        default=False,
        help="Enable verbose logging",
    )
    return parser


def build_config(args: argparse.Namespace) -> PackagerConfig:
    """Merge environment feature flags with the command line; the command line wins."""
    flags = load_feature_flags()
    flags.update(parse_feature_flags(",".join(args.flag)))
    if args.tree_shake:
        flags["tree_shake"] = True

    return PackagerConfig(
        search_roots=[str(p) for p in args.search_root],
        feature_flags=flags,
        tree_shake_entries=tuple(args.tree_shake_entry or DEFAULT_TREE_SHAKE_ENTRIES),
        max_workers=args.workers,
    )


def _format_result(result: FunctionResult) -> str:
    if result.success:
        return f"{result.name}  {result.runtime}  {result.path}"
    return f"{result.name}  ERROR  {result.error}"


def main(argv: list[str] | None = None) -> int:
    """CLI entry point.  Returns exit code (0=success, 1=failure)."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Configure logging
    level = logging.DEBUG if args.verbose else logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")

    source = args.source.resolve()
    if not source.is_dir():
        print(f"Error: Source path is not a directory: {source}", file=sys.stderr)
        return 1
    if args.workers is not None and args.workers < 1:
        print("Error: --workers must be at least 1", file=sys.stderr)
        return 1

    config = build_config(args)
    results = zip_functions(source, args.destination.resolve(), config)

    if args.json:
        print(json.dumps([r.as_dict() for r in results], indent=2))
    else:
        if not results:
            print(f"No functions found in {source}")
        for result in results:
            print(_format_result(result))

    return 0 if all(r.success for r in results) else 1
