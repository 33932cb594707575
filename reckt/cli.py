#!/usr/bin/env python3
"""
CLI entrypoint for reckt.

Usage:
    reckt [--tests] <program dump> [options]
    reckt app.ssa.json
    reckt --tests --format sarif --output reckt.sarif app.ssa.yaml

Returns:
    0: no raise reaches a root
    1: at least one raise reaches a root
    2: usage error
    3: error (missing target, unloadable program, no entry point, ...)
"""

import argparse
import logging
import sys
from pathlib import Path

from .ci.config import REPORT_FORMATS, VISITED_SCOPES, RecktConfig
from .errors import RecktError

USAGE = "reckt [--tests] pkg"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="reckt",
        usage=f"{USAGE} [options]",
        description="reckt: find panics that may reach a root of the call graph",
    )
    parser.add_argument(
        "target", type=Path, nargs="?",
        help="Program dump (JSON or YAML) to analyze",
    )
    parser.add_argument(
        "--tests",
        action="store_true",
        default=None,
        help="Include tests in analysis (root is the set of test functions)",
    )
    parser.add_argument(
        "--format",
        choices=REPORT_FORMATS,
        default=None,
        help="Report format (default: text)",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Write the report to a file instead of stdout",
    )
    parser.add_argument(
        "--visited-scope",
        choices=VISITED_SCOPES,
        default=None,
        help="'global' visits each node once per raise site (default); "
             "'path' re-explores nodes reached through other callers",
    )
    parser.add_argument(
        "--skip-unresolved",
        dest="report_unresolved",
        action="store_false",
        default=None,
        help="Leave out raises in functions no entry point reaches",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to .reckt.yml config file (default: auto-detect next to target)",
    )
    parser.add_argument(
        "--show-config",
        action="store_true",
        help="Print the effective configuration and exit",
    )
    parser.add_argument("--verbose", action="store_true", help="Verbose output")
    return parser


def _load_config(args: argparse.Namespace) -> RecktConfig:
    """
    Load .reckt.yml (explicit path, or next to the target) and let flags
    given on the command line override it.
    """
    if args.config:
        cfg = RecktConfig.load_file(args.config)
    elif args.target is not None:
        target = args.target.resolve()
        cfg = RecktConfig.load(target if target.is_dir() else target.parent)
    else:
        cfg = RecktConfig.load(Path.cwd())

    if args.tests is not None:
        cfg.analysis.tests = args.tests
    if args.visited_scope is not None:
        cfg.analysis.visited_scope = args.visited_scope
    if args.report_unresolved is not None:
        cfg.analysis.report_unresolved = args.report_unresolved
    if args.format is not None:
        cfg.report.format = args.format
    if args.output is not None:
        cfg.report.output = str(args.output)
    return cfg


def _render(result, cfg: RecktConfig, repo_root: Path) -> str:
    if cfg.report.format == "json":
        from .reporting import format_json
        return format_json(result)
    if cfg.report.format == "sarif":
        from .ci.sarif import format_sarif
        return format_sarif(result, repo_root)
    from .reporting import format_text
    return format_text(result)


def main(argv=None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)

    try:
        cfg = _load_config(args)
    except RecktError as e:
        print(f"reckt: {e}", file=sys.stderr)
        return 3

    if args.show_config:
        print(cfg.to_yaml(), end="")
        return 0

    if args.target is None:
        parser.error("the following arguments are required: target")

    if not args.target.exists():
        print(f"reckt: target not found: {args.target}", file=sys.stderr)
        return 3

    from .analyzer import analyze
    from .reporting import write_report

    try:
        result = analyze(args.target, cfg)
    except RecktError as e:
        print(f"reckt: {e}", file=sys.stderr)
        return 3

    output = Path(cfg.report.output) if cfg.report.output else None
    try:
        write_report(_render(result, cfg, args.target.resolve().parent), output)
    except OSError as e:
        print(f"reckt: cannot write {output}: {e.strerror or e}", file=sys.stderr)
        return 3

    return 1 if result.exposed else 0


if __name__ == "__main__":
    sys.exit(main())
