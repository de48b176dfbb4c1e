#!/usr/bin/env python3
"""
deadsym CLI

    deadsym PATH

PATH is one of
  - a save-analysis ``.json`` dump: its directory is the set of sibling units
  - a ``.scip`` index
  - a project directory: the SCIP indexer is run first, writing
    ``target/index.scip``

One line per unused definition is printed to stdout:
``<file>:<line>:<col>: unused <kind> '<name>'``.
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Iterable, Optional

from . import __version__
from .errors import DeadsymError


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="deadsym",
        description="Report unused definitions from save-analysis dumps or a SCIP index",
    )
    parser.add_argument("path", help="save-analysis .json, .scip index, or project directory")
    parser.add_argument("--config", default=None, help="Path to config (YAML or pyproject.toml)")
    parser.add_argument("-j", "--jobs", type=int, default=None, help="Worker threads (default from config)")
    parser.add_argument("--source-root", default=None, help="Root for resolving source files of macro ranges")
    parser.add_argument("--log-level", default=None, help="DEBUG|INFO|WARNING|ERROR")
    parser.add_argument("--summary", action="store_true", help="Print counts to stderr after the report")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: Optional[Iterable[str]] = None) -> int:
    args = _parser().parse_args(list(argv) if argv is not None else None)

    # Lazy imports keep --help/--version fast
    from .config_loader import load_config
    from .logging_config import resolve_log_level, setup_logging

    try:
        config = load_config(Path(args.config) if args.config else None)
    except (OSError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    if args.jobs is not None:
        if args.jobs < 1:
            print("error: --jobs must be >= 1", file=sys.stderr)
            return 1
        config.workers = args.jobs
    if args.source_root:
        config.source_root = args.source_root
    setup_logging(resolve_log_level(args.log_level, config.log_level))

    from .api import analyze_path

    path = Path(args.path)
    try:
        analyzer = analyze_path(path, config)
        if analyzer is None:
            print(f"Path '{path}' doesn't exist or has unknown extension", file=sys.stderr)
            return 0
        unused = analyzer.unused_definitions()
    except DeadsymError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    for ud in unused:
        print(ud.display())
    if args.summary:
        counts = ", ".join(f"{k}={v}" for k, v in analyzer.stats().items())
        print(f"{counts}, unused={len(unused)}", file=sys.stderr)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
