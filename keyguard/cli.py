"""
Command-line entry point.

    keyguard FILE [FILE ...] [--format text|json] [--strict-syntax] [-v]

Each file is analyzed independently.  Diagnostics go to stdout; per-file
read or analysis errors go to stderr and do not stop the run.  Exit status
is 1 when any file could not be analyzed, 0 otherwise.
"""

import argparse
import logging
import sys
from typing import List, Optional, TextIO

from .analyzer import KeyErrorAnalyzer
from .config import AnalyzerConfig
from .errors import SourceReadError

logger = logging.getLogger(__name__)


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="keyguard",
        description="Report subscript accesses whose KeyError may escape uncaught.",
    )
    parser.add_argument("files", nargs="+", metavar="FILE",
                        help="Python source files to analyze")
    parser.add_argument("--format", choices=("text", "json"), default="text",
                        help="output format for diagnostics (default: text)")
    parser.add_argument("--strict-syntax", action="store_true",
                        help="refuse files that contain syntax errors")
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="log progress to stderr (repeat for debug output)")
    return parser.parse_args(argv)


def _configure_logging(verbosity: int):
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity > 1:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        stream=sys.stderr,
        format="%(levelname)s %(name)s: %(message)s",
    )


def run(argv: Optional[List[str]] = None, out: TextIO = None, err: TextIO = None) -> int:
    out = out or sys.stdout
    err = err or sys.stderr
    args = _parse_args(argv)
    _configure_logging(args.verbose)

    analyzer = KeyErrorAnalyzer(AnalyzerConfig(strict_syntax=args.strict_syntax))
    failures = 0
    for result in analyzer.analyze_paths(args.files):
        if not result.ok:
            failures += 1
            action = "reading" if isinstance(result.error, SourceReadError) else "analyzing"
            print(f"Error {action} file '{result.file_path}': {result.error.reason}", file=err)
            continue

        for diag in result.analysis.diagnostics:
            if args.format == "json":
                print(diag.model_dump_json(), file=out)
            else:
                print(diag.render(), file=out)

    return 1 if failures else 0


def main():
    sys.exit(run())


if __name__ == "__main__":
    main()
