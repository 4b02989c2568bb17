from __future__ import annotations

import argparse
import logging
import sys
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import Sequence

from .errors import EnumerationError
from .models import DEFAULT_QUALITY, ConvertOptions, RunSummary
from .pipeline import run_pipeline

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


def get_version() -> str:
    try:
        return version("imgmirror")
    except PackageNotFoundError:
        return "unknown"


def positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer: {value!r}") from None
    if number < 1:
        raise argparse.ArgumentTypeError("must be at least 1")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="imgmirror",
        description="Convert every PNG under SOURCE into a JPEG at the same relative path under DESTINATION.",
    )
    parser.add_argument("source", type=Path, help="directory to search for .png files")
    parser.add_argument("destination", type=Path, help="directory that receives the .jpg files")
    parser.add_argument(
        "-q",
        "--quality",
        type=float,
        default=DEFAULT_QUALITY,
        help=f"JPEG quality between 1 and 100 (default: {DEFAULT_QUALITY:g})",
    )
    parser.add_argument(
        "-t",
        "--threads",
        type=positive_int,
        default=None,
        help="number of worker threads (default: one per CPU)",
    )
    parser.add_argument(
        "--ignore-case",
        action="store_true",
        help="also match .PNG and other capitalisations",
    )
    parser.add_argument("--no-progress", action="store_true", help="hide the progress bar")
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {get_version()}")
    return parser


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=LOG_FORMAT,
        stream=sys.stderr,
    )


def report(summary: RunSummary) -> None:
    for source, reason in summary.errors:
        print(f"{source}: {reason}", file=sys.stderr)
    print(
        f"Done: {summary.succeeded} succeeded, {summary.skipped} skipped, "
        f"{summary.failed} failed"
    )


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)
    options = ConvertOptions(
        input_dir=args.source,
        output_dir=args.destination,
        quality=args.quality,
        threads=args.threads,
        ignore_case=args.ignore_case,
        show_progress=not args.no_progress,
    )
    try:
        summary = run_pipeline(options, log=print)
    except EnumerationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    report(summary)
    return 0
