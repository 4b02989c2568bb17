from __future__ import annotations

import logging
import os
import sys
import time
from concurrent.futures import Executor, ThreadPoolExecutor, as_completed
from contextlib import suppress
from pathlib import Path
from typing import Callable, Iterable

from tqdm import tqdm

from .compress import build_output_path, convert_file, output_directory
from .errors import PathMappingError
from .models import (
    ConversionOutcome,
    ConversionStatus,
    ConvertOptions,
    ErrorLog,
    ProgressCounter,
    RunSummary,
)
from .walker import iter_image_files

logger = logging.getLogger(__name__)

Converter = Callable[[Path, Path, float], ConversionOutcome]
BAR_FORMAT = "[{elapsed} ({rate_fmt})] {bar:40} {n_fmt:>7}/{total_fmt:7}"


def run_pipeline(
    options: ConvertOptions,
    *,
    files: list[Path] | None = None,
    converter: Converter = convert_file,
    log: Callable[[str], None] | None = None,
) -> RunSummary:
    log = log or (lambda message: None)
    started = time.monotonic()
    workers = resolve_workers(options.threads)
    if files is None:
        log("Listing files...")
        files = iter_image_files(
            options.input_dir,
            ignore_case=options.ignore_case,
            workers=workers,
        )
    progress = ProgressCounter(len(files))
    errors = ErrorLog()
    outcomes: list[ConversionOutcome] = []

    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="convert") as executor:
        log("Creating directories...")
        created = create_output_directories(executor, files, options)
        log("Compressing images...")
        collisions = find_destination_collisions(files, options)
        for source, first in collisions.items():
            outcomes.append(reject_collision(source, first, errors, progress))
        futures = [
            executor.submit(process_file, path, options, errors, progress, converter)
            for path in files
            if path not in collisions
        ]
        with tqdm(
            total=progress.total,
            unit="file",
            bar_format=BAR_FORMAT,
            file=sys.stdout,
            disable=not options.show_progress,
        ) as bar:
            for future in as_completed(futures):
                outcomes.append(future.result())
                bar.update(progress.value - bar.n)

    remove_empty_directories(created, options.output_dir)
    counts = {status: 0 for status in ConversionStatus}
    for outcome in outcomes:
        counts[outcome.status] += 1
    failures = sorted(errors.drain(), key=lambda entry: str(entry[0]))
    summary = RunSummary(
        discovered=len(files),
        succeeded=counts[ConversionStatus.SUCCEEDED],
        skipped=counts[ConversionStatus.SKIPPED],
        failed=counts[ConversionStatus.FAILED],
        errors=failures,
        elapsed=time.monotonic() - started,
    )
    logger.debug(
        "Run finished in %.2fs: succeeded=%d skipped=%d failed=%d",
        summary.elapsed,
        summary.succeeded,
        summary.skipped,
        summary.failed,
    )
    return summary


def process_file(
    source: Path,
    options: ConvertOptions,
    errors: ErrorLog,
    progress: ProgressCounter,
    converter: Converter = convert_file,
) -> ConversionOutcome:
    try:
        outcome = _convert_one(source, options, converter)
    except Exception as exc:
        logger.debug("Unexpected error converting %s", source, exc_info=True)
        outcome = ConversionOutcome.failed(source, None, f"unexpected error: {exc}")
    if outcome.status is ConversionStatus.FAILED:
        errors.append(source, outcome.message)
        if outcome.output is not None:
            with suppress(OSError):
                outcome.output.unlink(missing_ok=True)
    progress.advance()
    return outcome


def find_destination_collisions(files: Iterable[Path], options: ConvertOptions) -> dict[Path, Path]:
    # maps each later source to the earlier source that claims the same output
    claimed: dict[Path, Path] = {}
    collisions: dict[Path, Path] = {}
    for path in files:
        try:
            output = build_output_path(path, options.input_dir, options.output_dir)
        except PathMappingError:
            continue
        first = claimed.setdefault(output, path)
        if first != path:
            collisions[path] = first
    return collisions


def reject_collision(
    source: Path,
    first: Path,
    errors: ErrorLog,
    progress: ProgressCounter,
) -> ConversionOutcome:
    reason = f"destination is already produced from {first}"
    errors.append(source, reason)
    progress.advance()
    return ConversionOutcome.failed(source, None, reason)


def _convert_one(source: Path, options: ConvertOptions, converter: Converter) -> ConversionOutcome:
    try:
        output = build_output_path(source, options.input_dir, options.output_dir)
    except PathMappingError as exc:
        return ConversionOutcome.failed(source, None, str(exc))
    if output.exists():
        logger.debug("Skipping %s, %s already exists", source, output)
        return ConversionOutcome.skipped(source, output)
    return converter(source, output, options.quality)


def create_output_directories(
    executor: Executor,
    files: Iterable[Path],
    options: ConvertOptions,
) -> list[Path]:
    # returns the directories that did not exist beforehand
    directories: set[Path] = set()
    for path in files:
        with suppress(PathMappingError):
            directories.add(output_directory(path, options.input_dir, options.output_dir))
    missing = _missing_directories(directories)
    list(executor.map(_make_directory, sorted(directories)))
    return sorted(missing)


def _missing_directories(directories: Iterable[Path]) -> set[Path]:
    missing: set[Path] = set()
    for directory in directories:
        for candidate in (directory, *directory.parents):
            if candidate in missing or candidate.exists():
                break
            missing.add(candidate)
    return missing


def _make_directory(directory: Path) -> None:
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        logger.warning("Cannot create directory %s: %s", directory, exc)


def remove_empty_directories(created: Iterable[Path], output_dir: Path) -> None:
    """Remove directories below ``output_dir`` that this run created but left empty."""
    candidates = [
        directory
        for directory in created
        if directory != output_dir and directory.is_relative_to(output_dir)
    ]
    for directory in sorted(candidates, key=lambda path: len(path.parts), reverse=True):
        try:
            directory.rmdir()
        except OSError:
            continue
        logger.debug("Removed empty directory %s", directory)


def resolve_workers(threads: int | None) -> int:
    if threads is not None:
        return threads
    return os.cpu_count() or 1
