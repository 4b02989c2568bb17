from __future__ import annotations

import logging
import os
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from pathlib import Path
from typing import Callable

from .errors import EnumerationError
from .models import INPUT_EXTENSION

logger = logging.getLogger(__name__)

ScanResult = tuple[list[Path], list[Path]]


def iter_image_files(
    root: Path,
    *,
    extension: str = INPUT_EXTENSION,
    ignore_case: bool = False,
    workers: int | None = None,
) -> list[Path]:
    if not root.exists():
        raise EnumerationError(f"{root}: source directory does not exist")
    if not root.is_dir():
        raise EnumerationError(f"{root}: source is not a directory")
    matches = build_matcher(extension, ignore_case)
    try:
        files, pending = _scan_directory(root, matches)
    except OSError as exc:
        raise EnumerationError(f"{root}: {exc.strerror or exc}") from exc

    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="walker") as executor:
        running: dict[Future[ScanResult], Path] = {
            executor.submit(_scan_directory, directory, matches): directory
            for directory in pending
        }
        while running:
            done, _ = wait(running, return_when=FIRST_COMPLETED)
            for future in done:
                directory = running.pop(future)
                try:
                    found, subdirs = future.result()
                except OSError as exc:
                    logger.warning("Skipping unreadable directory %s: %s", directory, exc)
                    continue
                files.extend(found)
                for subdir in subdirs:
                    running[executor.submit(_scan_directory, subdir, matches)] = subdir
    logger.debug("Found %d %s file(s) under %s", len(files), extension, root)
    return sorted(files)


def build_matcher(extension: str, ignore_case: bool) -> Callable[[str], bool]:
    if ignore_case:
        wanted = extension.lower()
        return lambda name: Path(name).suffix.lower() == wanted
    return lambda name: Path(name).suffix == extension


def _scan_directory(directory: Path, matches: Callable[[str], bool]) -> ScanResult:
    files: list[Path] = []
    subdirs: list[Path] = []
    with os.scandir(directory) as entries:
        for entry in entries:
            if entry.is_dir(follow_symlinks=False):
                subdirs.append(Path(entry.path))
            elif entry.is_file() and matches(entry.name):
                files.append(Path(entry.path))
    return files, subdirs
