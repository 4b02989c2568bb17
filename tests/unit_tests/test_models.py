"""Unit tests for the shared data types."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest

from imgmirror.models import (
    ConversionOutcome,
    ConversionStatus,
    ErrorLog,
    PixelBuffer,
    ProgressCounter,
)


def test_pixel_buffer_accepts_matching_length() -> None:
    pixels = PixelBuffer(bytes(2 * 3 * 3), 2, 3)
    assert (pixels.width, pixels.height) == (2, 3)


def test_pixel_buffer_rejects_wrong_length() -> None:
    with pytest.raises(ValueError, match="expected 12"):
        PixelBuffer(bytes(16), 2, 2)


def test_outcome_constructors_set_status() -> None:
    source = Path("a.png")
    output = Path("a.jpg")
    assert ConversionOutcome.skipped(source, output).status is ConversionStatus.SKIPPED
    assert ConversionOutcome.succeeded(source, output).status is ConversionStatus.SUCCEEDED
    failed = ConversionOutcome.failed(source, None, "boom")
    assert failed.status is ConversionStatus.FAILED
    assert failed.message == "boom"
    assert failed.output is None


def test_error_log_collects_concurrent_appends_and_drains_once() -> None:
    log = ErrorLog()
    with ThreadPoolExecutor(max_workers=8) as executor:
        list(executor.map(lambda i: log.append(Path(f"{i}.png"), "bad"), range(200)))

    assert len(log) == 200
    entries = log.drain()
    assert len(entries) == 200
    assert {str(path) for path, _ in entries} == {f"{i}.png" for i in range(200)}
    assert log.drain() == []


def test_progress_counter_counts_every_advance() -> None:
    counter = ProgressCounter(total=500)
    with ThreadPoolExecutor(max_workers=8) as executor:
        list(executor.map(lambda _: counter.advance(), range(500)))

    assert counter.value == 500
    assert counter.total == 500
