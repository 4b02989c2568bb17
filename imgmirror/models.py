from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from threading import Lock

DEFAULT_QUALITY = 80.0
INPUT_EXTENSION = ".png"
OUTPUT_EXTENSION = ".jpg"


@dataclass(frozen=True)
class ConvertOptions:
    input_dir: Path
    output_dir: Path
    quality: float = DEFAULT_QUALITY
    threads: int | None = None
    ignore_case: bool = False
    show_progress: bool = True


@dataclass(frozen=True)
class PixelBuffer:
    data: bytes
    width: int
    height: int

    def __post_init__(self) -> None:
        expected = self.width * self.height * 3
        if len(self.data) != expected:
            raise ValueError(
                f"RGB buffer holds {len(self.data)} bytes, expected {expected} "
                f"for {self.width}x{self.height}"
            )


class ConversionStatus(Enum):
    SKIPPED = "skipped"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class ConversionOutcome:
    source: Path
    output: Path | None
    status: ConversionStatus
    message: str = ""

    @classmethod
    def skipped(cls, source: Path, output: Path) -> ConversionOutcome:
        return cls(source, output, ConversionStatus.SKIPPED)

    @classmethod
    def succeeded(cls, source: Path, output: Path) -> ConversionOutcome:
        return cls(source, output, ConversionStatus.SUCCEEDED)

    @classmethod
    def failed(cls, source: Path, output: Path | None, message: str) -> ConversionOutcome:
        return cls(source, output, ConversionStatus.FAILED, message)


class ErrorLog:
    """Append-only collection of ``(source, reason)`` pairs shared by workers."""

    def __init__(self) -> None:
        self._entries: list[tuple[Path, str]] = []
        self._lock = Lock()

    def append(self, source: Path, reason: str) -> None:
        with self._lock:
            self._entries.append((source, reason))

    def drain(self) -> list[tuple[Path, str]]:
        with self._lock:
            entries = self._entries
            self._entries = []
        return entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class ProgressCounter:
    """Count of processed files. Skips and failures count too."""

    def __init__(self, total: int) -> None:
        self.total = total
        self._value = 0
        self._lock = Lock()

    def advance(self) -> int:
        with self._lock:
            self._value += 1
            return self._value

    @property
    def value(self) -> int:
        with self._lock:
            return self._value


@dataclass(frozen=True)
class RunSummary:
    discovered: int
    succeeded: int
    skipped: int
    failed: int
    errors: list[tuple[Path, str]] = field(default_factory=list)
    elapsed: float = 0.0
