"""Shared pytest configuration, marker assignment and image fixtures."""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import pytest
from PIL import Image

MakePng = Callable[..., Path]


def pytest_collection_modifyitems(
    config: pytest.Config, items: list[pytest.Item]
) -> None:
    """Attach suite markers based on test file path."""
    del config
    for item in items:
        parts = set(Path(str(item.fspath)).parts)
        if "integration_tests" in parts:
            item.add_marker(pytest.mark.integration)
        elif "unit_tests" in parts:
            item.add_marker(pytest.mark.unit)


@pytest.fixture
def make_png() -> MakePng:
    """Return a helper that writes a solid-colour PNG, creating parent directories."""

    def _make(path: Path, mode: str = "RGB", size: tuple[int, int] = (10, 10), color=None) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        if color is None:
            color = {"RGB": (200, 100, 50), "RGBA": (200, 100, 50, 128), "L": 77, "LA": (77, 5)}.get(mode, 0)
        Image.new(mode, size, color).save(path, format="PNG")
        return path

    return _make


@pytest.fixture
def scenario_tree(tmp_path: Path, make_png: MakePng) -> tuple[Path, Path]:
    """Source tree with an RGB image, an RGBA image and a corrupt file in a subdirectory."""
    source = tmp_path / "src"
    make_png(source / "a.png", "RGB", (10, 10))
    make_png(source / "b.png", "RGBA", (5, 5))
    corrupt = source / "sub" / "c.png"
    corrupt.parent.mkdir(parents=True)
    corrupt.write_bytes(b"definitely not a png")
    return source, tmp_path / "dst"
