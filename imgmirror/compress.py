from __future__ import annotations

import io
import logging
import tempfile
from contextlib import suppress
from pathlib import Path

from PIL import Image

from .errors import (
    ConversionError,
    DecodeError,
    EncodeError,
    InvalidQualityError,
    PathMappingError,
    WriteError,
)
from .models import OUTPUT_EXTENSION, ConversionOutcome, PixelBuffer

logger = logging.getLogger(__name__)

MIN_QUALITY = 1.0
MAX_QUALITY = 100.0
_DIRECT_RGB_MODES = {"RGB", "RGBA", "L", "P", "1"}


def convert_file(source: Path, output: Path, quality: float) -> ConversionOutcome:
    try:
        pixels = decode_pixels(source)
        encode_pixels(pixels, quality, output)
    except ConversionError as exc:
        logger.debug("Conversion of %s failed: %s", source, exc)
        return ConversionOutcome.failed(source, output, str(exc))
    return ConversionOutcome.succeeded(source, output)


def build_output_path(
    source: Path,
    input_dir: Path,
    output_dir: Path,
    extension: str = OUTPUT_EXTENSION,
) -> Path:
    if not source.is_relative_to(input_dir):
        raise PathMappingError(f"{source} is not inside {input_dir}")
    relative = source.relative_to(input_dir)
    if not relative.name:
        raise PathMappingError(f"{source} is the source directory itself")
    return output_dir / relative.with_suffix(extension)


def output_directory(source: Path, input_dir: Path, output_dir: Path) -> Path:
    return build_output_path(source, input_dir, output_dir).parent


def decode_pixels(path: Path) -> PixelBuffer:
    try:
        with Image.open(path, formats=["PNG"]) as image:
            image.load()
            rgb = to_rgb(image)
            return PixelBuffer(rgb.tobytes(), rgb.width, rgb.height)
    except DecodeError:
        raise
    except Exception as exc:
        raise DecodeError(f"cannot decode PNG: {exc}") from exc


def to_rgb(image: Image.Image) -> Image.Image:
    mode = image.mode
    if mode in _DIRECT_RGB_MODES:
        return image if mode == "RGB" else image.convert("RGB")
    if mode == "LA":
        return image.convert("L").convert("RGB")
    if mode == "PA":
        return image.convert("RGBA").convert("RGB")
    raise DecodeError(f"unsupported color mode: {mode}")


def encode_pixels(pixels: PixelBuffer, quality: float, output: Path) -> None:
    jpeg_quality = validate_quality(quality)
    buffer = io.BytesIO()
    try:
        image = Image.frombytes("RGB", (pixels.width, pixels.height), pixels.data)
        image.save(buffer, format="JPEG", quality=jpeg_quality, optimize=True, progressive=True)
    except Exception as exc:
        raise EncodeError(f"cannot encode JPEG: {exc}") from exc
    # the ".tmp" suffix keeps the scratch file off every mapped ".jpg" path
    temp: Path | None = None
    try:
        with tempfile.NamedTemporaryFile(
            dir=output.parent, prefix=f".{output.stem}.", suffix=".tmp", delete=False
        ) as handle:
            temp = Path(handle.name)
            handle.write(buffer.getvalue())
        temp.replace(output)
    except OSError as exc:
        if temp is not None:
            with suppress(OSError):
                temp.unlink(missing_ok=True)
        raise WriteError(f"cannot write {output}: {exc.strerror or exc}") from exc


def validate_quality(quality: float) -> int:
    # NaN fails both comparisons and is rejected as well
    if not MIN_QUALITY <= quality <= MAX_QUALITY:
        raise InvalidQualityError(
            f"quality {quality:g} is outside the accepted range "
            f"{MIN_QUALITY:g}-{MAX_QUALITY:g}"
        )
    return int(round(quality))
