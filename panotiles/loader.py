"""Read and decode the source panorama into an RGB numpy array."""

from __future__ import annotations

import io
import logging
import os
from pathlib import Path
from typing import Any, Callable, Optional

import numpy as np
from PIL import Image, UnidentifiedImageError

from panotiles.errors import SourceLoadError

LOGGER = logging.getLogger("panotiles.loader")

# Disable PIL's decompression bomb guard so large panoramas can be opened
Image.MAX_IMAGE_PIXELS = None

CHUNK_SIZE = 1 << 20


def _read_with_progress(path: Path, on_progress: Optional[Callable[[float], None]]) -> bytes:
    total = path.stat().st_size
    chunks = []
    read = 0
    with path.open('rb') as handle:
        while True:
            chunk = handle.read(CHUNK_SIZE)
            if not chunk:
                break
            chunks.append(chunk)
            read += len(chunk)
            if on_progress is not None and total:
                on_progress(read / total)
    return b''.join(chunks)


def _decode(data: Any) -> np.ndarray:
    try:
        with Image.open(data) as img:
            return np.array(img.convert('RGB'))
    except (UnidentifiedImageError, OSError) as exc:
        raise SourceLoadError(f"Failed to decode source image: {exc}") from exc


def load_image(source: Any, on_progress: Optional[Callable[[float], None]] = None) -> np.ndarray:
    """
    Load a panorama from a path, bytes, binary file object, Pillow image or
    numpy array.

    Returns:
        (H, W, 3) uint8 array
    """
    if isinstance(source, np.ndarray):
        if source.ndim != 3 or source.shape[2] < 3:
            raise SourceLoadError(f"Expected an (H, W, 3) array, got shape {source.shape}")
        pixels = np.ascontiguousarray(source[:, :, :3], dtype=np.uint8)
    elif isinstance(source, Image.Image):
        pixels = np.array(source.convert('RGB'))
    elif isinstance(source, (bytes, bytearray, memoryview)):
        pixels = _decode(io.BytesIO(bytes(source)))
    elif isinstance(source, (str, os.PathLike)):
        path = Path(source)
        if not path.is_file():
            raise SourceLoadError(f"File not found: {path}")
        pixels = _decode(io.BytesIO(_read_with_progress(path, on_progress)))
    elif hasattr(source, 'read'):
        pixels = _decode(source)
    else:
        raise SourceLoadError(f"Unsupported source type: {type(source).__name__}")

    height, width = pixels.shape[:2]
    if width != 2 * height:
        LOGGER.warning("Source is %d×%d, not 2:1; treating it as a full 360°×180° panorama",
                       width, height)
    if on_progress is not None:
        on_progress(1.0)
    return pixels
