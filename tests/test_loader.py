from __future__ import annotations

import io
import logging

import numpy as np
import pytest
from PIL import Image

from panotiles.errors import SourceLoadError
from panotiles.loader import load_image
from tests.utils import gradient_panorama


def _png_bytes(pixels: np.ndarray) -> bytes:
    buffer = io.BytesIO()
    Image.fromarray(pixels).save(buffer, format='PNG')
    return buffer.getvalue()


def test_load_from_path_reports_progress(tmp_path) -> None:
    pixels = gradient_panorama(64, 32)
    path = tmp_path / 'pano.png'
    path.write_bytes(_png_bytes(pixels))

    progress = []
    loaded = load_image(path, progress.append)

    assert np.array_equal(loaded, pixels)
    assert progress[-1] == 1.0
    assert progress == sorted(progress)


def test_load_from_bytes_file_and_image() -> None:
    pixels = gradient_panorama(64, 32)
    data = _png_bytes(pixels)
    assert np.array_equal(load_image(data), pixels)
    assert np.array_equal(load_image(io.BytesIO(data)), pixels)
    assert np.array_equal(load_image(Image.fromarray(pixels).convert('RGBA')), pixels)


def test_load_from_array_drops_alpha() -> None:
    pixels = np.zeros((8, 16, 4), dtype=np.uint8)
    assert load_image(pixels).shape == (8, 16, 3)


def test_missing_file(tmp_path) -> None:
    with pytest.raises(SourceLoadError, match="not found"):
        load_image(tmp_path / 'missing.jpg')


def test_undecodable_bytes() -> None:
    with pytest.raises(SourceLoadError, match="decode"):
        load_image(b'not an image')


def test_unsupported_type() -> None:
    with pytest.raises(SourceLoadError, match="Unsupported"):
        load_image(42)


def test_warns_on_non_equirectangular_ratio(caplog) -> None:
    with caplog.at_level(logging.WARNING, logger="panotiles.loader"):
        load_image(np.zeros((10, 10, 3), dtype=np.uint8))
    assert "not 2:1" in caplog.text
