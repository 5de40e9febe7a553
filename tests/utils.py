from __future__ import annotations

import numpy as np

from panotiles.models import FACE_NAMES, CubeFace
from panotiles.raster import RasterSurface


def gradient_panorama(width: int = 256, height: int = 128) -> np.ndarray:
    """Red ramps with the column, green with the row, blue is constant."""
    cols = np.linspace(0, 255, width, dtype=np.float32)
    rows = np.linspace(0, 255, height, dtype=np.float32)
    pano = np.zeros((height, width, 3), dtype=np.uint8)
    pano[..., 0] = np.round(cols)[np.newaxis, :]
    pano[..., 1] = np.round(rows)[:, np.newaxis]
    pano[..., 2] = 128
    return pano


def make_faces(resolution: int) -> list[CubeFace]:
    faces = []
    for i, name in enumerate(FACE_NAMES):
        pixels = np.full((resolution, resolution, 3), i * 40, dtype=np.uint8)
        pixels[: resolution // 2, :, 1] = 200
        faces.append(CubeFace(name, RasterSurface.from_array(pixels), resolution))
    return faces
