"""
tiler.py — Slice cube faces into a multi-resolution tile pyramid.

For each face, level `max_level` uses the face at full resolution; every lower
level halves the previous level (Lanczos), down to level 1, which fits in a
single tile. Each level is cut into `tile_size` squares, row-major:

    {level}/{face}/{column}_{row}.{ext}

Tiles are encoded in batches of TILE_BATCH_SIZE. A batch may run concurrently,
but its results are appended only once the whole batch is done, so the output
order is always face → level (descending) → row → column.
"""

from __future__ import annotations

import logging
import math
from typing import Callable, Optional

from panotiles.encoders import TILE_BATCH_SIZE, EncodeRequest, Encoder, InlineEncoder
from panotiles.models import (DEFAULT_QUALITY, CubeFace, ProgressCallback, ProgressInfo, Tile,
                              extension_for, fallback_path, tile_path)
from panotiles.raster import RasterSurface
from panotiles.resources import ResourceTracker

LOGGER = logging.getLogger("panotiles.tiler")


def level_resolutions(cube_resolution: int, max_level: int) -> list[int]:
    """Face edge length per level, from max_level down to 1."""
    sizes = [cube_resolution]
    for _ in range(max_level - 1):
        sizes.append(sizes[-1] // 2)
    return sizes


def tiles_per_side(resolution: int, tile_size: int) -> int:
    return math.ceil(resolution / tile_size)


def count_tiles(cube_resolution: int, tile_size: int, max_level: int) -> int:
    """Number of tiles one face produces across all levels."""
    return sum(tiles_per_side(r, tile_size) ** 2
               for r in level_resolutions(cube_resolution, max_level))


def downscale(source: RasterSurface, new_size: int) -> RasterSurface:
    surface = RasterSurface.create(new_size, new_size)
    surface.draw_region_scaled(source, (0, 0, new_size, new_size),
                               (0, 0, source.width, source.height))
    return surface


class Tiler:
    """
    Args:
        quality:      encoder quality in [0, 1]
        image_format: 'jpeg' or 'webp'
        encoder:      where encoding runs; inline when omitted
    """

    def __init__(self, quality: float = DEFAULT_QUALITY, image_format: str = 'jpeg',
                 encoder: Optional[Encoder] = None):
        self.quality = quality
        self.image_format = image_format
        self.encoder = encoder if encoder is not None else InlineEncoder()
        self.ext = extension_for(image_format)

    def generate_tile_pyramid(self, faces: list[CubeFace], tile_size: int, max_level: int,
                              on_progress: Optional[ProgressCallback] = None) -> list[Tile]:
        """Generate tiles for every face at every level, max_level → 1."""
        tiles: list[Tile] = []
        total_faces = len(faces)

        for face_index, face in enumerate(faces):
            def report(level_progress: float, level: int, face=face, face_index=face_index) -> None:
                if on_progress is None:
                    return
                on_progress(ProgressInfo(
                    stage='tiling',
                    progress=(face_index + level_progress) / total_faces,
                    current_level=level,
                    current_face=face.name,
                    message=f"Tiling face {face.name}, level {level}",
                ))

            tiles.extend(self._generate_face_tiles(face, tile_size, max_level, report))

        if on_progress is not None:
            on_progress(ProgressInfo(stage='tiling', progress=1.0,
                                     message="Tile generation complete"))
        LOGGER.debug("Generated %d tiles for %d faces", len(tiles), total_faces)
        return tiles

    def generate_fallback_tiles(self, faces: list[CubeFace], fallback_size: int) -> list[Tile]:
        """One whole-face tile per face, scaled to fallback_size², at fallback/{face}."""
        requests = [EncodeRequest(face.raster, (0, 0, face.resolution, face.resolution),
                                  fallback_size, self.image_format, self.quality)
                    for face in faces]
        blobs = self.encoder.encode_batch(requests)
        return [Tile(path=fallback_path(face.name, self.ext), level=0, face=face.name,
                     column=0, row=0, data=blob)
                for face, blob in zip(faces, blobs)]

    # ── Per-face pyramid ──────────────────────────────────────────────────────

    def _generate_face_tiles(self, face: CubeFace, tile_size: int, max_level: int,
                             report: Callable[[float, int], None]) -> list[Tile]:
        tiles: list[Tile] = []
        current = face.raster
        resolution = face.resolution

        try:
            for level in range(max_level, 0, -1):
                if level < max_level:
                    # Halve the previous level, never the original face
                    resolution //= 2
                    previous = current
                    current = downscale(previous, resolution)
                    if previous is not face.raster:
                        previous.release()

                n = tiles_per_side(resolution, tile_size)
                coords = [(column, row) for row in range(n) for column in range(n)]

                for start in range(0, len(coords), TILE_BATCH_SIZE):
                    batch = coords[start:start + TILE_BATCH_SIZE]
                    requests = [self._request(current, resolution, tile_size, column, row)
                                for column, row in batch]
                    blobs = self.encoder.encode_batch(requests)
                    tiles.extend(
                        Tile(path=tile_path(level, face.name, column, row, self.ext),
                             level=level, face=face.name, column=column, row=row, data=blob)
                        for (column, row), blob in zip(batch, blobs))

                    done = min(start + TILE_BATCH_SIZE, len(coords))
                    report((max_level - level + done / len(coords)) / max_level, level)

                LOGGER.debug("Face %s level %d: %d px, %d×%d tiles",
                             face.name, level, resolution, n, n)
                ResourceTracker.yield_to_gc()
        finally:
            if current is not face.raster:
                current.release()
        return tiles

    def _request(self, raster: RasterSurface, resolution: int, tile_size: int,
                 column: int, row: int) -> EncodeRequest:
        sx = column * tile_size
        sy = row * tile_size
        sw = min(tile_size, resolution - sx)
        sh = min(tile_size, resolution - sy)
        return EncodeRequest(raster, (sx, sy, sw, sh), tile_size, self.image_format, self.quality)
