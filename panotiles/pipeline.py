"""
pipeline.py — End-to-end conversion of an equirectangular panorama into a
multires cube tile set.

    load → reproject (6 faces) → tile pyramid → [fallback tiles]
         → config.json → package ('zip' | 'raw' | 'stream')

Example:
    tiler = PanoramaTiler()
    result = tiler.process(ProcessConfig(source='pano.jpg', output='zip'))
    Path('pano.zip').write_bytes(result.data)
"""

from __future__ import annotations

import logging
import numbers
from typing import Any, Callable, Optional, Union

from panotiles.config import (build_descriptor, calculate_cube_resolution,
                              calculate_max_level, generate_config)
from panotiles.encoders import ENCODERS, create_encoder
from panotiles.errors import ConfigurationError, DisposedError
from panotiles.events import Callback, Listeners, call_isolated
from panotiles.loader import load_image
from panotiles.models import (EXTENSIONS, FACE_NAMES, ProcessConfig, ProgressInfo,
                              RawResult, ResultMetadata, StreamResult, TilerOptions, Tile,
                              ZipResult)
from panotiles.packaging import build_raw, build_stream, build_zip
from panotiles.reprojection import Reprojector
from panotiles.tiler import Tiler

LOGGER = logging.getLogger("panotiles.pipeline")

OUTPUT_MODES = ('zip', 'raw', 'stream')

ProcessResult = Union[ZipResult, RawResult, StreamResult]


def _is_missing(source: Any) -> bool:
    if source is None:
        return True
    return isinstance(source, (str, bytes, bytearray)) and len(source) == 0


def validate_config(config: ProcessConfig) -> None:
    """Raise ConfigurationError for options that can be rejected up front."""
    if _is_missing(config.source):
        raise ConfigurationError("source is required")
    if not config.output:
        raise ConfigurationError("output mode is required ('zip' | 'raw' | 'stream')")
    if config.output not in OUTPUT_MODES:
        raise ConfigurationError(f"Invalid output mode: {config.output!r}")
    if (not isinstance(config.quality, numbers.Real) or isinstance(config.quality, bool)
            or not 0.0 <= config.quality <= 1.0):
        raise ConfigurationError("quality must be between 0 and 1")
    if (not isinstance(config.tile_size, int) or isinstance(config.tile_size, bool)
            or config.tile_size < 1):
        raise ConfigurationError("tile_size must be a positive integer")
    if config.image_format not in EXTENSIONS:
        raise ConfigurationError(f"Invalid image format: {config.image_format!r} ('jpeg' | 'webp')")
    if config.max_level is not None and config.max_level < 1:
        raise ConfigurationError("max_level must be at least 1")
    if config.cube_resolution is not None and (
            config.cube_resolution < 8 or config.cube_resolution % 8):
        raise ConfigurationError("cube_resolution must be a positive multiple of 8")


class PanoramaTiler:
    """
    Converts equirectangular panoramas into multires cube tile sets.

    Listeners registered with `on('progress', cb)` / `on('error', cb)` receive
    ProgressInfo events and failures. A listener that raises is ignored.
    After `dispose()` the instance refuses to process.
    """

    def __init__(self, options: Optional[TilerOptions] = None):
        self.options = options or TilerOptions()
        if self.options.encoder not in ENCODERS:
            raise ConfigurationError(f"Unknown encoder: {self.options.encoder!r}")
        self.listeners = Listeners()
        self.disposed = False

    # ── Public API ────────────────────────────────────────────────────────────

    def process(self, config: ProcessConfig) -> ProcessResult:
        if self.disposed:
            raise DisposedError("PanoramaTiler instance has been disposed")
        validate_config(config)

        def progress(info: ProgressInfo) -> None:
            if config.on_progress is not None:
                call_isolated(config.on_progress, info)
            self.listeners.emit('progress', info)

        try:
            return self._run(config, progress)
        except Exception as exc:
            self.listeners.emit('error', exc)
            raise

    def on(self, event: str, callback: Callback) -> None:
        self.listeners.add(event, callback)

    def off(self, event: str, callback: Callback) -> None:
        self.listeners.remove(event, callback)

    def dispose(self) -> None:
        """Release listeners; the instance cannot be reused afterwards."""
        self.disposed = True
        self.listeners.clear()

    # ── Pipeline ──────────────────────────────────────────────────────────────

    def _run(self, config: ProcessConfig,
             progress: Callable[[ProgressInfo], None]) -> ProcessResult:
        # ── Stage 1: load source ───────────────────────────────────────────
        progress(ProgressInfo(stage='loading', progress=0.0, message="Loading source image…"))
        image = load_image(config.source, lambda p: progress(ProgressInfo(
            stage='loading', progress=p, message="Loading source image…")))
        height, width = image.shape[:2]
        progress(ProgressInfo(stage='loading', progress=1.0, message="Image loaded"))
        LOGGER.debug("Image loaded: %d×%d", width, height)

        # ── Dimensions ─────────────────────────────────────────────────────
        cube_resolution = config.cube_resolution or calculate_cube_resolution(width, height)
        if cube_resolution < 8:
            raise ConfigurationError(
                f"Source is too small to tile ({width}×{height}); need a width of at least 26 px")
        tile_size = config.tile_size
        max_level = config.max_level or calculate_max_level(cube_resolution, tile_size)
        if cube_resolution >> (max_level - 1) < 1:
            raise ConfigurationError(
                f"max_level {max_level} is too deep for cube resolution {cube_resolution}")
        LOGGER.debug("cube_resolution=%d  max_level=%d", cube_resolution, max_level)

        # ── Stage 2: equirectangular → 6 cube faces ────────────────────────
        reprojector = Reprojector(self.options.max_texture_size)
        faces = reprojector.reproject_to_cube_faces(image, cube_resolution, progress)
        del image

        # ── Stage 3: tile pyramid ──────────────────────────────────────────
        try:
            with create_encoder(self.options.encoder) as encoder:
                tiler = Tiler(config.quality, config.image_format, encoder)
                tiles = tiler.generate_tile_pyramid(faces, tile_size, max_level, progress)

                fallback: list[Tile] = []
                if config.fallback_tiles:
                    progress(ProgressInfo(stage='encoding', progress=0.0,
                                          message="Encoding fallback tiles…"))
                    fallback = tiler.generate_fallback_tiles(faces, self.options.fallback_size)
                    progress(ProgressInfo(stage='encoding', progress=1.0,
                                          message="Fallback tiles complete"))
        finally:
            for face in faces:
                face.release()

        all_tiles = tiles + fallback

        config_json = generate_config(build_descriptor(
            tile_size, max_level, cube_resolution, config.image_format, config.fallback_tiles))

        metadata = ResultMetadata(
            total_tiles=len(all_tiles),
            total_size=sum(tile.size for tile in all_tiles),
            max_level=max_level,
            cube_resolution=cube_resolution,
            tile_size=tile_size,
            faces=list(FACE_NAMES),
        )
        LOGGER.info("Generated %d tiles (%d bytes), %d levels, %d px faces",
                    metadata.total_tiles, metadata.total_size, max_level, cube_resolution)

        # ── Stage 4: package ───────────────────────────────────────────────
        if config.output == 'zip':
            progress(ProgressInfo(stage='packaging', progress=0.0,
                                  message="Creating ZIP archive…"))
            data = build_zip(all_tiles, config_json, lambda p: progress(ProgressInfo(
                stage='packaging', progress=p, message="Creating ZIP archive…")))
            progress(ProgressInfo(stage='packaging', progress=1.0,
                                  message="ZIP archive complete"))
            return ZipResult(data=data, metadata=metadata)
        if config.output == 'raw':
            return build_raw(all_tiles, config_json, metadata)
        return build_stream(all_tiles, config_json, metadata)
