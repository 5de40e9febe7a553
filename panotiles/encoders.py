"""
Interchangeable tile encoders.

Every encoder turns (raster, region, output size, format, quality) into
compressed bytes; they differ only in where the work runs:

    InlineEncoder       calling thread
    ThreadPoolEncoder   worker threads (Pillow releases the GIL while encoding)
    ProcessPoolEncoder  worker processes

`encode_batch()` always returns results in request order.
"""

from __future__ import annotations

import logging
from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor
from typing import NamedTuple, Sequence

from panotiles.raster import RasterSurface, Rect

LOGGER = logging.getLogger("panotiles.encoders")

TILE_BATCH_SIZE = 10


class EncodeRequest(NamedTuple):
    raster: RasterSurface
    region: Rect
    output_size: int
    image_format: str
    quality: float


def encode_region(raster: RasterSurface, region: Rect, output_size: int,
                  image_format: str, quality: float) -> bytes:
    """Crop *region* from *raster*, scale it to output_size² and encode it."""
    tile = RasterSurface.create(output_size, output_size)
    try:
        tile.draw_region_scaled(raster, (0, 0, output_size, output_size), region)
        return tile.encode(image_format, quality)
    finally:
        tile.release()


def _encode_request(request: EncodeRequest) -> bytes:
    return encode_region(*request)


class Encoder:
    """Encodes on the calling thread."""

    name = 'inline'

    def encode(self, raster: RasterSurface, region: Rect, output_size: int,
               image_format: str, quality: float) -> bytes:
        return encode_region(raster, region, output_size, image_format, quality)

    def encode_batch(self, requests: Sequence[EncodeRequest]) -> list[bytes]:
        return [self.encode(*request) for request in requests]

    def close(self) -> None:
        pass

    def __enter__(self) -> Encoder:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


InlineEncoder = Encoder


class _ExecutorEncoder(Encoder):
    def __init__(self, max_workers: int = TILE_BATCH_SIZE):
        self.max_workers = max_workers
        self._executor: Executor | None = None

    def _make_executor(self) -> Executor:
        raise NotImplementedError

    @property
    def executor(self) -> Executor:
        if self._executor is None:
            self._executor = self._make_executor()
            LOGGER.debug("Started %s encoder with %d workers", self.name, self.max_workers)
        return self._executor

    def encode(self, raster: RasterSurface, region: Rect, output_size: int,
               image_format: str, quality: float) -> bytes:
        request = EncodeRequest(raster, region, output_size, image_format, quality)
        return self.executor.submit(_encode_request, request).result()

    def encode_batch(self, requests: Sequence[EncodeRequest]) -> list[bytes]:
        futures = [self.executor.submit(_encode_request, r) for r in requests]
        return [future.result() for future in futures]

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True, cancel_futures=True)
            self._executor = None


class ThreadPoolEncoder(_ExecutorEncoder):
    name = 'thread'

    def _make_executor(self) -> Executor:
        return ThreadPoolExecutor(max_workers=self.max_workers,
                                  thread_name_prefix='panotiles-encode')


class ProcessPoolEncoder(_ExecutorEncoder):
    """
    Encodes in worker processes.

    Each request pickles its raster to the worker, so a batch copies the whole
    level raster once per tile (up to TILE_BATCH_SIZE times). That transfer
    dominates for large levels; prefer the thread encoder unless encoding is
    CPU-bound in Python code.
    """

    name = 'process'

    def _make_executor(self) -> Executor:
        return ProcessPoolExecutor(max_workers=self.max_workers)


ENCODERS: dict[str, type[Encoder]] = {
    'inline': InlineEncoder,
    'thread': ThreadPoolEncoder,
    'process': ProcessPoolEncoder,
}


def create_encoder(kind: str = 'thread') -> Encoder:
    try:
        return ENCODERS[kind]()
    except KeyError:
        raise ValueError(f"Unknown encoder: {kind!r} (choose from {', '.join(ENCODERS)})") from None
