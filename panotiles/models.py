"""Data types shared across the panotiles pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Iterator, Literal, Optional

if TYPE_CHECKING:
    from panotiles.raster import RasterSurface

# Canonical face identifiers in render order
FACE_NAMES = ['f', 'r', 'b', 'l', 'u', 'd']

DEFAULT_TILE_SIZE = 512
DEFAULT_QUALITY = 0.9
DEFAULT_FALLBACK_SIZE = 1024
DEFAULT_MAX_TEXTURE_SIZE = 16384

ImageFormat = Literal['jpeg', 'webp']
OutputMode = Literal['zip', 'raw', 'stream']
Stage = Literal['loading', 'reprojection', 'tiling', 'encoding', 'packaging']

EXTENSIONS = {'jpeg': 'jpg', 'webp': 'webp'}


def extension_for(image_format: str) -> str:
    """Return the tile file extension for an image format."""
    try:
        return EXTENSIONS[image_format]
    except KeyError:
        raise ValueError(f"Unsupported image format: {image_format!r} ('jpeg' | 'webp')") from None


def tile_path(level: int, face: str, column: int, row: int, ext: str) -> str:
    return f"{level}/{face}/{column}_{row}.{ext}"


def fallback_path(face: str, ext: str) -> str:
    return f"fallback/{face}.{ext}"


@dataclass(frozen=True)
class ProgressInfo:
    """Progress event emitted while processing."""

    stage: Stage
    progress: float
    current_level: Optional[int] = None
    current_face: Optional[str] = None
    message: Optional[str] = None


ProgressCallback = Callable[[ProgressInfo], None]


@dataclass
class CubeFace:
    """One rendered cube face; `raster` is square with edge `resolution`."""

    name: str
    raster: RasterSurface
    resolution: int

    def release(self) -> None:
        self.raster.release()


@dataclass(frozen=True)
class Tile:
    """A single encoded tile. `path` follows `{level}/{face}/{column}_{row}.{ext}`."""

    path: str
    level: int
    face: str
    column: int
    row: int
    data: bytes = field(repr=False)

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class TilerOptions:
    """Instance-wide options for PanoramaTiler."""

    max_texture_size: int = DEFAULT_MAX_TEXTURE_SIZE
    encoder: str = 'thread'
    fallback_size: int = DEFAULT_FALLBACK_SIZE


@dataclass
class ProcessConfig:
    """Per-call processing parameters.

    `source` may be a path, raw bytes, a binary file object, a Pillow image or
    an (H, W, 3) uint8 array. `max_level` and `cube_resolution` override the
    values derived from the source dimensions.
    """

    source: Any
    output: str
    tile_size: int = DEFAULT_TILE_SIZE
    max_level: Optional[int] = None
    cube_resolution: Optional[int] = None
    quality: float = DEFAULT_QUALITY
    fallback_tiles: bool = False
    image_format: str = 'jpeg'
    on_progress: Optional[ProgressCallback] = None


@dataclass(frozen=True)
class ResultMetadata:
    total_tiles: int
    total_size: int
    max_level: int
    cube_resolution: int
    tile_size: int
    faces: list[str]


@dataclass(frozen=True)
class ConfigPayload:
    """Serialised config.json, as text and as bytes."""

    json: str

    @property
    def data(self) -> bytes:
        return self.json.encode('utf-8')


@dataclass(frozen=True)
class ZipResult:
    data: bytes = field(repr=False)
    metadata: ResultMetadata


@dataclass(frozen=True)
class RawResult:
    config: ConfigPayload
    tiles: list[Tile]
    metadata: ResultMetadata


@dataclass(frozen=True)
class StreamItem:
    """One entry of a streamed result: the config first, then tiles."""

    type: Literal['config', 'tile']
    path: str
    data: bytes = field(repr=False)
    level: Optional[int] = None
    face: Optional[str] = None
    column: Optional[int] = None
    row: Optional[int] = None


@dataclass(frozen=True)
class StreamResult:
    config: ConfigPayload
    tiles: Iterator[StreamItem]
    metadata: ResultMetadata
