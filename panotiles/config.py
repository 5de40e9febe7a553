"""Cube size, level count and the viewer's multires descriptor."""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from importlib import resources
from typing import Any, Mapping

import jsonschema

from panotiles.models import extension_for

BASE_PATH = './'
PATH_TEMPLATE = '/%l/%s/%x_%y'
FALLBACK_TEMPLATE = '/fallback/%s'
CONFIG_FILENAME = 'config.json'


def calculate_cube_resolution(width: int, height: int) -> int:
    """
    Cube-face edge for a full 360° panorama of the given width.

        cube = 8 × floor(width / π / 8)

    Always a multiple of 8. `height` is unused for full panoramas.
    """
    return 8 * math.floor(width / math.pi / 8)


def calculate_max_level(cube_resolution: int, tile_size: int) -> int:
    """
    Number of pyramid levels so that level 1 fits in one tile.

        levels = ceil(log2(cube / tile)) + 1

    One level is dropped when the penultimate level is already exactly the
    tile size, matching the reference tile generator.
    """
    if cube_resolution < 1 or tile_size < 1:
        raise ValueError("cube_resolution and tile_size must be positive")
    effective_tile_size = min(tile_size, cube_resolution)
    levels = math.ceil(math.log2(cube_resolution / effective_tile_size)) + 1

    if levels >= 2 and cube_resolution // 2 ** (levels - 2) == effective_tile_size:
        levels -= 1

    return max(1, levels)


@dataclass(frozen=True)
class TileSetDescriptor:
    tile_size: int
    max_level: int
    cube_resolution: int
    image_format: str
    has_fallback: bool

    def to_dict(self) -> dict[str, Any]:
        multires: dict[str, Any] = {
            'basePath': BASE_PATH,
            'path': PATH_TEMPLATE,
            'extension': extension_for(self.image_format),
            'tileResolution': self.tile_size,
            'maxLevel': self.max_level,
            'cubeResolution': self.cube_resolution,
        }
        if self.has_fallback:
            multires['fallbackPath'] = FALLBACK_TEMPLATE
        return {'type': 'multires', 'multiRes': multires}


def build_descriptor(tile_size: int, max_level: int, cube_resolution: int,
                     image_format: str, has_fallback: bool) -> TileSetDescriptor:
    return TileSetDescriptor(tile_size, max_level, cube_resolution, image_format, has_fallback)


def _load_schema(name: str) -> dict[str, Any]:
    """Load a JSON schema bundled in the package."""
    with resources.files("panotiles.schemas").joinpath(name).open("r", encoding="utf-8") as handle:
        return json.load(handle)


def validate_descriptor(payload: Mapping[str, Any]) -> None:
    """Validate a descriptor payload against the bundled schema."""
    jsonschema.validate(payload, _load_schema("descriptor.schema.json"))


def generate_config(descriptor: TileSetDescriptor) -> str:
    """Serialise *descriptor* as config.json text (two-space indent)."""
    payload = descriptor.to_dict()
    validate_descriptor(payload)
    return json.dumps(payload, indent=2)
