from __future__ import annotations

import json
import math

import jsonschema
import pytest

from panotiles.config import (build_descriptor, calculate_cube_resolution, calculate_max_level,
                              generate_config, validate_descriptor)
from panotiles.tiler import level_resolutions, tiles_per_side


@pytest.mark.parametrize("width", [1000, 2000, 3000, 4096, 5000, 7777, 8192, 12345, 16384])
def test_cube_resolution_is_multiple_of_eight(width: int) -> None:
    res = calculate_cube_resolution(width, width // 2)
    assert res % 8 == 0
    assert res == 8 * math.floor(width / math.pi / 8)


def test_cube_resolution_for_4096_source() -> None:
    # 4096 / π = 1303.8 → /8 = 162.97 → 162 × 8
    assert calculate_cube_resolution(4096, 2048) == 1296


@pytest.mark.parametrize(
    ("cube", "tile", "expected"),
    [(512, 512, 1), (1024, 512, 2), (2048, 512, 3), (4096, 512, 4), (256, 512, 1), (1, 1, 1)],
)
def test_max_level(cube: int, tile: int, expected: int) -> None:
    assert calculate_max_level(cube, tile) == expected


def test_max_level_for_4096_source() -> None:
    cube = calculate_cube_resolution(4096, 2048)
    # ceil(log2(1296 / 512)) + 1 = 3; 1296 // 2 = 648 != 512 so no correction
    assert calculate_max_level(cube, 512) == 3


def test_max_level_drops_redundant_level() -> None:
    # ceil(log2(1025 / 512)) + 1 = 3, but 1025 // 2 == 512 already fits one tile
    assert calculate_max_level(1025, 512) == 2
    assert calculate_max_level(17, 8) == 2
    assert calculate_max_level(1026, 512) == 3


def test_max_level_rejects_non_positive() -> None:
    with pytest.raises(ValueError):
        calculate_max_level(0, 512)


@pytest.mark.parametrize("tile", [256, 500, 512])
def test_level_one_is_single_tile(tile: int) -> None:
    for cube in range(8, 6000, 88):
        levels = calculate_max_level(cube, tile)
        sizes = level_resolutions(cube, levels)
        assert tiles_per_side(sizes[-1], tile) == 1
        assert tiles_per_side(sizes[0], tile) == math.ceil(cube / tile)
        assert all(a > b for a, b in zip(sizes, sizes[1:]))


def test_generate_config_fields() -> None:
    config = json.loads(generate_config(build_descriptor(512, 3, 2048, 'jpeg', False)))
    assert config['type'] == 'multires'
    multires = config['multiRes']
    assert multires == {
        'basePath': './',
        'path': '/%l/%s/%x_%y',
        'extension': 'jpg',
        'tileResolution': 512,
        'maxLevel': 3,
        'cubeResolution': 2048,
    }


def test_generate_config_fallback_and_webp() -> None:
    config = json.loads(generate_config(build_descriptor(512, 2, 1024, 'webp', True)))
    assert config['multiRes']['extension'] == 'webp'
    assert config['multiRes']['fallbackPath'] == '/fallback/%s'


def test_generate_config_omits_fallback() -> None:
    config = json.loads(generate_config(build_descriptor(512, 2, 1024, 'jpeg', False)))
    assert 'fallbackPath' not in config['multiRes']


def test_descriptor_schema_rejects_unaligned_cube() -> None:
    payload = build_descriptor(512, 2, 1020, 'jpeg', False).to_dict()
    with pytest.raises(jsonschema.ValidationError):
        validate_descriptor(payload)
