from __future__ import annotations

import io
import json
import zipfile

from panotiles.models import ResultMetadata, Tile
from panotiles.packaging import build_raw, build_stream, build_zip, write_tiles

CONFIG = json.dumps({'type': 'multires'})


def _tiles() -> list[Tile]:
    return [Tile(path=f"1/{face}/0_0.jpg", level=1, face=face, column=0, row=0,
                 data=face.encode() * 10)
            for face in 'frb']


def _metadata(tiles) -> ResultMetadata:
    return ResultMetadata(len(tiles), sum(t.size for t in tiles), 1, 8, 512, list('frblud'))


def test_zip_is_store_only_and_byte_exact() -> None:
    tiles = _tiles()
    progress = []
    data = build_zip(tiles, CONFIG, progress.append)

    with zipfile.ZipFile(io.BytesIO(data)) as archive:
        names = archive.namelist()
        assert names[0] == 'config.json'
        assert archive.read('config.json').decode() == CONFIG
        for tile in tiles:
            assert archive.read(tile.path) == tile.data
        assert all(info.compress_type == zipfile.ZIP_STORED for info in archive.infolist())
    assert progress[-1] == 1.0


def test_stream_yields_config_then_tiles() -> None:
    tiles = _tiles()
    result = build_stream(tiles, CONFIG, _metadata(tiles))
    items = list(result.tiles)
    assert len(items) == len(tiles) + 1
    assert items[0].type == 'config' and items[0].path == 'config.json'
    assert items[0].data == CONFIG.encode()
    assert [i.path for i in items[1:]] == [t.path for t in tiles]
    # generators are single-use
    assert list(result.tiles) == []


def test_raw_result() -> None:
    tiles = _tiles()
    result = build_raw(tiles, CONFIG, _metadata(tiles))
    assert result.tiles is tiles
    assert result.config.json == CONFIG
    assert result.config.data == CONFIG.encode()


def test_write_tiles(tmp_path) -> None:
    tiles = _tiles()
    count = write_tiles(tmp_path, build_stream(tiles, CONFIG, _metadata(tiles)).tiles)
    assert count == 4
    assert (tmp_path / 'config.json').read_text() == CONFIG
    assert (tmp_path / '1' / 'b' / '0_0.jpg').read_bytes() == b'b' * 10
