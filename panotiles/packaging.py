"""Package tiles and config.json as a ZIP archive, a list, a stream or a directory."""

from __future__ import annotations

import io
import zipfile
from pathlib import Path
from typing import Callable, Iterator, Optional

from panotiles.config import CONFIG_FILENAME
from panotiles.models import ConfigPayload, RawResult, ResultMetadata, StreamItem, StreamResult, Tile


def build_zip(tiles: list[Tile], config_json: str,
              on_progress: Optional[Callable[[float], None]] = None) -> bytes:
    """
    Bundle config.json and every tile into a ZIP archive.

    Tiles are already compressed, so entries are stored without deflate.
    """
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, 'w', compression=zipfile.ZIP_STORED) as archive:
        archive.writestr(CONFIG_FILENAME, config_json)
        total = len(tiles)
        for i, tile in enumerate(tiles, start=1):
            archive.writestr(tile.path, tile.data)
            if on_progress is not None:
                on_progress(i / total)
    return buffer.getvalue()


def build_raw(tiles: list[Tile], config_json: str, metadata: ResultMetadata) -> RawResult:
    return RawResult(config=ConfigPayload(config_json), tiles=tiles, metadata=metadata)


def iter_stream(tiles: list[Tile], config_json: str) -> Iterator[StreamItem]:
    """Yield config.json first, then every tile in order."""
    yield StreamItem(type='config', path=CONFIG_FILENAME, data=config_json.encode('utf-8'))
    for tile in tiles:
        yield StreamItem(type='tile', path=tile.path, data=tile.data, level=tile.level,
                         face=tile.face, column=tile.column, row=tile.row)


def build_stream(tiles: list[Tile], config_json: str, metadata: ResultMetadata) -> StreamResult:
    return StreamResult(config=ConfigPayload(config_json),
                        tiles=iter_stream(tiles, config_json), metadata=metadata)


def write_tiles(out_dir: Path, items: Iterator[StreamItem]) -> int:
    """Write streamed items below *out_dir*; returns the number of files written."""
    written = 0
    for item in items:
        target = out_dir / item.path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(item.data)
        written += 1
    return written
