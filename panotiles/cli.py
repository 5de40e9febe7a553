"""
cli.py — Generate multires cube tiles from equirectangular panoramas.

Usage:
    panotiles <equirectangular.jpg> [<image2.jpg> ...]
    python -m panotiles pano.jpg --zip --format webp --fallback

Output:
    {stem}.tiles/ directory next to each input image, containing config.json
    and {level}/{face}/{x}_{y}.{ext} tiles, or {stem}.zip with --zip.

Memory note: the six cube faces are held in memory while tiling. A 25 MP
panorama (10000×5000) needs roughly 1–2 GB of RAM.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from panotiles.encoders import ENCODERS
from panotiles.errors import PanoTilesError
from panotiles.logging_utils import LogOptions, configure_logging
from panotiles.models import (DEFAULT_MAX_TEXTURE_SIZE, DEFAULT_QUALITY, DEFAULT_TILE_SIZE,
                              ProcessConfig, ProgressInfo, TilerOptions)
from panotiles.packaging import write_tiles
from panotiles.pipeline import PanoramaTiler

LOGGER = logging.getLogger("panotiles.cli")


def _progress_logger(image: str):
    last: dict[str, int] = {}

    def report(info: ProgressInfo) -> None:
        # Log each stage in 25 % steps
        step = int(info.progress * 4)
        if last.get(info.stage) == step:
            return
        last[info.stage] = step
        LOGGER.debug("%s %3d%% %s", info.stage, round(info.progress * 100), info.message or "",
                     extra={"image": image})

    return report


def process_image(img_path: Path, args: argparse.Namespace) -> bool:
    img_path = img_path.resolve()
    stem = img_path.stem
    name = img_path.name
    extra = {"image": name}

    tiler = PanoramaTiler(TilerOptions(max_texture_size=args.max_texture_size,
                                       encoder=args.encoder))
    try:
        result = tiler.process(ProcessConfig(
            source=img_path,
            output='zip' if args.zip else 'stream',
            tile_size=args.tile_size,
            quality=args.quality,
            fallback_tiles=args.fallback,
            image_format=args.format,
            on_progress=_progress_logger(name),
        ))
    finally:
        tiler.dispose()

    meta = result.metadata
    LOGGER.info("Cube face %d px, %d levels, %d tiles", meta.cube_resolution, meta.max_level,
                meta.total_tiles, extra=extra)

    if args.zip:
        out_path = img_path.with_name(f"{stem}.zip")
        out_path.write_bytes(result.data)
    else:
        out_path = img_path.with_name(f"{stem}.tiles")
        out_path.mkdir(parents=True, exist_ok=True)
        write_tiles(out_path, result.tiles)

    LOGGER.info("Done → %s", out_path, extra=extra)
    return True


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='panotiles',
        description='Generate multires cube tiles from equirectangular panoramas.',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            'Output: {stem}.tiles/ (or {stem}.zip) next to each input image.\n'
            'Tile paths: {level}/{face}/{x}_{y}.{ext}, faces f r b l u d.'
        ),
    )
    parser.add_argument('images', nargs='+', type=Path, help='Path(s) to equirectangular images')
    parser.add_argument('--tile-size', type=int, default=DEFAULT_TILE_SIZE,
                        help='Tile edge in pixels (default: %(default)s)')
    parser.add_argument('--quality', type=float, default=DEFAULT_QUALITY,
                        help='Encoder quality 0–1 (default: %(default)s)')
    parser.add_argument('--format', choices=['jpeg', 'webp'], default='jpeg',
                        help='Tile image format (default: %(default)s)')
    parser.add_argument('--fallback', action='store_true',
                        help='Also write one low-resolution fallback tile per face')
    parser.add_argument('--zip', action='store_true',
                        help='Write a single store-only ZIP archive instead of a directory')
    parser.add_argument('--encoder', choices=sorted(ENCODERS), default='thread',
                        help='Where tiles are encoded (default: %(default)s)')
    parser.add_argument('--max-texture-size', type=int, default=DEFAULT_MAX_TEXTURE_SIZE,
                        help='Largest allowed cube face edge (default: %(default)s)')
    parser.add_argument('-v', '--verbose', action='count', default=0,
                        help='Show per-stage progress')
    parser.add_argument('-q', '--quiet', action='store_true', help='Only show warnings and errors')
    parser.add_argument('--log-file', type=Path, help='Also write JSON log lines to this file')
    parser.add_argument('--json-log', action='store_true',
                        help='Write console log lines as JSON objects')
    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    configure_logging(LogOptions(verbose=args.verbose, quiet=args.quiet, log_file=args.log_file,
                                 json_console=args.json_log))

    failed = 0
    for path in args.images:
        if not path.is_file():
            LOGGER.error("File not found: %s", path)
            failed += 1
            continue
        try:
            if not process_image(path, args):
                failed += 1
        except PanoTilesError as exc:
            LOGGER.error("Failed to process %s: %s", path, exc)
            failed += 1
        except Exception:
            LOGGER.exception("Unexpected error processing %s", path)
            failed += 1

    sys.exit(1 if failed else 0)


if __name__ == '__main__':
    main()
