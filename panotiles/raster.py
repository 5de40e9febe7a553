"""2D raster surfaces backed by Pillow: crop, scale and encode."""

from __future__ import annotations

import io

import numpy as np
from PIL import Image

from panotiles.errors import EncodingError

# Disable PIL's decompression bomb guard so large panoramas can be handled
Image.MAX_IMAGE_PIXELS = None

Rect = tuple[int, int, int, int]   # x, y, width, height

PIL_FORMATS = {'jpeg': 'JPEG', 'webp': 'WEBP'}


class RasterSurface:
    """An RGB drawing surface with a single high-quality scaled blit."""

    def __init__(self, image: Image.Image):
        self.image: Image.Image | None = image

    @classmethod
    def create(cls, width: int, height: int) -> RasterSurface:
        return cls(Image.new('RGB', (width, height)))

    @classmethod
    def from_array(cls, pixels: np.ndarray) -> RasterSurface:
        """Wrap an (H, W, 3|4) uint8 array; alpha is discarded."""
        return cls(Image.fromarray(np.ascontiguousarray(pixels[:, :, :3])))

    @property
    def width(self) -> int:
        return self._require().width

    @property
    def height(self) -> int:
        return self._require().height

    def _require(self) -> Image.Image:
        if self.image is None:
            raise RuntimeError("Raster surface has been released")
        return self.image

    def to_array(self) -> np.ndarray:
        return np.array(self._require())

    def draw_region_scaled(self, src: RasterSurface, dst_rect: Rect, src_rect: Rect) -> None:
        """
        Copy src_rect of *src* into dst_rect of this surface, resampling with
        Lanczos when the sizes differ.
        """
        sx, sy, sw, sh = src_rect
        dx, dy, dw, dh = dst_rect
        box = (sx, sy, sx + sw, sy + sh)
        source = src._require()
        if (sw, sh) == (dw, dh):
            region = source.crop(box)
        else:
            region = source.resize((dw, dh), Image.LANCZOS, box=box)
        self._require().paste(region, (dx, dy))
        region.close()

    def encode(self, image_format: str, quality: float) -> bytes:
        """
        Compress the surface to JPEG or WebP bytes.

        quality is in [0, 1] and mapped onto Pillow's 0–100 scale.
        """
        pil_format = PIL_FORMATS.get(image_format)
        if pil_format is None:
            raise EncodingError(f"Unsupported image format: {image_format!r}")
        buffer = io.BytesIO()
        try:
            self._require().save(buffer, format=pil_format, quality=int(round(quality * 100)))
        except (OSError, ValueError, KeyError) as exc:
            raise EncodingError(f"Failed to encode {image_format} tile: {exc}") from exc
        return buffer.getvalue()

    def release(self) -> None:
        if self.image is not None:
            self.image.close()
            self.image = None
