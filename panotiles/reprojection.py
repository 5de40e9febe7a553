"""
reprojection.py — Equirectangular panorama → six perspective cube faces.

The panorama is mapped onto the inside of a sphere and photographed six times
from its centre with a 90° square camera, once per cube face.

Face orientation (camera target / up vector):
    f  front  −Z   up +Y
    r  right  +X   up +Y
    b  back   +Z   up +Y
    l  left   −X   up +Y
    u  up     +Y   up +Z
    d  down   −Y   up −Z
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, NamedTuple, Optional

import numpy as np

from panotiles.errors import ResourceLimitError
from panotiles.models import DEFAULT_MAX_TEXTURE_SIZE, CubeFace, ProgressCallback, ProgressInfo
from panotiles.raster import RasterSurface
from panotiles.render import (BasicMaterial, Mesh, PerspectiveCamera, RenderTarget,
                              Scene, SoftwareRenderer, SphereGeometry, Texture)
from panotiles.resources import ResourceTracker

LOGGER = logging.getLogger("panotiles.reprojection")

SPHERE_RADIUS = 500.0


class FaceConfig(NamedTuple):
    name: str
    target: tuple[float, float, float]
    up: tuple[float, float, float]


FACE_CONFIGS: tuple[FaceConfig, ...] = (
    FaceConfig('f', (0, 0, -1), (0, 1, 0)),
    FaceConfig('r', (1, 0, 0), (0, 1, 0)),
    FaceConfig('b', (0, 0, 1), (0, 1, 0)),
    FaceConfig('l', (-1, 0, 0), (0, 1, 0)),
    FaceConfig('u', (0, 1, 0), (0, 0, 1)),
    FaceConfig('d', (0, -1, 0), (0, 0, -1)),
)


def flip_rows(pixels: np.ndarray) -> np.ndarray:
    """Reorder framebuffer rows (bottom-to-top) so row 0 is the visual top."""
    return pixels[::-1]


class Reprojector:
    """
    Renders an equirectangular image into six cube-face rasters.

    Every renderer object created for a call is owned by a ResourceTracker and
    released before the call returns or raises. An instance serves one call at
    a time; concurrent callers need their own instances.
    """

    def __init__(self, max_texture_size: int = DEFAULT_MAX_TEXTURE_SIZE,
                 renderer_factory: Callable[..., SoftwareRenderer] = SoftwareRenderer):
        self.max_texture_size = max_texture_size
        self.renderer_factory = renderer_factory
        self.resources = ResourceTracker()
        self._busy = threading.Lock()

    def texture_limit(self) -> int:
        platform_limit = getattr(self.renderer_factory, 'max_texture_size', self.max_texture_size)
        return min(self.max_texture_size, platform_limit)

    def reproject_to_cube_faces(self, image: np.ndarray, cube_resolution: int,
                                on_progress: Optional[ProgressCallback] = None) -> list[CubeFace]:
        """
        Reproject *image* ((H, W, 3) uint8) into six square faces.

        Args:
            image:           equirectangular source pixels
            cube_resolution: edge length of each face in pixels
            on_progress:     receives one event per face plus a final 1.0 event

        Returns:
            CubeFaces in f, r, b, l, u, d order.

        Raises:
            ResourceLimitError: cube_resolution exceeds the texture limit. Raised
                before any renderer object exists.
        """
        limit = self.texture_limit()
        if cube_resolution > limit:
            raise ResourceLimitError(
                f"Cube resolution {cube_resolution} exceeds maximum texture size {limit}")

        if not self._busy.acquire(blocking=False):
            raise RuntimeError("Reprojector is already running; use one instance per call")
        try:
            return self._render_faces(image, cube_resolution, on_progress)
        finally:
            self.release()
            self._busy.release()

    def _render_faces(self, image: np.ndarray, cube_resolution: int,
                      on_progress: Optional[ProgressCallback]) -> list[CubeFace]:
        track = self.resources.register

        renderer = track(self.renderer_factory(cube_resolution, cube_resolution), 'renderer')
        renderer.set_size(cube_resolution, cube_resolution)

        # ── Build the equirectangular scene ────────────────────────────────
        texture = track(Texture(image), 'texture')
        geometry = track(SphereGeometry(SPHERE_RADIUS, inside_out=True), 'mesh')
        material = track(BasicMaterial(texture), 'material')
        scene = Scene()
        scene.add(Mesh(geometry, material))

        camera = PerspectiveCamera(90, 1, 0.1, 1000)
        target = track(RenderTarget(cube_resolution, cube_resolution), 'target')

        LOGGER.debug("Reprojecting %d×%d source to %d px faces",
                     image.shape[1], image.shape[0], cube_resolution)

        # ── Render each face ───────────────────────────────────────────────
        faces: list[CubeFace] = []
        for i, cfg in enumerate(FACE_CONFIGS):
            if on_progress is not None:
                on_progress(ProgressInfo(
                    stage='reprojection',
                    progress=i / len(FACE_CONFIGS),
                    current_face=cfg.name,
                    message=f"Rendering cube face: {cfg.name}",
                ))

            camera.up = np.asarray(cfg.up, dtype=np.float64)
            camera.look_at(cfg.target)

            renderer.render(scene, camera, target)
            pixels = renderer.readback(target)
            faces.append(CubeFace(
                name=cfg.name,
                raster=RasterSurface.from_array(flip_rows(pixels)),
                resolution=cube_resolution,
            ))
            del pixels

        if on_progress is not None:
            on_progress(ProgressInfo(
                stage='reprojection',
                progress=1.0,
                message="Cube face reprojection complete",
            ))
        return faces

    def release(self) -> None:
        """Release all tracked renderer resources."""
        self.resources.release_all()
