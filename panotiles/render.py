"""
render.py — CPU software renderer for the reprojection engine.

Implements just enough of a GPU-style scene graph to photograph the inside of
a textured sphere: textures, a UV sphere, an unlit material, a perspective
camera, offscreen RGBA render targets and a renderer that ray-casts them.

Coordinate system (right-handed, OpenGL convention):
    +X = right   +Y = up   cameras look down their local -Z axis

Render targets store rows bottom-to-top, like an OpenGL framebuffer, so
`readback()` returns row 0 as the *bottom* of the image.
"""

from __future__ import annotations

import math

import numpy as np

Vector = tuple[float, float, float]


# ── Resources ─────────────────────────────────────────────────────────────────

class Texture:
    """
    An (H, W, 3) uint8 image sampled with bilinear filtering.

    UV convention: u ∈ [0, 1] left→right, v ∈ [0, 1] bottom→top (flip-Y), so
    v = 1 is the first image row. u wraps horizontally, v is clamped.
    """

    def __init__(self, pixels: np.ndarray):
        if pixels.ndim != 3 or pixels.shape[2] < 3:
            raise ValueError(f"Texture needs an (H, W, 3) array, got {pixels.shape}")
        self.pixels: np.ndarray | None = pixels[:, :, :3]
        self.disposed = False

    @property
    def width(self) -> int:
        return self.pixels.shape[1]

    @property
    def height(self) -> int:
        return self.pixels.shape[0]

    def sample(self, u: np.ndarray, v: np.ndarray) -> np.ndarray:
        """Return float32 colours of shape u.shape + (3,)."""
        if self.pixels is None:
            raise RuntimeError("Texture has been disposed")
        img_np = self.pixels
        H, W = img_np.shape[:2]

        # Texel centres sit at half-integer coordinates
        px = u.astype(np.float32) * np.float32(W) - np.float32(0.5)
        py = (np.float32(1.0) - v.astype(np.float32)) * np.float32(H) - np.float32(0.5)

        x0 = np.floor(px).astype(np.int32)
        y0 = np.floor(py).astype(np.int32)
        wx = (px - x0.astype(np.float32))
        wy = (py - y0.astype(np.float32))
        del px, py

        x1 = (x0 + 1) % W          # wrap horizontally
        y1 = np.clip(y0 + 1, 0, H - 1)
        x0 = x0 % W
        y0 = np.clip(y0, 0, H - 1)

        c00 = img_np[y0, x0].astype(np.float32)
        c10 = img_np[y0, x1].astype(np.float32)
        c01 = img_np[y1, x0].astype(np.float32)
        c11 = img_np[y1, x1].astype(np.float32)
        del x0, x1, y0, y1

        wx = wx[..., np.newaxis]
        wy = wy[..., np.newaxis]
        result = (c00 * (1.0 - wx) * (1.0 - wy)
                  + c10 * wx * (1.0 - wy)
                  + c01 * (1.0 - wx) * wy
                  + c11 * wx * wy)
        del c00, c10, c01, c11, wx, wy
        return result

    def dispose(self) -> None:
        self.pixels = None
        self.disposed = True


class SphereGeometry:
    """
    Analytic UV sphere centred on the origin.

    With `inside_out=True` the X axis is mirrored and the winding inverted, so
    the texture reads correctly from a viewpoint inside the sphere; a regular
    sphere is back-face culled from inside and renders nothing.

    UV parameterisation: phi = atan2(z, x) (inside-out) or atan2(z, -x),
    theta = acos(y); u = phi / 2π, v = 1 - theta / π.
    """

    def __init__(self, radius: float = 500.0, inside_out: bool = False):
        self.radius = float(radius)
        self.inside_out = inside_out
        self.disposed = False

    def intersect(self, origin: np.ndarray, directions: np.ndarray
                  ) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        """
        Intersect unit rays with the sphere.

        Returns:
            (distance, u, v) arrays shaped like directions[..., 0]; distance is
            NaN where the ray misses or the surface is culled.
        """
        r = self.radius
        b = directions @ origin.astype(np.float32)
        c = float(origin @ origin) - r * r
        inside = c < 0.0

        disc = b * b - c
        with np.errstate(invalid='ignore'):
            root = np.sqrt(disc)
        # From inside only the far root is in front of the camera; from
        # outside the near root hits the front face.
        t = -b + root if inside else -b - root
        t = np.where(disc >= 0.0, t, np.nan).astype(np.float32)
        if inside != self.inside_out:
            t[:] = np.nan

        hit = origin.astype(np.float32) + directions * t[..., np.newaxis]
        hit /= np.float32(r)
        x, y, z = hit[..., 0], hit[..., 1], hit[..., 2]
        del hit

        if self.inside_out:
            phi = np.arctan2(z, x)
        else:
            phi = np.arctan2(z, -x)
        two_pi = np.float32(2.0 * math.pi)
        u = np.mod(phi, two_pi) / two_pi
        theta = np.arccos(np.clip(y, -1.0, 1.0))
        v = np.float32(1.0) - theta / np.float32(math.pi)
        return t, u.astype(np.float32), v.astype(np.float32)

    def dispose(self) -> None:
        self.disposed = True


class BasicMaterial:
    """Unlit material: the fragment colour is the texture colour."""

    def __init__(self, texture: Texture):
        self.map: Texture | None = texture
        self.disposed = False

    def shade(self, u: np.ndarray, v: np.ndarray) -> np.ndarray:
        if self.map is None:
            raise RuntimeError("Material has been disposed")
        return self.map.sample(u, v)

    def dispose(self) -> None:
        self.map = None
        self.disposed = True


class Mesh:
    def __init__(self, geometry: SphereGeometry, material: BasicMaterial):
        self.geometry = geometry
        self.material = material


class Scene:
    def __init__(self) -> None:
        self.children: list[Mesh] = []

    def add(self, mesh: Mesh) -> None:
        self.children.append(mesh)


# ── Camera ────────────────────────────────────────────────────────────────────

def _normalize(vec: np.ndarray) -> np.ndarray:
    length = np.linalg.norm(vec)
    return vec / length if length > 0 else vec


class PerspectiveCamera:
    """
    Pinhole camera with a vertical field of view in degrees.

    `look_at()` builds the camera basis the way a standard look-at matrix
    does: z = normalize(eye - target), x = normalize(up × z), y = z × x.
    """

    def __init__(self, fov: float = 50.0, aspect: float = 1.0,
                 near: float = 0.1, far: float = 2000.0):
        self.fov = fov
        self.aspect = aspect
        self.near = near
        self.far = far
        self.position = np.zeros(3, dtype=np.float64)
        self.up = np.array([0.0, 1.0, 0.0])
        self.rotation = np.eye(3)   # columns: camera x, y, z axes in world space

    def look_at(self, target: Vector) -> None:
        z = self.position - np.asarray(target, dtype=np.float64)
        if not z.any():
            z = np.array([0.0, 0.0, 1.0])
        z = _normalize(z)

        x = np.cross(self.up, z)
        if not x.any():
            # up is parallel to the view direction; nudge z
            if abs(self.up[2]) == 1.0:
                z = z + np.array([0.0001, 0.0, 0.0])
            else:
                z = z + np.array([0.0, 0.0, 0.0001])
            z = _normalize(z)
            x = np.cross(self.up, z)
        x = _normalize(x)
        y = np.cross(z, x)
        self.rotation = np.stack([x, y, z], axis=1)

    def ray_directions(self, width: int, height: int) -> np.ndarray:
        """
        World-space unit ray directions through every pixel centre.

        Returns:
            (height, width, 3) float32 array, row 0 at the bottom of the view.
        """
        half = math.tan(math.radians(self.fov) / 2.0)
        xs = ((np.arange(width, dtype=np.float32) + 0.5) / width * 2.0 - 1.0)
        ys = ((np.arange(height, dtype=np.float32) + 0.5) / height * 2.0 - 1.0)
        xx, yy = np.meshgrid(xs * np.float32(half * self.aspect), ys * np.float32(half))
        del xs, ys

        local = np.stack([xx, yy, np.full_like(xx, -1.0)], axis=-1)
        del xx, yy
        world = local @ self.rotation.T.astype(np.float32)
        del local
        world /= np.linalg.norm(world, axis=-1, keepdims=True)
        return world


# ── Render target & renderer ─────────────────────────────────────────────────

class RenderTarget:
    """Offscreen RGBA8 framebuffer, rows stored bottom-to-top."""

    def __init__(self, width: int, height: int):
        self.width = width
        self.height = height
        self.buffer: np.ndarray | None = np.zeros((height, width, 4), dtype=np.uint8)
        self.disposed = False

    def dispose(self) -> None:
        self.buffer = None
        self.disposed = True


class SoftwareRenderer:
    """
    Ray-casting renderer with the lifecycle of a GPU context.

    `max_texture_size` is the platform limit for textures and render targets.
    After `force_context_loss()` the renderer can no longer render.
    """

    max_texture_size = 32768

    def __init__(self, width: int = 1, height: int = 1):
        self.width = width
        self.height = height
        self.context_lost = False
        self.disposed = False
        self.render_count = 0

    def set_size(self, width: int, height: int) -> None:
        self.width = width
        self.height = height

    def render(self, scene: Scene, camera: PerspectiveCamera,
               target: RenderTarget) -> RenderTarget:
        if self.context_lost or self.disposed:
            raise RuntimeError("Renderer context has been lost")
        if target.buffer is None:
            raise RuntimeError("Render target has been disposed")

        frame = target.buffer
        frame[...] = 0
        frame[..., 3] = 255

        directions = camera.ray_directions(target.width, target.height)
        depth = np.full(directions.shape[:2], np.inf, dtype=np.float32)
        for mesh in scene.children:
            t, u, v = mesh.geometry.intersect(camera.position, directions)
            visible = (t >= camera.near) & (t <= camera.far) & (t < depth)
            if not visible.any():
                continue
            colour = mesh.material.shade(u[visible], v[visible])
            frame[visible, :3] = np.clip(colour + 0.5, 0, 255).astype(np.uint8)
            depth[visible] = t[visible]
            del t, u, v, colour, visible

        self.render_count += 1
        return target

    def readback(self, target: RenderTarget) -> np.ndarray:
        """Copy the raw RGBA pixels of *target*, bottom row first."""
        if target.buffer is None:
            raise RuntimeError("Render target has been disposed")
        return target.buffer.copy()

    def dispose(self) -> None:
        self.disposed = True

    def force_context_loss(self) -> None:
        self.context_lost = True
