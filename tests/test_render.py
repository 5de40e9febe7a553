from __future__ import annotations

import numpy as np
import pytest

from panotiles.render import (BasicMaterial, Mesh, PerspectiveCamera, RenderTarget, Scene,
                              SoftwareRenderer, SphereGeometry, Texture)


def _scene(pixels: np.ndarray, inside_out: bool = True) -> Scene:
    scene = Scene()
    scene.add(Mesh(SphereGeometry(500, inside_out=inside_out), BasicMaterial(Texture(pixels))))
    return scene


def test_texture_wraps_horizontally() -> None:
    pixels = np.zeros((2, 4, 3), dtype=np.uint8)
    pixels[:, 0] = 200
    pixels[:, 3] = 100
    texture = Texture(pixels)
    # u = 0 sits between the last and first column
    colour = texture.sample(np.array([0.0]), np.array([0.5]))
    assert colour[0, 0] == pytest.approx(150.0)


def test_texture_dispose() -> None:
    texture = Texture(np.zeros((2, 2, 3), dtype=np.uint8))
    texture.dispose()
    assert texture.disposed
    with pytest.raises(RuntimeError):
        texture.sample(np.array([0.5]), np.array([0.5]))


def test_look_at_up_face_basis() -> None:
    camera = PerspectiveCamera(90, 1)
    camera.up = np.array([0.0, 0.0, 1.0])
    camera.look_at((0, 1, 0))
    x, y, z = camera.rotation.T
    assert np.allclose(x, [1, 0, 0])
    assert np.allclose(y, [0, 0, 1])
    assert np.allclose(z, [0, -1, 0])


def test_ray_directions_rows_start_at_bottom() -> None:
    camera = PerspectiveCamera(90, 1)
    camera.look_at((0, 0, -1))
    rays = camera.ray_directions(4, 4)
    assert rays.shape == (4, 4, 3)
    assert rays[0, 0, 1] < 0 < rays[-1, 0, 1]
    assert np.allclose(np.linalg.norm(rays, axis=-1), 1.0, atol=1e-5)


def test_inside_out_sphere_is_visible() -> None:
    pixels = np.full((8, 16, 3), 90, dtype=np.uint8)
    renderer = SoftwareRenderer(4, 4)
    camera = PerspectiveCamera(90, 1, 0.1, 1000)
    camera.look_at((0, 0, -1))
    target = renderer.render(_scene(pixels), camera, RenderTarget(4, 4))
    out = renderer.readback(target)
    assert out.shape == (4, 4, 4)
    assert (out[..., :3] == 90).all()
    assert (out[..., 3] == 255).all()


def test_regular_sphere_is_culled_from_inside() -> None:
    pixels = np.full((8, 16, 3), 90, dtype=np.uint8)
    renderer = SoftwareRenderer(4, 4)
    camera = PerspectiveCamera(90, 1, 0.1, 1000)
    camera.look_at((0, 0, -1))
    out = renderer.readback(renderer.render(_scene(pixels, inside_out=False), camera,
                                            RenderTarget(4, 4)))
    assert (out[..., :3] == 0).all()


def test_far_plane_clips_sphere() -> None:
    pixels = np.full((8, 16, 3), 90, dtype=np.uint8)
    renderer = SoftwareRenderer(4, 4)
    camera = PerspectiveCamera(90, 1, 0.1, 100)
    camera.look_at((0, 0, -1))
    out = renderer.readback(renderer.render(_scene(pixels), camera, RenderTarget(4, 4)))
    assert (out[..., :3] == 0).all()


def test_lost_context_refuses_to_render() -> None:
    renderer = SoftwareRenderer(4, 4)
    renderer.force_context_loss()
    with pytest.raises(RuntimeError, match="context"):
        renderer.render(Scene(), PerspectiveCamera(), RenderTarget(4, 4))
