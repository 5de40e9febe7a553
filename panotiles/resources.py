"""Ownership and deterministic release of rendering-backend resources."""

from __future__ import annotations

import gc
import logging
import time
from typing import Any, TypeVar

LOGGER = logging.getLogger("panotiles.resources")

T = TypeVar("T")

# Release order
CATEGORIES = ('texture', 'mesh', 'material', 'target')


def _safe_call(resource: Any, method: str, *args: Any) -> None:
    try:
        getattr(resource, method)(*args)
    except Exception:
        LOGGER.debug("Ignoring failure in %s.%s()", type(resource).__name__, method,
                     exc_info=True)


class ResourceTracker:
    """
    Tracks renderer objects so they can all be released in one call.

    Usage:
        tracker = ResourceTracker()
        texture = tracker.register(Texture(pixels), 'texture')
        ...
        tracker.release_all()

    Categories are released in a fixed order: textures, meshes, materials,
    render targets, then the renderer itself (disposed, context lost and its
    surface shrunk to 1×1). Release never raises and may be called any number
    of times.
    """

    def __init__(self) -> None:
        self._tracked: dict[str, dict[Any, None]] = {c: {} for c in CATEGORIES}
        self._renderer: Any = None

    def register(self, resource: T, category: str) -> T:
        """Record *resource* under *category* and return it unchanged."""
        if category == 'renderer':
            self._renderer = resource
        elif category in self._tracked:
            self._tracked[category][resource] = None
        else:
            raise ValueError(f"Unknown resource category: {category!r}")
        return resource

    def tracked(self, category: str) -> list[Any]:
        if category == 'renderer':
            return [] if self._renderer is None else [self._renderer]
        return list(self._tracked[category])

    def __len__(self) -> int:
        return (sum(len(v) for v in self._tracked.values())
                + (self._renderer is not None))

    def release_all(self) -> None:
        for category in CATEGORIES:
            resources = self._tracked[category]
            for resource in resources:
                _safe_call(resource, 'dispose')
            resources.clear()

        renderer, self._renderer = self._renderer, None
        if renderer is not None:
            _safe_call(renderer, 'dispose')
            _safe_call(renderer, 'force_context_loss')
            _safe_call(renderer, 'set_size', 1, 1)
            LOGGER.debug("Renderer released")

    @staticmethod
    def yield_to_gc() -> None:
        """Give other threads a turn and collect unreachable buffers."""
        time.sleep(0)
        gc.collect()
