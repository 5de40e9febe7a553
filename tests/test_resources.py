from __future__ import annotations

import pytest

from panotiles.resources import ResourceTracker


class Recorder:
    def __init__(self, name: str, log: list[str], fail: bool = False):
        self.name = name
        self.log = log
        self.fail = fail

    def dispose(self) -> None:
        self.log.append(self.name)
        if self.fail:
            raise RuntimeError(f"{self.name} failed")


class FakeRenderer(Recorder):
    def __init__(self, log: list[str]):
        super().__init__('renderer', log)
        self.size = (4096, 4096)
        self.context_lost = False

    def force_context_loss(self) -> None:
        self.context_lost = True

    def set_size(self, width: int, height: int) -> None:
        self.size = (width, height)


def test_register_returns_resource() -> None:
    tracker = ResourceTracker()
    texture = Recorder('texture', [])
    assert tracker.register(texture, 'texture') is texture
    assert tracker.tracked('texture') == [texture]
    assert len(tracker) == 1


def test_register_rejects_unknown_category() -> None:
    with pytest.raises(ValueError, match="Unknown resource category"):
        ResourceTracker().register(object(), 'shader')


def test_release_all_order() -> None:
    log: list[str] = []
    tracker = ResourceTracker()
    renderer = tracker.register(FakeRenderer(log), 'renderer')
    tracker.register(Recorder('target', log), 'target')
    tracker.register(Recorder('material', log), 'material')
    tracker.register(Recorder('mesh', log), 'mesh')
    tracker.register(Recorder('texture', log), 'texture')

    tracker.release_all()

    assert log == ['texture', 'mesh', 'material', 'target', 'renderer']
    assert renderer.context_lost
    assert renderer.size == (1, 1)
    assert len(tracker) == 0


def test_release_all_swallows_failures() -> None:
    log: list[str] = []
    tracker = ResourceTracker()
    tracker.register(Recorder('bad', log, fail=True), 'texture')
    tracker.register(Recorder('good', log), 'texture')
    tracker.register(Recorder('material', log, fail=True), 'material')

    tracker.release_all()

    assert log == ['bad', 'good', 'material']


def test_release_all_is_idempotent() -> None:
    log: list[str] = []
    tracker = ResourceTracker()
    tracker.release_all()
    tracker.register(Recorder('texture', log), 'texture')
    tracker.release_all()
    tracker.release_all()
    assert log == ['texture']


def test_yield_to_gc() -> None:
    assert ResourceTracker.yield_to_gc() is None
