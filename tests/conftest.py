from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import numpy as np  # noqa: E402
import pytest  # noqa: E402

from panotiles.models import CubeFace  # noqa: E402
from tests.utils import gradient_panorama, make_faces  # noqa: E402


@pytest.fixture
def panorama() -> np.ndarray:
    return gradient_panorama()


@pytest.fixture
def faces() -> list[CubeFace]:
    return make_faces(80)
