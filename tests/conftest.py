import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = (ROOT / "src").resolve()

if SRC not in (Path(p).resolve() for p in sys.path):
    sys.path.insert(0, str(SRC))

from visionreader.schemas.landmarks import REQUIRED_LANDMARKS, Landmark, VisionMode  # noqa: E402

def make_landmarks(mode, points=None, *, n=None, visibility=None):
    """Full landmark set at (0.5, 0.5), with selected indices moved to (x, y)."""
    count = REQUIRED_LANDMARKS[VisionMode(mode)] if n is None else n
    lms = [Landmark(x=0.5, y=0.5, z=0.0, visibility=visibility) for _ in range(count)]
    for idx, (x, y) in (points or {}).items():
        lms[idx] = Landmark(x=x, y=y, z=0.0, visibility=visibility)
    return lms

# cheeks 234/454, nose tip 1, eye corners 33/263, chin 152
CENTERED_FACE = {234: (0.3, 0.5), 454: (0.7, 0.5), 1: (0.5, 0.55), 33: (0.4, 0.4), 263: (0.6, 0.4), 152: (0.5, 0.8)}
TURNED_FACE = {**CENTERED_FACE, 1: (0.32, 0.42)}

@pytest.fixture
def landmarks():
    return make_landmarks

@pytest.fixture
def centered_face():
    return make_landmarks(VisionMode.FACE, CENTERED_FACE)

@pytest.fixture
def turned_face():
    return make_landmarks(VisionMode.FACE, TURNED_FACE)

@pytest.fixture
def air_hand():
    # palm height 0.4, palm width 0.36 (ratio 0.9), finger 0.34 (ratio 0.85)
    return make_landmarks(VisionMode.HAND, {0: (0.5, 0.9), 9: (0.5, 0.5), 5: (0.3, 0.5), 17: (0.66, 0.5), 12: (0.5, 0.16)})
