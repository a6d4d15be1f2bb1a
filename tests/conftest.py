import sys
from pathlib import Path

import numpy as np
import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from boids.store import AgentStore  # noqa: E402


def build_store(positions, headings, vision_radius=5.0, vision_cos=-1.0, speed=1.0, turn_rate=2.0):
    """Hand-placed flock with shared parameters."""
    store = AgentStore(len(positions))
    store.speeds[:] = speed
    store.vision_radius[:] = vision_radius
    store.vision_cos[:] = vision_cos
    store.turn_rates[:] = turn_rate
    for i, (position, heading) in enumerate(zip(positions, headings)):
        store.place(i, position=position, heading=heading)
    return store


@pytest.fixture
def make_store():
    return build_store


@pytest.fixture
def rng():
    return np.random.default_rng(1234)
