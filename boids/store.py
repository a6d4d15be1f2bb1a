"""Structure-of-arrays agent storage and initial spawning."""

from typing import Optional

import numpy as np

from .boid import Boid
from .integrator import orient_headings
from .settings import FlockConfig, range_bounds


class AgentStore:
    """
    Per-boid state, one row per agent.

    Every array is float64 and C-contiguous so it can be handed straight to
    the Numba kernels. The force arrays hold the unit steering vectors from
    the most recent force pass and are reused by the next tick when a fresh
    force is degenerate.
    """

    def __init__(self, num_boids: int):
        self.num_boids = int(num_boids)

        # Kinematic state
        self.positions = np.zeros((num_boids, 3), dtype=np.float64)
        self.headings = np.zeros((num_boids, 3), dtype=np.float64)
        self.headings[:, 2] = 1.0
        self.orientations = np.zeros((num_boids, 4), dtype=np.float64)
        self.orientations[:, 3] = 1.0

        # Per-agent perception and motion parameters
        self.speeds = np.zeros(num_boids, dtype=np.float64)
        self.vision_radius = np.ones(num_boids, dtype=np.float64)
        self.vision_cos = np.zeros(num_boids, dtype=np.float64)
        self.turn_rates = np.ones(num_boids, dtype=np.float64)
        self.weights = np.ones((num_boids, 3), dtype=np.float64)

        # Force accumulators
        self.separation = np.zeros((num_boids, 3), dtype=np.float64)
        self.alignment = np.zeros((num_boids, 3), dtype=np.float64)
        self.cohesion = np.zeros((num_boids, 3), dtype=np.float64)
        self.boundary = np.zeros((num_boids, 3), dtype=np.float64)

    def __len__(self) -> int:
        return self.num_boids

    def reset_forces(self):
        """Zero every force accumulator."""
        self.separation.fill(0)
        self.alignment.fill(0)
        self.cohesion.fill(0)
        self.boundary.fill(0)

    def place(self, index: int, position=None, heading=None):
        """Move one agent and/or point it somewhere new, keeping orientation in sync."""
        if position is not None:
            self.positions[index] = np.asarray(position, dtype=np.float64)

        if heading is not None:
            heading = np.asarray(heading, dtype=np.float64)
            mag = np.linalg.norm(heading)
            if not np.isfinite(mag) or mag < 1e-12:
                raise ValueError(f"heading must be a non-zero finite vector, got {heading}")
            self.headings[index] = heading / mag
            orient_headings(
                self.headings[index:index + 1],
                self.orientations[index:index + 1],
                1
            )

    def boid(self, index: int) -> Boid:
        """Snapshot one agent as a read-only Boid record."""
        return Boid(
            index=index,
            position=self.positions[index].copy(),
            heading=self.headings[index].copy(),
            orientation=self.orientations[index].copy(),
            speed=float(self.speeds[index]),
            vision_radius=float(self.vision_radius[index]),
            vision_cos=float(self.vision_cos[index]),
            weights=tuple(float(w) for w in self.weights[index]),
        )

    def __iter__(self):
        for i in range(self.num_boids):
            yield self.boid(i)


def _sample(rng: np.random.Generator, name: str, value, count: int) -> np.ndarray:
    """Constant array for a scalar, uniform draws for a (low, high) range."""
    low, high = range_bounds(name, value)
    if low == high:
        return np.full(count, low, dtype=np.float64)
    return rng.uniform(low, high, count)


def random_unit_vectors(rng: np.random.Generator, count: int) -> np.ndarray:
    """Directions uniformly distributed on the unit sphere."""
    vectors = rng.normal(0.0, 1.0, (count, 3))
    norms = np.linalg.norm(vectors, axis=1)

    # Redraw the (practically impossible) zero-length samples
    degenerate = norms < 1e-12
    while np.any(degenerate):
        vectors[degenerate] = rng.normal(0.0, 1.0, (int(degenerate.sum()), 3))
        norms = np.linalg.norm(vectors, axis=1)
        degenerate = norms < 1e-12

    return vectors / norms[:, None]


def spawn(config: FlockConfig, rng: Optional[np.random.Generator] = None) -> AgentStore:
    """
    Create the initial flock.

    Positions are uniform inside the world cube, headings uniform on the
    sphere, and every per-agent parameter is drawn from its configured range.
    Invalid configurations raise ConfigError before anything is allocated.
    """
    config.validate()
    if rng is None:
        rng = np.random.default_rng(config.seed)

    n = int(config.agent_count)
    bounds = float(config.world_bounds)
    store = AgentStore(n)

    store.positions[:] = rng.uniform(-bounds, bounds, (n, 3))
    store.headings[:] = random_unit_vectors(rng, n)
    orient_headings(store.headings, store.orientations, n)

    store.speeds[:] = _sample(rng, "movement_speed", config.movement_speed, n)
    store.vision_radius[:] = _sample(rng, "vision_radius", config.vision_radius, n)
    store.vision_cos[:] = _sample(rng, "vision_fov_cosine", config.vision_fov_cosine, n)
    store.turn_rates[:] = _sample(rng, "turn_rate", config.turn_rate, n)

    weights = config.force_weights
    store.weights[:, 0] = _sample(rng, "force_weights.separation", weights.separation, n)
    store.weights[:, 1] = _sample(rng, "force_weights.alignment", weights.alignment, n)
    store.weights[:, 2] = _sample(rng, "force_weights.cohesion", weights.cohesion, n)

    return store
