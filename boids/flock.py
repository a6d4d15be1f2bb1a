"""Tick orchestration - snapshot, parallel force pass, integration, boundary pass."""

import math
import time
from dataclasses import dataclass, replace
from typing import Optional

import numba
import numpy as np

from .boundary import apply_boundary
from .forces import compute_forces
from .integrator import integrate
from .settings import BoundaryMode, ConfigError, FlockConfig, is_integer, is_number, load_default_config
from .snapshot import FrameSnapshot, take_snapshot
from .store import AgentStore, spawn


@dataclass(frozen=True)
class SimulationContext:
    """World parameters and time step for one call to advance()."""
    world_bounds: float
    boundary_mode: BoundaryMode
    delta_time: float = 0.0
    boundary_margin_fraction: float = 0.5
    boundary_weight: float = 2.0
    batch_size: int = 64

    def __post_init__(self):
        object.__setattr__(self, "boundary_mode", BoundaryMode.parse(self.boundary_mode))

        if not is_number(self.world_bounds) or self.world_bounds <= 0:
            raise ConfigError(f"world_bounds must be > 0, got {self.world_bounds!r}")
        if not is_number(self.boundary_margin_fraction) or not 0.0 < self.boundary_margin_fraction < 1.0:
            raise ConfigError(
                f"boundary_margin_fraction must lie in (0, 1), got {self.boundary_margin_fraction!r}"
            )
        if not is_number(self.boundary_weight) or self.boundary_weight < 0:
            raise ConfigError(f"boundary_weight must be >= 0, got {self.boundary_weight!r}")
        if not is_integer(self.batch_size) or self.batch_size <= 0:
            raise ConfigError(f"batch_size must be a positive integer, got {self.batch_size!r}")

        if not math.isfinite(self.delta_time) or self.delta_time < 0:
            raise ValueError(f"delta_time must be finite and >= 0, got {self.delta_time}")

    @classmethod
    def from_config(cls, config: FlockConfig, delta_time: float = 0.0) -> "SimulationContext":
        config.validate()
        return cls(
            world_bounds=float(config.world_bounds),
            boundary_mode=config.boundary_mode,
            delta_time=float(delta_time),
            boundary_margin_fraction=float(config.boundary_margin_fraction),
            boundary_weight=float(config.boundary_weight),
            batch_size=int(config.batch_size),
        )

    def with_delta(self, delta_time: float) -> "SimulationContext":
        return replace(self, delta_time=float(delta_time))


def advance(store: AgentStore, context: SimulationContext) -> FrameSnapshot:
    """
    Step the flock once, in place.

    The order is fixed: every force is computed against a snapshot of the
    previous tick before any agent is moved, then all agents integrate, then
    the boundary pass runs. Returns the snapshot the forces were read from.
    """
    snapshot = take_snapshot(store, context.world_bounds)
    compute_forces(snapshot, store, context)
    integrate(store, context.delta_time, context.batch_size)
    apply_boundary(store, context)
    return snapshot


# ============================================================================
# FLOCK CLASS
# ============================================================================

class Flock:
    """
    Host-facing flock: owns the agent store and the simulation context.

    Renderers and other collaborators read `positions`, `headings` and
    `orientations` after each `update(dt)`.
    """

    def __init__(self, config: Optional[FlockConfig] = None, rng: Optional[np.random.Generator] = None):
        self.config = (config if config is not None else load_default_config()).validate()

        if self.config.num_threads is not None:
            numba.set_num_threads(min(self.config.num_threads, numba.config.NUMBA_NUM_THREADS))

        self.store = spawn(self.config, rng)
        self.context = SimulationContext.from_config(self.config)
        self.tick_count = 0
        self.last_snapshot: Optional[FrameSnapshot] = None

        # Warm up Numba
        self._warmup_numba()

        print(
            f"[Flock] Spawned {self.num_boids:,} boids "
            f"(bounds ±{self.context.world_bounds:g}, {self.context.boundary_mode.value} mode, "
            f"{numba.get_num_threads()} threads)"
        )

    def _warmup_numba(self):
        """Pre-compile the per-tick kernels on a tiny throwaway flock."""
        start = time.perf_counter()
        scratch = spawn(self.config.with_overrides(agent_count=8, seed=0))
        advance(scratch, self.context.with_delta(0.016))
        print(f"[Flock] Kernels ready in {time.perf_counter() - start:.2f}s")

    @property
    def num_boids(self) -> int:
        return self.store.num_boids

    @property
    def positions(self) -> np.ndarray:
        return self.store.positions

    @property
    def headings(self) -> np.ndarray:
        return self.store.headings

    @property
    def orientations(self) -> np.ndarray:
        return self.store.orientations

    def update(self, dt: float):
        """Advance the flock by dt seconds."""
        self.last_snapshot = advance(self.store, self.context.with_delta(dt))
        self.tick_count += 1

    def stats(self) -> dict:
        """Summary numbers for status lines."""
        mean_heading = self.store.headings.mean(axis=0)
        radii = np.linalg.norm(self.store.positions, axis=1)
        return {
            "ticks": self.tick_count,
            "polarization": float(np.linalg.norm(mean_heading)),
            "mean_speed": float(self.store.speeds.mean()),
            "centroid": self.store.positions.mean(axis=0),
            "max_radius": float(radii.max()),
        }
