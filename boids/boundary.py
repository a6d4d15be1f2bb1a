"""World boundary policies - inward steering (reflect) or toroidal teleport (wrap)."""

import math
import numpy as np
from numba import njit, prange

from .settings import BoundaryMode


@njit(cache=True)
def reflect_force(
    x: float, y: float, z: float,
    bounds: float,
    margin_fraction: float,
    weight: float
) -> tuple:
    """
    Inward steering once an agent leaves the soft boundary sphere.

    The soft boundary has radius bounds * margin_fraction; past it the force
    points at the origin and grows linearly, reaching `weight` at the hard
    bounds and continuing to grow beyond them.
    """
    dist = math.sqrt(x * x + y * y + z * z)
    soft = bounds * margin_fraction

    if dist <= soft or dist < 1e-12:
        return 0.0, 0.0, 0.0

    strength = (dist - soft) / (bounds - soft) * weight
    return -x / dist * strength, -y / dist * strength, -z / dist * strength


@njit(parallel=True, cache=True)
def wrap_positions(positions: np.ndarray, bounds: float, batch_size: int, num_boids: int):
    """Teleport any component past +bounds to -bounds and vice versa."""
    num_batches = (num_boids + batch_size - 1) // batch_size

    for b in prange(num_batches):
        start = b * batch_size
        stop = min(start + batch_size, num_boids)

        for i in range(start, stop):
            for dim in range(3):
                p = positions[i, dim]
                if p > bounds:
                    positions[i, dim] = -bounds
                elif p < -bounds:
                    positions[i, dim] = bounds


def apply_boundary(store, context):
    """Post-integration boundary step; only wrap mode changes positions."""
    if context.boundary_mode is BoundaryMode.WRAP:
        wrap_positions(
            store.positions,
            float(context.world_bounds),
            int(context.batch_size),
            store.num_boids
        )
