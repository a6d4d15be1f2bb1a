"""Neighbor perception - who can an agent see this tick."""

import math
from typing import Iterator

import numpy as np
from numba import njit


# Squared distance below which two agents count as coincident
EPSILON_SQ = 1e-8


@njit(cache=True)
def can_see(
    px: float, py: float, pz: float,
    hx: float, hy: float, hz: float,
    qx: float, qy: float, qz: float,
    radius_sq: float,
    cos_threshold: float
) -> bool:
    """
    True when an agent at p heading h perceives a neighbor at q.

    The neighbor must be farther than EPSILON_SQ (which also excludes the
    agent itself), within the vision radius, and inside the field of view:
    the cosine between the heading and the direction to the neighbor must
    exceed the threshold. A threshold of -1 or below sees in every direction.
    """
    dx = qx - px
    dy = qy - py
    dz = qz - pz
    dist_sq = dx * dx + dy * dy + dz * dz

    if dist_sq <= EPSILON_SQ or dist_sq > radius_sq:
        return False

    if cos_threshold <= -1.0:
        return True

    inv_dist = 1.0 / math.sqrt(dist_sq)
    dot = (hx * dx + hy * dy + hz * dz) * inv_dist
    return dot > cos_threshold


def visible_neighbors(snapshot, store, index: int) -> Iterator[int]:
    """Lazily yield the indices of every agent the given agent can see."""
    px, py, pz = snapshot.positions[index]
    hx, hy, hz = snapshot.headings[index]
    radius = float(store.vision_radius[index])
    radius_sq = radius * radius
    cos_threshold = float(store.vision_cos[index])

    for j in range(snapshot.num_boids):
        if j == index:
            continue
        qx, qy, qz = snapshot.positions[j]
        if can_see(px, py, pz, hx, hy, hz, qx, qy, qz, radius_sq, cos_threshold):
            yield j


def neighbor_mask(snapshot, store, index: int) -> np.ndarray:
    """Vectorized form of the perception predicate over the whole snapshot."""
    rel = snapshot.positions - snapshot.positions[index]
    dist_sq = np.einsum("ij,ij->i", rel, rel)
    radius = store.vision_radius[index]

    mask = (dist_sq > EPSILON_SQ) & (dist_sq <= radius * radius)
    mask[index] = False

    cos_threshold = store.vision_cos[index]
    if cos_threshold <= -1.0:
        return mask

    dist = np.sqrt(dist_sq, where=mask, out=np.ones_like(dist_sq))
    dots = (rel @ snapshot.headings[index]) / dist
    return mask & (dots > cos_threshold)
