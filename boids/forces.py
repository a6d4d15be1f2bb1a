"""Separation, alignment, cohesion and boundary forces for every agent."""

import math
import numpy as np
from numba import njit, prange

from .boundary import reflect_force
from .perception import can_see, visible_neighbors
from .settings import BoundaryMode
from .snapshot import get_cell_coord


# Accumulated vectors shorter than this have no usable direction
FORCE_EPSILON = 1e-12


# ============================================================================
# NUMBA JIT-COMPILED FORCE PASS
# ============================================================================

@njit(parallel=True, cache=True)
def compute_flocking_forces(
    positions: np.ndarray,
    headings: np.ndarray,
    sorted_indices: np.ndarray,
    cell_starts: np.ndarray,
    cell_counts: np.ndarray,
    vision_radius: np.ndarray,
    vision_cos: np.ndarray,
    separation_forces: np.ndarray,
    alignment_forces: np.ndarray,
    cohesion_forces: np.ndarray,
    boundary_forces: np.ndarray,
    cell_size: float,
    grid_dim: int,
    offset: float,
    reflect: bool,
    bounds: float,
    margin_fraction: float,
    boundary_weight: float,
    batch_size: int,
    num_boids: int
):
    """
    Grid-accelerated flocking forces.

    Reads only the snapshot arrays (positions, headings, grid) and writes
    only row i of each force array, so batches can run in any order.
    """
    num_batches = (num_boids + batch_size - 1) // batch_size

    for b in prange(num_batches):
        start = b * batch_size
        stop = min(start + batch_size, num_boids)

        for i in range(start, stop):
            px = positions[i, 0]
            py = positions[i, 1]
            pz = positions[i, 2]
            hx = headings[i, 0]
            hy = headings[i, 1]
            hz = headings[i, 2]

            radius = vision_radius[i]
            radius_sq = radius * radius
            cos_threshold = vision_cos[i]
            cell_range = int(math.ceil(radius / cell_size))

            cx = get_cell_coord(px, cell_size, grid_dim, offset)
            cy = get_cell_coord(py, cell_size, grid_dim, offset)
            cz = get_cell_coord(pz, cell_size, grid_dim, offset)

            sep_x, sep_y, sep_z = 0.0, 0.0, 0.0
            align_x, align_y, align_z = 0.0, 0.0, 0.0
            coh_x, coh_y, coh_z = 0.0, 0.0, 0.0
            neighbor_count = 0

            for dcx in range(-cell_range, cell_range + 1):
                ncx = cx + dcx
                if ncx < 0 or ncx >= grid_dim:
                    continue

                for dcy in range(-cell_range, cell_range + 1):
                    ncy = cy + dcy
                    if ncy < 0 or ncy >= grid_dim:
                        continue

                    for dcz in range(-cell_range, cell_range + 1):
                        ncz = cz + dcz
                        if ncz < 0 or ncz >= grid_dim:
                            continue

                        cell_idx = ncx + ncy * grid_dim + ncz * grid_dim * grid_dim

                        cell_start = cell_starts[cell_idx]
                        if cell_start == -1:
                            continue

                        count = cell_counts[cell_idx]

                        for k in range(count):
                            j = sorted_indices[cell_start + k]
                            if i == j:
                                continue

                            qx = positions[j, 0]
                            qy = positions[j, 1]
                            qz = positions[j, 2]

                            if not can_see(px, py, pz, hx, hy, hz, qx, qy, qz, radius_sq, cos_threshold):
                                continue

                            # Away from the neighbor, stronger the closer it is
                            dx = px - qx
                            dy = py - qy
                            dz = pz - qz
                            dist = math.sqrt(dx * dx + dy * dy + dz * dz)
                            scale = radius / (dist * dist)
                            sep_x += dx * scale
                            sep_y += dy * scale
                            sep_z += dz * scale

                            align_x += headings[j, 0]
                            align_y += headings[j, 1]
                            align_z += headings[j, 2]

                            coh_x += qx
                            coh_y += qy
                            coh_z += qz

                            neighbor_count += 1

            if neighbor_count > 0:
                sep_mag = math.sqrt(sep_x * sep_x + sep_y * sep_y + sep_z * sep_z)
                if sep_mag > FORCE_EPSILON and math.isfinite(sep_mag):
                    separation_forces[i, 0] = sep_x / sep_mag
                    separation_forces[i, 1] = sep_y / sep_mag
                    separation_forces[i, 2] = sep_z / sep_mag

                coh_x = coh_x / neighbor_count - px
                coh_y = coh_y / neighbor_count - py
                coh_z = coh_z / neighbor_count - pz
                coh_mag = math.sqrt(coh_x * coh_x + coh_y * coh_y + coh_z * coh_z)
                if coh_mag > FORCE_EPSILON and math.isfinite(coh_mag):
                    cohesion_forces[i, 0] = coh_x / coh_mag
                    cohesion_forces[i, 1] = coh_y / coh_mag
                    cohesion_forces[i, 2] = coh_z / coh_mag

            align_mag = math.sqrt(align_x * align_x + align_y * align_y + align_z * align_z)
            if neighbor_count > 0 and align_mag > FORCE_EPSILON and math.isfinite(align_mag):
                alignment_forces[i, 0] = align_x / align_mag
                alignment_forces[i, 1] = align_y / align_mag
                alignment_forces[i, 2] = align_z / align_mag
            else:
                # Placeholder: keep flying the way we already are
                alignment_forces[i, 0] = hx
                alignment_forces[i, 1] = hy
                alignment_forces[i, 2] = hz

            if reflect:
                bx, by, bz = reflect_force(px, py, pz, bounds, margin_fraction, boundary_weight)
            else:
                bx, by, bz = 0.0, 0.0, 0.0
            boundary_forces[i, 0] = bx
            boundary_forces[i, 1] = by
            boundary_forces[i, 2] = bz


def compute_forces(snapshot, store, context):
    """Run the parallel force pass for every agent against one snapshot."""
    compute_flocking_forces(
        snapshot.positions,
        snapshot.headings,
        snapshot.sorted_indices,
        snapshot.cell_starts,
        snapshot.cell_counts,
        store.vision_radius,
        store.vision_cos,
        store.separation,
        store.alignment,
        store.cohesion,
        store.boundary,
        snapshot.cell_size,
        snapshot.grid_dim,
        snapshot.grid_offset,
        context.boundary_mode is BoundaryMode.REFLECT,
        float(context.world_bounds),
        float(context.boundary_margin_fraction),
        float(context.boundary_weight),
        int(context.batch_size),
        store.num_boids
    )


# ============================================================================
# REFERENCE EVALUATORS (one agent, brute force)
# ============================================================================

def _unit_or(vector: np.ndarray, fallback: np.ndarray) -> np.ndarray:
    mag = np.linalg.norm(vector)
    if not np.isfinite(mag) or mag <= FORCE_EPSILON:
        return fallback.copy()
    return vector / mag


def separation_force(snapshot, store, index: int) -> np.ndarray:
    """Unit vector away from visible neighbors; previous value when there are none."""
    p = snapshot.positions[index]
    radius = store.vision_radius[index]
    total = np.zeros(3)
    for j in visible_neighbors(snapshot, store, index):
        away = p - snapshot.positions[j]
        dist = np.linalg.norm(away)
        total += away / dist * (radius / dist)
    return _unit_or(total, store.separation[index])


def alignment_force(snapshot, store, index: int) -> np.ndarray:
    """Unit mean heading of visible neighbors; own heading when undefined."""
    total = np.zeros(3)
    for j in visible_neighbors(snapshot, store, index):
        total += snapshot.headings[j]
    return _unit_or(total, snapshot.headings[index])


def cohesion_force(snapshot, store, index: int) -> np.ndarray:
    """Unit vector toward the centroid of visible neighbors; previous value when undefined."""
    neighbors = list(visible_neighbors(snapshot, store, index))
    if not neighbors:
        return store.cohesion[index].copy()
    centroid = snapshot.positions[neighbors].mean(axis=0)
    return _unit_or(centroid - snapshot.positions[index], store.cohesion[index])
