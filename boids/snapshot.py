"""Immutable per-tick snapshot of the flock plus its spatial grid."""

import math
import numpy as np
from numba import njit, prange


# Upper bound on grid cells per axis; cells grow instead when vision is tiny
MAX_GRID_DIM = 64


# ============================================================================
# NUMBA JIT-COMPILED SPATIAL GRID FUNCTIONS
# ============================================================================

@njit(cache=True)
def get_cell_coord(x: float, cell_size: float, grid_dim: int, offset: float) -> int:
    """Convert one position component to a clamped cell coordinate."""
    c = int(math.floor((x + offset) / cell_size))
    return max(0, min(c, grid_dim - 1))


@njit(cache=True)
def get_cell_index(x: float, y: float, z: float, cell_size: float, grid_dim: int, offset: float) -> int:
    """Convert 3D position to 1D cell index."""
    cx = get_cell_coord(x, cell_size, grid_dim, offset)
    cy = get_cell_coord(y, cell_size, grid_dim, offset)
    cz = get_cell_coord(z, cell_size, grid_dim, offset)
    return cx + cy * grid_dim + cz * grid_dim * grid_dim


@njit(parallel=True, cache=True)
def assign_cells(
    positions: np.ndarray,
    cell_indices: np.ndarray,
    cell_size: float,
    grid_dim: int,
    offset: float,
    num_boids: int
):
    """Assign each boid to a cell."""
    for i in prange(num_boids):
        cell_indices[i] = get_cell_index(
            positions[i, 0], positions[i, 1], positions[i, 2],
            cell_size, grid_dim, offset
        )


@njit(cache=True)
def build_cell_lists(
    cell_indices: np.ndarray,
    sorted_indices: np.ndarray,
    cell_starts: np.ndarray,
    cell_counts: np.ndarray,
    num_boids: int,
    num_cells: int
):
    """Build cell start indices and counts after sorting."""
    for i in range(num_cells):
        cell_starts[i] = -1
        cell_counts[i] = 0

    for i in range(num_boids):
        cell = cell_indices[sorted_indices[i]]
        if cell_starts[cell] == -1:
            cell_starts[cell] = i
        cell_counts[cell] += 1


# ============================================================================
# SNAPSHOT
# ============================================================================

def _frozen(array: np.ndarray) -> np.ndarray:
    array.flags.writeable = False
    return array


class FrameSnapshot:
    """
    Read-only copy of every agent's position and heading for one tick.

    Indices match the agent store. The grid is derived from the copied
    positions, so it stays consistent with them even while the store is
    being integrated.
    """

    def __init__(self, positions: np.ndarray, headings: np.ndarray, max_vision: float, bounds: float):
        self.num_boids = len(positions)
        self.positions = _frozen(np.ascontiguousarray(positions, dtype=np.float64).copy())
        self.headings = _frozen(np.ascontiguousarray(headings, dtype=np.float64).copy())

        # Spatial grid parameters
        self.cell_size = float(max(max_vision, 2.0 * bounds / MAX_GRID_DIM))
        self.grid_dim = int(np.ceil(bounds * 2 / self.cell_size)) + 2
        self.num_cells = self.grid_dim ** 3
        self.grid_offset = float(bounds + self.cell_size)

        cell_indices = np.zeros(self.num_boids, dtype=np.int32)
        sorted_indices = np.zeros(self.num_boids, dtype=np.int32)
        cell_starts = np.zeros(self.num_cells, dtype=np.int32)
        cell_counts = np.zeros(self.num_cells, dtype=np.int32)

        assign_cells(
            self.positions, cell_indices,
            self.cell_size, self.grid_dim, self.grid_offset,
            self.num_boids
        )

        # Stable sort keeps agents in store order inside each cell
        sorted_indices[:] = np.argsort(cell_indices, kind="stable")

        build_cell_lists(
            cell_indices, sorted_indices,
            cell_starts, cell_counts,
            self.num_boids, self.num_cells
        )

        self.cell_indices = _frozen(cell_indices)
        self.sorted_indices = _frozen(sorted_indices)
        self.cell_starts = _frozen(cell_starts)
        self.cell_counts = _frozen(cell_counts)

    def __len__(self) -> int:
        return self.num_boids

    def __getitem__(self, index: int):
        """(position, heading) pair for one agent."""
        return self.positions[index], self.headings[index]


def take_snapshot(store, bounds: float) -> FrameSnapshot:
    """Capture the store after the previous tick's writes have finished."""
    return FrameSnapshot(
        store.positions,
        store.headings,
        float(store.vision_radius.max()),
        float(bounds),
    )
