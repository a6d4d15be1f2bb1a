import numpy as np
from pytest import approx

from boids.boundary import apply_boundary, reflect_force, wrap_positions
from boids.flock import SimulationContext, advance
from boids.settings import BoundaryMode

BOUNDS = 50.0


def test_wrap_teleports_each_axis_independently():
    positions = np.array([
        [BOUNDS + 1.0, 3.0, -BOUNDS - 2.0],
        [BOUNDS, -BOUNDS, 0.0],
        [-BOUNDS - 0.5, BOUNDS + 0.5, 10.0],
    ])
    wrap_positions(positions, BOUNDS, 2, 3)

    assert positions[0].tolist() == [-BOUNDS, 3.0, BOUNDS]
    # Exactly on the bound is still inside
    assert positions[1].tolist() == [BOUNDS, -BOUNDS, 0.0]
    assert positions[2].tolist() == [BOUNDS, -BOUNDS, 10.0]


def test_reflect_force_zero_inside_soft_boundary():
    assert reflect_force(10.0, 0.0, 0.0, BOUNDS, 0.5, 2.0) == (0.0, 0.0, 0.0)
    assert reflect_force(0.0, 0.0, 0.0, BOUNDS, 0.5, 2.0) == (0.0, 0.0, 0.0)


def test_reflect_force_points_inward_and_grows():
    near = np.array(reflect_force(0.0, 30.0, 0.0, BOUNDS, 0.5, 2.0))
    far = np.array(reflect_force(0.0, 60.0, 0.0, BOUNDS, 0.5, 2.0))
    assert near == approx([0.0, -0.4, 0.0])
    assert far == approx([0.0, -2.8, 0.0])


def test_reflect_mode_never_moves_positions(make_store):
    store = make_store(positions=[(BOUNDS + 5.0, 0.0, 0.0)], headings=[(1.0, 0.0, 0.0)])
    context = SimulationContext(world_bounds=BOUNDS, boundary_mode=BoundaryMode.REFLECT)
    apply_boundary(store, context)
    assert store.positions[0].tolist() == [BOUNDS + 5.0, 0.0, 0.0]


def test_advance_in_wrap_mode_teleports_past_upper_bound(make_store):
    store = make_store(
        positions=[(BOUNDS + 1.0, 0.0, 0.0)],
        headings=[(0.0, 1.0, 0.0)],
    )
    context = SimulationContext(world_bounds=BOUNDS, boundary_mode=BoundaryMode.WRAP, delta_time=0.1)
    advance(store, context)
    assert store.positions[0, 0] == -BOUNDS


def test_advance_in_wrap_mode_teleports_past_lower_bound(make_store):
    store = make_store(
        positions=[(0.0, 0.0, -BOUNDS - 1.0)],
        headings=[(1.0, 0.0, 0.0)],
    )
    context = SimulationContext(world_bounds=BOUNDS, boundary_mode=BoundaryMode.WRAP, delta_time=0.1)
    advance(store, context)
    assert store.positions[0, 2] == BOUNDS
    assert store.positions[0, 0] == approx(0.1)
