import numpy as np
from pytest import approx

from boids.flock import SimulationContext
from boids.forces import alignment_force, cohesion_force, compute_forces, separation_force
from boids.settings import BoundaryMode, FlockConfig
from boids.snapshot import take_snapshot
from boids.store import spawn


def wrap_context(bounds=100.0):
    return SimulationContext(world_bounds=bounds, boundary_mode=BoundaryMode.WRAP, batch_size=4)


def test_separation_points_away_from_neighbor(make_store):
    store = make_store(
        positions=[(0.0, 0.0, 0.0), (1.0, 0.0, 0.0)],
        headings=[(1.0, 0.0, 0.0), (1.0, 0.0, 0.0)],
        vision_radius=5.0,
        vision_cos=-1.0,
    )
    snapshot = take_snapshot(store, 100.0)

    assert separation_force(snapshot, store, 0) == approx([-1.0, 0.0, 0.0])

    compute_forces(snapshot, store, wrap_context())
    assert store.separation[0] == approx([-1.0, 0.0, 0.0])
    assert store.cohesion[0] == approx([1.0, 0.0, 0.0])
    assert store.alignment[0] == approx([1.0, 0.0, 0.0])


def test_closer_neighbors_repel_harder(make_store):
    store = make_store(
        positions=[(0.0, 0.0, 0.0), (1.0, 0.0, 0.0), (0.0, 4.0, 0.0)],
        headings=[(0.0, 0.0, 1.0)] * 3,
        vision_radius=5.0,
        vision_cos=-1.0,
    )
    snapshot = take_snapshot(store, 100.0)
    compute_forces(snapshot, store, wrap_context())

    force = store.separation[0]
    # Pushed mostly away from the near neighbor on +x
    assert force[0] < 0
    assert abs(force[0]) > abs(force[1])
    assert np.linalg.norm(force) == approx(1.0)


def test_isolated_agent_keeps_zero_forces_and_heading_placeholder(make_store):
    store = make_store(
        positions=[(0.0, 0.0, 0.0), (50.0, 50.0, 50.0)],
        headings=[(0.0, 1.0, 0.0), (1.0, 0.0, 0.0)],
        vision_radius=5.0,
    )
    snapshot = take_snapshot(store, 100.0)
    compute_forces(snapshot, store, wrap_context())

    assert store.separation[0] == approx([0.0, 0.0, 0.0])
    assert store.cohesion[0] == approx([0.0, 0.0, 0.0])
    assert store.alignment[0] == approx([0.0, 1.0, 0.0])
    assert store.boundary[0] == approx([0.0, 0.0, 0.0])


def test_forces_persist_when_neighbors_leave(make_store):
    store = make_store(
        positions=[(0.0, 0.0, 0.0), (0.0, 2.0, 0.0)],
        headings=[(1.0, 0.0, 0.0), (0.0, 0.0, 1.0)],
        vision_radius=5.0,
    )
    context = wrap_context()
    compute_forces(take_snapshot(store, 100.0), store, context)
    separation = store.separation[0].copy()
    cohesion = store.cohesion[0].copy()
    assert separation == approx([0.0, -1.0, 0.0])
    assert cohesion == approx([0.0, 1.0, 0.0])

    store.place(1, position=(80.0, 0.0, 0.0))
    compute_forces(take_snapshot(store, 100.0), store, context)

    assert store.separation[0] == approx(separation)
    assert store.cohesion[0] == approx(cohesion)
    assert store.alignment[0] == approx([1.0, 0.0, 0.0])


def test_symmetric_neighbors_fall_back_on_degenerate_sums(make_store):
    store = make_store(
        positions=[(0.0, 0.0, 0.0), (1.0, 0.0, 0.0), (-1.0, 0.0, 0.0)],
        headings=[(0.0, 0.0, 1.0), (0.0, 1.0, 0.0), (0.0, -1.0, 0.0)],
        vision_radius=5.0,
    )
    store.separation[0] = (0.0, 0.0, -1.0)
    store.cohesion[0] = (0.0, 1.0, 0.0)
    compute_forces(take_snapshot(store, 100.0), store, wrap_context())

    # Repulsion, headings and centroid all cancel out
    assert store.separation[0] == approx([0.0, 0.0, -1.0])
    assert store.cohesion[0] == approx([0.0, 1.0, 0.0])
    assert store.alignment[0] == approx([0.0, 0.0, 1.0])
    assert np.isfinite(store.separation).all()


def test_reflect_mode_adds_inward_boundary_force(make_store):
    store = make_store(
        positions=[(90.0, 0.0, 0.0), (0.0, 0.0, 0.0)],
        headings=[(1.0, 0.0, 0.0), (1.0, 0.0, 0.0)],
        vision_radius=5.0,
    )
    context = SimulationContext(
        world_bounds=100.0,
        boundary_mode=BoundaryMode.REFLECT,
        boundary_margin_fraction=0.5,
        boundary_weight=2.0,
    )
    compute_forces(take_snapshot(store, 100.0), store, context)

    assert store.boundary[0] == approx([-1.6, 0.0, 0.0])
    assert store.boundary[1] == approx([0.0, 0.0, 0.0])


def test_grid_pass_matches_brute_force_reference():
    config = FlockConfig(
        agent_count=300,
        world_bounds=25.0,
        vision_radius=(3.0, 8.0),
        vision_fov_cosine=(-1.0, 0.3),
        batch_size=16,
        seed=11,
    )
    store = spawn(config)
    snapshot = take_snapshot(store, config.world_bounds)

    expected = [
        (
            separation_force(snapshot, store, i),
            alignment_force(snapshot, store, i),
            cohesion_force(snapshot, store, i),
        )
        for i in range(store.num_boids)
    ]

    compute_forces(snapshot, store, SimulationContext.from_config(config))

    for i, (sep, align, coh) in enumerate(expected):
        assert store.separation[i] == approx(sep, abs=1e-9)
        assert store.alignment[i] == approx(align, abs=1e-9)
        assert store.cohesion[i] == approx(coh, abs=1e-9)


def test_agents_outside_the_world_still_find_neighbors(make_store):
    store = make_store(
        positions=[(130.0, 0.0, 0.0), (132.0, 0.0, 0.0), (0.0, 0.0, 0.0)],
        headings=[(1.0, 0.0, 0.0)] * 3,
        vision_radius=5.0,
    )
    compute_forces(take_snapshot(store, 100.0), store, wrap_context())
    assert store.separation[0] == approx([-1.0, 0.0, 0.0])
