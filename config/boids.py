"""Default configuration for the 3D flocking engine."""

BOIDS = {
    "agent_count": 1000,
    "world_bounds": 100.0,         # Half-width of the world cube
    "boundary_mode": "reflect",    # "reflect" (steer inward) or "wrap" (teleport)

    # Perception - scalars or (low, high) ranges for per-agent randomization
    "vision_radius": (15.0, 25.0),
    "vision_fov_cosine": -0.2,     # -1 sees all around, 1 sees nothing

    # Motion
    "movement_speed": (4.0, 6.0),
    "turn_rate": 2.5,              # Slerp fraction per second toward target heading

    # Flocking behavior
    "force_weights": {
        "separation": 1.0,
        "alignment": 1.0,
        "cohesion": 1.0,
    },

    # Reflect boundary
    "boundary_margin_fraction": 0.5,  # Soft boundary starts at bounds * fraction
    "boundary_weight": 2.0,

    # Parallelism
    "batch_size": 64,              # Agents per parallel work item
    "num_threads": None,           # None keeps Numba's default

    "seed": None,
}

RUNNER = {
    "ticks": 600,
    "delta_time": 1.0 / 60.0,
    "report_every": 60,
}
