"""
3D Boids Simulation (headless)
==============================

Runs the flocking engine without a window and prints flock statistics.

Usage:
    python main.py                          # Defaults from config/boids.py
    python main.py --count 5000 --mode wrap # Bigger flock, toroidal world
    python main.py --ticks 1200 --dt 0.01 --seed 42
"""

import argparse
import math
import sys
import time

from boids import ConfigError, Flock, load_default_config
from config import boids as config


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Headless 3D boids simulation")
    parser.add_argument("--count", type=int, help="Number of boids")
    parser.add_argument("--bounds", type=float, help="World half-width")
    parser.add_argument("--mode", choices=["reflect", "wrap"], help="Boundary policy")
    parser.add_argument("--seed", type=int, help="Random seed for spawning")
    parser.add_argument("--threads", type=int, help="Numba worker threads")
    parser.add_argument("--ticks", type=int, default=config.RUNNER["ticks"], help="Ticks to simulate")
    parser.add_argument("--dt", type=float, default=config.RUNNER["delta_time"], help="Seconds per tick")
    parser.add_argument("--report-every", type=int, default=config.RUNNER["report_every"],
                        help="Print stats every N ticks")
    return parser.parse_args(argv)


def build_config(args):
    overrides = {}
    if args.count is not None:
        overrides["agent_count"] = args.count
    if args.bounds is not None:
        overrides["world_bounds"] = args.bounds
    if args.mode is not None:
        overrides["boundary_mode"] = args.mode
    if args.seed is not None:
        overrides["seed"] = args.seed
    if args.threads is not None:
        overrides["num_threads"] = args.threads
    return load_default_config(**overrides)


def main(argv=None):
    args = parse_args(argv)

    try:
        flock_config = build_config(args)
    except ConfigError as e:
        print(f"[Flock] Invalid configuration: {e}")
        return 2

    if not math.isfinite(args.dt) or args.dt < 0:
        print(f"[Flock] Invalid time step: --dt must be finite and >= 0, got {args.dt}")
        return 2

    flock = Flock(flock_config)
    report_every = max(1, args.report_every)

    start = time.perf_counter()
    window_start = start
    for tick in range(1, args.ticks + 1):
        flock.update(args.dt)

        if tick % report_every == 0 or tick == args.ticks:
            now = time.perf_counter()
            rate = report_every / max(now - window_start, 1e-9)
            window_start = now
            stats = flock.stats()
            print(
                f"[Flock] tick {tick:>6}  |  {rate:7.1f} ticks/s  |  "
                f"polarization {stats['polarization']:.3f}  |  "
                f"max radius {stats['max_radius']:.1f}"
            )

    elapsed = time.perf_counter() - start
    print(f"[Flock] {args.ticks} ticks in {elapsed:.2f}s ({args.ticks / max(elapsed, 1e-9):.1f} ticks/s)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
