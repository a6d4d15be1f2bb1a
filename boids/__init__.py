"""3D flocking engine."""

from .boid import Boid
from .flock import Flock, SimulationContext, advance
from .settings import BoundaryMode, ConfigError, FlockConfig, ForceWeights, load_default_config
from .snapshot import FrameSnapshot, take_snapshot
from .store import AgentStore, spawn

__all__ = [
    "AgentStore",
    "Boid",
    "BoundaryMode",
    "ConfigError",
    "Flock",
    "FlockConfig",
    "ForceWeights",
    "FrameSnapshot",
    "SimulationContext",
    "advance",
    "load_default_config",
    "spawn",
    "take_snapshot",
]
