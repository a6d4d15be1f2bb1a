"""Validated in-memory configuration for the flocking engine."""

import math
import numbers
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Optional, Tuple, Union

Range = Union[float, Tuple[float, float]]


class ConfigError(ValueError):
    """Raised when a configuration cannot start a simulation."""


class BoundaryMode(Enum):
    REFLECT = "reflect"
    WRAP = "wrap"

    @classmethod
    def parse(cls, value) -> "BoundaryMode":
        """Accept an enum member or its name; anything else is a conflict or a typo."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise ConfigError(
            f"boundary_mode must be exactly one of "
            f"{[m.value for m in cls]}, got {value!r}"
        )


def is_number(value) -> bool:
    return (
        isinstance(value, numbers.Real)
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def is_integer(value) -> bool:
    """Python or numpy integer, but not bool."""
    return isinstance(value, numbers.Integral) and not isinstance(value, bool)


def range_bounds(name: str, value: Range) -> Tuple[float, float]:
    """Normalize a scalar or (low, high) pair to a (low, high) tuple."""
    if is_number(value):
        return float(value), float(value)
    if isinstance(value, (tuple, list)) and len(value) == 2:
        low, high = value
        if is_number(low) and is_number(high):
            if low > high:
                raise ConfigError(f"{name}: range low {low} exceeds high {high}")
            return float(low), float(high)
    raise ConfigError(f"{name} must be a finite number or a (low, high) pair, got {value!r}")


@dataclass
class ForceWeights:
    """Multipliers applied to each unit steering force before blending."""
    separation: Range = 1.0
    alignment: Range = 1.0
    cohesion: Range = 1.0

    def ranges(self) -> Tuple[Tuple[float, float], ...]:
        return (
            range_bounds("force_weights.separation", self.separation),
            range_bounds("force_weights.alignment", self.alignment),
            range_bounds("force_weights.cohesion", self.cohesion),
        )


@dataclass
class FlockConfig:
    """
    Everything needed to spawn and step a flock.

    Per-agent parameters (vision, speed, turn rate, force weights) accept
    either a scalar shared by every agent or a (low, high) range sampled
    uniformly once per agent at spawn time.
    """
    agent_count: int = 1000
    world_bounds: float = 100.0
    vision_radius: Range = 20.0
    vision_fov_cosine: Range = 0.0
    movement_speed: Range = 5.0
    turn_rate: Range = 2.5
    boundary_mode: BoundaryMode = BoundaryMode.REFLECT
    force_weights: ForceWeights = field(default_factory=ForceWeights)
    boundary_margin_fraction: float = 0.5
    boundary_weight: float = 2.0
    batch_size: int = 64
    num_threads: Optional[int] = None
    seed: Optional[int] = None

    def validate(self) -> "FlockConfig":
        """Check every field; returns self so calls can be chained."""
        if not is_integer(self.agent_count):
            raise ConfigError(f"agent_count must be an integer, got {self.agent_count!r}")
        if self.agent_count <= 0:
            raise ConfigError(f"agent_count must be > 0, got {self.agent_count}")

        if not is_number(self.world_bounds) or self.world_bounds <= 0:
            raise ConfigError(f"world_bounds must be > 0, got {self.world_bounds!r}")

        low, _ = range_bounds("vision_radius", self.vision_radius)
        if low <= 0:
            raise ConfigError(f"vision_radius must be > 0, got {self.vision_radius!r}")

        low, high = range_bounds("vision_fov_cosine", self.vision_fov_cosine)
        if low < -1.0 or high > 1.0:
            raise ConfigError(f"vision_fov_cosine must lie in [-1, 1], got {self.vision_fov_cosine!r}")

        low, _ = range_bounds("movement_speed", self.movement_speed)
        if low < 0:
            raise ConfigError(f"movement_speed must be >= 0, got {self.movement_speed!r}")

        low, _ = range_bounds("turn_rate", self.turn_rate)
        if low <= 0:
            raise ConfigError(f"turn_rate must be > 0, got {self.turn_rate!r}")

        self.boundary_mode = BoundaryMode.parse(self.boundary_mode)

        if isinstance(self.force_weights, dict):
            self.force_weights = _weights_from_dict(self.force_weights)
        if not isinstance(self.force_weights, ForceWeights):
            raise ConfigError(f"force_weights must be a mapping, got {self.force_weights!r}")
        self.force_weights.ranges()

        if not is_number(self.boundary_margin_fraction) or not 0.0 < self.boundary_margin_fraction < 1.0:
            raise ConfigError(
                f"boundary_margin_fraction must lie in (0, 1), got {self.boundary_margin_fraction!r}"
            )
        if not is_number(self.boundary_weight) or self.boundary_weight < 0:
            raise ConfigError(f"boundary_weight must be >= 0, got {self.boundary_weight!r}")

        if not is_integer(self.batch_size) or self.batch_size <= 0:
            raise ConfigError(f"batch_size must be a positive integer, got {self.batch_size!r}")
        if self.num_threads is not None and (
            not is_integer(self.num_threads) or self.num_threads <= 0
        ):
            raise ConfigError(f"num_threads must be a positive integer or None, got {self.num_threads!r}")
        if self.seed is not None and not is_integer(self.seed):
            raise ConfigError(f"seed must be an integer or None, got {self.seed!r}")

        return self

    def with_overrides(self, **overrides) -> "FlockConfig":
        return replace(self, **overrides).validate()

    @classmethod
    def from_dict(cls, values: dict) -> "FlockConfig":
        """Build from a plain dict such as ``config.boids.BOIDS``."""
        known = {f.name for f in fields(cls)}
        unknown = set(values) - known
        if unknown:
            raise ConfigError(f"Unknown configuration keys: {sorted(unknown)}")

        kwargs = dict(values)
        if isinstance(kwargs.get("force_weights"), dict):
            kwargs["force_weights"] = _weights_from_dict(kwargs["force_weights"])
        if "boundary_mode" in kwargs:
            kwargs["boundary_mode"] = BoundaryMode.parse(kwargs["boundary_mode"])
        return cls(**kwargs).validate()


def _weights_from_dict(values: dict) -> ForceWeights:
    known = {f.name for f in fields(ForceWeights)}
    unknown = set(values) - known
    if unknown:
        raise ConfigError(f"Unknown force weight keys: {sorted(unknown)}")
    return ForceWeights(**values)


def load_default_config(**overrides) -> FlockConfig:
    """Defaults from ``config/boids.py`` with keyword overrides applied."""
    from config import boids as defaults

    values = dict(defaults.BOIDS)
    values["force_weights"] = dict(values["force_weights"])
    values.update(overrides)
    return FlockConfig.from_dict(values)
