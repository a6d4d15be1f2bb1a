"""Read-only per-boid view handed to host code."""

import numpy as np
from dataclasses import dataclass, field
from typing import Tuple


@dataclass(frozen=True)
class Boid:
    """
    A single boid (bird-oid object) as seen after a tick.

    Attributes:
        index: Slot in the agent store
        position: 3D position vector
        heading: Unit movement direction
        orientation: Quaternion (x, y, z, w) rotating +Z onto the heading
        speed: Distance travelled per second
        vision_radius: Maximum neighbor-detection distance
        vision_cos: Cosine field-of-view threshold
        weights: Separation, alignment and cohesion multipliers
    """
    index: int
    position: np.ndarray = field(default_factory=lambda: np.zeros(3))
    heading: np.ndarray = field(default_factory=lambda: np.array([0.0, 0.0, 1.0]))
    orientation: np.ndarray = field(default_factory=lambda: np.array([0.0, 0.0, 0.0, 1.0]))
    speed: float = 5.0
    vision_radius: float = 20.0
    vision_cos: float = 0.0
    weights: Tuple[float, float, float] = (1.0, 1.0, 1.0)

    def distance_to(self, other: "Boid") -> float:
        return float(np.linalg.norm(other.position - self.position))

    def forward(self) -> np.ndarray:
        return self.heading

    def velocity(self) -> np.ndarray:
        """Heading scaled by speed."""
        return self.heading * self.speed
