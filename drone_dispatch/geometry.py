"""
Planar geometry used by every other module.

All distances in the engine are Euclidean distances between ``Point``
values; this module is the single place they are computed.
"""

from dataclasses import dataclass
from typing import Iterable, Sequence, Tuple
import math

import numpy as np


@dataclass(frozen=True)
class Point:
    """Immutable 2D location with x, y coordinates."""
    x: float
    y: float

    def distance_to(self, other: "Point") -> float:
        """Calculate Euclidean distance to another point."""
        return math.hypot(self.x - other.x, self.y - other.y)

    def within(self, bounds: Tuple[float, float, float, float]) -> bool:
        """Check whether this point lies in the closed ``(min_x, max_x, min_y, max_y)`` box."""
        min_x, max_x, min_y, max_y = bounds
        return min_x <= self.x <= max_x and min_y <= self.y <= max_y

    def is_finite(self) -> bool:
        return math.isfinite(self.x) and math.isfinite(self.y)

    def lerp(self, other: "Point", fraction: float) -> "Point":
        """Point at ``fraction`` of the way from this point to ``other``."""
        return Point(
            self.x + (other.x - self.x) * fraction,
            self.y + (other.y - self.y) * fraction,
        )

    def as_tuple(self) -> Tuple[float, float]:
        return (self.x, self.y)

    def __repr__(self) -> str:
        return f"Point({self.x:.2f}, {self.y:.2f})"


def distance(a: Point, b: Point) -> float:
    """Euclidean distance between two points."""
    return a.distance_to(b)


def path_distance(points: Sequence[Point]) -> float:
    """Sum of consecutive leg lengths along ``points`` (0 for fewer than two points)."""
    return sum(points[i].distance_to(points[i + 1]) for i in range(len(points) - 1))


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up (22.5 -> 23, where ``round`` gives 22)."""
    return math.floor(value + 0.5)


def to_array(points: Iterable[Point]) -> np.ndarray:
    """Stack points into an ``(n, 2)`` float array."""
    coords = [p.as_tuple() for p in points]
    return np.asarray(coords, dtype=float).reshape(len(coords), 2)


def distance_matrix(origins: Sequence[Point], targets: Sequence[Point]) -> np.ndarray:
    """
    Pairwise distances between two point sets.

    Returns:
        Array of shape ``(len(origins), len(targets))`` where element [i][j]
        is the distance from ``origins[i]`` to ``targets[j]``.
    """
    return pairwise_distances(to_array(origins), to_array(targets))


def pairwise_distances(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Euclidean distances between the rows of two (n, 2) and (m, 2) coordinate arrays."""
    return np.linalg.norm(a[:, np.newaxis, :] - b[np.newaxis, :, :], axis=2)

