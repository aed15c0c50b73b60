"""Configuration values shared by the dispatch engine.

The engine itself keeps no module level state. Every tunable (depot position,
battery drain, cruise speed, service area and the heuristic scoring
coefficients) is carried by a frozen ``DispatchConfig`` that callers pass in
explicitly, or take from ``DispatchConfig.default()``.

Example:
    >>> from drone_dispatch.config import DispatchConfig
    >>> from drone_dispatch.geometry import Point
    >>> config = DispatchConfig.default().with_overrides(depot=Point(5, 5))
    >>> config.depot
    Point(5.00, 5.00)
"""

from dataclasses import dataclass, field, replace
from typing import Tuple

from .geometry import Point

Bounds = Tuple[float, float, float, float]
"""Service area as ``(min_x, max_x, min_y, max_y)``, closed on every side."""

DEFAULT_DEPOT = Point(10.0, 10.0)
DEFAULT_BOUNDS: Bounds = (0.0, 20.0, 0.0, 20.0)
BATTERY_RATE = 5.0
DEFAULT_SPEED = 0.5


@dataclass(frozen=True)
class ScoringConfig:
    """Coefficients of the ad hoc scoring formulas used by the strategies.

    Attributes:
        distance_epsilon: Added to every distance denominator so that an order
            sitting on top of a vehicle does not divide by zero.
        wait_bonus_divisor: Waiting minutes per unit of efficiency bonus
            (capacity_optimization).
        wait_bonus_cap: Upper bound of the efficiency waiting bonus.
        balanced_priority_factor: Multiplier applied to the priority score in
            the balanced score.
        balanced_wait_factor: Multiplier applied to waiting minutes in the
            balanced score.
        balanced_wait_cap: Upper bound of the balanced waiting bonus.
        balanced_distance_penalty: Penalty per distance unit to the closest
            available vehicle in the balanced score.
    """

    distance_epsilon: float = 0.1
    wait_bonus_divisor: float = 30.0
    wait_bonus_cap: float = 2.0
    balanced_priority_factor: float = 100.0
    balanced_wait_factor: float = 2.0
    balanced_wait_cap: float = 50.0
    balanced_distance_penalty: float = 5.0


@dataclass(frozen=True)
class DispatchConfig:
    """Process wide configuration of the assignment and routing engine.

    Attributes:
        depot: Base every route starts and ends at.
        battery_rate: Battery percent consumed per distance unit.
        speed: Cruise speed in distance units per minute, used for ETAs.
        bounds: Service area rectangle; locations outside it are rejected.
        low_battery_pct: Below this level a vehicle should head home.
        scoring: Strategy scoring coefficients.
    """

    depot: Point = DEFAULT_DEPOT
    battery_rate: float = BATTERY_RATE
    speed: float = DEFAULT_SPEED
    bounds: Bounds = DEFAULT_BOUNDS
    low_battery_pct: float = 20.0
    scoring: ScoringConfig = field(default_factory=ScoringConfig)

    def __post_init__(self):
        min_x, max_x, min_y, max_y = self.bounds
        if min_x > max_x or min_y > max_y:
            raise ValueError(f"Invalid service bounds {self.bounds}")
        if self.speed <= 0:
            raise ValueError(f"Speed must be positive, got {self.speed}")
        if self.battery_rate < 0:
            raise ValueError(f"Battery rate must not be negative, got {self.battery_rate}")

    @classmethod
    def default(cls) -> "DispatchConfig":
        """Return the stock configuration (depot at (10, 10), 20x20 area)."""
        return cls()

    def with_overrides(self, **changes) -> "DispatchConfig":
        """Return a copy of this configuration with the given fields replaced."""
        return replace(self, **changes)

    def required_battery_pct(self, distance: float) -> float:
        """Battery percent needed to fly ``distance`` units under this configuration."""
        return required_battery_pct(distance, self.battery_rate)

    def in_bounds(self, point: Point) -> bool:
        """Check whether ``point`` lies inside the closed service area."""
        return point.within(self.bounds)


def required_battery_pct(distance: float, battery_rate: float = BATTERY_RATE) -> float:
    """Battery percent needed to fly ``distance`` units, capped at 100."""
    return min(100.0, distance * battery_rate)
