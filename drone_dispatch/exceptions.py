"""
Error taxonomy for the dispatch engine.

Only boundary problems raise. Feasibility failures inside the engine are
reported through ``RejectionReason`` values and never surface as exceptions.
"""

from enum import Enum


class DispatchError(Exception):
    """Base class for all dispatch errors."""


class InvalidInputError(DispatchError, ValueError):
    """Malformed numeric input (NaN, negative weight, ...) caught at the boundary."""


class InvalidGeometryError(InvalidInputError):
    """A location falls outside the configured service area."""


class IllegalTransitionError(DispatchError, ValueError):
    """A lifecycle transition not allowed by the state graph was requested."""


class RejectionReason(str, Enum):
    """Why an order could not be placed on a vehicle."""

    INVALID_GEOMETRY = "invalid_geometry"
    BEYOND_MAX_DISTANCE = "beyond_max_distance"
    CAPACITY_EXCEEDED = "capacity_exceeded"
    RANGE_EXCEEDED = "range_exceeded"
    BATTERY_INSUFFICIENT = "battery_insufficient"
