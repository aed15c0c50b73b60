"""
Feasibility predicate: can a vehicle take on one or more extra orders?

Three constraints must hold at once:

* load: the extra weight fits the remaining capacity;
* range: the trip from the vehicle's position through every stop (already
  committed orders plus the candidates, sequenced the way ``plan_route``
  sequences them) and back to the depot fits ``max_range``, and so does the
  depot-to-depot route the vehicle will actually be given;
* battery: the charge covers that trip at ``battery_rate`` percent per unit.

Nothing here mutates its arguments.
"""

from typing import Optional, Sequence

from .config import DispatchConfig, required_battery_pct
from .exceptions import RejectionReason
from .geometry import Point, path_distance
from .models import Order, Vehicle
from .routing import plan_route

__all__ = [
    "required_battery_pct",
    "trip_distance",
    "planned_trip_distance",
    "check_feasibility",
    "can_carry",
    "can_carry_group",
]

_TOLERANCE = 1e-9


def trip_distance(start: Point, stops: Sequence[Point], depot: Point) -> float:
    """Distance from ``start`` through ``stops`` in order and back to ``depot``."""
    if not stops:
        return start.distance_to(depot)
    return start.distance_to(stops[0]) + path_distance(stops) + stops[-1].distance_to(depot)


def planned_trip_distance(
    vehicle: Vehicle,
    orders: Sequence[Order],
    config: DispatchConfig,
) -> float:
    """
    Longest distance the vehicle would fly with ``orders`` added to its load.

    The stops are sequenced by ``plan_route`` over the committed orders
    followed by ``orders``. Both the trip from the vehicle's current position
    and the depot-anchored route are measured; the larger one is returned.
    """
    route = plan_route(config.depot, list(vehicle.assigned_orders) + list(orders), config.speed)
    delivery_points = route.points[1:-1]
    from_position = trip_distance(vehicle.position, delivery_points, config.depot)
    return max(from_position, route.distance)


def check_feasibility(
    vehicle: Vehicle,
    orders: Sequence[Order],
    config: Optional[DispatchConfig] = None,
) -> Optional[RejectionReason]:
    """
    Evaluate load, range and battery for adding ``orders`` to ``vehicle``.

    Returns:
        None when the orders fit, otherwise the first failing constraint.
    """
    config = config or DispatchConfig.default()
    extra_weight = sum(order.weight for order in orders)
    if vehicle.current_load + extra_weight > vehicle.capacity + _TOLERANCE:
        return RejectionReason.CAPACITY_EXCEEDED

    trip = planned_trip_distance(vehicle, orders, config)
    if trip > vehicle.max_range + _TOLERANCE:
        return RejectionReason.RANGE_EXCEEDED

    if vehicle.battery_pct < config.required_battery_pct(trip) - _TOLERANCE:
        return RejectionReason.BATTERY_INSUFFICIENT

    return None


def can_carry(vehicle: Vehicle, order: Order, config: Optional[DispatchConfig] = None) -> bool:
    """Check whether ``vehicle`` can add ``order`` to its current trip."""
    return check_feasibility(vehicle, [order], config) is None


def can_carry_group(
    vehicle: Vehicle,
    orders: Sequence[Order],
    config: Optional[DispatchConfig] = None,
) -> bool:
    """Check whether ``vehicle`` can add all of ``orders`` to its current trip."""
    return check_feasibility(vehicle, orders, config) is None
