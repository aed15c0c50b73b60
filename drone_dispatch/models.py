"""
Core data models for the drone dispatch engine.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Hashable, List, Optional
import math

from .config import DEFAULT_DEPOT, DispatchConfig
from .exceptions import DispatchError, InvalidInputError, RejectionReason
from .geometry import Point, path_distance, round_half_up
from .state import Action, StateMachine


class Priority(str, Enum):
    """Delivery priority of an order."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def score(self) -> int:
        """Ordinal score, 3 for HIGH down to 1 for LOW."""
        return _PRIORITY_SCORES[self]

    @property
    def route_weight(self) -> float:
        """Multiplier applied to leg length when picking the next stop (lower is preferred)."""
        return _ROUTE_WEIGHTS[self]

    @property
    def max_wait_minutes(self) -> int:
        """Minutes an order may wait before it counts as overdue."""
        return _MAX_WAIT_MINUTES[self]


_PRIORITY_SCORES = {Priority.HIGH: 3, Priority.MEDIUM: 2, Priority.LOW: 1}
_ROUTE_WEIGHTS = {Priority.HIGH: 0.7, Priority.MEDIUM: 0.85, Priority.LOW: 1.0}
_MAX_WAIT_MINUTES = {Priority.HIGH: 15, Priority.MEDIUM: 30, Priority.LOW: 60}


class OrderStatus(str, Enum):
    PENDING = "pending"
    ASSIGNED = "assigned"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class VehicleStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    IN_TRANSIT = "in_transit"
    DELIVERING = "delivering"
    RETURNING = "returning"


def _attach_vehicle(order: "Order", vehicle_id: Hashable):
    order.assigned_vehicle = vehicle_id


def _detach_vehicle(order: "Order"):
    order.assigned_vehicle = None


def _stamp_delivery(order: "Order", at: Optional[datetime] = None):
    order.delivered_at = at or datetime.now()


ORDER_GRAPH = {
    OrderStatus.PENDING: {
        Action(OrderStatus.ASSIGNED, _attach_vehicle),
        Action(OrderStatus.CANCELLED, _detach_vehicle),
    },
    OrderStatus.ASSIGNED: {
        Action(OrderStatus.DELIVERED, _stamp_delivery),
        Action(OrderStatus.CANCELLED, _detach_vehicle),
        Action(OrderStatus.PENDING, _detach_vehicle),
    },
}
"""Order lifecycle; ASSIGNED -> PENDING only happens when a planned trip is aborted."""


def _store_route(vehicle: "Vehicle", route: List["RouteStop"]):
    vehicle.route = list(route)
    position = {stop.order_id: i for i, stop in enumerate(vehicle.route) if stop.kind is StopKind.DELIVERY}
    vehicle.assigned_orders.sort(key=lambda order: position.get(order.order_id, len(vehicle.route)))


def _unload_plan(vehicle: "Vehicle"):
    for order in vehicle.assigned_orders:
        order.release()
    vehicle.assigned_orders = []
    vehicle.route = []
    vehicle.current_load = 0.0


def _hand_over(vehicle: "Vehicle", order: "Order", at: Optional[datetime] = None):
    order.mark_delivered(at)
    vehicle.deliveries_count += 1
    vehicle.current_load = max(0.0, vehicle.current_load - order.weight)
    vehicle.assigned_orders = [o for o in vehicle.assigned_orders if o is not order]


def _land(vehicle: "Vehicle", depot: Point):
    vehicle.position = depot
    vehicle.current_load = 0.0
    vehicle.assigned_orders = []
    vehicle.route = []


def _recharge(vehicle: "Vehicle"):
    vehicle.battery_pct = 100.0


VEHICLE_GRAPH = {
    VehicleStatus.IDLE: {Action(VehicleStatus.LOADING, _store_route)},
    VehicleStatus.LOADING: {Action(VehicleStatus.IN_TRANSIT), Action(VehicleStatus.IDLE, _unload_plan)},
    VehicleStatus.IN_TRANSIT: {
        Action(VehicleStatus.DELIVERING, _hand_over),
        Action(VehicleStatus.RETURNING, _land),
    },
    VehicleStatus.DELIVERING: {Action(VehicleStatus.IN_TRANSIT), Action(VehicleStatus.RETURNING, _land)},
    VehicleStatus.RETURNING: {Action(VehicleStatus.IDLE, _recharge)},
}
"""Vehicle lifecycle; each action's effect receives the vehicle followed by the transition arguments."""


class StopKind(str, Enum):
    DEPOT = "depot"
    DELIVERY = "delivery"


@dataclass(frozen=True)
class RouteStop:
    """One waypoint of a route: the depot or a delivery for ``order_id``."""
    point: Point
    kind: StopKind = StopKind.DEPOT
    order_id: Optional[Hashable] = None

    @classmethod
    def depot(cls, point: Point) -> "RouteStop":
        return cls(point=point, kind=StopKind.DEPOT)

    @classmethod
    def delivery(cls, order: "Order") -> "RouteStop":
        return cls(point=order.location, kind=StopKind.DELIVERY, order_id=order.order_id)

    def __repr__(self) -> str:
        if self.kind is StopKind.DELIVERY:
            return f"RouteStop(delivery {self.order_id} @ {self.point})"
        return f"RouteStop(depot @ {self.point})"


@dataclass(eq=False)
class Order:
    """A delivery order waiting for, or carried by, a vehicle."""
    order_id: Hashable
    location: Point
    weight: float
    priority: Priority = Priority.MEDIUM
    status: OrderStatus = OrderStatus.PENDING
    created_at: datetime = field(default_factory=datetime.now)
    assigned_vehicle: Optional[Hashable] = None
    delivered_at: Optional[datetime] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def waiting_time(self, now: Optional[datetime] = None) -> int:
        """Whole minutes elapsed since the order was created."""
        now = now or datetime.now()
        return max(0, math.floor((now - self.created_at).total_seconds() / 60))

    def is_overdue(self, now: Optional[datetime] = None) -> bool:
        """Check whether the order has waited longer than its priority allows."""
        return self.waiting_time(now) > self.priority.max_wait_minutes

    def delivery_time(self) -> Optional[int]:
        """Whole minutes from creation to delivery, or None while undelivered."""
        if self.delivered_at is None:
            return None
        return math.floor((self.delivered_at - self.created_at).total_seconds() / 60)

    def assign_to(self, vehicle_id: Hashable):
        self._transition(OrderStatus.ASSIGNED, vehicle_id)

    def release(self):
        """Return an assigned order to the pending pool."""
        self._transition(OrderStatus.PENDING)

    def mark_delivered(self, at: Optional[datetime] = None):
        self._transition(OrderStatus.DELIVERED, at)

    def cancel(self):
        self._transition(OrderStatus.CANCELLED)

    def _transition(self, next_status: OrderStatus, *args):
        StateMachine(self.status, ORDER_GRAPH).request_transition(next_status, self, *args)
        self.status = next_status

    def __repr__(self) -> str:
        return (f"Order(id={self.order_id}, loc={self.location}, weight={self.weight}, "
                f"priority={self.priority.value}, status={self.status.value})")


@dataclass(eq=False)
class Vehicle:
    """A delivery drone with its load, battery and current trip plan."""
    vehicle_id: Hashable
    capacity: float = 5.0
    max_range: float = 10.0
    current_load: float = 0.0
    battery_pct: float = 100.0
    position: Point = DEFAULT_DEPOT
    status: VehicleStatus = VehicleStatus.IDLE
    assigned_orders: List[Order] = field(default_factory=list)
    route: List[RouteStop] = field(default_factory=list)
    total_distance_traveled: float = 0.0
    deliveries_count: int = 0
    metadata: Dict[str, Any] = field(default_factory=dict)

    def available_capacity(self) -> float:
        """Return the remaining capacity of the vehicle."""
        return self.capacity - self.current_load

    @property
    def assigned_order_ids(self) -> List[Hashable]:
        return [order.order_id for order in self.assigned_orders]

    def route_distance(self) -> float:
        return path_distance([stop.point for stop in self.route])

    def assign_order(self, order: Order):
        """
        Commit ``order`` to this vehicle.

        Feasibility is the caller's job; only the capacity invariant is
        guarded here.

        Raises:
            InvalidInputError: If the order would overload the vehicle.
        """
        if self.current_load + order.weight > self.capacity + 1e-9:
            raise InvalidInputError(
                f"Order {order.order_id} ({order.weight}) exceeds remaining capacity "
                f"{self.available_capacity()} of vehicle {self.vehicle_id}"
            )
        order.assign_to(self.vehicle_id)
        self.assigned_orders.append(order)
        self.current_load += order.weight

    def load_plan(self, route: List[RouteStop]):
        """Store the planned route and move to LOADING.

        ``assigned_orders`` is reordered to match the visiting order.
        """
        self._transition(VehicleStatus.LOADING, route)

    def abort_plan(self):
        """Drop the planned trip before departure and release its orders."""
        self._transition(VehicleStatus.IDLE)

    def start_delivery(self, config: Optional[DispatchConfig] = None):
        """
        Depart on the planned route.

        Raises:
            DispatchError: If there is no route or the battery cannot cover it.
        """
        config = config or DispatchConfig.default()
        if not self.assigned_orders or len(self.route) < 2:
            raise DispatchError(f"Vehicle {self.vehicle_id} has no route to fly")
        needed = config.required_battery_pct(self.route_distance())
        if self.battery_pct < needed:
            raise DispatchError(
                f"Vehicle {self.vehicle_id} needs {needed:.1f}% battery, has {self.battery_pct:.1f}%"
            )
        self._transition(VehicleStatus.IN_TRANSIT)

    def advance_to(self, point: Point, config: Optional[DispatchConfig] = None):
        """Fly straight to ``point``, draining battery and logging the distance."""
        config = config or DispatchConfig.default()
        leg = self.position.distance_to(point)
        self.battery_pct = max(0.0, self.battery_pct - config.required_battery_pct(leg))
        self.total_distance_traveled += leg
        self.position = point

    def deliver(self, order: Order, at: Optional[datetime] = None):
        """Hand over ``order`` at the current position."""
        self._transition(VehicleStatus.DELIVERING, order, at)
        self._transition(VehicleStatus.IN_TRANSIT)

    def complete_cycle(self, depot: Point = DEFAULT_DEPOT):
        """Land at the depot, recharge and become available again."""
        self._transition(VehicleStatus.RETURNING, depot)
        self._transition(VehicleStatus.IDLE)

    def fly_route(self, config: Optional[DispatchConfig] = None, at: Optional[datetime] = None):
        """Execute the whole planned trip in one go: depart, deliver every stop, return."""
        config = config or DispatchConfig.default()
        orders_by_id = {order.order_id: order for order in self.assigned_orders}
        self.start_delivery(config)
        for stop in self.route[1:]:
            self.advance_to(stop.point, config)
            if stop.kind is StopKind.DELIVERY:
                self.deliver(orders_by_id[stop.order_id], at)
        self.complete_cycle(config.depot)

    def reset(self, depot: Point = DEFAULT_DEPOT):
        """Force the vehicle back to an idle, empty, fully charged state at ``depot``.

        Bypasses the lifecycle graph; assigned orders are left untouched.
        """
        self.current_load = 0.0
        self.battery_pct = 100.0
        self.position = depot
        self.status = VehicleStatus.IDLE
        self.assigned_orders = []
        self.route = []

    def needs_to_return(self, threshold: Optional[float] = None) -> bool:
        """Check whether the battery is below ``threshold`` (the configured low level by default)."""
        if threshold is None:
            threshold = DispatchConfig.default().low_battery_pct
        return self.battery_pct < threshold

    def efficiency(self) -> int:
        """Deliveries per hundred distance units flown."""
        if self.total_distance_traveled == 0:
            return 0
        return round_half_up(self.deliveries_count / self.total_distance_traveled * 100)

    def status_info(self) -> Dict[str, Any]:
        return {
            "id": self.vehicle_id,
            "status": self.status.value,
            "battery": round(self.battery_pct),
            "current_load": round(self.current_load, 1),
            "capacity": self.capacity,
            "position": self.position.as_tuple(),
            "assigned_orders": len(self.assigned_orders),
            "deliveries": self.deliveries_count,
            "total_distance": round(self.total_distance_traveled, 1),
            "efficiency": self.efficiency(),
        }

    def _transition(self, next_status: VehicleStatus, *args):
        StateMachine(self.status, VEHICLE_GRAPH).request_transition(next_status, self, *args)
        self.status = next_status

    def __repr__(self) -> str:
        return (f"Vehicle(id={self.vehicle_id}, pos={self.position}, "
                f"load={self.current_load}/{self.capacity}, battery={self.battery_pct:.0f}%, "
                f"status={self.status.value})")


@dataclass
class VehiclePlan:
    """Orders and route planned for a single vehicle."""
    vehicle_id: Hashable
    order_ids: List[Hashable]
    route: List[RouteStop]
    distance: float
    duration_minutes: int
    load: float = 0.0

    def __repr__(self) -> str:
        return (f"VehiclePlan(vehicle={self.vehicle_id}, orders={self.order_ids}, "
                f"dist={self.distance:.2f})")


@dataclass
class RejectedOrder:
    """An order excluded from the batch before scoring."""
    order: Order
    reason: RejectionReason


@dataclass
class AssignmentResult:
    """Contains the results of one optimization run."""
    success: bool
    message: str
    strategy_name: str
    plans: List[VehiclePlan] = field(default_factory=list)
    unassigned_orders: List[Order] = field(default_factory=list)
    rejected_orders: List[RejectedOrder] = field(default_factory=list)
    total_orders: int = 0
    computation_time: float = 0.0
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def assigned_count(self) -> int:
        return sum(len(plan.order_ids) for plan in self.plans)

    @property
    def unassigned_count(self) -> int:
        return len(self.unassigned_orders) + len(self.rejected_orders)

    @property
    def efficiency(self) -> float:
        """Fraction of the submitted orders that were assigned."""
        if self.total_orders == 0:
            return 0.0
        return self.assigned_count / self.total_orders

    @property
    def total_distance(self) -> float:
        return sum(plan.distance for plan in self.plans)

    def plan_for(self, vehicle_id: Hashable) -> Optional[VehiclePlan]:
        for plan in self.plans:
            if plan.vehicle_id == vehicle_id:
                return plan
        return None

    def get_summary(self) -> Dict[str, Any]:
        """Get a summary of the assignment result."""
        return {
            "strategy": self.strategy_name,
            "success": self.success,
            "num_vehicles_used": len(self.plans),
            "num_assigned": self.assigned_count,
            "num_unassigned": self.unassigned_count,
            "num_rejected": len(self.rejected_orders),
            "total_distance": self.total_distance,
            "efficiency": self.efficiency,
            "computation_time": self.computation_time,
            "average_distance": self.total_distance / len(self.plans) if self.plans else 0,
        }

    def __repr__(self) -> str:
        return (f"AssignmentResult(strategy={self.strategy_name}, "
                f"assigned={self.assigned_count}, "
                f"unassigned={self.unassigned_count}, "
                f"distance={self.total_distance:.2f})")
