"""
Dispatch problem definition: the order/vehicle store the engine works on.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, Hashable, List, Optional
import math
import random

from .config import DispatchConfig
from .engine import DispatchEngine
from .exceptions import InvalidGeometryError, InvalidInputError
from .geometry import Point, distance_matrix
from .models import AssignmentResult, Order, OrderStatus, Priority, Vehicle, VehicleStatus
from .strategies import Strategy


def validate_order(order: Order, config: Optional[DispatchConfig] = None):
    """
    Reject malformed orders before they reach the engine.

    Raises:
        InvalidInputError: For a non-finite or non-positive weight.
        InvalidGeometryError: For a non-finite location or one outside the
            service area.
    """
    config = config or DispatchConfig.default()
    if not math.isfinite(order.weight) or order.weight <= 0:
        raise InvalidInputError(f"Order {order.order_id} has invalid weight {order.weight!r}")
    if not order.location.is_finite() or not config.in_bounds(order.location):
        raise InvalidGeometryError(f"Order {order.order_id} location {order.location} is outside {config.bounds}")


def validate_vehicle(vehicle: Vehicle, config: Optional[DispatchConfig] = None):
    """
    Reject malformed vehicles before they reach the engine.

    Raises:
        InvalidInputError: For non-positive capacity or range, a negative
            load, or a battery level outside [0, 100].
        InvalidGeometryError: For a position outside the service area.
    """
    config = config or DispatchConfig.default()
    for name in ("capacity", "max_range"):
        value = getattr(vehicle, name)
        if not math.isfinite(value) or value <= 0:
            raise InvalidInputError(f"Vehicle {vehicle.vehicle_id} has invalid {name} {value!r}")
    if not math.isfinite(vehicle.current_load) or vehicle.current_load < 0:
        raise InvalidInputError(f"Vehicle {vehicle.vehicle_id} has invalid load {vehicle.current_load!r}")
    if not 0 <= vehicle.battery_pct <= 100:
        raise InvalidInputError(f"Vehicle {vehicle.vehicle_id} has invalid battery {vehicle.battery_pct!r}")
    if not vehicle.position.is_finite() or not config.in_bounds(vehicle.position):
        raise InvalidGeometryError(f"Vehicle {vehicle.vehicle_id} position {vehicle.position} is outside {config.bounds}")


class DispatchProblem:
    """
    Holds the orders and vehicles of one dispatch area.

    This is the caller side of the engine: it validates what goes in, picks
    a strategy when asked to, and runs ``DispatchEngine.optimize`` on its
    pending orders and idle vehicles.
    """

    def __init__(
        self,
        vehicles: Optional[List[Vehicle]] = None,
        orders: Optional[List[Order]] = None,
        config: Optional[DispatchConfig] = None,
    ):
        """
        Initialize a dispatch problem.

        Args:
            vehicles: Fleet serving the area
            orders: Orders placed so far
            config: Engine configuration shared by validation and optimization
        """
        self.config = config or DispatchConfig.default()
        self.vehicles: List[Vehicle] = []
        self.orders: List[Order] = []
        for vehicle in vehicles or []:
            self.add_vehicle(vehicle)
        for order in orders or []:
            self.add_order(order)

    def add_vehicle(self, vehicle: Vehicle):
        """Add a vehicle to the problem after validating it."""
        validate_vehicle(vehicle, self.config)
        self.vehicles.append(vehicle)

    def add_order(self, order: Order):
        """Add an order to the problem after validating it."""
        validate_order(order, self.config)
        self.orders.append(order)

    def clear(self):
        """Clear all vehicles and orders."""
        self.vehicles = []
        self.orders = []

    def get_order(self, order_id: Hashable) -> Optional[Order]:
        return next((o for o in self.orders if o.order_id == order_id), None)

    def get_vehicle(self, vehicle_id: Hashable) -> Optional[Vehicle]:
        return next((v for v in self.vehicles if v.vehicle_id == vehicle_id), None)

    def pending_orders(self) -> List[Order]:
        return [o for o in self.orders if o.status is OrderStatus.PENDING]

    def idle_vehicles(self) -> List[Vehicle]:
        return [v for v in self.vehicles if v.status is VehicleStatus.IDLE]

    def nearby_orders(self, location: Point, radius: float = 2.0) -> List[Order]:
        """Pending orders within ``radius`` of ``location``."""
        return [o for o in self.pending_orders() if o.location.distance_to(location) <= radius]

    def select_strategy(self) -> Strategy:
        """
        Pick a strategy from the shape of the current workload.

        Mostly-urgent workloads go priority first, heavy volume goes to
        capacity packing, far-flung orders get clustered, anything else is
        balanced.
        """
        orders = self.pending_orders()
        vehicles = self.idle_vehicles()
        if not orders or not vehicles:
            return Strategy.BALANCED_OPTIMIZATION

        high = sum(1 for o in orders if o.priority is Priority.HIGH)
        average_distance = sum(o.location.distance_to(self.config.depot) for o in orders) / len(orders)

        if high > len(orders) * 0.5:
            return Strategy.PRIORITY_FIRST
        if len(orders) > len(vehicles) * 3:
            return Strategy.CAPACITY_OPTIMIZATION
        if average_distance > 10:
            return Strategy.DISTANCE_OPTIMIZATION
        return Strategy.BALANCED_OPTIMIZATION

    def dispatch(
        self,
        strategy: Optional[Strategy] = None,
        max_distance: Optional[float] = None,
        seed: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> AssignmentResult:
        """Run the engine on the pending orders and idle vehicles of this problem."""
        engine = DispatchEngine(self.config, seed)
        return engine.optimize(
            self.pending_orders(),
            self.idle_vehicles(),
            strategy or self.select_strategy(),
            max_distance=max_distance,
            now=now,
        )

    def get_distance_matrix(self) -> List[List[float]]:
        """
        Distance from every vehicle to every order.

        Returns:
            2D list where element [i][j] is distance from vehicle i to order j
        """
        if not self.vehicles or not self.orders:
            return [[] for _ in self.vehicles]
        return distance_matrix(
            [v.position for v in self.vehicles],
            [o.location for o in self.orders],
        ).tolist()

    def order_statistics(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        delivery_times = [t for t in (o.delivery_time() for o in self.orders) if t is not None]
        by_status = {status.value: 0 for status in OrderStatus}
        for order in self.orders:
            by_status[order.status.value] += 1
        return {
            "total": len(self.orders),
            **by_status,
            "high_priority": sum(1 for o in self.orders if o.priority is Priority.HIGH),
            "overdue": sum(1 for o in self.pending_orders() if o.is_overdue(now)),
            "average_delivery_time": (sum(delivery_times) / len(delivery_times)) if delivery_times else 0,
        }

    def fleet_statistics(self) -> Dict[str, Any]:
        if not self.vehicles:
            return {"total": 0, "idle": 0, "busy": 0, "average_battery": 0,
                    "total_deliveries": 0, "total_distance": 0.0}
        return {
            "total": len(self.vehicles),
            "idle": len(self.idle_vehicles()),
            "busy": len(self.vehicles) - len(self.idle_vehicles()),
            "average_battery": sum(v.battery_pct for v in self.vehicles) / len(self.vehicles),
            "total_deliveries": sum(v.deliveries_count for v in self.vehicles),
            "total_distance": sum(v.total_distance_traveled for v in self.vehicles),
        }

    @staticmethod
    def generate_random_problem(
        num_vehicles: int,
        num_orders: int,
        capacity: float = 5.0,
        max_range: float = 15.0,
        max_weight: float = 3.0,
        config: Optional[DispatchConfig] = None,
        seed: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> 'DispatchProblem':
        """
        Generate a random dispatch problem.

        Vehicles start at the depot; orders are spread uniformly over the
        service area with random weight, priority and age (up to an hour).

        Args:
            num_vehicles: Number of vehicles to create
            num_orders: Number of orders to create
            capacity: Capacity of every vehicle
            max_range: Range of every vehicle
            max_weight: Upper bound for order weights
            config: Configuration giving depot and service area
            seed: Random seed for reproducibility
            now: Reference time for order creation stamps

        Returns:
            DispatchProblem with randomly generated vehicles and orders
        """
        config = config or DispatchConfig.default()
        rand = random.Random(seed)
        now = now or datetime.now()
        min_x, max_x, min_y, max_y = config.bounds

        vehicles = [
            Vehicle(vehicle_id=i, capacity=capacity, max_range=max_range, position=config.depot)
            for i in range(num_vehicles)
        ]
        orders = [
            Order(
                order_id=i,
                location=Point(round(rand.uniform(min_x, max_x), 2), round(rand.uniform(min_y, max_y), 2)),
                weight=round(rand.uniform(0.1, max_weight), 2),
                priority=rand.choice(list(Priority)),
                created_at=now - timedelta(minutes=rand.randint(0, 60)),
            )
            for i in range(num_orders)
        ]
        return DispatchProblem(vehicles=vehicles, orders=orders, config=config)

    def __repr__(self) -> str:
        return f"DispatchProblem(vehicles={len(self.vehicles)}, orders={len(self.orders)})"
