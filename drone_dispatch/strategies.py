"""
Assignment strategies for placing pending orders on idle vehicles.

Every strategy works in place on a ``DispatchContext``: it commits orders to
vehicles through ``Vehicle.assign_order`` and leaves everything it could not
place in the PENDING state. Routing happens afterwards, in the engine.

All four strategies are single-pass greedy heuristics without backtracking.
They are fast and predictable but do not guarantee an optimal assignment.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Type, Union
import logging

import numpy as np

from .clustering import cluster_orders
from .config import DispatchConfig, ScoringConfig
from .feasibility import can_carry, can_carry_group
from .geometry import distance_matrix
from .models import Order, OrderStatus, Vehicle, VehicleStatus

logger = logging.getLogger(__name__)


class Strategy(str, Enum):
    """Names of the available assignment strategies."""

    PRIORITY_FIRST = "priority_first"
    CAPACITY_OPTIMIZATION = "capacity_optimization"
    DISTANCE_OPTIMIZATION = "distance_optimization"
    BALANCED_OPTIMIZATION = "balanced_optimization"


@dataclass
class DispatchContext:
    """Inputs shared by a strategy run.

    Attributes:
        orders: Admitted orders, all PENDING at the start of the run.
        vehicles: Available vehicles, all IDLE.
        config: Engine configuration.
        now: Reference time for waiting-time computations.
        rng: Random source for strategies that need one (clustering).
    """
    orders: List[Order]
    vehicles: List[Vehicle]
    config: DispatchConfig = field(default_factory=DispatchConfig.default)
    now: datetime = field(default_factory=datetime.now)
    rng: np.random.Generator = field(default_factory=np.random.default_rng)
    metadata: Dict[str, object] = field(default_factory=dict)

    def pending_orders(self) -> List[Order]:
        return [order for order in self.orders if order.status is OrderStatus.PENDING]

    def idle_vehicles(self) -> List[Vehicle]:
        return [vehicle for vehicle in self.vehicles if vehicle.status is VehicleStatus.IDLE]


def assignment_score(order: Order, vehicle: Vehicle, scoring: ScoringConfig) -> float:
    """
    How good a match ``vehicle`` is for ``order``.

    Favors vehicles that end up fuller, have more battery and are closer.
    """
    utilization = (vehicle.current_load + order.weight) / vehicle.capacity
    battery_fraction = vehicle.battery_pct / 100
    gap = vehicle.position.distance_to(order.location)
    return (utilization * battery_fraction) / (gap + scoring.distance_epsilon)


def efficiency_score(order: Order, vehicle: Vehicle, now: datetime, scoring: ScoringConfig) -> float:
    """Priority plus a capped waiting bonus, per unit of distance from ``vehicle``."""
    wait_bonus = min(order.waiting_time(now) / scoring.wait_bonus_divisor, scoring.wait_bonus_cap)
    gap = vehicle.position.distance_to(order.location)
    return (order.priority.score + wait_bonus) / (gap + scoring.distance_epsilon)


def balanced_score(order: Order, nearest_vehicle_distance: float, now: datetime, scoring: ScoringConfig) -> float:
    """Priority, waiting time and proximity to the closest vehicle in one number."""
    wait_bonus = min(order.waiting_time(now) * scoring.balanced_wait_factor, scoring.balanced_wait_cap)
    return (order.priority.score * scoring.balanced_priority_factor
            + wait_bonus
            - scoring.balanced_distance_penalty * nearest_vehicle_distance)


def greedy_match(orders: List[Order], vehicles: List[Vehicle], config: DispatchConfig) -> List[Order]:
    """
    Give each order, in the order given, to its best feasible vehicle.

    Candidates are the IDLE vehicles that pass ``can_carry``. The highest
    ``assignment_score`` wins, with the first vehicle kept on ties. Once an
    order is committed it is no longer PENDING, so it cannot be matched twice.

    Returns:
        The orders that were assigned, in assignment order.
    """
    matched = []
    for order in orders:
        if order.status is not OrderStatus.PENDING:
            continue

        best_vehicle: Optional[Vehicle] = None
        best_score = -1.0
        for vehicle in vehicles:
            if vehicle.status is not VehicleStatus.IDLE:
                continue
            if not can_carry(vehicle, order, config):
                continue
            score = assignment_score(order, vehicle, config.scoring)
            if score > best_score:
                best_score = score
                best_vehicle = vehicle

        if best_vehicle is None:
            logger.debug("No feasible vehicle for order %s", order.order_id)
            continue

        best_vehicle.assign_order(order)
        matched.append(order)

    return matched


class AssignmentStrategy(ABC):
    """Base class for assignment strategies."""

    name: Strategy

    @abstractmethod
    def assign(self, context: DispatchContext) -> None:
        """
        Commit pending orders of ``context`` to its vehicles.

        Args:
            context: Orders, vehicles and settings of the current run.
        """
        pass

    @abstractmethod
    def get_name(self) -> str:
        """Return the name of the strategy."""
        pass


class PriorityFirstAssignment(AssignmentStrategy):
    """High priority first, oldest first within a priority, then greedy matching."""

    name = Strategy.PRIORITY_FIRST

    def get_name(self) -> str:
        return self.name.value

    def assign(self, context: DispatchContext) -> None:
        ordered = sorted(
            context.pending_orders(),
            key=lambda o: (o.priority.score, o.waiting_time(context.now)),
            reverse=True,
        )
        greedy_match(ordered, context.idle_vehicles(), context.config)


class CapacityOptimizationAssignment(AssignmentStrategy):
    """Fill one vehicle at a time with its most efficient orders."""

    name = Strategy.CAPACITY_OPTIMIZATION

    def get_name(self) -> str:
        return self.name.value

    def assign(self, context: DispatchContext) -> None:
        config = context.config
        for vehicle in context.idle_vehicles():
            candidates = [o for o in context.pending_orders() if can_carry(vehicle, o, config)]
            if not candidates:
                continue

            candidates.sort(
                key=lambda o: efficiency_score(o, vehicle, context.now, config.scoring),
                reverse=True,
            )
            combination = []
            remaining = vehicle.available_capacity()
            for order in candidates:
                if order.weight <= remaining:
                    combination.append(order)
                    remaining -= order.weight

            # least efficient orders go first until the whole trip fits
            while combination and not can_carry_group(vehicle, combination, config):
                combination.pop()

            for order in combination:
                vehicle.assign_order(order)
            logger.debug("Vehicle %s filled with %d orders", vehicle.vehicle_id, len(combination))


class DistanceOptimizationAssignment(AssignmentStrategy):
    """Cluster orders geographically and give cluster i to vehicle i."""

    name = Strategy.DISTANCE_OPTIMIZATION

    def get_name(self) -> str:
        return self.name.value

    def assign(self, context: DispatchContext) -> None:
        vehicles = context.idle_vehicles()
        if not vehicles:
            return
        clusters = cluster_orders(context.pending_orders(), len(vehicles), context.rng)
        context.metadata["clusters"] = [[o.order_id for o in cluster] for cluster in clusters]

        for vehicle, cluster in zip(vehicles, clusters):
            for order in sorted(cluster, key=lambda o: o.priority.score, reverse=True):
                if can_carry(vehicle, order, context.config):
                    vehicle.assign_order(order)


class BalancedOptimizationAssignment(AssignmentStrategy):
    """Rank orders by a blend of priority, waiting time and proximity, then match greedily."""

    name = Strategy.BALANCED_OPTIMIZATION

    def get_name(self) -> str:
        return self.name.value

    def assign(self, context: DispatchContext) -> None:
        orders = context.pending_orders()
        vehicles = context.idle_vehicles()
        if not orders or not vehicles:
            return

        nearest = distance_matrix(
            [o.location for o in orders],
            [v.position for v in vehicles],
        ).min(axis=1)
        scores = {
            id(order): balanced_score(order, float(gap), context.now, context.config.scoring)
            for order, gap in zip(orders, nearest)
        }
        ordered = sorted(orders, key=lambda o: scores[id(o)], reverse=True)
        greedy_match(ordered, vehicles, context.config)


STRATEGIES: Dict[Strategy, Type[AssignmentStrategy]] = {
    Strategy.PRIORITY_FIRST: PriorityFirstAssignment,
    Strategy.CAPACITY_OPTIMIZATION: CapacityOptimizationAssignment,
    Strategy.DISTANCE_OPTIMIZATION: DistanceOptimizationAssignment,
    Strategy.BALANCED_OPTIMIZATION: BalancedOptimizationAssignment,
}


def get_strategy(strategy: Union[str, Strategy, AssignmentStrategy]) -> AssignmentStrategy:
    """
    Resolve a strategy name or instance.

    Raises:
        ValueError: If ``strategy`` names no known strategy.
    """
    if isinstance(strategy, AssignmentStrategy):
        return strategy
    try:
        key = Strategy(strategy)
    except ValueError:
        known = ", ".join(s.value for s in Strategy)
        raise ValueError(f"Unknown strategy {strategy!r}; expected one of: {known}") from None
    return STRATEGIES[key]()
