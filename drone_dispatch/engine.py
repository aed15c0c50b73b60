"""
The assignment-and-routing engine.

``DispatchEngine.optimize`` takes a snapshot of pending orders and idle
vehicles, admits the well-formed ones, hands them to the selected strategy
and finally plans a 2-opt improved route for every vehicle that received
work. It mutates the orders and vehicles it is given and returns an
``AssignmentResult``; it performs no I/O.

One call is one transaction: the caller must hold exclusive write access to
the orders and vehicles it passes in until ``optimize`` returns. The only
state an engine keeps between calls is its random generator.
"""

from datetime import datetime
from typing import List, Optional, Sequence, Tuple, Union
import logging
import time

from .clustering import SeedLike, make_rng
from .config import DispatchConfig
from .exceptions import RejectionReason
from .models import (
    AssignmentResult,
    Order,
    OrderStatus,
    RejectedOrder,
    Vehicle,
    VehiclePlan,
    VehicleStatus,
)
from .routing import plan_route
from .strategies import AssignmentStrategy, DispatchContext, Strategy, get_strategy

logger = logging.getLogger(__name__)


class DispatchEngine:
    """
    Assigns orders to vehicles and plans their routes.

    Args:
        config: Engine configuration; defaults to ``DispatchConfig.default()``.
        seed: Seed (or ``numpy.random.Generator``) for clustering, so runs
            can be reproduced.
    """

    def __init__(self, config: Optional[DispatchConfig] = None, seed: SeedLike = None):
        self.config = config or DispatchConfig.default()
        self.rng = make_rng(seed)

    def optimize(
        self,
        orders: Sequence[Order],
        vehicles: Sequence[Vehicle],
        strategy: Union[str, Strategy, AssignmentStrategy] = Strategy.BALANCED_OPTIMIZATION,
        max_distance: Optional[float] = None,
        now: Optional[datetime] = None,
    ) -> AssignmentResult:
        """
        Assign ``orders`` to ``vehicles`` and plan a route for every loaded vehicle.

        Args:
            orders: Candidate orders; only PENDING ones take part.
            vehicles: Candidate vehicles; only IDLE ones take part.
            strategy: Strategy name or instance.
            max_distance: Optional cap on the depot-to-order distance.
            now: Reference time for waiting times (defaults to the current time).

        Returns:
            AssignmentResult. It is flagged ``success=False`` when nothing
            could be assigned, including the case of no orders or no vehicles.

        Raises:
            ValueError: If ``strategy`` is unknown.
        """
        start_time = time.time()
        assigner = get_strategy(strategy)
        now = now or datetime.now()

        pending = [order for order in orders if order.status is OrderStatus.PENDING]
        idle = [vehicle for vehicle in vehicles if vehicle.status is VehicleStatus.IDLE]

        if not pending or not idle:
            message = "No pending orders to dispatch" if not pending else "No idle vehicles available"
            logger.info("%s (%s)", message, assigner.get_name())
            return AssignmentResult(
                success=False,
                message=message,
                strategy_name=assigner.get_name(),
                unassigned_orders=pending,
                total_orders=len(pending),
                computation_time=time.time() - start_time,
            )

        admitted, rejected = self._admit_orders(pending, max_distance)
        usable = self._admit_vehicles(idle)
        logger.debug("Admitted %d/%d orders and %d/%d vehicles",
                     len(admitted), len(pending), len(usable), len(idle))

        context = DispatchContext(
            orders=admitted,
            vehicles=usable,
            config=self.config,
            now=now,
            rng=self.rng,
        )
        if admitted and usable:
            assigner.assign(context)

        plans = self._plan_routes(usable)
        unassigned = [order for order in admitted if order.status is OrderStatus.PENDING]
        assigned_count = sum(len(plan.order_ids) for plan in plans)

        result = AssignmentResult(
            success=assigned_count > 0,
            message=(f"{assigned_count} orders assigned to {len(plans)} vehicles"
                     if assigned_count else "No order could be assigned"),
            strategy_name=assigner.get_name(),
            plans=plans,
            unassigned_orders=unassigned,
            rejected_orders=rejected,
            total_orders=len(pending),
            computation_time=time.time() - start_time,
            metadata=dict(context.metadata),
        )
        logger.info("%s: %s, efficiency %.0f%%",
                    result.strategy_name, result.message, result.efficiency * 100)
        return result

    def _admit_orders(
        self,
        orders: List[Order],
        max_distance: Optional[float],
    ) -> Tuple[List[Order], List[RejectedOrder]]:
        admitted = []
        rejected = []
        for order in orders:
            if not order.location.is_finite() or not self.config.in_bounds(order.location):
                logger.warning("Order %s at %s is outside the service area", order.order_id, order.location)
                rejected.append(RejectedOrder(order, RejectionReason.INVALID_GEOMETRY))
            elif max_distance is not None and self.config.depot.distance_to(order.location) > max_distance:
                rejected.append(RejectedOrder(order, RejectionReason.BEYOND_MAX_DISTANCE))
            else:
                admitted.append(order)
        return admitted, rejected

    def _admit_vehicles(self, vehicles: List[Vehicle]) -> List[Vehicle]:
        usable = []
        for vehicle in vehicles:
            if not vehicle.position.is_finite() or not self.config.in_bounds(vehicle.position):
                logger.warning("Vehicle %s at %s is outside the service area", vehicle.vehicle_id, vehicle.position)
                continue
            usable.append(vehicle)
        return usable

    def _plan_routes(self, vehicles: List[Vehicle]) -> List[VehiclePlan]:
        plans = []
        for vehicle in vehicles:
            if not vehicle.assigned_orders or vehicle.status is not VehicleStatus.IDLE:
                continue
            route = plan_route(self.config.depot, vehicle.assigned_orders, self.config.speed)
            vehicle.load_plan(route.stops)
            plans.append(VehiclePlan(
                vehicle_id=vehicle.vehicle_id,
                order_ids=route.order_ids,
                route=route.stops,
                distance=route.distance,
                duration_minutes=route.eta_minutes,
                load=vehicle.current_load,
            ))
        return plans


def optimize(
    orders: Sequence[Order],
    vehicles: Sequence[Vehicle],
    strategy: Union[str, Strategy, AssignmentStrategy] = Strategy.BALANCED_OPTIMIZATION,
    max_distance: Optional[float] = None,
    config: Optional[DispatchConfig] = None,
    seed: SeedLike = None,
    now: Optional[datetime] = None,
) -> AssignmentResult:
    """One-shot helper around ``DispatchEngine(config, seed).optimize(...)``."""
    return DispatchEngine(config, seed).optimize(orders, vehicles, strategy, max_distance, now)


