"""
Drone Dispatch
Assigns delivery orders to capacity- and range-limited drones and plans their routes.
"""

from .config import DispatchConfig, ScoringConfig
from .exceptions import (
    DispatchError,
    IllegalTransitionError,
    InvalidGeometryError,
    InvalidInputError,
    RejectionReason,
)
from .geometry import Point, distance, path_distance
from .models import (
    AssignmentResult,
    Order,
    OrderStatus,
    Priority,
    RejectedOrder,
    RouteStop,
    StopKind,
    Vehicle,
    VehiclePlan,
    VehicleStatus,
)
from .feasibility import can_carry, can_carry_group, check_feasibility, required_battery_pct
from .clustering import cluster_orders
from .routing import Route, build_route, improve_route, plan_route, simulate_movement
from .strategies import (
    AssignmentStrategy,
    BalancedOptimizationAssignment,
    CapacityOptimizationAssignment,
    DistanceOptimizationAssignment,
    PriorityFirstAssignment,
    Strategy,
    greedy_match,
)
from .engine import DispatchEngine, optimize
from .problem import DispatchProblem
from .analyzer import DispatchAnalyzer

__version__ = "0.1.0"

__all__ = [
    "DispatchConfig",
    "ScoringConfig",
    "DispatchError",
    "IllegalTransitionError",
    "InvalidGeometryError",
    "InvalidInputError",
    "RejectionReason",
    "Point",
    "distance",
    "path_distance",
    "AssignmentResult",
    "Order",
    "OrderStatus",
    "Priority",
    "RejectedOrder",
    "RouteStop",
    "StopKind",
    "Vehicle",
    "VehiclePlan",
    "VehicleStatus",
    "can_carry",
    "can_carry_group",
    "check_feasibility",
    "required_battery_pct",
    "cluster_orders",
    "Route",
    "build_route",
    "improve_route",
    "plan_route",
    "simulate_movement",
    "AssignmentStrategy",
    "BalancedOptimizationAssignment",
    "CapacityOptimizationAssignment",
    "DistanceOptimizationAssignment",
    "PriorityFirstAssignment",
    "Strategy",
    "greedy_match",
    "DispatchEngine",
    "optimize",
    "DispatchProblem",
    "DispatchAnalyzer",
]
