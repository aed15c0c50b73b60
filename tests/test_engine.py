"""
Tests for the dispatch engine.
"""

import unittest
from datetime import datetime

from drone_dispatch.config import DispatchConfig
from drone_dispatch.engine import DispatchEngine, optimize
from drone_dispatch.exceptions import RejectionReason
from drone_dispatch.geometry import Point
from drone_dispatch.models import Order, OrderStatus, Priority, StopKind, Vehicle, VehicleStatus
from drone_dispatch.problem import DispatchProblem
from drone_dispatch.strategies import Strategy

NOW = datetime(2025, 1, 1, 12, 0, 0)
CONFIG = DispatchConfig.default()


def two_order_scenario():
    vehicle = Vehicle(1, capacity=5, max_range=15, position=CONFIG.depot)
    a = Order("A", Point(12, 10), 2, Priority.HIGH, created_at=NOW)
    b = Order("B", Point(8, 10), 2, Priority.LOW, created_at=NOW)
    return vehicle, [a, b]


class TestDispatchEngine(unittest.TestCase):
    """Test DispatchEngine.optimize."""

    def test_two_orders_one_vehicle(self):
        for strategy in Strategy:
            with self.subTest(strategy=strategy.value):
                vehicle, orders = two_order_scenario()
                result = DispatchEngine(seed=0).optimize(orders, [vehicle], strategy, now=NOW)

                self.assertTrue(result.success)
                self.assertEqual(result.strategy_name, strategy.value)
                self.assertEqual(result.assigned_count, 2)
                self.assertEqual(result.efficiency, 1.0)
                plan = result.plan_for(1)
                self.assertEqual(sorted(plan.order_ids), ["A", "B"])
                self.assertAlmostEqual(plan.distance, 8.0)
                self.assertLessEqual(plan.distance, vehicle.max_range)
                self.assertEqual(plan.duration_minutes, 960)
                self.assertEqual(plan.load, 4)
                self.assertEqual(vehicle.status, VehicleStatus.LOADING)
                self.assertEqual(vehicle.route, plan.route)
                for order in orders:
                    self.assertEqual(order.status, OrderStatus.ASSIGNED)
                    self.assertEqual(order.assigned_vehicle, 1)

    def test_overweight_order_stays_pending(self):
        vehicle = Vehicle(1, capacity=5)
        heavy = Order("heavy", Point(11, 10), 6, created_at=NOW)
        result = optimize([heavy], [vehicle], now=NOW)
        self.assertFalse(result.success)
        self.assertEqual(result.unassigned_orders, [heavy])
        self.assertEqual(heavy.status, OrderStatus.PENDING)
        self.assertEqual(vehicle.status, VehicleStatus.IDLE)
        self.assertEqual(result.plans, [])

    def test_no_vehicles(self):
        o = Order("A", Point(11, 10), 1, created_at=NOW)
        result = optimize([o], [], now=NOW)
        self.assertFalse(result.success)
        self.assertEqual(result.message, "No idle vehicles available")
        self.assertEqual(result.assigned_count, 0)
        self.assertEqual(result.unassigned_orders, [o])
        self.assertEqual(result.total_orders, 1)

    def test_no_orders(self):
        result = optimize([], [Vehicle(1)], now=NOW)
        self.assertFalse(result.success)
        self.assertEqual(result.message, "No pending orders to dispatch")
        self.assertEqual(result.efficiency, 0.0)

    def test_busy_vehicles_are_ignored(self):
        busy = Vehicle(1, status=VehicleStatus.IN_TRANSIT)
        o = Order("A", Point(11, 10), 1, created_at=NOW)
        result = optimize([o], [busy], now=NOW)
        self.assertFalse(result.success)
        self.assertEqual(o.status, OrderStatus.PENDING)

    def test_non_pending_orders_are_ignored(self):
        done = Order("done", Point(11, 10), 1, status=OrderStatus.DELIVERED, created_at=NOW)
        fresh = Order("fresh", Point(12, 10), 1, created_at=NOW)
        result = optimize([done, fresh], [Vehicle(1)], now=NOW)
        self.assertEqual(result.total_orders, 1)
        self.assertEqual(result.plans[0].order_ids, ["fresh"])

    def test_order_outside_service_area_is_rejected(self):
        outside = Order("out", Point(25, 10), 1, created_at=NOW)
        inside = Order("in", Point(12, 10), 1, created_at=NOW)
        with self.assertLogs("drone_dispatch.engine", level="WARNING"):
            result = optimize([outside, inside], [Vehicle(1, max_range=40)], now=NOW)

        self.assertEqual(len(result.rejected_orders), 1)
        self.assertIs(result.rejected_orders[0].order, outside)
        self.assertEqual(result.rejected_orders[0].reason, RejectionReason.INVALID_GEOMETRY)
        self.assertEqual(outside.status, OrderStatus.PENDING)
        self.assertEqual(result.assigned_count, 1)
        self.assertEqual(result.unassigned_count, 1)
        self.assertEqual(result.efficiency, 0.5)

    def test_max_distance_filter(self):
        far = Order("far", Point(18, 10), 1, created_at=NOW)
        near = Order("near", Point(12, 10), 1, created_at=NOW)
        result = optimize([far, near], [Vehicle(1, max_range=20)], max_distance=5, now=NOW)
        self.assertEqual([r.reason for r in result.rejected_orders], [RejectionReason.BEYOND_MAX_DISTANCE])
        self.assertEqual(result.plans[0].order_ids, ["near"])

    def test_vehicle_outside_service_area_is_skipped(self):
        lost = Vehicle(1, position=Point(30, 30))
        o = Order("A", Point(11, 10), 1, created_at=NOW)
        with self.assertLogs("drone_dispatch.engine", level="WARNING"):
            result = optimize([o], [lost], now=NOW)
        self.assertFalse(result.success)
        self.assertEqual(result.unassigned_orders, [o])
        self.assertEqual(lost.status, VehicleStatus.IDLE)

    def test_unknown_strategy(self):
        with self.assertRaises(ValueError):
            optimize([], [], strategy="fastest")

    def test_distance_strategy_records_clusters(self):
        problem = DispatchProblem.generate_random_problem(3, 12, seed=4, now=NOW)
        result = problem.dispatch(Strategy.DISTANCE_OPTIMIZATION, seed=4, now=NOW)
        clusters = result.metadata["clusters"]
        self.assertLessEqual(len(clusters), 3)
        self.assertEqual(sorted(i for cluster in clusters for i in cluster), list(range(12)))

    def test_same_seed_same_plans(self):
        def run():
            problem = DispatchProblem.generate_random_problem(4, 20, seed=9, now=NOW)
            result = problem.dispatch(Strategy.DISTANCE_OPTIMIZATION, seed=123, now=NOW)
            return [(p.vehicle_id, p.order_ids, round(p.distance, 9)) for p in result.plans]

        self.assertEqual(run(), run())

    def test_plans_can_be_flown(self):
        vehicle, orders = two_order_scenario()
        optimize(orders, [vehicle], now=NOW)
        vehicle.fly_route(CONFIG, at=NOW)

        self.assertEqual(vehicle.status, VehicleStatus.IDLE)
        self.assertEqual(vehicle.deliveries_count, 2)
        self.assertAlmostEqual(vehicle.total_distance_traveled, 8.0)
        self.assertEqual(vehicle.battery_pct, 100.0)
        self.assertEqual(vehicle.position, CONFIG.depot)
        self.assertTrue(all(o.status is OrderStatus.DELIVERED for o in orders))


class TestDispatchInvariants(unittest.TestCase):
    """Properties every strategy must keep on random workloads."""

    def check_result(self, problem, result):
        vehicles = {v.vehicle_id: v for v in problem.vehicles}
        orders = {o.order_id: o for o in problem.orders}
        seen = set()

        for plan in result.plans:
            vehicle = vehicles[plan.vehicle_id]
            self.assertEqual(vehicle.status, VehicleStatus.LOADING)
            self.assertEqual(plan.route[0].point, problem.config.depot)
            self.assertEqual(plan.route[-1].point, problem.config.depot)
            self.assertEqual(plan.route[0].kind, StopKind.DEPOT)
            self.assertEqual(plan.route[-1].kind, StopKind.DEPOT)
            self.assertLessEqual(plan.distance, vehicle.max_range + 1e-9)
            self.assertLessEqual(problem.config.required_battery_pct(plan.distance), vehicle.battery_pct + 1e-9)

            load = sum(orders[i].weight for i in plan.order_ids)
            self.assertLessEqual(load, vehicle.capacity + 1e-9)
            self.assertAlmostEqual(load, vehicle.current_load)

            for order_id in plan.order_ids:
                self.assertNotIn(order_id, seen)
                seen.add(order_id)
                self.assertEqual(orders[order_id].status, OrderStatus.ASSIGNED)
                self.assertEqual(orders[order_id].assigned_vehicle, plan.vehicle_id)

        for order in result.unassigned_orders:
            self.assertEqual(order.status, OrderStatus.PENDING)
            self.assertIsNone(order.assigned_vehicle)

        self.assertEqual(
            result.assigned_count + len(result.unassigned_orders) + len(result.rejected_orders),
            result.total_orders,
        )
        self.assertEqual(result.total_orders, len(problem.orders))

    def test_every_strategy_on_random_problems(self):
        for seed in range(5):
            for strategy in Strategy:
                with self.subTest(seed=seed, strategy=strategy.value):
                    problem = DispatchProblem.generate_random_problem(3, 15, seed=seed, now=NOW)
                    result = problem.dispatch(strategy, seed=seed, now=NOW)
                    self.check_result(problem, result)

    def test_low_battery_fleet(self):
        problem = DispatchProblem.generate_random_problem(3, 10, seed=2, now=NOW)
        for vehicle in problem.vehicles:
            vehicle.battery_pct = 30.0
        result = problem.dispatch(Strategy.PRIORITY_FIRST, now=NOW)
        self.check_result(problem, result)
        for plan in result.plans:
            self.assertLessEqual(plan.distance, 6.0 + 1e-9)


if __name__ == '__main__':
    unittest.main()
