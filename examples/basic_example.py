"""
Basic example of dispatching a batch of orders and flying the plans.
"""

import logging
from datetime import datetime, timedelta

from drone_dispatch import (
    DispatchProblem,
    Order,
    Point,
    Priority,
    Strategy,
    Vehicle,
    simulate_movement,
)


def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    print("=" * 80)
    print("Drone Dispatch - Basic Example")
    print("=" * 80)

    now = datetime.now()
    problem = DispatchProblem()
    problem.add_vehicle(Vehicle(vehicle_id="D1", capacity=5, max_range=15))
    problem.add_vehicle(Vehicle(vehicle_id="D2", capacity=5, max_range=15))

    problem.add_order(Order("A", Point(12, 10), 2, Priority.HIGH, created_at=now - timedelta(minutes=10)))
    problem.add_order(Order("B", Point(8, 10), 1, Priority.LOW, created_at=now - timedelta(minutes=40)))
    problem.add_order(Order("C", Point(14, 13), 3, Priority.MEDIUM, created_at=now))
    problem.add_order(Order("D", Point(6, 6), 2, Priority.HIGH, created_at=now - timedelta(minutes=5)))
    print(f"\n{problem}")
    print(f"Selected strategy: {problem.select_strategy().value}")

    result = problem.dispatch(Strategy.BALANCED_OPTIMIZATION, seed=42, now=now)
    print("\n" + "-" * 80)
    print(result.message)
    for plan in result.plans:
        print(f"  {plan}  eta {plan.duration_minutes} min")
    for order in result.unassigned_orders:
        print(f"  unassigned: {order}")

    print("\n" + "-" * 80)
    print("Flying the first route...")
    first = problem.get_vehicle(result.plans[0].vehicle_id)
    for elapsed, position in simulate_movement(first.route, speed=problem.config.speed, step_minutes=2):
        print(f"  t={elapsed:5.1f} min  {position}")

    for plan in result.plans:
        problem.get_vehicle(plan.vehicle_id).fly_route(problem.config)

    print("\nFleet after delivery:")
    for vehicle in problem.vehicles:
        print(f"  {vehicle.status_info()}")
    print(f"\nOrders: {problem.order_statistics()}")

    print("\n" + "=" * 80)
    print("Example completed!")
    print("=" * 80)


if __name__ == "__main__":
    main()
