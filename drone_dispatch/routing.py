"""
Route construction and improvement.

``build_route`` orders a vehicle's deliveries with a priority-weighted nearest
neighbour walk from the depot, ``improve_route`` polishes the result with
2-opt segment reversal, and ``plan_route`` chains the two. Every route starts
and ends at the depot.
"""

from dataclasses import dataclass
from typing import Iterator, List, Sequence, Tuple

from .config import DEFAULT_SPEED
from .geometry import Point, path_distance, round_half_up
from .models import Order, RouteStop


@dataclass
class Route:
    """An ordered visiting sequence together with its length and ETA."""
    stops: List[RouteStop]
    distance: float
    eta_minutes: int

    @property
    def points(self) -> List[Point]:
        return [stop.point for stop in self.stops]

    @property
    def order_ids(self) -> list:
        return [stop.order_id for stop in self.stops if stop.order_id is not None]


def estimate_minutes(distance: float, speed: float = DEFAULT_SPEED) -> int:
    """ETA in minutes for ``distance`` at ``speed``."""
    return round_half_up(distance / speed * 60)


def stops_distance(stops: Sequence[RouteStop]) -> float:
    return path_distance([stop.point for stop in stops])


def build_route(depot: Point, orders: Sequence[Order], speed: float = DEFAULT_SPEED) -> Route:
    """
    Build a depot-to-depot route through ``orders`` by weighted nearest neighbour.

    At each step the next stop is the unvisited order minimizing
    ``distance(current, order) * order.priority.route_weight``, so a
    high-priority order wins over a slightly closer low-priority one. Ties
    keep the first candidate in ``orders`` order.

    Args:
        depot: Start and end of the route.
        orders: Orders to visit.
        speed: Distance units per minute for the ETA.

    Returns:
        Route with stops ``[depot, deliveries..., depot]``, or just
        ``[depot]`` when there is nothing to deliver.
    """
    if not orders:
        return Route(stops=[RouteStop.depot(depot)], distance=0.0, eta_minutes=0)

    stops = [RouteStop.depot(depot)]
    unvisited = list(orders)
    current = depot

    while unvisited:
        best_index = 0
        best_score = float('inf')
        for i, order in enumerate(unvisited):
            score = current.distance_to(order.location) * order.priority.route_weight
            if score < best_score:
                best_score = score
                best_index = i

        nearest = unvisited.pop(best_index)
        stops.append(RouteStop.delivery(nearest))
        current = nearest.location

    stops.append(RouteStop.depot(depot))
    distance = stops_distance(stops)
    return Route(stops=stops, distance=distance, eta_minutes=estimate_minutes(distance, speed))


def improve_route(stops: Sequence[RouteStop]) -> List[RouteStop]:
    """
    Shorten a route with 2-opt local search.

    Both endpoints stay fixed. Every segment ``[i..j]`` with
    ``1 <= i < j <= len - 2`` is tentatively reversed and the reversal is
    kept when it strictly shortens the route. Passes repeat until a full pass
    finds no improving move. No randomness: the result depends only on the
    input sequence.
    """
    best = list(stops)
    if len(best) < 4:
        return best

    best_distance = stops_distance(best)
    improved = True
    while improved:
        improved = False
        for i in range(1, len(best) - 2):
            for j in range(i + 1, len(best) - 1):
                candidate = best[:i] + best[i:j + 1][::-1] + best[j + 1:]
                candidate_distance = stops_distance(candidate)
                if candidate_distance < best_distance - 1e-12:
                    best = candidate
                    best_distance = candidate_distance
                    improved = True

    return best


def plan_route(depot: Point, orders: Sequence[Order], speed: float = DEFAULT_SPEED) -> Route:
    """Build a route with ``build_route`` and refine it with ``improve_route``."""
    route = build_route(depot, orders, speed)
    stops = improve_route(route.stops)
    distance = stops_distance(stops)
    return Route(stops=stops, distance=distance, eta_minutes=estimate_minutes(distance, speed))


def simulate_movement(
    stops: Sequence[RouteStop],
    speed: float = DEFAULT_SPEED,
    step_minutes: float = 1.0,
) -> Iterator[Tuple[float, Point]]:
    """
    Lazily sample positions along a route.

    Yields ``(elapsed_minutes, position)`` pairs every ``step_minutes`` of
    flight, plus one sample at every waypoint. The sequence is finite and a
    fresh call restarts it from the first stop.

    Args:
        stops: Route to fly.
        speed: Distance units per minute.
        step_minutes: Sampling interval.
    """
    if speed <= 0 or step_minutes <= 0:
        raise ValueError("speed and step_minutes must be positive")
    if not stops:
        return

    elapsed = 0.0
    yield elapsed, stops[0].point
    for start, end in zip(stops, stops[1:]):
        leg_minutes = start.point.distance_to(end.point) / speed
        t = step_minutes
        while t < leg_minutes:
            yield elapsed + t, start.point.lerp(end.point, t / leg_minutes)
            t += step_minutes
        elapsed += leg_minutes
        yield elapsed, end.point
