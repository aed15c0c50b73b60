"""
Geographic pre-partition of orders for the distance-oriented strategy.

``cluster_orders`` is a fixed-budget Lloyd's k-means: it runs exactly
``KMEANS_ITERATIONS`` relaxation rounds and stops, converged or not. The
result is only a rough grouping of nearby orders, one group per vehicle.
"""

import logging
from typing import List, Sequence, Union

import numpy as np

from .geometry import pairwise_distances, to_array
from .models import Order

logger = logging.getLogger(__name__)

KMEANS_ITERATIONS = 3

SeedLike = Union[None, int, np.random.Generator]


def make_rng(seed: SeedLike = None) -> np.random.Generator:
    """Return ``seed`` if it already is a Generator, else a new one seeded with it."""
    if isinstance(seed, np.random.Generator):
        return seed
    return np.random.default_rng(seed)


def nearest_centroid(coords: np.ndarray, centroids: np.ndarray) -> np.ndarray:
    """
    Index of the closest centroid for every row of ``coords``.

    ``np.argmin`` returns the first minimum, so ties go to the lowest index.
    """
    return np.argmin(pairwise_distances(coords, centroids), axis=1)


def cluster_orders(
    orders: Sequence[Order],
    k: int,
    rng: SeedLike = None,
    iterations: int = KMEANS_ITERATIONS,
) -> List[List[Order]]:
    """
    Partition ``orders`` into at most ``k`` geographic groups.

    Args:
        orders: Orders to group.
        k: Number of groups wanted, normally the number of available vehicles.
        rng: Generator (or seed) used to pick the initial centroids.
        iterations: Relaxation rounds.

    Returns:
        Non-empty clusters. Members keep their order from ``orders``; cluster
        order follows centroid index.
    """
    if k <= 0:
        raise ValueError(f"k must be positive, got {k}")
    if len(orders) <= k:
        return [[order] for order in orders]

    rng = make_rng(rng)
    coords = to_array(order.location for order in orders)
    seeds = rng.choice(len(orders), size=k, replace=False)
    centroids = coords[np.sort(seeds)].copy()

    for _ in range(iterations):
        labels = nearest_centroid(coords, centroids)
        for i in range(k):
            members = coords[labels == i]
            if len(members) > 0:
                centroids[i] = members.mean(axis=0)

    labels = nearest_centroid(coords, centroids)
    clusters: List[List[Order]] = [[] for _ in range(k)]
    for order, label in zip(orders, labels):
        clusters[int(label)].append(order)

    result = [cluster for cluster in clusters if cluster]
    logger.debug("Clustered %d orders into %d groups (k=%d)", len(orders), len(result), k)
    return result


