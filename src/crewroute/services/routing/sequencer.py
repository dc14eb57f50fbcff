"""2-opt stop ordering for a single team's route."""

from __future__ import annotations

from typing import Sequence

from .models import DistanceMatrix

MAX_PASSES = 100


def route_cost(route: Sequence[str], start_id: str, matrix: DistanceMatrix) -> int:
    """Open-path drive time from ``start_id`` through every stop in order."""
    if not route:
        return 0
    cost = matrix.duration(start_id, route[0])
    for previous, current in zip(route, route[1:]):
        cost += matrix.duration(previous, current)
    return cost


def sequence_stops(
    stop_ids: Sequence[str],
    start_id: str,
    matrix: DistanceMatrix,
    *,
    max_passes: int = MAX_PASSES,
) -> list[str]:
    """Reorder stops with 2-opt segment reversals.

    Each pass tries every reversal ``route[i..j]`` and keeps any that lowers
    the route cost. Stops after a pass with no improvement or after
    ``max_passes`` passes. Routes of two or fewer stops are returned as is.
    """
    if len(stop_ids) <= 2:
        return list(stop_ids)

    best_route = list(stop_ids)
    best_cost = route_cost(best_route, start_id, matrix)
    passes = 0
    improved = True

    while improved and passes < max_passes:
        improved = False
        passes += 1
        for i in range(len(best_route) - 1):
            for j in range(i + 1, len(best_route)):
                candidate = best_route[:i] + best_route[i : j + 1][::-1] + best_route[j + 1 :]
                candidate_cost = route_cost(candidate, start_id, matrix)
                if candidate_cost < best_cost:
                    best_route = candidate
                    best_cost = candidate_cost
                    improved = True

    return best_route
