"""Nearest-neighbour visit ordering for multi-stop trips.

Greedy and non-backtracking: each step moves to the closest unvisited stop,
ties going to the stop listed first. The result is not guaranteed optimal but
is adequate for the handful of clients a single business trip visits.
"""

from __future__ import annotations

from typing import Optional, Sequence

from ...errors import PreconditionViolated
from ...models.domain import Coordinate, LocationDescriptor, RouteResult, RouteStop
from ..geospatial import distance_km, validate_coordinate


def optimize(
    origin: Coordinate,
    stops: Sequence[Coordinate],
    *,
    locations: Optional[Sequence[LocationDescriptor]] = None,
) -> RouteResult:
    """Order ``stops`` starting from ``origin``.

    The closing leg back to the origin is always computed and reported
    separately, so one-way callers can ignore it.
    """
    if not stops:
        raise PreconditionViolated("Route optimization requires at least one stop.")
    if locations is not None and len(locations) != len(stops):
        raise PreconditionViolated(
            f"Got {len(locations)} locations for {len(stops)} stops."
        )
    validate_coordinate(origin)
    for stop in stops:
        validate_coordinate(stop)

    visited: set[int] = set()
    route: list[RouteStop] = []
    current = origin
    path_distance = 0.0

    while len(visited) < len(stops):
        best_index = -1
        best_distance = float("inf")
        for index, candidate in enumerate(stops):
            if index in visited:
                continue
            step = distance_km(current, candidate)
            # strict comparison keeps the first occurrence on ties
            if step < best_distance:
                best_distance = step
                best_index = index

        visited.add(best_index)
        path_distance += best_distance
        current = stops[best_index]
        route.append(
            RouteStop(
                input_index=best_index,
                sequence=len(route) + 1,
                coordinate=current,
                distance_from_prev_km=best_distance,
                location=locations[best_index] if locations is not None else None,
            )
        )

    return RouteResult(
        origin=origin,
        stops=route,
        path_distance_km=path_distance,
        closing_leg_km=distance_km(current, origin),
    )


def input_order_distance(origin: Coordinate, stops: Sequence[Coordinate], *, include_closing_leg: bool = True) -> float:
    """Distance of visiting ``stops`` exactly as listed, for comparison against ``optimize``."""
    total = 0.0
    current = origin
    for stop in stops:
        total += distance_km(current, stop)
        current = stop
    if include_closing_leg:
        total += distance_km(current, origin)
    return total
