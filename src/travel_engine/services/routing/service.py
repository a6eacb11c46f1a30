"""Route and cost computation for trip drafts."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from ...models.domain import Coordinate, CostBreakdown, RouteResult, TripDraft
from ..costing.model import CostModel, has_estimable_destinations
from ..geocoding.resolver import CoordinateResolver
from ..geospatial import bounding_box_center, zoom_level
from .optimizer import optimize

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RouteComputation:
    breakdown: CostBreakdown
    route: RouteResult
    origin: Coordinate
    destinations: list[Coordinate]

    @property
    def distance_km(self) -> float:
        return self.breakdown.total_distance_km

    def map_overlay(self) -> dict:
        points = [self.origin, *[stop.coordinate for stop in self.route.stops]]
        center = bounding_box_center(points)
        return {
            "center": [center.latitude, center.longitude],
            "zoom": zoom_level(points),
            "path": [[point.latitude, point.longitude] for point in [*points, self.origin]],
        }


class RoutePlanner:
    """Resolves a draft's locations, orders its stops and prices the trip.

    ``compute_route`` is idempotent: calling it again with an unchanged draft
    yields the same result, so callers recompute whenever their inputs change.
    """

    def __init__(self, resolver: CoordinateResolver, cost_model: CostModel | None = None) -> None:
        self.resolver = resolver
        self.cost_model = cost_model or CostModel()

    def compute_route(self, draft: TripDraft) -> Optional[RouteComputation]:
        if not has_estimable_destinations(draft):
            logger.debug("Draft has incomplete destination data, no estimate produced")
            return None

        origin = self.resolver.resolve(draft.origin)
        destinations = self.resolver.resolve_all(draft.destinations)

        route = optimize(origin, destinations, locations=draft.destinations)
        draft.visiting_order = route.visiting_order

        breakdown = self.cost_model.estimate(
            draft,
            [origin, *destinations],
            route=route if len(destinations) > 1 else None,
        )
        logger.info(
            f"Computed {breakdown.travel_mode.value} route over {len(destinations)} stop(s): "
            f"{breakdown.total_distance_km:.1f} km, {breakdown.total_cost:.2f}"
        )
        return RouteComputation(breakdown=breakdown, route=route, origin=origin, destinations=destinations)
