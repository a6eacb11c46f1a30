"""Trip cost estimation with ground/air travel-mode selection."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional, Sequence

from ...config import Settings, settings
from ...errors import PreconditionViolated
from ...models.domain import (
    Coordinate,
    CostBreakdown,
    RouteResult,
    TravelMode,
    TripDraft,
)
from ..geospatial import distance_km

# Hard business rule: trips longer than this travel by air.
AIR_TRAVEL_THRESHOLD_KM = 600.0

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CostTables:
    fuel_cost_per_km: float
    toll_bands: tuple[tuple[float, float], ...]
    parking_fee: float
    air_fare_bands: tuple[tuple[float, float], ...]
    airport_tax_per_person: float
    nightly_lodging_rate: float
    daily_meal_rate: float
    ground_speed_kmh: float
    air_speed_kmh: float
    airport_overhead_hours: float

    @classmethod
    def from_settings(cls, config: Settings | None = None) -> "CostTables":
        config = config or settings
        return cls(
            fuel_cost_per_km=config.fuel_cost_per_km,
            toll_bands=config.toll_bands,
            parking_fee=config.parking_fee,
            air_fare_bands=config.air_fare_bands,
            airport_tax_per_person=config.airport_tax_per_person,
            nightly_lodging_rate=config.nightly_lodging_rate,
            daily_meal_rate=config.daily_meal_rate,
            ground_speed_kmh=config.ground_speed_kmh,
            air_speed_kmh=config.air_speed_kmh,
            airport_overhead_hours=config.airport_overhead_hours,
        )


def choose_travel_mode(total_distance_km: float) -> TravelMode:
    """Air strictly above the threshold; exactly 600 km still travels by ground."""
    return TravelMode.AIR if total_distance_km > AIR_TRAVEL_THRESHOLD_KM else TravelMode.GROUND


def band_value(bands: Sequence[tuple[float, float]], distance: float) -> float:
    """Look up the cost of the first band whose upper bound covers ``distance``."""
    for upper_km, cost in bands:
        if distance <= upper_km:
            return cost
    return bands[-1][1]


def count_nights(draft: TripDraft) -> int:
    if not draft.is_round_trip or draft.departure_date is None or draft.return_date is None:
        return 0
    return max(0, _date_diff_days(draft.departure_date, draft.return_date))


def _date_diff_days(start: date, end: date) -> int:
    return (end - start).days


def has_estimable_destinations(draft: TripDraft) -> bool:
    """True when every destination names both a city and a region."""
    if not draft.destinations:
        return False
    return all(dest.city.strip() and dest.region.strip() for dest in draft.destinations)


class CostModel:
    def __init__(self, tables: CostTables | None = None) -> None:
        self.tables = tables or CostTables.from_settings()

    def estimate(
        self,
        draft: TripDraft,
        resolved_coords: Sequence[Coordinate],
        *,
        route: Optional[RouteResult] = None,
    ) -> CostBreakdown:
        """Estimate the cost of ``draft``.

        ``resolved_coords`` holds the origin followed by each destination in
        draft order. Multi-destination drafts take their distance from ``route``.
        """
        if not has_estimable_destinations(draft):
            raise PreconditionViolated("Cost estimation requires a city and region for every destination.")
        if len(resolved_coords) != len(draft.destinations) + 1:
            raise PreconditionViolated(
                f"Expected {len(draft.destinations) + 1} coordinates (origin + destinations), got {len(resolved_coords)}."
            )

        if len(draft.destinations) == 1:
            one_way = distance_km(resolved_coords[0], resolved_coords[1])
            total_distance = one_way * 2 if draft.is_round_trip else one_way
        else:
            if route is None:
                raise PreconditionViolated("Multi-destination estimates require an optimized route.")
            total_distance = route.total_distance_km(include_closing_leg=draft.is_round_trip)

        breakdown = self.price(draft, total_distance)
        draft.cost_breakdown = breakdown
        return breakdown

    def price(self, draft: TripDraft, total_distance_km: float) -> CostBreakdown:
        """Build the cost breakdown for an already-computed total distance."""
        headcount = draft.headcount if draft.headcount is not None else 1
        if headcount < 1:
            raise PreconditionViolated(f"Headcount must be at least 1, got {headcount}.")

        if total_distance_km <= 0:
            return CostBreakdown(
                ground_transport_cost=0.0,
                toll_cost=0.0,
                air_fare_cost=0.0,
                airport_tax_cost=0.0,
                lodging_cost=0.0,
                meal_cost=0.0,
                parking_cost=0.0,
                total_distance_km=0.0,
                estimated_duration_hours=0.0,
                travel_mode=TravelMode.GROUND,
                per_person_multiplier=headcount,
            )

        tables = self.tables
        mode = choose_travel_mode(total_distance_km)
        nights = count_nights(draft)
        days_of_trip = max(1, nights + 1)
        flight_legs = 2 if draft.is_round_trip else 1

        ground_cost = toll_cost = parking_cost = 0.0
        air_fare = airport_tax = 0.0
        if mode is TravelMode.GROUND:
            ground_cost = total_distance_km * tables.fuel_cost_per_km
            toll_cost = band_value(tables.toll_bands, total_distance_km)
            parking_cost = tables.parking_fee
            duration = total_distance_km / tables.ground_speed_kmh
        else:
            air_fare = band_value(tables.air_fare_bands, total_distance_km) * headcount
            airport_tax = tables.airport_tax_per_person * headcount * flight_legs
            duration = total_distance_km / tables.air_speed_kmh + tables.airport_overhead_hours * flight_legs

        breakdown = CostBreakdown(
            ground_transport_cost=round(ground_cost, 2),
            toll_cost=round(toll_cost, 2),
            air_fare_cost=round(air_fare, 2),
            airport_tax_cost=round(airport_tax, 2),
            lodging_cost=round(tables.nightly_lodging_rate * nights * headcount, 2),
            meal_cost=round(tables.daily_meal_rate * days_of_trip * headcount, 2),
            parking_cost=round(parking_cost, 2),
            total_distance_km=total_distance_km,
            estimated_duration_hours=duration,
            travel_mode=mode,
            per_person_multiplier=headcount,
            nights=nights,
        )
        logger.debug(
            f"Estimated {mode.value} trip of {total_distance_km:.1f} km for {headcount} person(s): {breakdown.total_cost:.2f}"
        )
        return breakdown
