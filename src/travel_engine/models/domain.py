"""Domain models for trip drafts, cost estimates, routes and authorization decisions."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import List, Optional


class TripKind(str, Enum):
    ONE_WAY = "one_way"
    ROUND_TRIP = "round_trip"


class TravelMode(str, Enum):
    GROUND = "ground"
    AIR = "air"


class RuleClassification(str, Enum):
    OBLIGATORY = "obligatory"
    RECOMMENDED = "recommended"


class AuthorizationState(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    OVERRIDDEN = "overridden"
    CANCELLED = "cancelled"


@dataclass(frozen=True, slots=True)
class Coordinate:
    """Latitude/longitude pair in signed decimal degrees."""

    latitude: float
    longitude: float

    def as_tuple(self) -> tuple[float, float]:
        return (self.latitude, self.longitude)


@dataclass(frozen=True, slots=True)
class LocationDescriptor:
    """Free-text location of a business site, optionally tied to a client record."""

    city: str = ""
    region: str = ""
    address: Optional[str] = None
    client_id: Optional[int] = None
    coordinate: Optional[Coordinate] = None


@dataclass(slots=True)
class CostBreakdown:
    ground_transport_cost: float
    toll_cost: float
    air_fare_cost: float
    airport_tax_cost: float
    lodging_cost: float
    meal_cost: float
    parking_cost: float
    total_distance_km: float
    estimated_duration_hours: float
    travel_mode: TravelMode
    per_person_multiplier: int
    nights: int = 0

    @property
    def requires_air_travel(self) -> bool:
        return self.travel_mode is TravelMode.AIR

    @property
    def transport_cost(self) -> float:
        if self.travel_mode is TravelMode.AIR:
            return self.air_fare_cost + self.airport_tax_cost
        return self.ground_transport_cost + self.toll_cost

    @property
    def total_cost(self) -> float:
        total = self.transport_cost + self.lodging_cost + self.meal_cost
        if self.travel_mode is TravelMode.GROUND:
            total += self.parking_cost
        return round(total, 2)


@dataclass(slots=True)
class RouteStop:
    input_index: int
    sequence: int
    coordinate: Coordinate
    distance_from_prev_km: float
    location: Optional[LocationDescriptor] = None


@dataclass(slots=True)
class RouteResult:
    origin: Coordinate
    stops: List[RouteStop]
    path_distance_km: float
    closing_leg_km: float

    @property
    def visiting_order(self) -> list[int]:
        return [stop.input_index for stop in self.stops]

    @property
    def round_trip_distance_km(self) -> float:
        return self.path_distance_km + self.closing_leg_km

    def total_distance_km(self, *, include_closing_leg: bool) -> float:
        return self.round_trip_distance_km if include_closing_leg else self.path_distance_km

    @property
    def display_total_km(self) -> float:
        return round(self.round_trip_distance_km, 1)


@dataclass(slots=True)
class TripDraft:
    """Unit of work flowing through the engine.

    Only the route optimizer (``visiting_order``) and the cost model
    (``cost_breakdown``) attach results to a draft.
    """

    origin: LocationDescriptor
    destinations: List[LocationDescriptor]
    kind: TripKind = TripKind.ROUND_TRIP
    headcount: int = 1
    departure_date: Optional[date] = None
    return_date: Optional[date] = None
    visiting_order: Optional[List[int]] = None
    cost_breakdown: Optional[CostBreakdown] = None

    @property
    def is_round_trip(self) -> bool:
        return self.kind is TripKind.ROUND_TRIP


@dataclass(slots=True)
class ClientFacts:
    """Historical facts about a client supplied by the record store."""

    client_id: int
    last_proposal_days_ago: Optional[int] = None
    cumulative_sales_value: float = 0.0
    travel_cost_to_date: float = 0.0


@dataclass(slots=True)
class ClientRecord:
    client_id: int
    name: str
    location: LocationDescriptor


@dataclass(slots=True)
class EligibilityVerdict:
    rule_id: str
    name: str
    description: str
    classification: RuleClassification
    satisfied: bool
    observed_value: Optional[float] = None
    days_since_last_event: Optional[int] = None

    @property
    def obligatory(self) -> bool:
        return self.classification is RuleClassification.OBLIGATORY


@dataclass(slots=True)
class EligibilityReport:
    client_id: int
    verdicts: List[EligibilityVerdict]

    @property
    def may_proceed_without_override(self) -> bool:
        return all(verdict.satisfied for verdict in self.verdicts if verdict.obligatory)

    @property
    def failed_rules(self) -> list[EligibilityVerdict]:
        return [verdict for verdict in self.verdicts if not verdict.satisfied]

    @property
    def failed_obligatory_rules(self) -> list[EligibilityVerdict]:
        return [verdict for verdict in self.failed_rules if verdict.obligatory]


@dataclass(frozen=True, slots=True)
class AirConfirmation:
    """Air travel was confirmed for the draft at this total distance."""

    at_distance_km: float
    confirmed_by: Optional[str] = None
    confirmed_at: Optional[datetime] = None


@dataclass(slots=True)
class AuditRecord:
    kind: str  # eligibility_override | air_travel_confirmation
    draft_key: str
    state: AuthorizationState
    actor: Optional[str]
    recorded_at: datetime
    justification: Optional[str] = None
    failed_rules: List[str] = field(default_factory=list)
    failed_obligatory_rules: List[str] = field(default_factory=list)
    distance_km: Optional[float] = None
    trip_id: Optional[str] = None


@dataclass(slots=True)
class AuthorizationDecision:
    draft_key: str
    state: AuthorizationState
    client_id: Optional[int] = None
    eligibility: Optional[EligibilityReport] = None
    justification: Optional[str] = None
    air_confirmation: Optional[AirConfirmation] = None
    distance_km: float = 0.0
    travel_mode: TravelMode = TravelMode.GROUND
    is_edit: bool = False
    pending_audit: List[AuditRecord] = field(default_factory=list)
    trip_id: Optional[str] = None
    updated_at: Optional[datetime] = None

    @property
    def confirmed_distance_km(self) -> Optional[float]:
        return self.air_confirmation.at_distance_km if self.air_confirmation else None

    @property
    def awaiting_air_confirmation(self) -> bool:
        return self.travel_mode is TravelMode.AIR and self.air_confirmation is None

    @property
    def awaiting_eligibility_override(self) -> bool:
        if self.is_edit or self.eligibility is None:
            return False
        return not self.eligibility.may_proceed_without_override and not self.justification

    @property
    def is_persisted(self) -> bool:
        return self.trip_id is not None
