"""Trip estimation and authorization request/response schemas."""

from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from ..models.domain import (
    AuthorizationState,
    Coordinate,
    LocationDescriptor,
    RuleClassification,
    TravelMode,
    TripDraft,
    TripKind,
)


class LocationModel(BaseModel):
    city: str = ""
    region: str = Field(default="", description="Two-letter state code, e.g. 'SP'.")
    address: Optional[str] = None
    client_id: Optional[int] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    def to_domain(self) -> LocationDescriptor:
        coordinate = None
        if self.latitude is not None and self.longitude is not None:
            coordinate = Coordinate(self.latitude, self.longitude)
        return LocationDescriptor(
            city=self.city,
            region=self.region,
            address=self.address,
            client_id=self.client_id,
            coordinate=coordinate,
        )


class TripDraftModel(BaseModel):
    origin: LocationModel = Field(
        default_factory=lambda: LocationModel(city="São Bernardo do Campo", region="SP"),
        description="Trip origin; defaults to company headquarters.",
    )
    destinations: List[LocationModel]
    kind: TripKind = TripKind.ROUND_TRIP
    headcount: int = Field(default=1, ge=1)
    departure_date: Optional[date] = None
    return_date: Optional[date] = None

    def to_domain(self) -> TripDraft:
        return TripDraft(
            origin=self.origin.to_domain(),
            destinations=[dest.to_domain() for dest in self.destinations],
            kind=self.kind,
            headcount=self.headcount,
            departure_date=self.departure_date,
            return_date=self.return_date,
        )


class CostBreakdownModel(BaseModel):
    ground_transport_cost: float
    toll_cost: float
    air_fare_cost: float
    airport_tax_cost: float
    lodging_cost: float
    meal_cost: float
    parking_cost: float
    transport_cost: float
    total_cost: float
    total_distance_km: float
    estimated_duration_hours: float
    travel_mode: TravelMode
    requires_air_travel: bool
    per_person_multiplier: int
    nights: int


class RouteStopModel(BaseModel):
    input_index: int
    sequence: int
    latitude: float
    longitude: float
    distance_from_prev_km: float
    city: Optional[str] = None
    client_id: Optional[int] = None


class RouteModel(BaseModel):
    origin: List[float]
    stops: List[RouteStopModel]
    visiting_order: List[int]
    path_distance_km: float
    closing_leg_km: float
    round_trip_distance_km: float
    display_total_km: float


class MapOverlayModel(BaseModel):
    center: List[float]
    zoom: int
    path: List[List[float]]


class TripEstimateModel(BaseModel):
    cost_breakdown: CostBreakdownModel
    route: RouteModel
    map: MapOverlayModel


class RouteEstimateResponse(BaseModel):
    estimate: Optional[TripEstimateModel] = Field(
        default=None,
        description="Null while any destination is missing its city or region.",
    )


class EligibilityRequest(BaseModel):
    draft: Optional[TripDraftModel] = Field(
        default=None,
        description="Draft used by cost-dependent rules; cost rules see a zero-cost trip when omitted.",
    )


class VerdictModel(BaseModel):
    rule_id: str
    name: str
    description: str
    classification: RuleClassification
    satisfied: bool
    observed_value: Optional[float] = None
    days_since_last_event: Optional[int] = None


class EligibilityResponse(BaseModel):
    client_id: int
    may_proceed_without_override: bool
    verdicts: List[VerdictModel]


class SubmitDraftRequest(BaseModel):
    draft: TripDraftModel
    client_id: Optional[int] = None
    is_edit: bool = False
    previous_distance_km: Optional[float] = Field(
        default=None,
        ge=0,
        description="Distance stored on the trip being edited.",
    )


class ConfirmAirTravelRequest(BaseModel):
    actor: Optional[str] = None
    expected_distance_km: Optional[float] = Field(
        default=None,
        ge=0,
        description="Distance shown to the operator when confirming.",
    )


class OverrideRequest(BaseModel):
    justification: str
    actor: Optional[str] = None


class DecisionResponse(BaseModel):
    draft_key: str
    state: AuthorizationState
    client_id: Optional[int] = None
    travel_mode: TravelMode
    distance_km: float
    confirmed_distance_km: Optional[float] = None
    awaiting_air_confirmation: bool
    awaiting_eligibility_override: bool
    justification: Optional[str] = None
    eligibility: Optional[EligibilityResponse] = None
    trip_id: Optional[str] = None
    pending_audit_records: int = 0
    updated_at: Optional[datetime] = None


class PersistResponse(BaseModel):
    draft_key: str
    trip_id: str


class AuditRecordModel(BaseModel):
    kind: str
    draft_key: str
    state: AuthorizationState
    actor: Optional[str] = None
    recorded_at: datetime
    justification: Optional[str] = None
    failed_rules: List[str] = Field(default_factory=list)
    failed_obligatory_rules: List[str] = Field(default_factory=list)
    distance_km: Optional[float] = None


class AuthorizationLogResponse(BaseModel):
    trip_id: str
    records: List[AuditRecordModel]
