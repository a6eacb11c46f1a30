"""Trip estimation and authorization endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from ...errors import (
    AuthorizationError,
    DecisionNotFound,
    GeocodeUnavailable,
    InvalidCoordinate,
    PreconditionViolated,
    StoreUnavailable,
    TravelEngineError,
)
from ...models.domain import AuthorizationDecision, CostBreakdown, EligibilityReport
from ...persistence.store import RecordStore
from ...schemas.trips import (
    AuditRecordModel,
    AuthorizationLogResponse,
    ConfirmAirTravelRequest,
    CostBreakdownModel,
    DecisionResponse,
    EligibilityRequest,
    EligibilityResponse,
    MapOverlayModel,
    OverrideRequest,
    PersistResponse,
    RouteEstimateResponse,
    RouteModel,
    RouteStopModel,
    SubmitDraftRequest,
    TripDraftModel,
    TripEstimateModel,
    VerdictModel,
)
from ...services.authorization.workflow import AuthorizationWorkflow
from ...services.eligibility.engine import EligibilityEngine
from ...services.routing.service import RouteComputation, RoutePlanner
from ..dependencies import get_eligibility_engine, get_planner, get_store, get_workflow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/trips", tags=["trips"])

_STATUS_BY_ERROR: list[tuple[type[TravelEngineError], int]] = [
    (DecisionNotFound, status.HTTP_404_NOT_FOUND),
    (AuthorizationError, status.HTTP_409_CONFLICT),
    (PreconditionViolated, status.HTTP_400_BAD_REQUEST),
    (InvalidCoordinate, status.HTTP_400_BAD_REQUEST),
    (StoreUnavailable, status.HTTP_503_SERVICE_UNAVAILABLE),
    (GeocodeUnavailable, status.HTTP_503_SERVICE_UNAVAILABLE),
]


def _to_http_error(exc: TravelEngineError) -> HTTPException:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            if status_code >= 500:
                logger.warning(f"Collaborator unavailable: {exc}")
            return HTTPException(status_code=status_code, detail=str(exc))
    logging.exception(f"Unhandled engine error: {exc}")
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


def _breakdown_model(breakdown: CostBreakdown) -> CostBreakdownModel:
    return CostBreakdownModel(
        ground_transport_cost=breakdown.ground_transport_cost,
        toll_cost=breakdown.toll_cost,
        air_fare_cost=breakdown.air_fare_cost,
        airport_tax_cost=breakdown.airport_tax_cost,
        lodging_cost=breakdown.lodging_cost,
        meal_cost=breakdown.meal_cost,
        parking_cost=breakdown.parking_cost,
        transport_cost=round(breakdown.transport_cost, 2),
        total_cost=breakdown.total_cost,
        total_distance_km=round(breakdown.total_distance_km, 1),
        estimated_duration_hours=round(breakdown.estimated_duration_hours, 2),
        travel_mode=breakdown.travel_mode,
        requires_air_travel=breakdown.requires_air_travel,
        per_person_multiplier=breakdown.per_person_multiplier,
        nights=breakdown.nights,
    )


def _estimate_model(computation: RouteComputation) -> TripEstimateModel:
    route = computation.route
    return TripEstimateModel(
        cost_breakdown=_breakdown_model(computation.breakdown),
        route=RouteModel(
            origin=list(route.origin.as_tuple()),
            stops=[
                RouteStopModel(
                    input_index=stop.input_index,
                    sequence=stop.sequence,
                    latitude=stop.coordinate.latitude,
                    longitude=stop.coordinate.longitude,
                    distance_from_prev_km=round(stop.distance_from_prev_km, 1),
                    city=stop.location.city if stop.location else None,
                    client_id=stop.location.client_id if stop.location else None,
                )
                for stop in route.stops
            ],
            visiting_order=route.visiting_order,
            path_distance_km=round(route.path_distance_km, 1),
            closing_leg_km=round(route.closing_leg_km, 1),
            round_trip_distance_km=round(route.round_trip_distance_km, 1),
            display_total_km=route.display_total_km,
        ),
        map=MapOverlayModel(**computation.map_overlay()),
    )


def _eligibility_model(report: EligibilityReport) -> EligibilityResponse:
    return EligibilityResponse(
        client_id=report.client_id,
        may_proceed_without_override=report.may_proceed_without_override,
        verdicts=[
            VerdictModel(
                rule_id=verdict.rule_id,
                name=verdict.name,
                description=verdict.description,
                classification=verdict.classification,
                satisfied=verdict.satisfied,
                observed_value=verdict.observed_value,
                days_since_last_event=verdict.days_since_last_event,
            )
            for verdict in report.verdicts
        ],
    )


def _decision_model(decision: AuthorizationDecision) -> DecisionResponse:
    return DecisionResponse(
        draft_key=decision.draft_key,
        state=decision.state,
        client_id=decision.client_id,
        travel_mode=decision.travel_mode,
        distance_km=round(decision.distance_km, 1),
        confirmed_distance_km=decision.confirmed_distance_km,
        awaiting_air_confirmation=decision.awaiting_air_confirmation,
        awaiting_eligibility_override=decision.awaiting_eligibility_override,
        justification=decision.justification,
        eligibility=_eligibility_model(decision.eligibility) if decision.eligibility else None,
        trip_id=decision.trip_id,
        pending_audit_records=len(decision.pending_audit),
        updated_at=decision.updated_at,
    )


@router.post("/compute-route", response_model=RouteEstimateResponse, status_code=status.HTTP_200_OK)
def compute_route(payload: TripDraftModel, planner: RoutePlanner = Depends(get_planner)) -> RouteEstimateResponse:
    """Estimate distance and cost; ``estimate`` stays null until every destination has a city and region."""
    try:
        computation = planner.compute_route(payload.to_domain())
    except TravelEngineError as exc:
        raise _to_http_error(exc) from exc
    if computation is None:
        return RouteEstimateResponse(estimate=None)
    return RouteEstimateResponse(estimate=_estimate_model(computation))


@router.post("/eligibility/{client_id}", response_model=EligibilityResponse, status_code=status.HTTP_200_OK)
def evaluate_eligibility(
    client_id: int,
    payload: EligibilityRequest | None = None,
    engine: EligibilityEngine = Depends(get_eligibility_engine),
    planner: RoutePlanner = Depends(get_planner),
) -> EligibilityResponse:
    try:
        draft = None
        if payload is not None and payload.draft is not None:
            draft = payload.draft.to_domain()
            planner.compute_route(draft)
        return _eligibility_model(engine.evaluate(client_id, draft))
    except TravelEngineError as exc:
        raise _to_http_error(exc) from exc


@router.post("/drafts/{draft_key}/submit", response_model=DecisionResponse, status_code=status.HTTP_200_OK)
def submit_draft(
    draft_key: str,
    payload: SubmitDraftRequest,
    workflow: AuthorizationWorkflow = Depends(get_workflow),
) -> DecisionResponse:
    try:
        decision = workflow.submit(
            draft_key,
            payload.draft.to_domain(),
            client_id=payload.client_id,
            is_edit=payload.is_edit,
            previous_distance_km=payload.previous_distance_km,
        )
    except TravelEngineError as exc:
        raise _to_http_error(exc) from exc
    return _decision_model(decision)


@router.post("/drafts/{draft_key}/confirm-air-travel", response_model=DecisionResponse, status_code=status.HTTP_200_OK)
def confirm_air_travel(
    draft_key: str,
    payload: ConfirmAirTravelRequest | None = None,
    workflow: AuthorizationWorkflow = Depends(get_workflow),
) -> DecisionResponse:
    payload = payload or ConfirmAirTravelRequest()
    try:
        decision = workflow.confirm_air_travel(
            draft_key,
            actor=payload.actor,
            expected_distance_km=payload.expected_distance_km,
        )
    except TravelEngineError as exc:
        raise _to_http_error(exc) from exc
    return _decision_model(decision)


@router.post("/drafts/{draft_key}/override", response_model=DecisionResponse, status_code=status.HTTP_200_OK)
def override_eligibility(
    draft_key: str,
    payload: OverrideRequest,
    workflow: AuthorizationWorkflow = Depends(get_workflow),
) -> DecisionResponse:
    try:
        decision = workflow.override_eligibility(draft_key, payload.justification, actor=payload.actor)
    except TravelEngineError as exc:
        raise _to_http_error(exc) from exc
    return _decision_model(decision)


@router.post("/drafts/{draft_key}/cancel", response_model=DecisionResponse, status_code=status.HTTP_200_OK)
def cancel_draft(draft_key: str, workflow: AuthorizationWorkflow = Depends(get_workflow)) -> DecisionResponse:
    try:
        return _decision_model(workflow.cancel(draft_key))
    except TravelEngineError as exc:
        raise _to_http_error(exc) from exc


@router.post("/drafts/{draft_key}/persist", response_model=PersistResponse, status_code=status.HTTP_201_CREATED)
def persist_draft(draft_key: str, workflow: AuthorizationWorkflow = Depends(get_workflow)) -> PersistResponse:
    try:
        trip_id = workflow.persist(draft_key)
    except TravelEngineError as exc:
        raise _to_http_error(exc) from exc
    return PersistResponse(draft_key=draft_key, trip_id=trip_id)


@router.get("/drafts/{draft_key}", response_model=DecisionResponse, status_code=status.HTTP_200_OK)
def get_decision(draft_key: str, workflow: AuthorizationWorkflow = Depends(get_workflow)) -> DecisionResponse:
    try:
        return _decision_model(workflow.get_decision(draft_key))
    except TravelEngineError as exc:
        raise _to_http_error(exc) from exc


@router.get("/{trip_id}/authorization-logs", response_model=AuthorizationLogResponse, status_code=status.HTTP_200_OK)
def get_authorization_logs(trip_id: str, store: RecordStore = Depends(get_store)) -> AuthorizationLogResponse:
    try:
        records = store.get_audit_log(trip_id)
    except TravelEngineError as exc:
        raise _to_http_error(exc) from exc
    return AuthorizationLogResponse(
        trip_id=trip_id,
        records=[
            AuditRecordModel(
                kind=record.kind,
                draft_key=record.draft_key,
                state=record.state,
                actor=record.actor,
                recorded_at=record.recorded_at,
                justification=record.justification,
                failed_rules=record.failed_rules,
                failed_obligatory_rules=record.failed_obligatory_rules,
                distance_km=record.distance_km,
            )
            for record in records
        ],
    )
