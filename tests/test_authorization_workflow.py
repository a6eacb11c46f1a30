import math
import threading
from datetime import datetime, timezone

import pytest

from travel_engine.config import Settings
from travel_engine.errors import AuthorizationError, DecisionNotFound, PreconditionViolated, StoreUnavailable
from travel_engine.models.domain import (
    AuthorizationState,
    ClientFacts,
    Coordinate,
    LocationDescriptor,
    TravelMode,
    TripDraft,
    TripKind,
)
from travel_engine.persistence.store import InMemoryRecordStore
from travel_engine.services.authorization.workflow import AuthorizationWorkflow
from travel_engine.services.costing.model import CostModel, CostTables
from travel_engine.services.eligibility.engine import EligibilityEngine
from travel_engine.services.geocoding.resolver import CoordinateResolver
from travel_engine.services.geospatial import EARTH_RADIUS_KM
from travel_engine.services.routing.service import RoutePlanner

HOME = Coordinate(-23.7150, -46.5550)
NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

ELIGIBLE = ClientFacts(client_id=1, last_proposal_days_ago=90, cumulative_sales_value=500000.0)
RECENT_LOW_SALES = ClientFacts(client_id=2, last_proposal_days_ago=10, cumulative_sales_value=1000.0)


class FlakyStore(InMemoryRecordStore):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.facts_down = False
        self.audit_failures = 0

    def get_client_facts(self, client_id):
        if self.facts_down:
            raise StoreUnavailable("client facts unavailable")
        return super().get_client_facts(client_id)

    def append_audit_log(self, trip_id, record):
        if self.audit_failures:
            self.audit_failures -= 1
            raise StoreUnavailable("audit log unavailable")
        super().append_audit_log(trip_id, record)


@pytest.fixture
def store() -> FlakyStore:
    return FlakyStore(facts={facts.client_id: facts for facts in (ELIGIBLE, RECENT_LOW_SALES)})


@pytest.fixture
def workflow(store) -> AuthorizationWorkflow:
    resolver = CoordinateResolver(city_table={}, region_table={}, home=HOME, home_region="SP")
    planner = RoutePlanner(resolver, CostModel(CostTables.from_settings()))
    config = Settings(
        obligatory_rules=("min_days_since_last_proposal",),
        min_days_since_last_proposal=30,
        min_cumulative_sales=50000.0,
        max_cost_to_revenue_pct=100.0,
    )
    engine = EligibilityEngine(store, config=config)
    return AuthorizationWorkflow(planner, engine, store, drift_threshold_km=10.0, clock=lambda: NOW)


def _trip(one_way_km: float) -> TripDraft:
    """Round trip to a point ``one_way_km`` due south of headquarters."""
    destination = Coordinate(HOME.latitude - math.degrees(one_way_km / EARTH_RADIUS_KM), HOME.longitude)
    return TripDraft(
        origin=LocationDescriptor(city="São Bernardo do Campo", region="SP", coordinate=HOME),
        destinations=[LocationDescriptor(city="Destino", region="PR", coordinate=destination)],
        kind=TripKind.ROUND_TRIP,
    )


def test_ground_trip_for_eligible_client_is_confirmed_without_human_action(workflow, store):
    decision = workflow.submit("d1", _trip(100), client_id=1)

    assert decision.state is AuthorizationState.CONFIRMED
    assert decision.travel_mode is TravelMode.GROUND

    trip_id = workflow.persist("d1")
    assert trip_id in store.trips
    assert store.audit_logs == {}


def test_air_trip_requires_confirmation_before_persisting(workflow, store):
    decision = workflow.submit("d1", _trip(400), client_id=1)
    assert decision.state is AuthorizationState.PENDING
    assert decision.awaiting_air_confirmation
    assert decision.distance_km == pytest.approx(800.0)

    with pytest.raises(AuthorizationError):
        workflow.persist("d1")
    assert store.trips == {}

    confirmed = workflow.confirm_air_travel("d1", actor="maria")
    assert confirmed.state is AuthorizationState.CONFIRMED
    assert confirmed.confirmed_distance_km == pytest.approx(800.0)
    assert confirmed.air_confirmation.confirmed_by == "maria"

    trip_id = workflow.persist("d1")
    records = store.get_audit_log(trip_id)
    assert [record.kind for record in records] == ["air_travel_confirmation"]
    assert records[0].actor == "maria"
    assert records[0].trip_id == trip_id
    assert records[0].distance_km == pytest.approx(800.0)


def test_small_drift_keeps_confirmation(workflow):
    workflow.submit("d1", _trip(400), client_id=1)
    workflow.confirm_air_travel("d1")

    decision = workflow.submit("d1", _trip(404), client_id=1)

    assert decision.state is AuthorizationState.CONFIRMED
    assert decision.distance_km == pytest.approx(808.0)
    assert decision.confirmed_distance_km == pytest.approx(800.0)


def test_drift_beyond_ten_km_forces_reconfirmation(workflow, store):
    workflow.submit("d1", _trip(400), client_id=1)
    workflow.confirm_air_travel("d1")

    decision = workflow.submit("d1", _trip(406), client_id=1)

    assert decision.state is AuthorizationState.PENDING
    assert decision.air_confirmation is None
    assert decision.pending_audit == []
    with pytest.raises(AuthorizationError):
        workflow.persist("d1")

    workflow.confirm_air_travel("d1", actor="maria")
    trip_id = workflow.persist("d1")
    records = store.get_audit_log(trip_id)
    assert len(records) == 1
    assert records[0].distance_km == pytest.approx(812.0)


def test_drift_is_measured_against_the_confirmed_distance(workflow):
    workflow.submit("d1", _trip(400), client_id=1)
    workflow.confirm_air_travel("d1")

    assert workflow.submit("d1", _trip(404), client_id=1).state is AuthorizationState.CONFIRMED
    assert workflow.submit("d1", _trip(408), client_id=1).state is AuthorizationState.PENDING


def test_confirmation_is_refused_when_shown_distance_is_stale(workflow):
    workflow.submit("d1", _trip(400), client_id=1)

    with pytest.raises(AuthorizationError):
        workflow.confirm_air_travel("d1", expected_distance_km=780.0)
    assert workflow.get_decision("d1").state is AuthorizationState.PENDING

    decision = workflow.confirm_air_travel("d1", expected_distance_km=795.0)
    assert decision.state is AuthorizationState.CONFIRMED


def test_ground_trip_cannot_be_confirmed_for_air(workflow):
    workflow.submit("d1", _trip(100), client_id=1)
    with pytest.raises(AuthorizationError):
        workflow.confirm_air_travel("d1")


def test_override_records_every_failed_rule(workflow, store):
    decision = workflow.submit("d2", _trip(100), client_id=2)
    assert decision.state is AuthorizationState.PENDING
    assert decision.awaiting_eligibility_override
    assert decision.eligibility.may_proceed_without_override is False

    overridden = workflow.override_eligibility("d2", "Strategic account visit", actor="joao")
    assert overridden.state is AuthorizationState.OVERRIDDEN
    assert overridden.justification == "Strategic account visit"

    trip_id = workflow.persist("d2")
    (record,) = store.get_audit_log(trip_id)
    assert record.kind == "eligibility_override"
    assert record.state is AuthorizationState.OVERRIDDEN
    assert record.actor == "joao"
    assert record.recorded_at == NOW
    assert record.justification == "Strategic account visit"
    assert set(record.failed_rules) == {"Minimum interval since last proposal", "Minimum sales volume"}
    assert record.failed_obligatory_rules == ["Minimum interval since last proposal"]
    assert store.trips[trip_id]["authorization"]["state"] == "overridden"


@pytest.mark.parametrize("justification", ["", "   "])
def test_override_requires_justification(workflow, justification):
    workflow.submit("d2", _trip(100), client_id=2)
    with pytest.raises(AuthorizationError):
        workflow.override_eligibility("d2", justification)
    assert workflow.get_decision("d2").state is AuthorizationState.PENDING


def test_override_is_refused_when_rules_pass(workflow):
    workflow.submit("d1", _trip(100), client_id=1)
    with pytest.raises(AuthorizationError):
        workflow.override_eligibility("d1", "not needed")


def test_satisfied_rules_on_resubmit_lift_the_block(workflow, store):
    workflow.submit("d2", _trip(100), client_id=2)
    store.facts[2] = ClientFacts(client_id=2, last_proposal_days_ago=45, cumulative_sales_value=1000.0)

    assert workflow.submit("d2", _trip(100), client_id=2).state is AuthorizationState.CONFIRMED


def test_air_trip_with_failed_rules_needs_both_decisions(workflow, store):
    workflow.submit("d2", _trip(400), client_id=2)

    after_override = workflow.override_eligibility("d2", "Contract renewal", actor="joao")
    assert after_override.state is AuthorizationState.PENDING
    assert after_override.awaiting_air_confirmation

    after_air = workflow.confirm_air_travel("d2", actor="joao")
    assert after_air.state is AuthorizationState.OVERRIDDEN

    trip_id = workflow.persist("d2")
    kinds = [record.kind for record in store.get_audit_log(trip_id)]
    assert kinds == ["eligibility_override", "air_travel_confirmation"]


def test_store_failure_on_new_draft_creates_no_decision(workflow, store):
    store.facts_down = True

    with pytest.raises(StoreUnavailable):
        workflow.submit("d1", _trip(100), client_id=1)
    with pytest.raises(DecisionNotFound):
        workflow.get_decision("d1")


def test_store_failure_leaves_existing_decision_untouched(workflow, store):
    before = workflow.submit("d1", _trip(400), client_id=1)
    store.facts_down = True

    with pytest.raises(StoreUnavailable):
        workflow.submit("d1", _trip(100), client_id=1)

    after = workflow.get_decision("d1")
    assert after.state is AuthorizationState.PENDING
    assert after.distance_km == before.distance_km
    assert after.travel_mode is TravelMode.AIR


def test_incomplete_draft_is_rejected_before_any_transition(workflow):
    draft = _trip(100)
    draft.destinations[0] = LocationDescriptor(city="", region="PR")

    with pytest.raises(PreconditionViolated):
        workflow.submit("d1", draft, client_id=1)
    with pytest.raises(DecisionNotFound):
        workflow.get_decision("d1")


def test_cancelled_draft_writes_nothing(workflow, store):
    workflow.submit("d2", _trip(400), client_id=2)
    workflow.confirm_air_travel("d2")
    workflow.override_eligibility("d2", "Key client", actor="joao")

    cancelled = workflow.cancel("d2")

    assert cancelled.state is AuthorizationState.CANCELLED
    assert cancelled.pending_audit == []
    assert store.trips == {}
    assert store.audit_logs == {}
    with pytest.raises(AuthorizationError):
        workflow.persist("d2")
    with pytest.raises(AuthorizationError):
        workflow.submit("d2", _trip(400), client_id=2)


def test_edit_seeds_confirmation_from_stored_distance(workflow):
    decision = workflow.submit("trip-9", _trip(400), client_id=2, is_edit=True, previous_distance_km=805.0)

    assert decision.state is AuthorizationState.CONFIRMED
    assert decision.eligibility is None
    assert decision.confirmed_distance_km == pytest.approx(805.0)


def test_edit_with_drifted_distance_asks_again(workflow):
    decision = workflow.submit("trip-9", _trip(400), client_id=1, is_edit=True, previous_distance_km=780.0)
    assert decision.state is AuthorizationState.PENDING


def test_edit_of_ground_trip_does_not_seed(workflow):
    decision = workflow.submit("trip-9", _trip(400), client_id=1, is_edit=True, previous_distance_km=600.0)
    assert decision.state is AuthorizationState.PENDING
    assert decision.air_confirmation is None


def test_persist_resumes_after_audit_write_failure(workflow, store):
    workflow.submit("d1", _trip(400), client_id=1)
    workflow.confirm_air_travel("d1")
    store.audit_failures = 1

    with pytest.raises(StoreUnavailable):
        workflow.persist("d1")
    assert len(store.trips) == 1
    assert workflow.get_decision("d1").pending_audit

    trip_id = workflow.persist("d1")
    assert list(store.trips) == [trip_id]
    assert len(store.get_audit_log(trip_id)) == 1
    assert workflow.persist("d1") == trip_id
    assert len(store.get_audit_log(trip_id)) == 1


def test_persisted_draft_is_closed(workflow):
    workflow.submit("d1", _trip(100), client_id=1)
    workflow.persist("d1")
    with pytest.raises(AuthorizationError):
        workflow.submit("d1", _trip(120), client_id=1)
    with pytest.raises(AuthorizationError):
        workflow.cancel("d1")


def test_unknown_draft_key():
    workflow = AuthorizationWorkflow(None, None, InMemoryRecordStore())
    with pytest.raises(DecisionNotFound):
        workflow.get_decision("missing")
    with pytest.raises(KeyError):
        workflow.confirm_air_travel("missing")


def test_returned_decisions_are_snapshots(workflow):
    snapshot = workflow.submit("d1", _trip(400), client_id=1)
    workflow.confirm_air_travel("d1")
    assert snapshot.state is AuthorizationState.PENDING


def test_concurrent_submissions_leave_a_consistent_decision(workflow):
    distances = [400, 404, 406, 300, 402, 410]
    threads = [
        threading.Thread(target=workflow.submit, args=("d1", _trip(km)), kwargs={"client_id": 1})
        for km in distances
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    decision = workflow.get_decision("d1")
    assert any(decision.distance_km == pytest.approx(2 * km) for km in distances)
    assert decision.state is (AuthorizationState.PENDING if decision.distance_km > 600 else AuthorizationState.CONFIRMED)


def test_air_confirmation_record_keeps_its_own_outcome(workflow, store):
    workflow.submit("d2", _trip(400), client_id=2)
    still_pending = workflow.confirm_air_travel("d2", actor="maria")
    assert still_pending.state is AuthorizationState.PENDING

    workflow.override_eligibility("d2", "Contract renewal", actor="joao")
    trip_id = workflow.persist("d2")

    states = {record.kind: record.state for record in store.get_audit_log(trip_id)}
    assert states == {
        "air_travel_confirmation": AuthorizationState.CONFIRMED,
        "eligibility_override": AuthorizationState.OVERRIDDEN,
    }


def test_persisted_drafts_release_their_route(workflow):
    for index in range(50):
        workflow.submit(f"d{index}", _trip(100), client_id=1)
        workflow.persist(f"d{index}")

    assert workflow._drafts == {}


def test_finished_decisions_are_bounded(store, workflow):
    bounded = AuthorizationWorkflow(
        workflow.planner, workflow.eligibility, store, drift_threshold_km=10.0, retain_finished=5, clock=lambda: NOW
    )
    for index in range(50):
        bounded.submit(f"d{index}", _trip(100), client_id=1)
        if index % 2:
            bounded.cancel(f"d{index}")
        else:
            bounded.persist(f"d{index}")
    bounded.submit("open", _trip(400), client_id=1)

    assert len(bounded._decisions) == 6
    assert len(bounded._locks) == 6
    assert bounded.get_decision("d49").state is AuthorizationState.CANCELLED
    assert bounded.get_decision("d48").is_persisted
    assert bounded.get_decision("open").state is AuthorizationState.PENDING
    with pytest.raises(DecisionNotFound):
        bounded.get_decision("d0")


def test_reads_of_unknown_drafts_leave_no_state(workflow):
    for index in range(10):
        with pytest.raises(DecisionNotFound):
            workflow.get_decision(f"missing-{index}")
    assert workflow._locks == {}
