import pytest
from fastapi.testclient import TestClient

from travel_engine.api import dependencies
from travel_engine.api.routes import health as health_routes
from travel_engine.config import Settings
from travel_engine.errors import StoreUnavailable
from travel_engine.main import create_app
from travel_engine.models.domain import ClientFacts, ClientRecord, LocationDescriptor
from travel_engine.persistence.store import InMemoryRecordStore
from travel_engine.services.authorization.workflow import AuthorizationWorkflow
from travel_engine.services.eligibility.engine import EligibilityEngine
from travel_engine.services.geocoding.resolver import CoordinateResolver
from travel_engine.services.routing.service import RoutePlanner

ORIGIN = {"city": "São Bernardo do Campo", "region": "SP"}
SANTOS = {"city": "Santos", "region": "SP", "client_id": 1}
RECIFE = {"city": "Recife", "region": "PE", "client_id": 2}


class SwitchableStore(InMemoryRecordStore):
    down = False

    def get_client_facts(self, client_id):
        if self.down:
            raise StoreUnavailable("record store timed out")
        return super().get_client_facts(client_id)


@pytest.fixture
def store() -> SwitchableStore:
    return SwitchableStore(
        facts={
            1: ClientFacts(client_id=1, last_proposal_days_ago=90, cumulative_sales_value=900000.0),
            2: ClientFacts(client_id=2, last_proposal_days_ago=5, cumulative_sales_value=900000.0),
        },
        clients=[
            ClientRecord(1, "Porto Santos", LocationDescriptor(city="Santos", region="SP", client_id=1)),
            ClientRecord(2, "Recife Norte", LocationDescriptor(city="Recife", region="PE", client_id=2)),
            ClientRecord(3, "ABC Metais", LocationDescriptor(city="São Bernardo do Campo", region="SP", client_id=3)),
        ],
    )


@pytest.fixture
def client(store):
    config = Settings(obligatory_rules=("min_days_since_last_proposal",), min_days_since_last_proposal=30)
    resolver = CoordinateResolver()
    planner = RoutePlanner(resolver)
    engine = EligibilityEngine(store, config=config)
    workflow = AuthorizationWorkflow(planner, engine, store, drift_threshold_km=10.0)

    app = create_app()
    app.dependency_overrides[dependencies.get_resolver] = lambda: resolver
    app.dependency_overrides[dependencies.get_planner] = lambda: planner
    app.dependency_overrides[dependencies.get_store] = lambda: store
    app.dependency_overrides[dependencies.get_eligibility_engine] = lambda: engine
    app.dependency_overrides[dependencies.get_workflow] = lambda: workflow
    return TestClient(app)


def test_health(client):
    assert client.get("/api/health").json() == {"status": "ok"}


def test_geocoder_health_when_not_configured(client, monkeypatch):
    monkeypatch.setattr(health_routes.settings, "geocoder_base_url", None)
    body = client.get("/api/health/geocoder").json()
    assert body == {"service": "geocoder", "configured": False, "healthy": False}


def test_compute_route_without_complete_destination(client):
    response = client.post("/api/trips/compute-route", json={"origin": ORIGIN, "destinations": [{"city": "Santos"}]})
    assert response.status_code == 200
    assert response.json() == {"estimate": None}


def test_compute_route_returns_breakdown_and_route(client):
    response = client.post(
        "/api/trips/compute-route",
        json={"origin": ORIGIN, "destinations": [SANTOS], "kind": "round_trip", "headcount": 2},
    )

    assert response.status_code == 200
    estimate = response.json()["estimate"]
    assert estimate["cost_breakdown"]["travel_mode"] == "ground"
    assert estimate["cost_breakdown"]["per_person_multiplier"] == 2
    assert estimate["route"]["visiting_order"] == [0]
    assert estimate["map"]["zoom"] == 10
    assert estimate["route"]["display_total_km"] == pytest.approx(estimate["cost_breakdown"]["total_distance_km"], abs=0.1)


def test_headcount_is_validated(client):
    response = client.post("/api/trips/compute-route", json={"destinations": [SANTOS], "headcount": 0})
    assert response.status_code == 422


def test_eligibility_endpoint(client):
    body = client.post("/api/trips/eligibility/2", json={"draft": {"destinations": [SANTOS]}}).json()

    assert body["client_id"] == 2
    assert body["may_proceed_without_override"] is False
    failed = [v["rule_id"] for v in body["verdicts"] if not v["satisfied"]]
    assert "min_days_since_last_proposal" in failed


def test_air_trip_flow(client):
    submitted = client.post(
        "/api/trips/drafts/draft-1/submit",
        json={"draft": {"origin": ORIGIN, "destinations": [RECIFE]}},
    )
    assert submitted.status_code == 200
    decision = submitted.json()
    assert decision["state"] == "pending"
    assert decision["travel_mode"] == "air"
    assert decision["awaiting_air_confirmation"] is True

    assert client.post("/api/trips/drafts/draft-1/persist").status_code == 409

    confirmed = client.post(
        "/api/trips/drafts/draft-1/confirm-air-travel",
        json={"actor": "maria", "expected_distance_km": decision["distance_km"]},
    )
    assert confirmed.status_code == 200
    assert confirmed.json()["state"] == "confirmed"

    persisted = client.post("/api/trips/drafts/draft-1/persist")
    assert persisted.status_code == 201
    trip_id = persisted.json()["trip_id"]

    logs = client.get(f"/api/trips/{trip_id}/authorization-logs").json()
    assert [record["kind"] for record in logs["records"]] == ["air_travel_confirmation"]
    assert logs["records"][0]["actor"] == "maria"

    assert client.get("/api/trips/drafts/draft-1").json()["trip_id"] == trip_id


def test_override_flow(client):
    payload = {"draft": {"origin": ORIGIN, "destinations": [SANTOS]}, "client_id": 2}
    decision = client.post("/api/trips/drafts/draft-2/submit", json=payload).json()
    assert decision["state"] == "pending"
    assert decision["awaiting_eligibility_override"] is True

    blank = client.post("/api/trips/drafts/draft-2/override", json={"justification": "  "})
    assert blank.status_code == 409

    overridden = client.post(
        "/api/trips/drafts/draft-2/override",
        json={"justification": "Renewal meeting", "actor": "joao"},
    )
    assert overridden.json()["state"] == "overridden"
    assert overridden.json()["pending_audit_records"] == 1


def test_cancel_flow(client, store):
    client.post("/api/trips/drafts/draft-3/submit", json={"draft": {"destinations": [RECIFE]}})

    cancelled = client.post("/api/trips/drafts/draft-3/cancel")

    assert cancelled.json()["state"] == "cancelled"
    assert client.post("/api/trips/drafts/draft-3/persist").status_code == 409
    assert store.trips == {}


def test_unknown_draft_is_404(client):
    assert client.get("/api/trips/drafts/nope").status_code == 404
    assert client.post("/api/trips/drafts/nope/cancel").status_code == 404


def test_incomplete_submission_is_400(client):
    response = client.post("/api/trips/drafts/d/submit", json={"draft": {"destinations": [{"city": "Santos"}]}})
    assert response.status_code == 400


def test_store_outage_is_503_and_creates_no_decision(client, store):
    store.down = True

    response = client.post(
        "/api/trips/drafts/draft-4/submit",
        json={"draft": {"destinations": [SANTOS]}, "client_id": 1},
    )

    assert response.status_code == 503
    assert client.get("/api/trips/drafts/draft-4").status_code == 404


def test_nearby_clients(client):
    response = client.get("/api/clients/1/nearby", params={"radius_km": 100})

    assert response.status_code == 200
    body = response.json()
    assert [entry["client_id"] for entry in body["clients"]] == [3]
    assert body["clients"][0]["distance_km"] < 100


def test_nearby_clients_for_unknown_client(client):
    assert client.get("/api/clients/42/nearby").status_code == 404


def test_database_health_for_local_backend(client, monkeypatch):
    monkeypatch.setattr(health_routes.settings, "record_store", "memory")
    assert client.get("/api/health/database").json() == {"backend": "memory", "configured": True}


def test_database_health_reports_supabase_tables(client, monkeypatch):
    from travel_engine.db import supabase as supabase_module

    class PartialSupabase:
        def table(self, name):
            if name == "travel_authorization_logs":
                raise ConnectionError("relation does not exist")
            return self

        def select(self, *args):
            return self

        def limit(self, count):
            return self

        def execute(self):
            return None

    monkeypatch.setattr(health_routes.settings, "record_store", "supabase")
    monkeypatch.setattr(supabase_module, "get_supabase_client", lambda: PartialSupabase())

    body = client.get("/api/health/database").json()

    assert body["connected"] is False
    assert body["tables"]["travel_costs"] is True
    assert body["tables"]["travel_authorization_logs"] is False


def test_root_lists_travel_endpoints(client):
    body = client.get("/").json()

    assert body["status"] == "running"
    assert body["endpoints"]["compute_route"] == "/api/trips/compute-route"
    assert body["endpoints"]["nearby_clients"] == "/api/clients/{client_id}/nearby"
