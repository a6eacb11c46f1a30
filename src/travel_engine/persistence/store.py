"""Record store backends: client facts, persisted trips and authorization logs."""

from __future__ import annotations

import functools
import logging
import threading
import uuid
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Optional, Protocol, Sequence, TypeVar

from ..config import settings
from ..db.supabase import (
    AUTHORIZATION_LOGS_TABLE,
    CLIENT_FACTS_TABLE,
    CLIENTS_TABLE,
    TRIPS_TABLE,
    get_supabase_client,
)
from ..errors import StoreUnavailable
from ..models.domain import (
    AuditRecord,
    AuthorizationDecision,
    ClientFacts,
    ClientRecord,
    CostBreakdown,
    RouteResult,
    TripDraft,
)
from .filesystem import FileStorage
from .serializers import (
    audit_record_from_dict,
    client_facts_from_dict,
    client_record_from_dict,
    to_jsonable,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _parse_client_facts(client_id: int, row: dict[str, Any] | None) -> ClientFacts:
    try:
        return client_facts_from_dict(client_id, row)
    except (TypeError, ValueError) as e:
        raise StoreUnavailable(f"Malformed facts for client {client_id}: {e}") from e


def _parse_audit_log(trip_id: str, rows: Sequence[dict[str, Any]]) -> list[AuditRecord]:
    try:
        return [audit_record_from_dict(row) for row in rows]
    except (KeyError, TypeError, ValueError) as e:
        raise StoreUnavailable(f"Malformed authorization log for trip {trip_id}: {e}") from e


class RecordStore(Protocol):
    def get_client_facts(self, client_id: int) -> ClientFacts:
        ...

    def list_clients(self) -> list[ClientRecord]:
        ...

    def persist_trip(
        self,
        draft: TripDraft,
        breakdown: CostBreakdown,
        route: Optional[RouteResult],
        decision: AuthorizationDecision,
    ) -> str:
        ...

    def append_audit_log(self, trip_id: str, record: AuditRecord) -> None:
        ...

    def get_audit_log(self, trip_id: str) -> list[AuditRecord]:
        ...


def build_trip_document(
    trip_id: str,
    draft: TripDraft,
    breakdown: CostBreakdown,
    route: Optional[RouteResult],
    decision: AuthorizationDecision,
) -> dict[str, Any]:
    return {
        "trip_id": trip_id,
        "draft_key": decision.draft_key,
        "client_id": decision.client_id,
        "created_at": datetime.now(timezone.utc).isoformat(),
        "draft": to_jsonable(
            {
                "origin": draft.origin,
                "destinations": draft.destinations,
                "kind": draft.kind,
                "headcount": draft.headcount,
                "departure_date": draft.departure_date,
                "return_date": draft.return_date,
                "visiting_order": draft.visiting_order,
            }
        ),
        "cost_breakdown": {**to_jsonable(breakdown), "total_cost": breakdown.total_cost},
        "route": (
            {**to_jsonable(route), "round_trip_distance_km": route.round_trip_distance_km}
            if route is not None
            else None
        ),
        "authorization": {
            "state": decision.state.value,
            "justification": decision.justification,
            "confirmed_distance_km": decision.confirmed_distance_km,
            "failed_rules": [v.name for v in decision.eligibility.failed_rules] if decision.eligibility else [],
        },
    }


class InMemoryRecordStore:
    """Process-local store, used by tests and single-process deployments."""

    def __init__(
        self,
        facts: dict[int, ClientFacts] | None = None,
        clients: Sequence[ClientRecord] | None = None,
    ) -> None:
        self.facts: dict[int, ClientFacts] = dict(facts or {})
        self.clients: list[ClientRecord] = list(clients or [])
        self.trips: dict[str, dict[str, Any]] = {}
        self.audit_logs: dict[str, list[AuditRecord]] = {}
        self._lock = threading.Lock()

    def get_client_facts(self, client_id: int) -> ClientFacts:
        return self.facts.get(client_id) or ClientFacts(client_id=client_id)

    def list_clients(self) -> list[ClientRecord]:
        return list(self.clients)

    def persist_trip(self, draft, breakdown, route, decision) -> str:
        trip_id = uuid.uuid4().hex
        with self._lock:
            self.trips[trip_id] = build_trip_document(trip_id, draft, breakdown, route, decision)
        return trip_id

    def append_audit_log(self, trip_id: str, record: AuditRecord) -> None:
        with self._lock:
            self.audit_logs.setdefault(trip_id, []).append(record)

    def get_audit_log(self, trip_id: str) -> list[AuditRecord]:
        return list(self.audit_logs.get(trip_id, []))


class FileRecordStore:
    """JSON documents under the data root.

    ``clients.json`` holds one object per client with its location and facts.
    Trips and audit logs are written below ``outputs/``.
    """

    def __init__(self, storage: FileStorage | None = None, clients_file: Path | None = None) -> None:
        self.storage = storage or FileStorage()
        self.clients_file = clients_file or (self.storage.root / "clients.json")
        self._lock = threading.Lock()

    def _client_rows(self) -> list[dict[str, Any]]:
        try:
            rows = self.storage.read_json(self.clients_file, default=[])
        except (OSError, ValueError) as e:
            raise StoreUnavailable(f"Unable to read client records from {self.clients_file}: {e}") from e
        if not isinstance(rows, list):
            raise StoreUnavailable(f"Client records in {self.clients_file} must be a JSON array.")
        return rows

    def get_client_facts(self, client_id: int) -> ClientFacts:
        try:
            row = next((r for r in self._client_rows() if int(r.get("client_id", -1)) == client_id), None)
        except (AttributeError, TypeError, ValueError) as e:
            raise StoreUnavailable(f"Malformed client records in {self.clients_file}: {e}") from e
        return _parse_client_facts(client_id, row)

    def list_clients(self) -> list[ClientRecord]:
        clients: list[ClientRecord] = []
        for row in self._client_rows():
            try:
                clients.append(client_record_from_dict(row))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping invalid client row: {e}")
        return clients

    def _audit_path(self, trip_id: str) -> Path:
        return self.storage.collection("authorization_logs") / f"{trip_id}.json"

    def persist_trip(self, draft, breakdown, route, decision) -> str:
        trip_id = uuid.uuid4().hex
        document = build_trip_document(trip_id, draft, breakdown, route, decision)
        try:
            self.storage.write_json(self.storage.collection("trips") / f"{trip_id}.json", document)
        except OSError as e:
            raise StoreUnavailable(f"Unable to persist trip: {e}") from e
        return trip_id

    def append_audit_log(self, trip_id: str, record: AuditRecord) -> None:
        path = self._audit_path(trip_id)
        with self._lock:
            try:
                entries = self.storage.read_json(path, default=[])
                entries.append(to_jsonable(record))
                self.storage.write_json(path, entries)
            except (OSError, ValueError) as e:
                raise StoreUnavailable(f"Unable to append authorization log for trip {trip_id}: {e}") from e

    def get_audit_log(self, trip_id: str) -> list[AuditRecord]:
        try:
            entries = self.storage.read_json(self._audit_path(trip_id), default=[])
        except (OSError, ValueError) as e:
            raise StoreUnavailable(f"Unable to read authorization log for trip {trip_id}: {e}") from e
        return _parse_audit_log(trip_id, entries)


_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="record-store")


def call_with_timeout(func: Callable[[], T], timeout: float) -> T:
    """Run a blocking store call, raising StoreUnavailable when it exceeds ``timeout`` seconds."""
    future = _executor.submit(func)
    try:
        return future.result(timeout=timeout)
    except FutureTimeoutError as e:
        future.cancel()
        raise StoreUnavailable(f"Record store did not answer within {timeout:.1f}s") from e
    except StoreUnavailable:
        raise
    except Exception as e:
        raise StoreUnavailable(f"Record store call failed: {e}") from e


class SupabaseRecordStore:
    """Record store backed by Supabase tables."""

    def __init__(self, client: Any, timeout: float | None = None) -> None:
        self.client = client
        self.timeout = timeout if timeout is not None else settings.store_timeout_seconds

    def _run(self, func: Callable[[], T]) -> T:
        return call_with_timeout(func, self.timeout)

    def get_client_facts(self, client_id: int) -> ClientFacts:
        response = self._run(
            lambda: self.client.table(CLIENT_FACTS_TABLE).select("*").eq("client_id", client_id).limit(1).execute()
        )
        rows = response.data or []
        return _parse_client_facts(client_id, rows[0] if rows else None)

    def list_clients(self) -> list[ClientRecord]:
        response = self._run(lambda: self.client.table(CLIENTS_TABLE).select("*").execute())
        clients: list[ClientRecord] = []
        for row in response.data or []:
            try:
                clients.append(client_record_from_dict(row))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping invalid client row: {e}")
        return clients

    def persist_trip(self, draft, breakdown, route, decision) -> str:
        trip_id = uuid.uuid4().hex
        document = build_trip_document(trip_id, draft, breakdown, route, decision)
        self._run(lambda: self.client.table(TRIPS_TABLE).insert(document).execute())
        return trip_id

    def append_audit_log(self, trip_id: str, record: AuditRecord) -> None:
        row = {**to_jsonable(record), "trip_id": trip_id}
        self._run(lambda: self.client.table(AUTHORIZATION_LOGS_TABLE).insert(row).execute())

    def get_audit_log(self, trip_id: str) -> list[AuditRecord]:
        response = self._run(
            lambda: self.client.table(AUTHORIZATION_LOGS_TABLE)
            .select("*")
            .eq("trip_id", trip_id)
            .order("recorded_at")
            .execute()
        )
        return _parse_audit_log(trip_id, response.data or [])


@functools.lru_cache(maxsize=1)
def get_record_store() -> RecordStore:
    """Build the configured record store backend."""
    if settings.record_store == "memory":
        return InMemoryRecordStore()
    if settings.record_store == "supabase":
        client = get_supabase_client()
        if client is None:
            raise StoreUnavailable("Supabase record store selected but Supabase is not configured.")
        return SupabaseRecordStore(client)
    return FileRecordStore()
