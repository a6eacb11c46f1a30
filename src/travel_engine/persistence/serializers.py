"""Conversion of domain records to and from JSON-compatible dictionaries."""

from __future__ import annotations

from dataclasses import asdict, is_dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any

from ..models.domain import (
    AuditRecord,
    AuthorizationState,
    ClientFacts,
    ClientRecord,
    Coordinate,
    LocationDescriptor,
)


def to_jsonable(value: Any) -> Any:
    if is_dataclass(value) and not isinstance(value, type):
        return to_jsonable(asdict(value))
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {key: to_jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(item) for item in value]
    return value


def audit_record_from_dict(row: dict[str, Any]) -> AuditRecord:
    recorded_at = row["recorded_at"]
    if isinstance(recorded_at, str):
        recorded_at = datetime.fromisoformat(recorded_at)
    return AuditRecord(
        kind=row["kind"],
        draft_key=row["draft_key"],
        state=AuthorizationState(row["state"]),
        actor=row.get("actor"),
        recorded_at=recorded_at,
        justification=row.get("justification"),
        failed_rules=list(row.get("failed_rules") or []),
        failed_obligatory_rules=list(row.get("failed_obligatory_rules") or []),
        distance_km=row.get("distance_km"),
        trip_id=row.get("trip_id"),
    )


def client_facts_from_dict(client_id: int, row: dict[str, Any] | None) -> ClientFacts:
    row = row or {}
    days = row.get("last_proposal_days_ago")
    return ClientFacts(
        client_id=client_id,
        last_proposal_days_ago=int(days) if days is not None else None,
        cumulative_sales_value=float(row.get("cumulative_sales_value") or 0.0),
        travel_cost_to_date=float(row.get("travel_cost_to_date") or 0.0),
    )


def client_record_from_dict(row: dict[str, Any]) -> ClientRecord:
    lat, lon = row.get("latitude"), row.get("longitude")
    coordinate = Coordinate(float(lat), float(lon)) if lat is not None and lon is not None else None
    client_id = int(row["client_id"])
    return ClientRecord(
        client_id=client_id,
        name=str(row.get("name") or f"Client {client_id}"),
        location=LocationDescriptor(
            city=str(row.get("city") or ""),
            region=str(row.get("region") or ""),
            address=row.get("address"),
            client_id=client_id,
            coordinate=coordinate,
        ),
    )
