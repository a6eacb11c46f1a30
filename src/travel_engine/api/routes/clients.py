"""Client lookup endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ...config import settings
from ...errors import PreconditionViolated, StoreUnavailable
from ...persistence.store import RecordStore
from ...schemas.clients import NearbyClientModel, NearbyClientsResponse
from ...services.customers import nearby_clients
from ...services.geocoding.resolver import CoordinateResolver
from ..dependencies import get_resolver, get_store

router = APIRouter(prefix="/clients", tags=["clients"])


@router.get("/{client_id}/nearby", response_model=NearbyClientsResponse, status_code=status.HTTP_200_OK)
def list_nearby_clients(
    client_id: int,
    radius_km: float = Query(default=settings.nearby_radius_km, gt=0, le=5000, description="Search radius in km"),
    store: RecordStore = Depends(get_store),
    resolver: CoordinateResolver = Depends(get_resolver),
) -> NearbyClientsResponse:
    try:
        matches = nearby_clients(client_id, store.list_clients(), resolver, radius_km)
    except PreconditionViolated as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except StoreUnavailable as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    return NearbyClientsResponse(
        client_id=client_id,
        radius_km=radius_km,
        clients=[
            NearbyClientModel(
                client_id=match.client.client_id,
                name=match.client.name,
                city=match.client.location.city,
                region=match.client.location.region,
                distance_km=match.distance_km,
            )
            for match in matches
        ],
    )
