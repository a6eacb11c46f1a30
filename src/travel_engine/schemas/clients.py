"""Client lookup schemas."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel


class NearbyClientModel(BaseModel):
    client_id: int
    name: str
    city: str
    region: str
    distance_km: float


class NearbyClientsResponse(BaseModel):
    client_id: int
    radius_km: float
    clients: List[NearbyClientModel]
