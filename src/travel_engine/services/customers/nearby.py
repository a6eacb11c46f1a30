"""Lookup of clients located around a given client."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

from ...config import settings
from ...errors import PreconditionViolated
from ...models.domain import ClientRecord
from ..geocoding.resolver import CoordinateResolver
from ..geospatial import distance_km

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class NearbyClient:
    client: ClientRecord
    distance_km: float


def nearby_clients(
    client_id: int,
    clients: Sequence[ClientRecord],
    resolver: CoordinateResolver,
    radius_km: float | None = None,
) -> list[NearbyClient]:
    """Return the other clients within ``radius_km`` of ``client_id``, nearest first."""
    radius_km = settings.nearby_radius_km if radius_km is None else radius_km
    if radius_km <= 0:
        raise PreconditionViolated("Search radius must be positive.")

    anchor = next((client for client in clients if client.client_id == client_id), None)
    if anchor is None:
        raise PreconditionViolated(f"Client {client_id} is not a known client.")

    center = resolver.resolve(anchor.location)
    matches: list[NearbyClient] = []
    for client in clients:
        if client.client_id == client_id:
            continue
        distance = distance_km(center, resolver.resolve(client.location))
        if distance <= radius_km:
            matches.append(NearbyClient(client=client, distance_km=round(distance, 1)))

    matches.sort(key=lambda match: match.distance_km)
    logger.debug(f"{len(matches)} client(s) within {radius_km:.0f} km of client {client_id}")
    return matches
