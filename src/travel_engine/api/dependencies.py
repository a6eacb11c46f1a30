"""Shared service instances for the HTTP layer."""

from __future__ import annotations

import logging
from functools import lru_cache

from ..config import settings
from ..persistence.store import RecordStore, get_record_store
from ..services.authorization.workflow import AuthorizationWorkflow
from ..services.eligibility.engine import EligibilityEngine
from ..services.geocoding.client import GeocodingClient
from ..services.geocoding.resolver import CoordinateResolver
from ..services.routing.service import RoutePlanner

logger = logging.getLogger(__name__)


@lru_cache()
def get_resolver() -> CoordinateResolver:
    geocoder = None
    if settings.geocoder_base_url:
        geocoder = GeocodingClient()
    else:
        logger.info("No geocoder configured, resolving addresses from city and region tables only")
    return CoordinateResolver(geocoder)


@lru_cache()
def get_planner() -> RoutePlanner:
    return RoutePlanner(get_resolver())


def get_store() -> RecordStore:
    return get_record_store()


@lru_cache()
def get_eligibility_engine() -> EligibilityEngine:
    return EligibilityEngine(get_record_store())


@lru_cache()
def get_workflow() -> AuthorizationWorkflow:
    return AuthorizationWorkflow(get_planner(), get_eligibility_engine(), get_record_store())
