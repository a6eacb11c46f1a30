"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, status

from ...config import settings

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


def _get_geocoder_health_check():
    """Lazy import to avoid startup failures."""
    from ...services.geocoding.client import check_health as geocoder_health_check
    return geocoder_health_check


@router.get("/health/geocoder", status_code=status.HTTP_200_OK)
def health_geocoder() -> dict:
    """Check geocoding service health."""
    if not settings.geocoder_base_url:
        return {"service": "geocoder", "configured": False, "healthy": False}
    geocoder_health_check = _get_geocoder_health_check()
    return {"service": "geocoder", "configured": True, "healthy": geocoder_health_check()}


@router.get("/health/database", status_code=status.HTTP_200_OK)
def check_database() -> dict:
    """Check the record store backend and, for Supabase, its tables."""
    if settings.record_store != "supabase":
        return {"backend": settings.record_store, "configured": True}

    from ...db.supabase import check_tables, get_supabase_client

    supabase = get_supabase_client()
    if not supabase:
        return {
            "backend": "supabase",
            "configured": False,
            "message": "Supabase not configured. Set TRAVEL_SUPABASE_URL and TRAVEL_SUPABASE_KEY environment variables.",
        }
    tables = check_tables(supabase)
    return {"backend": "supabase", "configured": True, "connected": all(tables.values()), "tables": tables}
