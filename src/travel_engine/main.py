"""FastAPI application entry point."""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.routes import clients, health, trips
from .config import settings


def create_app() -> FastAPI:
    app = FastAPI(title=settings.app_name)
    if settings.frontend_allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(settings.frontend_allowed_origins),
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.get("/")
    def root():
        return {
            "service": settings.app_name,
            "status": "running",
            "api_prefix": settings.api_prefix,
            "record_store": settings.record_store,
            "geocoder_configured": bool(settings.geocoder_base_url),
            "endpoints": {
                "compute_route": f"{settings.api_prefix}/trips/compute-route",
                "eligibility": f"{settings.api_prefix}/trips/eligibility/{{client_id}}",
                "drafts": f"{settings.api_prefix}/trips/drafts/{{draft_key}}",
                "nearby_clients": f"{settings.api_prefix}/clients/{{client_id}}/nearby",
                "health": f"{settings.api_prefix}/health",
            },
            "docs": "/docs",
        }

    app.include_router(health.router, prefix=settings.api_prefix)
    app.include_router(trips.router, prefix=settings.api_prefix)
    app.include_router(clients.router, prefix=settings.api_prefix)
    return app


app = create_app()
