from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter

SERVICE_NAME = "Sisterhood Initiative API"
SERVICE_VERSION = "1.0.0"

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> dict:
    """Liveness check.

    Used by load balancers and monitoring systems. Does not touch the store.
    """

    return {
        "status": "ok",
        "service": SERVICE_NAME,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/")
def root() -> dict:
    """Service banner with the endpoint map."""

    return {
        "message": f"Man Up! Inc. {SERVICE_NAME}",
        "version": SERVICE_VERSION,
        "endpoints": {
            "health": "GET /health",
            "signup": "POST /signup",
            "signups": "GET /signups",
        },
    }
