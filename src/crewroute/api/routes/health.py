"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, status

from ...config import settings

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


@router.get("/health/providers", status_code=status.HTTP_200_OK)
def health_providers() -> dict:
    """Report which mapping and storage providers are configured."""
    google = bool(settings.google_maps_api_key)
    return {
        "geocoding": ["google", "nominatim"] if google else ["nominatim"],
        "distance_matrix": "google" if google else "haversine",
        "matrix_failure_policy": settings.matrix_failure_policy,
        "database": bool(settings.supabase_url and settings.supabase_key),
    }
