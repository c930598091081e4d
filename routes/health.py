"""Health check route."""

from fastapi import APIRouter, Depends

from config import settings
from routes.deps import get_client
from store.client import FieldClient

router = APIRouter(tags=["health"])


@router.get("/api/health")
def health_check(client: FieldClient = Depends(get_client)):
    """Health check endpoint, with the state of the local cache and session."""
    return {
        "status": "healthy",
        "service": "SolarTech Field Client",
        "loaded": client.state.is_loaded,
        "authenticated": client.auth.is_authenticated,
        "api_base_url": settings.API_BASE_URL,
    }
