"""Dashboard routes."""

from fastapi import APIRouter, Depends

from engine import global_stats
from routes.deps import get_client, require_actor
from schemas.records import Administrator
from schemas.results import GlobalStats
from store.client import FieldClient

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


@router.get("/stats", response_model=GlobalStats)
async def get_stats(client: FieldClient = Depends(get_client)):
    """Overview counts: global for the administrator, scoped to the visible records otherwise."""
    if isinstance(require_actor(client), Administrator):
        return client.state.global_stats()
    return global_stats(client.state.interventions, client.state.companies, client.state.users)
