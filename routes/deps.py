"""Shared route dependencies and failure mapping."""

from fastapi import HTTPException, Request

from schemas.results import ActionResult
from store.client import FieldClient

STATUS_BY_CODE = {
    "not_found": 404,
    "forbidden": 403,
    "unauthenticated": 401,
}


def get_client(request: Request) -> FieldClient:
    """Dependency that provides the process-wide client."""
    return request.app.state.client


def require_actor(client: FieldClient):
    actor = client.auth.actor
    if actor is None:
        raise HTTPException(status_code=401, detail="Utente non autenticato")
    return actor


def raise_for_result(result: ActionResult) -> ActionResult:
    """Turn a tagged failure into an HTTP error; pass successes through."""
    if not result.success:
        raise HTTPException(status_code=STATUS_BY_CODE.get(result.code, 400), detail=result.message)
    return result
