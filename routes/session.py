"""Session routes: login, logout and the current user."""

import logging
from fastapi import APIRouter, Depends, HTTPException

from routes.deps import get_client
from schemas.requests import LoginRequest
from store.client import FieldClient

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/session", tags=["session"])


def _session_view(client: FieldClient) -> dict:
    user = client.auth.user
    return {
        "authenticated": user is not None,
        "user": user.to_wire() if user else None,
        "is_demo_mode": client.auth.is_demo_mode,
        "has_valid_token": client.auth.has_valid_token,
    }


@router.get("")
async def get_session(client: FieldClient = Depends(get_client)):
    return _session_view(client)


@router.post("/login")
async def login(body: LoginRequest, client: FieldClient = Depends(get_client)):
    """Authenticate; the state re-keys any drifted technician on success."""
    result = await client.auth.login(body.username, body.password)
    if not result.success:
        logger.info(f"Login refused for {body.username}: {result.error}")
        raise HTTPException(status_code=401, detail=result.error)
    return _session_view(client)


@router.post("/logout")
async def logout(client: FieldClient = Depends(get_client)):
    """End the session, removing this device's push token from the server first."""
    await client.auth.sign_out()
    return _session_view(client)
