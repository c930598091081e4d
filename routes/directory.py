"""Company and user directory routes."""

import logging
from fastapi import APIRouter, Depends, HTTPException

from routes.deps import get_client, raise_for_result, require_actor
from schemas.records import Administrator, CompanyActor, Role
from schemas.requests import CompanyAccountRequest, UserAccountRequest
from store.client import FieldClient
import workflows

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["directory"])

_FORBIDDEN = "Operazione non consentita per il tuo ruolo"


@router.get("/companies")
async def list_companies(client: FieldClient = Depends(get_client)):
    require_actor(client)
    return [c.to_wire() for c in client.state.companies]


@router.post("/companies", status_code=201)
async def create_company(body: CompanyAccountRequest, client: FieldClient = Depends(get_client)):
    """Create a company and its login account (administrator only)."""
    return raise_for_result(workflows.create_company_account(client, body.model_dump())).data


@router.get("/companies/{company_id}/users")
async def list_company_users(company_id: str, client: FieldClient = Depends(get_client)):
    actor = require_actor(client)
    if not isinstance(actor, Administrator) and not (
        isinstance(actor, CompanyActor) and actor.company_id == company_id
    ):
        raise HTTPException(status_code=403, detail=_FORBIDDEN)
    return [u.to_wire() for u in client.state.get_users_by_company(company_id)]


@router.delete("/companies/{company_id}")
async def delete_company(company_id: str, client: FieldClient = Depends(get_client)):
    """Delete a company. Its interventions keep the dangling reference."""
    if not isinstance(require_actor(client), Administrator):
        raise HTTPException(status_code=403, detail=_FORBIDDEN)
    return raise_for_result(client.state.delete_company(company_id)).data


@router.get("/users")
async def list_users(client: FieldClient = Depends(get_client)):
    require_actor(client)
    return [u.to_wire() for u in client.state.users]


@router.post("/users", status_code=201)
async def create_user(body: UserAccountRequest, client: FieldClient = Depends(get_client)):
    return raise_for_result(workflows.create_user_account(client, body.model_dump())).data


@router.delete("/users/{user_id}")
async def delete_user(user_id: str, client: FieldClient = Depends(get_client)):
    """Administrators delete any non-master user; companies only their own technicians."""
    actor = require_actor(client)
    user = client.state.get_user_by_id(user_id)
    if user is None:
        raise HTTPException(status_code=404, detail=f"User {user_id} not found")

    if isinstance(actor, Administrator):
        allowed = user.role != Role.ADMINISTRATOR
    elif isinstance(actor, CompanyActor):
        allowed = user.role == Role.TECHNICIAN and user.company_id == actor.company_id
    else:
        allowed = False
    if not allowed:
        raise HTTPException(status_code=403, detail=_FORBIDDEN)

    return raise_for_result(client.state.delete_user(user_id)).data
