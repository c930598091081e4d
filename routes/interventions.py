"""Intervention routes: the role-scoped list and every intervention action."""

import logging
from fastapi import APIRouter, Depends, HTTPException
from pydantic.alias_generators import to_snake

from config import settings
from routes.deps import get_client, raise_for_result, require_actor
from schemas.records import Administrator, TechnicianActor
from schemas.requests import (
    AppointmentSlotRequest, BulkAssignRequest, CloseRequest, InterventionCreate, NotesRequest,
    PhotoRequest, ReportRequest, StatusChangeRequest, TechnicianAssignRequest,
)
from store.client import FieldClient
import workflows

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/interventions", tags=["interventions"])

# Reassignment goes through /technician and /bulk-assign
_ASSIGNMENT_FIELDS = {"company_id", "company_name", "technician_id", "technician_name"}


@router.get("")
async def list_interventions(status: str | None = None, client: FieldClient = Depends(get_client)):
    """Interventions visible to the current user, optionally filtered by status."""
    require_actor(client)
    interventions = client.state.interventions
    if status:
        interventions = [i for i in interventions if i.status.value == status]
    return [i.to_wire() for i in interventions]


@router.get("/unassigned")
async def list_unassigned(client: FieldClient = Depends(get_client)):
    """Interventions not yet handed to a company (administrator backlog)."""
    if not isinstance(require_actor(client), Administrator):
        raise HTTPException(status_code=403, detail="Operazione non consentita per il tuo ruolo")
    return [i.to_wire() for i in client.state.unassigned_interventions]


@router.post("", status_code=201)
async def create_intervention(body: InterventionCreate, client: FieldClient = Depends(get_client)):
    result = raise_for_result(workflows.create_intervention(client, body.model_dump(exclude_none=True)))
    return client.state.get_intervention_by_id(result.data["id"]).to_wire()


@router.post("/bulk-assign")
async def bulk_assign(body: BulkAssignRequest, client: FieldClient = Depends(get_client)):
    """Assign several interventions to one company (administrator only)."""
    result = raise_for_result(workflows.bulk_assign(client, body.intervention_ids, body.company_id))
    return result.data


@router.post("/close")
async def close_interventions(body: CloseRequest, client: FieldClient = Depends(get_client)):
    result = await workflows.close_interventions_with_report(client, body.intervention_ids, body.email_recipient)
    return raise_for_result(result).data


@router.post("/refresh")
async def refresh(client: FieldClient = Depends(get_client)):
    """Pull the latest server data into the local baseline."""
    result = await workflows.refresh_from_server(client)
    return raise_for_result(result).data


def _visible_or_404(client: FieldClient, intervention_id: str):
    require_actor(client)
    for intervention in client.state.interventions:
        if intervention.id == intervention_id:
            return intervention
    raise HTTPException(status_code=404, detail=f"Intervention {intervention_id} not found")


@router.get("/{intervention_id}")
async def get_intervention(intervention_id: str, client: FieldClient = Depends(get_client)):
    return _visible_or_404(client, intervention_id).to_wire()


@router.patch("/{intervention_id}")
async def update_intervention(intervention_id: str, updates: dict, client: FieldClient = Depends(get_client)):
    """Field-level edit. Status changes go through /status; technicians may not reassign."""
    _visible_or_404(client, intervention_id)
    fields = {to_snake(key) for key in updates}
    if "status" in fields:
        raise HTTPException(status_code=400, detail="Usa /status per cambiare lo stato dell'intervento")
    if isinstance(client.auth.actor, TechnicianActor) and _ASSIGNMENT_FIELDS & fields:
        raise HTTPException(status_code=403, detail="Operazione non consentita per il tuo ruolo")
    raise_for_result(client.state.update_intervention(intervention_id, updates))
    return client.state.get_intervention_by_id(intervention_id).to_wire()


@router.delete("/{intervention_id}")
async def delete_intervention(intervention_id: str, client: FieldClient = Depends(get_client)):
    result = await workflows.remove_intervention(client, intervention_id)
    return raise_for_result(result).data


@router.post("/{intervention_id}/status")
async def change_status(intervention_id: str, body: StatusChangeRequest,
                        client: FieldClient = Depends(get_client)):
    result = await workflows.change_status(client, intervention_id, body.status)
    raise_for_result(result)
    return client.state.get_intervention_by_id(intervention_id).to_wire()


@router.post("/{intervention_id}/appointment")
async def save_appointment(intervention_id: str, body: AppointmentSlotRequest,
                           client: FieldClient = Depends(get_client)):
    result = await workflows.save_appointment(client, intervention_id, body.date, body.notes)
    return raise_for_result(result).data


@router.post("/{intervention_id}/technician")
async def assign_technician(intervention_id: str, body: TechnicianAssignRequest,
                            client: FieldClient = Depends(get_client)):
    raise_for_result(workflows.assign_technician(client, intervention_id, body.technician_id))
    return client.state.get_intervention_by_id(intervention_id).to_wire()


@router.post("/{intervention_id}/notes")
async def save_notes(intervention_id: str, body: NotesRequest, client: FieldClient = Depends(get_client)):
    raise_for_result(workflows.save_notes(client, intervention_id, body.notes))
    return client.state.get_intervention_by_id(intervention_id).to_wire()


@router.post("/{intervention_id}/location")
async def record_location(intervention_id: str, client: FieldClient = Depends(get_client)):
    result = await workflows.record_location(client, intervention_id)
    raise_for_result(result)
    return client.state.get_intervention_by_id(intervention_id).to_wire()


@router.post("/{intervention_id}/photos")
async def attach_photo(intervention_id: str, body: PhotoRequest, client: FieldClient = Depends(get_client)):
    result = await workflows.attach_photo(client, intervention_id, body.from_library)
    return raise_for_result(result).data


@router.delete("/{intervention_id}/photos/{photo_id}")
async def delete_photo(intervention_id: str, photo_id: str, client: FieldClient = Depends(get_client)):
    result = await workflows.delete_photo(client, intervention_id, photo_id)
    return raise_for_result(result).data


@router.post("/{intervention_id}/report")
async def send_report(intervention_id: str, body: ReportRequest, client: FieldClient = Depends(get_client)):
    result = await workflows.send_report(
        client, intervention_id, body.extra_notes, body.recipient or settings.REPORT_RECIPIENT,
    )
    return raise_for_result(result).data


@router.post("/{intervention_id}/report/pdf")
async def generate_pdf_report(intervention_id: str, client: FieldClient = Depends(get_client)):
    """Server-rendered PDF report, returned as base64."""
    result = await workflows.generate_pdf_report(client, intervention_id)
    return raise_for_result(result).data
