"""Calendar routes."""

from fastapi import APIRouter, Depends

from routes.deps import get_client, raise_for_result, require_actor
from schemas.requests import CalendarAppointmentRequest
from store.client import FieldClient
import workflows

router = APIRouter(prefix="/api/appointments", tags=["appointments"])


@router.get("")
async def list_appointments(client: FieldClient = Depends(get_client)):
    """Appointments linked to a visible intervention, plus unlinked ones, by date."""
    require_actor(client)
    return [a.to_wire() for a in sorted(client.state.appointments, key=lambda a: a.date)]


@router.post("", status_code=201)
async def create_appointment(body: CalendarAppointmentRequest, client: FieldClient = Depends(get_client)):
    result = await workflows.save_calendar_appointment(client, body.model_dump())
    return raise_for_result(result).data


@router.put("/{appointment_id}")
async def update_appointment(appointment_id: str, body: CalendarAppointmentRequest,
                             client: FieldClient = Depends(get_client)):
    result = await workflows.save_calendar_appointment(client, body.model_dump(), appointment_id)
    return raise_for_result(result).data


@router.delete("/{appointment_id}")
async def delete_appointment(appointment_id: str, client: FieldClient = Depends(get_client)):
    return raise_for_result(workflows.remove_appointment(client, appointment_id)).data
