"""Calendar workflows: appointment edits keep their device reminder in step."""

import logging

from schemas.results import ActionResult
from store.client import FieldClient

logger = logging.getLogger(__name__)


def _visible_appointment(client: FieldClient, appointment_id: str):
    for appointment in client.state.appointments:
        if appointment.id == appointment_id:
            return appointment
    return None


async def save_calendar_appointment(client: FieldClient, data: dict,
                                    appointment_id: str | None = None) -> ActionResult:
    """
    Create or edit a calendar entry, then (re)schedule its reminder.

    Editing cancels the previous reminder first so at most one stays
    pending per appointment.
    """
    action = "save_calendar_appointment"
    if client.auth.actor is None:
        return ActionResult(action=action, success=False, message="Utente non autenticato",
                            code="unauthenticated")

    if appointment_id is None:
        result = client.state.add_appointment(data)
    else:
        if _visible_appointment(client, appointment_id) is None:
            return ActionResult(action=action, success=False, code="not_found",
                                message=f"Appointment {appointment_id} not found")
        result = client.state.update_appointment(appointment_id, data)
    if not result.success:
        return result.model_copy(update={"action": action})

    saved_id = result.data["id"]
    client.reminders.cancel_by_appointment_id(saved_id)
    reminder_id = await client.reminders.schedule(client.state.get_appointment_by_id(saved_id))

    return ActionResult(
        action=action,
        success=True,
        message="Appuntamento salvato",
        data={"id": saved_id, "reminder_id": reminder_id},
    )


def remove_appointment(client: FieldClient, appointment_id: str) -> ActionResult:
    """Delete a calendar entry together with its pending reminder."""
    action = "remove_appointment"
    if client.auth.actor is None:
        return ActionResult(action=action, success=False, message="Utente non autenticato",
                            code="unauthenticated")
    if _visible_appointment(client, appointment_id) is None:
        return ActionResult(action=action, success=False, code="not_found",
                            message=f"Appointment {appointment_id} not found")

    cancelled = client.reminders.cancel_by_appointment_id(appointment_id)
    result = client.state.delete_appointment(appointment_id)
    logger.info(f"Appointment {appointment_id} removed ({cancelled} reminders cancelled)")
    return result.model_copy(update={"action": action})
