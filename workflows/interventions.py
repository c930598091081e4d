"""Intervention workflows: the multi-step operations behind each screen action.

Each workflow checks the actor, talks to the device and the remote API
where needed, applies the change through AppState and returns an
ActionResult. Remote notifications are best effort and never fail a step.
"""

import logging
from datetime import datetime

from config import settings
from schemas.records import (
    STATUS_LABELS, Administrator, CompanyActor, GeoLocation, Intervention, InterventionStatus,
    Photo, new_id, utcnow,
)
from schemas.results import ActionResult, ApiResult
from services.api_client import (
    company_from_api, convert_records, intervention_from_api, parse_timestamp, user_from_api,
)
from services.reports import build_closing_report, build_intervention_report, mailto_url
from store.client import FieldClient

logger = logging.getLogger(__name__)

NOT_AUTHENTICATED_MESSAGE = "Utente non autenticato"
FORBIDDEN_MESSAGE = "Operazione non consentita per il tuo ruolo"
MISSING_PHOTO_MESSAGE = "Aggiungi almeno una foto prima di completare l'intervento."
NO_SELECTION_MESSAGE = "Seleziona almeno un intervento da chiudere"
NO_COMPANY_MESSAGE = "Errore: ditta non configurata"
OFFLINE_MESSAGE = "Operazione non disponibile in modalità offline"


def _fail(action: str, message: str, code: str = "invalid") -> ActionResult:
    return ActionResult(action=action, success=False, message=message, code=code)


def _guard(client: FieldClient, action: str, *allowed: type) -> ActionResult | None:
    """Return a failure unless the current actor is one of the allowed variants."""
    actor = client.auth.actor
    if actor is None:
        return _fail(action, NOT_AUTHENTICATED_MESSAGE, code="unauthenticated")
    if allowed and not isinstance(actor, allowed):
        return _fail(action, FORBIDDEN_MESSAGE, code="forbidden")
    return None


def _find_visible(client: FieldClient, intervention_id: str) -> Intervention | None:
    """Lookup restricted to what the current actor may see."""
    for intervention in client.state.interventions:
        if intervention.id == intervention_id:
            return intervention
    return None


def _log_remote(result: ApiResult, what: str) -> None:
    if not result.success:
        logger.warning(f"Failed to notify {what}: {result.error}")


# --- Create / edit ---

def create_intervention(client: FieldClient, data: dict) -> ActionResult:
    """
    Create a new intervention.

    An administrator assigns freely (or leaves it unassigned). A company
    actor always creates for its own company.
    """
    action = "create_intervention"
    denied = _guard(client, action, Administrator, CompanyActor)
    if denied:
        return denied

    actor = client.auth.actor
    values = {key: value for key, value in data.items() if value is not None}
    if isinstance(actor, CompanyActor):
        if actor.company_id is None:
            return _fail(action, NO_COMPANY_MESSAGE)
        values["company_id"] = actor.company_id
        values["company_name"] = client.auth.user.company_name or actor.name
    values["assigned_by"] = actor.name or "Admin"

    result = client.state.add_intervention(values)
    return result.model_copy(update={"action": action})


def assign_technician(client: FieldClient, intervention_id: str, technician_id: str | None) -> ActionResult:
    """Assign a technician of the intervention's company, or clear the assignment."""
    action = "assign_technician"
    denied = _guard(client, action, Administrator, CompanyActor)
    if denied:
        return denied

    intervention = _find_visible(client, intervention_id)
    if intervention is None:
        return _fail(action, f"Intervention {intervention_id} not found", code="not_found")

    if technician_id is None:
        updates = {"technician_id": None, "technician_name": None}
    else:
        technician = client.state.get_user_by_id(technician_id)
        if technician is None or technician.company_id != intervention.company_id:
            return _fail(action, "Tecnico non disponibile per questa ditta")
        updates = {"technician_id": technician.id, "technician_name": technician.name}

    result = client.state.update_intervention(intervention_id, updates)
    return result.model_copy(update={"action": action})


def save_notes(client: FieldClient, intervention_id: str, notes: str) -> ActionResult:
    action = "save_notes"
    denied = _guard(client, action)
    if denied:
        return denied
    intervention = _find_visible(client, intervention_id)
    if intervention is None:
        return _fail(action, f"Intervention {intervention_id} not found", code="not_found")

    documentation = intervention.documentation.model_copy(update={"notes": notes})
    result = client.state.update_intervention(intervention_id, {"documentation": documentation})
    return result.model_copy(update={"action": action})


# --- Status lifecycle ---

async def _photo_count(client: FieldClient, intervention: Intervention) -> int:
    count = len(intervention.documentation.photos)
    if client.auth.has_valid_token:
        response = await client.api.get_intervention_photos(intervention.id)
        if response.success and isinstance(response.data, list):
            count += len(response.data)
    return count


async def change_status(client: FieldClient, intervention_id: str,
                        new_status: InterventionStatus) -> ActionResult:
    """
    Move an intervention to a new status.

    Rules:
    1. Completing requires at least one photo (server or local)
    2. Entering in_corso stamps started_at the first time only
    3. Completing stamps completed_at
    """
    action = "change_status"
    denied = _guard(client, action)
    if denied:
        return denied

    intervention = _find_visible(client, intervention_id)
    if intervention is None:
        return _fail(action, f"Intervention {intervention_id} not found", code="not_found")

    new_status = InterventionStatus(new_status)
    if new_status == InterventionStatus.COMPLETED and await _photo_count(client, intervention) == 0:
        return _fail(action, MISSING_PHOTO_MESSAGE)

    now = utcnow()
    updates: dict = {"status": new_status}
    documentation = intervention.documentation
    if new_status == InterventionStatus.IN_PROGRESS and documentation.started_at is None:
        updates["documentation"] = documentation.model_copy(update={"started_at": now})
    if new_status == InterventionStatus.COMPLETED:
        updates["documentation"] = documentation.model_copy(update={"completed_at": now})

    result = client.state.update_intervention(intervention_id, updates)
    if not result.success:
        return result.model_copy(update={"action": action})

    logger.info(f"{intervention.number}: {intervention.status.value} -> {new_status.value}")
    if client.auth.has_valid_token:
        _log_remote(await client.api.notify_status_change(
            intervention.id, intervention.number, intervention.status.value, new_status.value,
            intervention.client.name,
        ), "status change")

    return ActionResult(
        action=action,
        success=True,
        message=f"Intervento ora: {STATUS_LABELS[new_status]}",
        data={"id": intervention_id, "status": new_status.value},
    )


async def save_appointment(client: FieldClient, intervention_id: str, date: datetime,
                           notes: str = "") -> ActionResult:
    """Fix the appointment slot, add the linked calendar entry and schedule its reminder."""
    action = "save_appointment"
    denied = _guard(client, action)
    if denied:
        return denied

    intervention = _find_visible(client, intervention_id)
    if intervention is None:
        return _fail(action, f"Intervention {intervention_id} not found", code="not_found")

    was_assigned = intervention.status == InterventionStatus.ASSIGNED
    result = client.state.update_intervention(intervention_id, {
        "appointment": {"date": date, "confirmed_at": utcnow(), "notes": notes},
        "status": InterventionStatus.APPOINTMENT_SET if was_assigned else intervention.status,
    })
    if not result.success:
        return result.model_copy(update={"action": action})

    created = client.state.add_appointment({
        "type": "intervento",
        "intervention_id": intervention.id,
        "client_name": intervention.client.name,
        "address": intervention.client.full_address or intervention.client.name,
        "date": date,
        "notes": notes,
        "notify_before": settings.DEFAULT_REMINDER_MINUTES,
    })
    reminder_id = None
    if created.success:
        appointment = client.state.get_appointment_by_id(created.data["id"])
        reminder_id = await client.reminders.schedule(appointment)

    if was_assigned and client.auth.has_valid_token:
        _log_remote(await client.api.notify_appointment_set(
            intervention.id, intervention.number, intervention.client.name, date,
        ), "appointment set")

    return ActionResult(
        action=action,
        success=True,
        message="L'appuntamento è stato fissato con successo.",
        data={
            "id": intervention_id,
            "appointment_id": created.data["id"] if created.success else None,
            "reminder_id": reminder_id,
        },
    )


# --- Field documentation ---

async def record_location(client: FieldClient, intervention_id: str) -> ActionResult:
    """Store the device's current GPS fix on the intervention."""
    action = "record_location"
    denied = _guard(client, action)
    if denied:
        return denied
    if _find_visible(client, intervention_id) is None:
        return _fail(action, f"Intervention {intervention_id} not found", code="not_found")

    fix = await client.device.current_location()
    if not fix.granted:
        return _fail(action, fix.message or "Impossibile ottenere la posizione. Riprova.")

    location = GeoLocation(
        latitude=fix.data["latitude"],
        longitude=fix.data["longitude"],
        address=fix.data.get("address") or None,
        timestamp=utcnow(),
    )
    result = client.state.update_intervention(intervention_id, {"location": location})
    if result.success:
        logger.info(f"Location recorded for {intervention_id}: {location.latitude}, {location.longitude}")
    return result.model_copy(update={"action": action})


async def attach_photo(client: FieldClient, intervention_id: str, from_library: bool = False) -> ActionResult:
    """
    Capture (or pick) a photo and upload it.

    When the upload is not possible the photo is kept on the intervention
    locally, so it still counts towards completion.
    """
    action = "attach_photo"
    denied = _guard(client, action)
    if denied:
        return denied
    intervention = _find_visible(client, intervention_id)
    if intervention is None:
        return _fail(action, f"Intervention {intervention_id} not found", code="not_found")

    if from_library:
        picked = await client.device.pick_photos()
        shots = picked.data if picked.granted else []
    else:
        picked = await client.device.capture_photo()
        shots = [picked.data] if picked.granted else []
    if not picked.granted:
        return _fail(action, picked.message or "Permesso negato")

    uploaded, local = 0, []
    for shot in shots:
        if client.auth.has_valid_token and shot.get("base64"):
            response = await client.api.upload_photo(
                intervention.id, f"data:image/jpeg;base64,{shot['base64']}", client.auth.user.id,
            )
            if response.success:
                uploaded += 1
                continue
            logger.warning(f"Photo upload failed, keeping it locally: {response.error}")
        local.append(Photo(id=f"photo-{new_id()}", uri=shot["uri"], timestamp=utcnow()))

    if local:
        documentation = intervention.documentation.model_copy(
            update={"photos": [*intervention.documentation.photos, *local]}
        )
        result = client.state.update_intervention(intervention_id, {"documentation": documentation})
        if not result.success:
            return result.model_copy(update={"action": action})

    return ActionResult(
        action=action,
        success=True,
        message=f"{uploaded} foto caricate sul server, {len(local)} salvate sul dispositivo",
        data={"uploaded": uploaded, "local": [p.id for p in local]},
    )


async def delete_photo(client: FieldClient, intervention_id: str, photo_id: str) -> ActionResult:
    """Delete a local photo, or the server copy when it is not stored locally."""
    action = "delete_photo"
    denied = _guard(client, action)
    if denied:
        return denied
    intervention = _find_visible(client, intervention_id)
    if intervention is None:
        return _fail(action, f"Intervention {intervention_id} not found", code="not_found")

    photos = intervention.documentation.photos
    if any(p.id == photo_id for p in photos):
        documentation = intervention.documentation.model_copy(
            update={"photos": [p for p in photos if p.id != photo_id]}
        )
        result = client.state.update_intervention(intervention_id, {"documentation": documentation})
        return result.model_copy(update={"action": action})

    response = await client.api.delete_photo(photo_id)
    if not response.success:
        return _fail(action, response.error or "Impossibile eliminare la foto dal server.", code="remote")
    return ActionResult(action=action, success=True, message="Foto eliminata", data={"id": photo_id})


# --- Administration ---

async def remove_intervention(client: FieldClient, intervention_id: str) -> ActionResult:
    """Delete an intervention. The server must confirm before the local copy goes."""
    action = "remove_intervention"
    denied = _guard(client, action, Administrator)
    if denied:
        return denied
    if client.state.get_intervention_by_id(intervention_id) is None:
        return _fail(action, f"Intervention {intervention_id} not found", code="not_found")
    if not client.auth.has_valid_token:
        return _fail(action, OFFLINE_MESSAGE, code="remote")

    response = await client.api.delete_intervention(intervention_id)
    if not response.success:
        logger.warning(f"Server refused delete of {intervention_id}: {response.error}")
        return _fail(action, response.error or "Impossibile eliminare l'intervento", code="remote")

    result = client.state.delete_intervention(intervention_id)
    return result.model_copy(update={"action": action, "message": "Intervento eliminato con successo"})


def bulk_assign(client: FieldClient, intervention_ids: list[str], company_id: str) -> ActionResult:
    action = "bulk_assign"
    denied = _guard(client, action, Administrator)
    if denied:
        return denied
    if not intervention_ids:
        return _fail(action, "Seleziona almeno un intervento")

    company = client.state.get_company_by_id(company_id)
    if company is None:
        return _fail(action, f"Company {company_id} not found", code="not_found")

    result = client.state.bulk_assign_to_company(intervention_ids, company.id, company.name)
    return result.model_copy(update={"action": action})


async def close_interventions_with_report(client: FieldClient, intervention_ids: list[str],
                                         email_recipient: str | None = None) -> ActionResult:
    """
    Close the selected interventions in bulk.

    With a recipient, the closing report is composed and handed to the
    device's mail client; a declined mail does not undo the closing.
    """
    action = "close_interventions"
    denied = _guard(client, action, Administrator, CompanyActor)
    if denied:
        return denied
    if not intervention_ids:
        return _fail(action, NO_SELECTION_MESSAGE)

    visible = {i.id: i for i in client.state.interventions}
    selected = [visible[i] for i in intervention_ids if i in visible]
    if not selected:
        return _fail(action, "Nessun intervento selezionato è visibile", code="not_found")

    recipient = (email_recipient or "").strip() or None
    user = client.auth.user
    closed_by = user.name or "Sistema"
    result = client.state.close_interventions([i.id for i in selected], closed_by, recipient)
    if not result.success:
        return result.model_copy(update={"action": action})

    data = {"closed": result.data["closed"]}
    if recipient:
        subject, body = build_closing_report(selected, user.name, user.company_name)
        composed = await client.device.compose_email([recipient], subject, body)
        data.update({
            "email_composed": composed.granted,
            "mailto": mailto_url(recipient, subject, body),
        })

    return ActionResult(action=action, success=True, message=result.message, data=data)


async def send_report(client: FieldClient, intervention_id: str, extra_notes: str = "",
                      recipient: str = settings.REPORT_RECIPIENT) -> ActionResult:
    """Compose the single-intervention report and tell the server it was sent."""
    action = "send_report"
    denied = _guard(client, action, Administrator, CompanyActor)
    if denied:
        return denied
    intervention = _find_visible(client, intervention_id)
    if intervention is None:
        return _fail(action, f"Intervention {intervention_id} not found", code="not_found")

    company_name = intervention.company_name or client.auth.user.company_name or "N/D"
    subject, body = build_intervention_report(intervention, company_name, extra_notes)
    composed = await client.device.compose_email([recipient], subject, body)
    status = composed.data.get("status") if isinstance(composed.data, dict) else None

    if composed.granted and status == "sent" and client.auth.has_valid_token:
        _log_remote(await client.api.notify_report_sent(intervention.id, intervention.number, recipient),
                    "report sent")
    if composed.granted:
        client.state.update_intervention(intervention_id, {"email_sent_to": recipient})

    return ActionResult(
        action=action,
        success=True,
        message="Report inviato" if status == "sent" else "Report pronto",
        data={"subject": subject, "mailto": mailto_url(recipient, subject, body), "status": status},
    )


def _millis(value: datetime) -> int:
    return int(value.timestamp() * 1000)


async def _photos_for_report(client: FieldClient, intervention: Intervention) -> list[dict]:
    """Server photos with their image data; local data-URI photos when the server has none."""
    photos = []
    listing = await client.api.get_intervention_photos(intervention.id)
    if listing.success and isinstance(listing.data, list):
        for photo in listing.data:
            if not isinstance(photo, dict) or not photo.get("id"):
                continue
            image = await client.api.get_photo(photo["id"])
            if not (image.success and isinstance(image.data, dict) and image.data.get("data")):
                logger.warning(f"Photo {photo['id']} has no image data, left out of the report")
                continue
            created_at = parse_timestamp(photo.get("createdAt"))
            photos.append({
                "id": photo["id"],
                "data": image.data["data"],
                "mimeType": photo.get("mimeType") or "image/jpeg",
                "caption": photo.get("caption") or "Foto",
                "timestamp": _millis(created_at) if created_at else None,
            })

    if not photos:
        photos = [
            {"id": p.id, "data": p.uri, "mimeType": "image/jpeg", "caption": p.caption or "Foto",
             "timestamp": _millis(p.timestamp)}
            for p in intervention.documentation.photos if p.uri.startswith("data:")
        ]
    return photos


async def generate_pdf_report(client: FieldClient, intervention_id: str) -> ActionResult:
    """
    Have the server render the intervention's PDF report.

    The local copy of the intervention travels with the request, so edits
    not yet on the server (and offline sessions) are reported as seen here.
    """
    action = "generate_pdf_report"
    denied = _guard(client, action, Administrator, CompanyActor)
    if denied:
        return denied
    intervention = _find_visible(client, intervention_id)
    if intervention is None:
        return _fail(action, f"Intervention {intervention_id} not found", code="not_found")

    photos = await _photos_for_report(client, intervention)
    intervention_data = intervention.to_wire()
    intervention_data["documentation"]["photos"] = photos
    user = client.auth.user
    demo_user = {"id": user.id, "name": user.name, "role": user.role.value, "companyId": user.company_id}

    response = await client.api.generate_report(intervention.id, "base64", demo_user, intervention_data)
    if not (response.success and isinstance(response.data, dict) and response.data.get("data")):
        logger.warning(f"Report generation failed for {intervention.number}: {response.error}")
        return _fail(action, response.error or "Errore nella generazione del report", code="remote")

    filename = response.data.get("filename") or f"report_{intervention.number}.pdf"
    logger.info(f"PDF report generated for {intervention.number} ({len(photos)} photos)")
    return ActionResult(
        action=action,
        success=True,
        message="Report generato",
        data={"filename": filename, "pdf_base64": response.data["data"], "photos": len(photos)},
    )


async def refresh_from_server(client: FieldClient) -> ActionResult:
    """Fetch interventions, companies and users and make them the new baseline."""
    action = "refresh_from_server"
    denied = _guard(client, action)
    if denied:
        return denied
    if not client.auth.has_valid_token:
        return _fail(action, OFFLINE_MESSAGE, code="remote")

    interventions = await client.api.get_interventions()
    if not interventions.success:
        return _fail(action, interventions.error or "Errore di rete", code="remote")

    snapshot = {"interventions": convert_records(
        interventions.data, lambda item: intervention_from_api(item, client.api), "intervention",
    )}

    # Directory listings are administrator endpoints; other roles keep what they have
    if isinstance(client.auth.actor, Administrator):
        companies = await client.api.get_companies()
        users = await client.api.get_users()
        if companies.success:
            snapshot["companies"] = convert_records(companies.data, company_from_api, "company")
        if users.success:
            snapshot["users"] = convert_records(users.data, user_from_api, "user")

    client.state.rebase(snapshot)
    return ActionResult(
        action=action,
        success=True,
        message=f"{len(snapshot['interventions'])} interventi aggiornati",
        data={name: len(records) for name, records in snapshot.items()},
    )

