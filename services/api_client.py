"""Client for the SolarTech REST API.

Every call returns an ApiResult; nothing here raises for HTTP or transport
errors. A 401/403 from any endpoint fires the unauthorized callback so the
session can force a logout.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable

import httpx
from dateutil import parser as date_parser

from config import settings
from schemas.records import Company, Intervention, User, utcnow
from schemas.results import ApiResult

logger = logging.getLogger(__name__)

UNAUTHORIZED_MESSAGE = "Sessione scaduta. Effettua nuovamente il login."
NETWORK_ERROR_MESSAGE = "Errore di rete"


class RemoteApi:
    """Thin request/response wrapper over the remote API."""

    def __init__(self, base_url: str = settings.API_BASE_URL, timeout: float = settings.HTTP_TIMEOUT,
                 transport: httpx.AsyncBaseTransport | None = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._token: str | None = None
        self._on_unauthorized: Callable[[], None] | None = None

    @property
    def token(self) -> str | None:
        return self._token

    def set_token(self, token: str | None) -> None:
        self._token = token

    def set_on_unauthorized(self, callback: Callable[[], None] | None) -> None:
        """Register the handler called whenever the server answers 401/403."""
        self._on_unauthorized = callback

    async def _request(self, method: str, endpoint: str, json: Any = None,
                       params: dict | None = None) -> ApiResult:
        headers = {"Content-Type": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"

        url = f"{self.base_url}{endpoint}"
        logger.info(f"Request: {method} {url}")

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.request(method, url, json=json, params=params, headers=headers)
        except httpx.HTTPError as e:
            logger.warning(f"Network error on {method} {endpoint}: {str(e)}")
            return ApiResult(success=False, error=str(e) or NETWORK_ERROR_MESSAGE)

        logger.info(f"Response status: {response.status_code}")

        if response.status_code in (401, 403):
            logger.warning("Unauthorized response, forcing logout")
            if self._on_unauthorized:
                self._on_unauthorized()
            return ApiResult(success=False, error=UNAUTHORIZED_MESSAGE, status_code=response.status_code)

        try:
            data = response.json()
        except ValueError:
            data = None

        if not response.is_success:
            error = data.get("error") if isinstance(data, dict) else None
            logger.warning(f"Response error: {error or response.status_code}")
            return ApiResult(success=False, error=error or f"HTTP {response.status_code}",
                             status_code=response.status_code)

        return ApiResult(success=True, data=data, status_code=response.status_code)

    # --- Auth ---

    async def login(self, username: str, password: str) -> ApiResult:
        return await self._request("POST", "/auth/login", json={"username": username, "password": password})

    # --- Directory ---

    async def get_users(self) -> ApiResult:
        return await self._request("GET", "/users")

    async def get_companies(self) -> ApiResult:
        return await self._request("GET", "/companies")

    # --- Interventions ---

    async def get_interventions(self) -> ApiResult:
        return await self._request("GET", "/interventions")

    async def delete_intervention(self, intervention_id: str) -> ApiResult:
        return await self._request("DELETE", f"/interventions/{intervention_id}")

    # --- Photos ---

    async def upload_photo(self, intervention_id: str, data: str, uploaded_by_id: str,
                           mime_type: str = "image/jpeg", caption: str | None = None) -> ApiResult:
        return await self._request("POST", "/photos", json={
            "interventionId": intervention_id,
            "data": data,
            "mimeType": mime_type,
            "caption": caption,
            "uploadedById": uploaded_by_id,
        })

    async def get_intervention_photos(self, intervention_id: str) -> ApiResult:
        return await self._request("GET", f"/photos/intervention/{intervention_id}")

    async def get_photo(self, photo_id: str) -> ApiResult:
        return await self._request("GET", f"/photos/{photo_id}")

    async def delete_photo(self, photo_id: str) -> ApiResult:
        return await self._request("DELETE", f"/photos/{photo_id}")

    def photo_image_url(self, photo_id: str) -> str:
        return f"{self.base_url}/photos/{photo_id}/image"

    # --- Reports ---

    async def generate_report(self, intervention_id: str, format: str = "base64",
                              demo_user: dict | None = None, intervention_data: dict | None = None) -> ApiResult:
        body = {}
        if demo_user:
            body["demoUser"] = demo_user
        if intervention_data:
            body["interventionData"] = intervention_data
        return await self._request("POST", f"/reports/intervention/{intervention_id}",
                                   json=body or None, params={"format": format})

    async def notify_report_sent(self, intervention_id: str, intervention_number: str,
                                 recipient_email: str) -> ApiResult:
        return await self._request("POST", f"/reports/notify-sent/{intervention_id}", json={
            "interventionNumber": intervention_number,
            "recipientEmail": recipient_email,
        })

    # --- Push notifications ---

    async def save_push_token(self, token: str, platform: str) -> ApiResult:
        return await self._request("POST", "/push-tokens", json={"token": token, "platform": platform})

    async def remove_push_token(self, token: str) -> ApiResult:
        return await self._request("DELETE", "/push-tokens", json={"token": token})

    async def notify_appointment_set(self, intervention_id: str, intervention_number: str,
                                     client_name: str, appointment_date: datetime) -> ApiResult:
        return await self._request("POST", f"/push-tokens/notify-appointment/{intervention_id}", json={
            "interventionNumber": intervention_number,
            "clientName": client_name,
            "appointmentDate": appointment_date.isoformat(),
        })

    async def notify_status_change(self, intervention_id: str, intervention_number: str,
                                   previous_status: str, new_status: str, client_name: str) -> ApiResult:
        return await self._request("POST", f"/push-tokens/notify-status/{intervention_id}", json={
            "interventionNumber": intervention_number,
            "previousStatus": previous_status,
            "newStatus": new_status,
            "clientName": client_name,
        })


# --- Server payload normalization ---

def parse_timestamp(value: Any) -> datetime | None:
    """Parse an API timestamp (ISO string or epoch milliseconds) into aware UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    parsed = date_parser.isoparse(value) if isinstance(value, str) else value
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def intervention_from_api(payload: dict, api: RemoteApi, number_prefix: str = settings.INTERVENTION_NUMBER_PREFIX) -> Intervention:
    """Convert the server's intervention shape into the local record."""
    number = payload.get("number")
    if isinstance(number, int):
        number = f"{number_prefix}{number:03d}"
    updated_at = parse_timestamp(payload.get("updatedAt")) or utcnow()
    client = payload.get("client") or {}
    documentation = payload.get("documentation") or {}
    appointment = payload.get("appointment")
    location = payload.get("location")

    return Intervention.model_validate({
        "id": payload["id"],
        "number": number or "",
        "client": {
            "name": client.get("name", ""),
            "address": client.get("address") or "",
            "civicNumber": client.get("civicNumber") or "",
            "cap": client.get("cap") or "",
            "city": client.get("city") or "",
            "phone": client.get("phone") or "",
            "email": client.get("email") or "",
        },
        "companyId": payload.get("companyId"),
        "companyName": payload.get("companyName"),
        "technicianId": payload.get("technicianId"),
        "technicianName": payload.get("technicianName"),
        "category": payload["category"],
        "description": payload.get("description") or "",
        "priority": payload.get("priority") or "normale",
        "status": payload.get("status") or "assegnato",
        "assignedAt": parse_timestamp(payload.get("assignedAt")),
        "assignedBy": payload.get("assignedByName") or payload.get("assignedBy") or "",
        "appointment": {
            "date": parse_timestamp(appointment["date"]),
            "confirmedAt": parse_timestamp(appointment.get("confirmedAt")) or updated_at,
            "notes": appointment.get("notes") or "",
        } if appointment else None,
        "location": {
            "latitude": location["latitude"],
            "longitude": location["longitude"],
            "address": location.get("address"),
            "timestamp": parse_timestamp(location.get("timestamp")) or updated_at,
        } if location else None,
        "documentation": {
            "photos": [
                {"id": photo_id, "uri": api.photo_image_url(photo_id), "timestamp": updated_at}
                for photo_id in documentation.get("photos") or []
            ],
            "notes": documentation.get("notes") or "",
            "startedAt": parse_timestamp(documentation.get("startedAt")),
            "completedAt": parse_timestamp(documentation.get("completedAt")),
        },
        "createdAt": parse_timestamp(payload.get("createdAt")) or updated_at,
        "updatedAt": updated_at,
    })


def company_from_api(payload: dict) -> Company:
    return Company.model_validate({
        "id": payload["id"],
        "name": payload["name"],
        "address": payload.get("address") or "",
        "phone": payload.get("phone") or "",
        "email": payload.get("email") or "",
        "createdAt": parse_timestamp(payload.get("createdAt")) or utcnow(),
    })


def user_from_api(payload: dict) -> User:
    return User.model_validate({
        "id": payload["id"],
        "username": payload["username"],
        "role": payload["role"],
        "name": payload.get("name") or payload["username"],
        "email": payload.get("email") or "",
        "phone": payload.get("phone"),
        "companyId": payload.get("companyId"),
        "companyName": payload.get("companyName"),
        "createdAt": parse_timestamp(payload.get("createdAt")) or utcnow(),
    })


def convert_records(items: Any, convert: Callable[[dict], Any], kind: str) -> list:
    """Convert a server listing, skipping (and logging) records that do not validate."""
    if not isinstance(items, list):
        logger.warning(f"Server returned no {kind} list")
        return []
    records = []
    for item in items:
        try:
            records.append(convert(item))
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            item_id = item.get("id") if isinstance(item, dict) else None
            logger.warning(f"Skipping invalid {kind} {item_id} from server: {str(e)}")
    return records
