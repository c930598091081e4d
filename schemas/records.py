"""Pydantic records mirrored from the remote API, plus the authenticated actor.

Python attributes are snake_case; the JSON exchanged with the server and
written to the local store keeps the camelCase names the API uses.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


class Record(BaseModel):
    """Base for every record kept in the application state."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @field_validator("*", mode="after")
    @classmethod
    def assume_utc(cls, value):
        # Naive timestamps are UTC
        if isinstance(value, datetime) and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


# --- Enumerations (wire values are the API's) ---

class InterventionStatus(str, Enum):
    ASSIGNED = "assegnato"
    APPOINTMENT_SET = "appuntamento_fissato"
    IN_PROGRESS = "in_corso"
    COMPLETED = "completato"
    CLOSED = "chiuso"


class InterventionCategory(str, Enum):
    SITE_SURVEY = "sopralluogo"
    INSTALLATION = "installazione"
    MAINTENANCE = "manutenzione"


class Priority(str, Enum):
    LOW = "bassa"
    NORMAL = "normale"
    HIGH = "alta"
    URGENT = "urgente"


class Role(str, Enum):
    ADMINISTRATOR = "master"
    COMPANY = "ditta"
    TECHNICIAN = "tecnico"


class AppointmentType(str, Enum):
    INTERVENTION = "intervento"
    SITE_SURVEY = "sopralluogo"
    INSTALLATION = "installazione"
    MAINTENANCE = "manutenzione"


STATUS_LABELS = {
    InterventionStatus.ASSIGNED: "Assegnato",
    InterventionStatus.APPOINTMENT_SET: "Appuntamento Fissato",
    InterventionStatus.IN_PROGRESS: "In Corso",
    InterventionStatus.COMPLETED: "Completato",
    InterventionStatus.CLOSED: "Chiuso",
}

CATEGORY_LABELS = {
    InterventionCategory.SITE_SURVEY: "Sopralluogo",
    InterventionCategory.INSTALLATION: "Installazione",
    InterventionCategory.MAINTENANCE: "Manutenzione",
}


def _blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


# --- Intervention and its sub-records ---

class ClientInfo(Record):
    """Client contact and site address."""
    name: str
    address: str = ""
    civic_number: str = ""
    cap: str = ""
    city: str = ""
    phone: str = ""
    email: str = ""

    @property
    def full_address(self) -> str:
        return f"{self.address} {self.civic_number}, {self.city}".strip()


class Photo(Record):
    id: str
    uri: str
    timestamp: datetime
    caption: str | None = None


class GeoLocation(Record):
    """GPS fix captured on site."""
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    address: str | None = None
    timestamp: datetime


class AppointmentSlot(Record):
    date: datetime
    confirmed_at: datetime
    notes: str = ""


class Documentation(Record):
    photos: list[Photo] = Field(default_factory=list)
    notes: str = ""
    started_at: datetime | None = None
    completed_at: datetime | None = None


class Intervention(Record):
    """A unit of field work tracked through the status lifecycle."""
    id: str
    number: str
    client: ClientInfo
    company_id: str | None = None
    company_name: str | None = None
    technician_id: str | None = None
    technician_name: str | None = None
    category: InterventionCategory
    description: str = ""
    priority: Priority = Priority.NORMAL
    assigned_at: datetime | None = None
    assigned_by: str = ""
    appointment: AppointmentSlot | None = None
    location: GeoLocation | None = None
    documentation: Documentation = Field(default_factory=Documentation)
    status: InterventionStatus = InterventionStatus.ASSIGNED
    closed_at: datetime | None = None
    closed_by: str | None = None
    email_sent_to: str | None = None
    created_at: datetime
    updated_at: datetime

    normalize_refs = field_validator(
        "company_id", "company_name", "technician_id", "technician_name", mode="before"
    )(_blank_to_none)

    @model_validator(mode="after")
    def check_pairings(self):
        if (self.company_id is None) != (self.company_name is None):
            raise ValueError("companyId and companyName must be set together")
        if (self.technician_id is None) != (self.technician_name is None):
            raise ValueError("technicianId and technicianName must be set together")
        return self


# --- Calendar ---

class Appointment(Record):
    """A calendar entry, optionally linked to an intervention."""
    id: str
    type: AppointmentType = AppointmentType.INTERVENTION
    intervention_id: str | None = None
    client_name: str = Field(min_length=1)
    address: str = Field(min_length=1)
    date: datetime
    notes: str = ""
    notify_before: int | None = Field(default=None, ge=0, description="Reminder lead time in minutes")

    normalize_link = field_validator("intervention_id", mode="before")(_blank_to_none)


# --- Directory ---

class Company(Record):
    """An installation firm. Credentials are stored in plaintext, as the API returns them."""
    id: str
    name: str = Field(min_length=1)
    address: str = ""
    phone: str = ""
    email: str = ""
    username: str | None = None
    password: str | None = None
    created_at: datetime


class TechnicianLocation(Record):
    latitude: float
    longitude: float
    address: str | None = None
    timestamp: datetime
    is_online: bool = False


def _lower_role(value):
    if isinstance(value, str):
        return value.strip().lower()
    return value


class User(Record):
    id: str
    username: str = Field(min_length=1)
    password: str | None = None
    role: Role
    name: str
    email: str = ""
    phone: str | None = None
    company_id: str | None = None
    company_name: str | None = None
    last_location: TechnicianLocation | None = None
    created_at: datetime

    normalize_role = field_validator("role", mode="before")(_lower_role)
    normalize_company = field_validator("company_id", "company_name", mode="before")(_blank_to_none)


class AuthUser(Record):
    """Identity returned by a successful authentication."""
    id: str
    username: str
    role: Role
    name: str = ""
    email: str = ""
    company_id: str | None = None
    company_name: str | None = None

    normalize_role = field_validator("role", mode="before")(_lower_role)
    normalize_company = field_validator("company_id", "company_name", mode="before")(_blank_to_none)


# --- Actor (closed variant over the role) ---

class Administrator(BaseModel):
    model_config = ConfigDict(frozen=True)
    kind: Literal["administrator"] = "administrator"
    user_id: str
    name: str = ""


class CompanyActor(BaseModel):
    model_config = ConfigDict(frozen=True)
    kind: Literal["company"] = "company"
    user_id: str
    company_id: str | None
    name: str = ""


class TechnicianActor(BaseModel):
    model_config = ConfigDict(frozen=True)
    kind: Literal["technician"] = "technician"
    user_id: str
    company_id: str | None
    name: str = ""


Actor = Annotated[Union[Administrator, CompanyActor, TechnicianActor], Field(discriminator="kind")]


def actor_from_user(user: AuthUser | None) -> Administrator | CompanyActor | TechnicianActor | None:
    """Map an authenticated user onto its actor variant. No user, no actor."""
    if user is None:
        return None
    if user.role == Role.ADMINISTRATOR:
        return Administrator(user_id=user.id, name=user.name)
    if user.role == Role.COMPANY:
        return CompanyActor(user_id=user.id, company_id=user.company_id, name=user.name)
    if user.role == Role.TECHNICIAN:
        return TechnicianActor(user_id=user.id, company_id=user.company_id, name=user.name)
    return None
