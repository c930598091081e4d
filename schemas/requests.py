"""Request bodies accepted by the local HTTP interface."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from schemas.records import (
    AppointmentType, ClientInfo, InterventionCategory, InterventionStatus, Priority, Record, Role,
)


class LoginRequest(BaseModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


class InterventionCreate(Record):
    client: ClientInfo
    category: InterventionCategory
    description: str = Field(min_length=1)
    priority: Priority = Priority.NORMAL
    company_id: str | None = None
    company_name: str | None = None
    technician_id: str | None = None
    technician_name: str | None = None


class BulkAssignRequest(Record):
    intervention_ids: list[str] = Field(min_length=1)
    company_id: str = Field(min_length=1)
    company_name: str | None = None


class CloseRequest(Record):
    intervention_ids: list[str] = Field(min_length=1)
    email_recipient: str | None = None


class StatusChangeRequest(Record):
    status: InterventionStatus


class AppointmentSlotRequest(Record):
    date: datetime
    notes: str = ""


class CalendarAppointmentRequest(Record):
    type: AppointmentType = AppointmentType.INTERVENTION
    intervention_id: str | None = None
    client_name: str
    address: str
    date: datetime
    notes: str = ""
    notify_before: int | None = None


class CompanyAccountRequest(Record):
    name: str = Field(min_length=1)
    address: str = ""
    phone: str = ""
    email: str = ""
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


class UserAccountRequest(Record):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)
    role: Role = Role.TECHNICIAN
    name: str = Field(min_length=1)
    email: str = ""
    phone: str | None = None
    company_id: str | None = None
    company_name: str | None = None


class TechnicianAssignRequest(Record):
    technician_id: str | None = None


class NotesRequest(Record):
    notes: str = ""


class PhotoRequest(Record):
    from_library: bool = False


class ReportRequest(Record):
    extra_notes: str = ""
    recipient: str | None = None
