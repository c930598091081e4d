"""Tagged results returned by state operations, workflows and remote calls."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ActionResult(BaseModel):
    """Result of a single state mutation or workflow step."""
    action: str
    success: bool
    message: str
    data: dict | None = None
    code: str | None = None  # not_found, forbidden, invalid, unauthenticated, remote


class ApiResult(BaseModel):
    """Result of a remote API call. Never raised, always returned."""
    success: bool
    data: Any = None
    error: str | None = None
    status_code: int | None = None


class DeviceResult(BaseModel):
    """Outcome of a device capability call (location, camera, mail, permissions)."""
    granted: bool
    data: Any = None
    message: str = ""


class CompanyCount(BaseModel):
    company_id: str
    company_name: str
    count: int


class GlobalStats(BaseModel):
    """Administrator overview across every intervention, unfiltered."""
    total_interventions: int = 0
    by_status: dict[str, int] = Field(default_factory=dict)
    by_company: list[CompanyCount] = Field(default_factory=list)
    total_companies: int = 0
    total_technicians: int = 0
    unassigned_count: int = 0
