from schemas.records import (
    Intervention, Appointment, Company, User, AuthUser, ClientInfo, Photo, GeoLocation,
    AppointmentSlot, Documentation, TechnicianLocation, InterventionStatus, Role,
    Administrator, CompanyActor, TechnicianActor, actor_from_user,
)
from schemas.results import ActionResult, ApiResult, DeviceResult, GlobalStats

__all__ = [
    "Intervention", "Appointment", "Company", "User", "AuthUser", "ClientInfo", "Photo", "GeoLocation",
    "AppointmentSlot", "Documentation", "TechnicianLocation", "InterventionStatus", "Role",
    "Administrator", "CompanyActor", "TechnicianActor", "actor_from_user",
    "ActionResult", "ApiResult", "DeviceResult", "GlobalStats",
]
