from workflows.interventions import (
    create_intervention, assign_technician, save_notes, change_status, save_appointment,
    record_location, attach_photo, delete_photo, remove_intervention, bulk_assign,
    close_interventions_with_report, send_report, generate_pdf_report, refresh_from_server,
)
from workflows.appointments import save_calendar_appointment, remove_appointment
from workflows.accounts import create_company_account, create_user_account

__all__ = [
    "create_intervention", "assign_technician", "save_notes", "change_status", "save_appointment",
    "record_location", "attach_photo", "delete_photo", "remove_intervention", "bulk_assign",
    "close_interventions_with_report", "send_report", "generate_pdf_report", "refresh_from_server",
    "save_calendar_appointment", "remove_appointment", "create_company_account", "create_user_account",
]
