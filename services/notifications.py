"""Appointment reminders kept in the local reminders table, and push token registration."""

import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from database import SessionLocal
from models.models import ScheduledReminder
from schemas.records import Appointment, AppointmentType, AuthUser, Role, utcnow
from services.api_client import RemoteApi
from services.device import DeviceCapabilities

logger = logging.getLogger(__name__)

TYPE_LABELS = {
    AppointmentType.INTERVENTION: "Intervento",
    AppointmentType.SITE_SURVEY: "Sopralluogo",
    AppointmentType.INSTALLATION: "Installazione",
    AppointmentType.MAINTENANCE: "Manutenzione",
}


def lead_time_label(minutes: int) -> str:
    """'30 minuti', '1 ora', '2 ore'."""
    if minutes < 60:
        return f"{minutes} minuti"
    hours = minutes // 60
    return f"{hours} {'ore' if hours > 1 else 'ora'}"


def _as_aware(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class ReminderScheduler:
    """Schedules one reminder per appointment, `notify_before` minutes ahead of it."""

    def __init__(self, device: DeviceCapabilities, session_factory: sessionmaker = SessionLocal):
        self.device = device
        self._session_factory = session_factory

    async def schedule(self, appointment: Appointment, now: datetime | None = None) -> int | None:
        """
        Schedule the reminder for an appointment.

        Returns the reminder id, or None when the appointment has no lead
        time, the permission is denied, or the reminder would fire in the past.
        """
        if not appointment.notify_before:
            return None

        permission = await self.device.request_notification_permission()
        if not permission.granted:
            logger.info(f"Notification permission denied, no reminder for {appointment.id}")
            return None

        fire_at = appointment.date - timedelta(minutes=appointment.notify_before)
        if fire_at <= (now or utcnow()):
            logger.info(f"Reminder for {appointment.id} would fire in the past, skipped")
            return None

        reminder = ScheduledReminder(
            appointment_id=appointment.id,
            title=f"{TYPE_LABELS[appointment.type]} tra {lead_time_label(appointment.notify_before)}",
            body=f"{appointment.client_name} - {appointment.address}",
            fire_at=fire_at,
        )
        try:
            with self._session_factory() as db:
                db.add(reminder)
                db.commit()
                reminder_id = reminder.id
        except SQLAlchemyError as e:
            logger.error(f"Failed to schedule reminder for {appointment.id}: {str(e)}")
            return None

        logger.info(f"Reminder {reminder_id} scheduled for {appointment.id} at {fire_at.isoformat()}")
        return reminder_id

    def cancel_by_appointment_id(self, appointment_id: str) -> int:
        """Cancel every reminder attached to the appointment. Returns how many were removed."""
        try:
            with self._session_factory() as db:
                removed = (
                    db.query(ScheduledReminder)
                    .filter(ScheduledReminder.appointment_id == appointment_id)
                    .delete(synchronize_session=False)
                )
                db.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to cancel reminders for {appointment_id}: {str(e)}")
            return 0
        return removed

    def cancel_all(self) -> None:
        try:
            with self._session_factory() as db:
                db.query(ScheduledReminder).delete(synchronize_session=False)
                db.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to cancel reminders: {str(e)}")

    def pending(self, now: datetime | None = None) -> list[dict]:
        """Reminders that have not fired yet, soonest first."""
        now = now or utcnow()
        with self._session_factory() as db:
            reminders = db.query(ScheduledReminder).order_by(ScheduledReminder.fire_at).all()
            return [
                {
                    "id": r.id,
                    "appointment_id": r.appointment_id,
                    "title": r.title,
                    "body": r.body,
                    "fire_at": _as_aware(r.fire_at),
                }
                for r in reminders
                if _as_aware(r.fire_at) > now
            ]


class PushRegistration:
    """
    Registers this device's push token with the server for administrators.

    Only one token is held at a time. `unregister` removes it from the
    server and must run while the API token is still valid.
    """

    def __init__(self, api: RemoteApi, device: DeviceCapabilities):
        self.api = api
        self.device = device
        self.token: str | None = None

    async def register(self, user: AuthUser) -> bool:
        if user.role != Role.ADMINISTRATOR or self.token is not None:
            return False

        granted = await self.device.push_token()
        if not granted.granted or not isinstance(granted.data, dict) or not granted.data.get("token"):
            logger.info(f"No push token for {user.username}: {granted.message}")
            return False

        result = await self.api.save_push_token(granted.data["token"], granted.data.get("platform") or "unknown")
        if not result.success:
            logger.error(f"Failed to register push token: {result.error}")
            return False

        self.token = granted.data["token"]
        logger.info(f"Push token registered for {user.username}")
        return True

    async def unregister(self) -> None:
        if self.token is None:
            return
        result = await self.api.remove_push_token(self.token)
        if not result.success:
            logger.warning(f"Failed to remove push token: {result.error}")
        self.token = None

    def forget(self) -> None:
        """Drop the token locally (the server already rejected the session)."""
        self.token = None
