"""ORM models for the on-device store."""

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, DateTime, Text

from database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class KeyValueEntry(Base):
    """A single key of the local key-value store (values are JSON strings)."""

    __tablename__ = "kv_entries"

    key = Column(String, primary_key=True, index=True)
    value = Column(Text, nullable=False, default="")
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def __repr__(self):
        return f"<KeyValueEntry {self.key}: {len(self.value or '')} chars>"


class ScheduledReminder(Base):
    """A device reminder scheduled ahead of an appointment."""

    __tablename__ = "scheduled_reminders"

    id = Column(Integer, primary_key=True, index=True)
    appointment_id = Column(String, nullable=False, index=True)
    title = Column(String, nullable=False)
    body = Column(String, default="")
    fire_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    def __repr__(self):
        return f"<ScheduledReminder {self.id}: {self.appointment_id} @ {self.fire_at}>"
