"""On-device key-value store (string keys, JSON string values)."""

import json
import logging
from typing import Any, Iterable

from sqlalchemy.orm import sessionmaker

from config import settings
from database import SessionLocal
from models.models import KeyValueEntry

logger = logging.getLogger(__name__)


class LocalStore:
    """
    Opaque get/set/remove store backed by a single SQLAlchemy table.

    No transaction spans several keys. Errors propagate to the caller,
    which decides whether they are fatal.
    """

    def __init__(self, session_factory: sessionmaker = SessionLocal, prefix: str = settings.STORAGE_KEY_PREFIX):
        self._session_factory = session_factory
        self.prefix = prefix

    def key(self, name: str) -> str:
        return f"{self.prefix}{name}"

    def get(self, key: str) -> str | None:
        with self._session_factory() as db:
            entry = db.get(KeyValueEntry, key)
            return entry.value if entry else None

    def set(self, key: str, value: str) -> None:
        with self._session_factory() as db:
            entry = db.get(KeyValueEntry, key)
            if entry:
                entry.value = value
            else:
                db.add(KeyValueEntry(key=key, value=value))
            db.commit()

    def remove(self, key: str) -> None:
        self.multi_remove([key])

    def multi_remove(self, keys: Iterable[str]) -> None:
        keys = list(keys)
        with self._session_factory() as db:
            db.query(KeyValueEntry).filter(KeyValueEntry.key.in_(keys)).delete(synchronize_session=False)
            db.commit()
        logger.debug(f"Removed keys: {keys}")

    def get_json(self, key: str) -> Any:
        raw = self.get(key)
        return json.loads(raw) if raw else None

    def set_json(self, key: str, value: Any) -> None:
        self.set(key, json.dumps(value))
