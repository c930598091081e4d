"""Wiring of the API client, session, state and device services."""

import logging
from dataclasses import dataclass

import httpx
from sqlalchemy.orm import sessionmaker

from config import settings
from database import SessionLocal
from seed_data import Baseline
from services.api_client import RemoteApi
from services.auth import AuthSession
from services.device import DeviceCapabilities, HeadlessDevice
from services.local_store import LocalStore
from services.notifications import PushRegistration, ReminderScheduler
from store.app_state import AppState

logger = logging.getLogger(__name__)


@dataclass
class FieldClient:
    api: RemoteApi
    auth: AuthSession
    state: AppState
    reminders: ReminderScheduler
    device: DeviceCapabilities

    def start(self) -> None:
        """Restore the stored session, then load the cached collections."""
        self.auth.load_stored_auth()
        self.state.load()
        logger.info(
            f"Client ready: {self.state.all_interventions_count} interventions, "
            f"user={self.auth.user.username if self.auth.user else None}"
        )


def build_client(session_factory: sessionmaker = SessionLocal,
                 transport: httpx.AsyncBaseTransport | None = None,
                 device: DeviceCapabilities | None = None,
                 dev_mode: bool | None = None,
                 baseline: Baseline | None = None) -> FieldClient:
    device = device or HeadlessDevice()
    local_store = LocalStore(session_factory)
    api = RemoteApi(transport=transport)
    auth = AuthSession(api, local_store, dev_mode=settings.DEV_MODE if dev_mode is None else dev_mode,
                       push=PushRegistration(api, device))
    state = AppState(auth, local_store, baseline=baseline)
    reminders = ReminderScheduler(device, session_factory)
    return FieldClient(api=api, auth=auth, state=state, reminders=reminders, device=device)
