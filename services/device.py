"""Device capability boundary: location, camera, notifications, push, mail."""

import logging

from schemas.results import DeviceResult

logger = logging.getLogger(__name__)


class DeviceCapabilities:
    """
    Contract for the capabilities a device may offer.

    Each call is a single awaitable returning a DeviceResult; a declined
    permission or missing capability is `granted=False`, never an exception.

    Expected payloads when granted:
        current_location  -> {"latitude", "longitude", "address"}
        capture_photo     -> {"uri", "base64"}
        pick_photos       -> [{"uri", "base64"}, ...]
        compose_email     -> {"status": "sent" | "saved" | "cancelled"}
        push_token        -> {"token", "platform"}
    """

    async def current_location(self) -> DeviceResult:
        raise NotImplementedError

    async def capture_photo(self) -> DeviceResult:
        raise NotImplementedError

    async def pick_photos(self, limit: int = 10) -> DeviceResult:
        raise NotImplementedError

    async def request_notification_permission(self) -> DeviceResult:
        raise NotImplementedError

    async def push_token(self) -> DeviceResult:
        raise NotImplementedError

    async def compose_email(self, recipients: list[str], subject: str, body: str) -> DeviceResult:
        raise NotImplementedError


class HeadlessDevice(DeviceCapabilities):
    """Device without GPS, camera or mail client (server or test runs)."""

    def __init__(self, allow_notifications: bool = True):
        self.allow_notifications = allow_notifications

    async def current_location(self) -> DeviceResult:
        return DeviceResult(granted=False, message="Permesso di localizzazione negato")

    async def capture_photo(self) -> DeviceResult:
        return DeviceResult(granted=False, message="Fotocamera non disponibile")

    async def pick_photos(self, limit: int = 10) -> DeviceResult:
        return DeviceResult(granted=False, message="Galleria non disponibile")

    async def request_notification_permission(self) -> DeviceResult:
        if not self.allow_notifications:
            return DeviceResult(granted=False, message="Permesso notifiche negato")
        return DeviceResult(granted=True)

    async def push_token(self) -> DeviceResult:
        return DeviceResult(granted=False, message="Notifiche push non disponibili")

    async def compose_email(self, recipients: list[str], subject: str, body: str) -> DeviceResult:
        logger.info(f"No mail client available, report for {', '.join(recipients)} not composed")
        return DeviceResult(granted=False, message="Email non disponibile su questo dispositivo")
