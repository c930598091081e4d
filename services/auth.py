"""Authenticated session: stored credentials, login/logout and forced logout."""

import logging
from typing import Any, Callable

from pydantic import ValidationError

from config import settings
from schemas.records import AuthUser, User, actor_from_user, new_id, utcnow
from schemas.results import ActionResult, ApiResult
from seed_data import DEMO_ACCOUNTS, DEMO_PASSWORD
from services.api_client import RemoteApi
from services.local_store import LocalStore
from services.notifications import PushRegistration

logger = logging.getLogger(__name__)

TOKEN_KEY = "auth_token"
USER_KEY = "user"
REGISTERED_USERS_KEY = "registered_users"

INVALID_RESPONSE_MESSAGE = "Risposta del server non valida. Riprova."
LOGIN_FAILED_MESSAGE = "Login fallito. Verifica le credenziali."
OFFLINE_LOGIN_FAILED_MESSAGE = "Credenziali non valide o impossibile connettersi al server"
DUPLICATE_USERNAME_MESSAGE = "Username già in uso"


class AuthSession:
    """
    Holds the authenticated user and the API token.

    Login listeners are called with the AuthUser after every successful
    login or restored session. A 401/403 from the API ends the session.
    With a push registration, administrators signing in against the server
    register the device for push notifications; `sign_out` removes it.
    """

    def __init__(self, api: RemoteApi, local_store: LocalStore, dev_mode: bool = settings.DEV_MODE,
                 push: PushRegistration | None = None):
        self.api = api
        self.local_store = local_store
        self.dev_mode = dev_mode
        self.push = push
        self.user: AuthUser | None = None
        self.is_demo_mode = False
        self.registered_users: list[User] = []
        self._login_listeners: list[Callable[[AuthUser], Any]] = []
        api.set_on_unauthorized(self.handle_unauthorized)

    @property
    def actor(self):
        return actor_from_user(self.user)

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def has_valid_token(self) -> bool:
        return self.api.token is not None

    def add_login_listener(self, listener: Callable[[AuthUser], Any]) -> None:
        self._login_listeners.append(listener)

    def _start_session(self, user: AuthUser) -> None:
        self.user = user
        for listener in self._login_listeners:
            listener(user)

    def _clear_stored_session(self) -> None:
        try:
            self.local_store.multi_remove([self.local_store.key(TOKEN_KEY), self.local_store.key(USER_KEY)])
        except Exception as e:
            logger.error(f"Failed to clear stored session: {str(e)}")

    # --- Restore ---

    def load_stored_auth(self) -> None:
        """Restore a previous session. A stored user without a token is discarded."""
        try:
            token = self.local_store.get(self.local_store.key(TOKEN_KEY))
            stored_user = self.local_store.get_json(self.local_store.key(USER_KEY))
        except Exception as e:
            logger.error(f"Failed to read stored session: {str(e)}")
            token, stored_user = None, None

        if token and stored_user:
            try:
                user = AuthUser.model_validate(stored_user)
            except ValidationError:
                logger.warning("Stored user is invalid, discarding session")
                self._clear_stored_session()
            else:
                self.api.set_token(token)
                self._start_session(user)
                logger.info(f"Session restored for {user.username}")
        elif stored_user:
            logger.info("Stored user without token, discarding")
            self._clear_stored_session()

        self._load_registered_users()

    def _load_registered_users(self) -> None:
        try:
            raw = self.local_store.get_json(self.local_store.key(REGISTERED_USERS_KEY)) or []
            self.registered_users = [User.model_validate(item) for item in raw]
        except (ValueError, ValidationError) as e:
            logger.error(f"Ignoring unreadable registered users: {str(e)}")
            self.registered_users = []

    # --- Login / logout ---

    async def login(self, username: str, password: str) -> ApiResult:
        """
        Authenticate against the remote API.

        In development mode a failed remote login falls back to the demo
        accounts and then to accounts registered on this device.
        """
        username = username.strip()
        result = await self.api.login(username, password)

        if result.success:
            payload = result.data if isinstance(result.data, dict) else {}
            token = payload.get("token")
            try:
                user = AuthUser.model_validate(payload.get("user") or {})
            except ValidationError:
                user = None
            if not token or user is None:
                logger.warning("Login response missing token or user")
                return ApiResult(success=False, error=INVALID_RESPONSE_MESSAGE)

            self.api.set_token(token)
            try:
                self.local_store.set(self.local_store.key(TOKEN_KEY), token)
                self.local_store.set_json(self.local_store.key(USER_KEY), user.to_wire())
            except Exception as e:
                logger.error(f"Failed to store session: {str(e)}")
            self.is_demo_mode = False
            self._start_session(user)
            logger.info(f"Logged in as {user.username} ({user.role.value})")
            if self.push is not None:
                await self.push.register(user)
            return ApiResult(success=True, data=user.to_wire())

        if not self.dev_mode:
            return ApiResult(success=False, error=result.error or LOGIN_FAILED_MESSAGE,
                             status_code=result.status_code)

        logger.info(f"Remote login failed ({result.error}), trying offline accounts")
        user = self._offline_account(username, password)
        if user is None:
            return ApiResult(success=False, error=OFFLINE_LOGIN_FAILED_MESSAGE)

        self.is_demo_mode = True
        try:
            self.local_store.set_json(self.local_store.key(USER_KEY), user.to_wire())
        except Exception as e:
            logger.error(f"Failed to store session: {str(e)}")
        self._start_session(user)
        logger.info(f"Logged in offline as {user.username}")
        return ApiResult(success=True, data=user.to_wire())

    def _offline_account(self, username: str, password: str) -> AuthUser | None:
        demo = DEMO_ACCOUNTS.get(username.lower())
        if demo is not None and password == DEMO_PASSWORD:
            return demo

        for registered in self.registered_users:
            if registered.username.lower() == username.lower() and registered.password == password:
                return AuthUser(
                    id=registered.id,
                    username=registered.username,
                    role=registered.role,
                    name=registered.name,
                    email=registered.email,
                    company_id=registered.company_id,
                    company_name=registered.company_name,
                )
        return None

    async def sign_out(self) -> None:
        """Logout that first removes the push token from the server."""
        if self.push is not None and self.has_valid_token:
            await self.push.unregister()
        self.logout()

    def logout(self) -> None:
        logger.info(f"Logging out {self.user.username if self.user else 'anonymous'}")
        self._end_session()

    def handle_unauthorized(self) -> None:
        """Forced logout after the server rejected the token."""
        logger.warning("Session rejected by server, forcing logout")
        self._end_session()

    def _end_session(self) -> None:
        if self.push is not None:
            self.push.forget()
        self._clear_stored_session()
        self.api.set_token(None)
        self.user = None
        self.is_demo_mode = False

    # --- Local account registry ---

    def register_user(self, data: dict) -> ActionResult:
        """Register an account on this device. Usernames are unique regardless of case."""
        username = str(data.get("username", "")).strip()
        if any(u.username.lower() == username.lower() for u in self.registered_users):
            return ActionResult(action="register_user", success=False, message=DUPLICATE_USERNAME_MESSAGE,
                                code="invalid")
        try:
            user = User.model_validate({**data, "username": username, "id": new_id(), "created_at": utcnow()})
        except ValidationError as e:
            return ActionResult(action="register_user", success=False, message=f"Invalid data: {str(e)}",
                                code="invalid")

        self.registered_users = [*self.registered_users, user]
        try:
            self.local_store.set_json(
                self.local_store.key(REGISTERED_USERS_KEY),
                [u.to_wire() for u in self.registered_users],
            )
        except Exception as e:
            logger.error(f"Failed to persist registered users: {str(e)}")

        logger.info(f"Registered local account {user.username} ({user.role.value})")
        return ActionResult(action="register_user", success=True, message=f"User {user.username} registered",
                            data={"id": user.id})
