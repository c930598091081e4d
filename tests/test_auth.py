"""Tests for AuthSession — remote and offline login, restore, forced logout, local registry."""

import json

import httpx

from schemas.records import Administrator, Role, TechnicianActor
from schemas.results import DeviceResult
from seed_data import ALEX_ID, GBD_ID, GBD_NAME
from services.device import HeadlessDevice
from services.auth import DUPLICATE_USERNAME_MESSAGE, OFFLINE_LOGIN_FAILED_MESSAGE

from conftest import login_offline, run, sign_in


def _login_handler(request):
    if request.url.path.endswith("/auth/login"):
        return httpx.Response(200, json={
            "token": "server-token",
            "user": {"id": "u-1", "username": "gbd", "role": "master", "name": "Admin"},
        })
    return httpx.Response(404, json={"error": "Not found"})


class TestRemoteLogin:
    """Login against the server."""

    def test_success_stores_token_and_user(self, make_client):
        client = make_client(handler=_login_handler, dev_mode=False)
        result = run(client.auth.login("gbd", "secret"))

        assert result.success
        assert client.auth.has_valid_token
        assert isinstance(client.auth.actor, Administrator)
        assert not client.auth.is_demo_mode
        store = client.auth.local_store
        assert store.get(store.key("auth_token")) == "server-token"
        assert store.get_json(store.key("user"))["username"] == "gbd"

    def test_session_restored_after_restart(self, make_client):
        run(make_client(handler=_login_handler, dev_mode=False).auth.login("gbd", "secret"))
        restarted = make_client()
        assert restarted.auth.is_authenticated
        assert restarted.api.token == "server-token"

    def test_server_error_returned_outside_dev_mode(self, make_client):
        client = make_client(handler=lambda r: httpx.Response(400, json={"error": "Credenziali errate"}),
                             dev_mode=False)
        result = run(client.auth.login("gbd", "password"))
        assert not result.success
        assert result.error == "Credenziali errate"
        assert not client.auth.is_authenticated

    def test_response_without_token_rejected(self, make_client):
        client = make_client(handler=lambda r: httpx.Response(200, json={"user": {"id": "u"}}), dev_mode=False)
        result = run(client.auth.login("gbd", "secret"))
        assert not result.success
        assert client.auth.user is None


class TestOfflineLogin:
    """Development-mode fallback to the demo accounts and registered users."""

    def test_demo_account(self, client):
        result = run(client.auth.login(" Alex ", "password"))
        assert result.success
        assert client.auth.is_demo_mode
        assert not client.auth.has_valid_token
        assert isinstance(client.auth.actor, TechnicianActor)
        assert client.auth.actor.user_id == ALEX_ID

    def test_wrong_password(self, client):
        result = run(client.auth.login("alex", "wrong"))
        assert not result.success
        assert result.error == OFFLINE_LOGIN_FAILED_MESSAGE

    def test_disabled_outside_dev_mode(self, make_client):
        client = make_client(dev_mode=False)
        assert not run(client.auth.login("alex", "password")).success

    def test_demo_session_discarded_on_restart(self, make_client):
        login_offline(make_client(), "alex")
        restarted = make_client()
        assert not restarted.auth.is_authenticated
        store = restarted.auth.local_store
        assert store.get(store.key("user")) is None

    def test_registered_user(self, client):
        client.auth.register_user({
            "username": "nuovo", "password": "segreto1", "role": "tecnico", "name": "Nuovo",
            "company_id": GBD_ID, "company_name": GBD_NAME,
        })
        result = run(client.auth.login("NUOVO", "segreto1"))
        assert result.success
        assert client.auth.user.role == Role.TECHNICIAN
        assert client.auth.user.company_id == GBD_ID


class TestLogout:
    """Explicit and forced logout."""

    def test_logout_clears_everything(self, client):
        sign_in(client, "gbd")
        client.auth.logout()
        store = client.auth.local_store
        assert client.auth.user is None
        assert client.api.token is None
        assert store.get(store.key("auth_token")) is None
        assert store.get(store.key("user")) is None

    def test_unauthorized_response_forces_logout(self, make_client):
        client = make_client(handler=lambda r: httpx.Response(401, json={"error": "expired"}))
        sign_in(client, "gbd")
        assert client.auth.is_authenticated

        result = run(client.api.get_interventions())

        assert not result.success
        assert client.auth.user is None
        assert client.api.token is None
        assert client.state.interventions == []

    def test_stored_user_without_token_discarded(self, make_client, local_store):
        local_store.set_json(local_store.key("user"), {"id": "x", "username": "gbd", "role": "master"})
        client = make_client()
        assert not client.auth.is_authenticated
        assert local_store.get(local_store.key("user")) is None


class TestRegistry:
    """Accounts registered on this device."""

    def test_duplicate_username_case_insensitive(self, client):
        first = client.auth.register_user({"username": "Mario", "password": "x", "role": "tecnico", "name": "M"})
        second = client.auth.register_user({"username": "mario", "password": "y", "role": "tecnico", "name": "M"})
        assert first.success
        assert not second.success
        assert second.message == DUPLICATE_USERNAME_MESSAGE

    def test_registry_survives_restart(self, make_client):
        make_client().auth.register_user({"username": "mario", "password": "x", "role": "ditta", "name": "M"})
        assert [u.username for u in make_client().auth.registered_users] == ["mario"]

    def test_invalid_registration(self, client):
        result = client.auth.register_user({"username": "", "role": "tecnico", "name": "M"})
        assert not result.success
        assert client.auth.registered_users == []


class PushDevice(HeadlessDevice):
    """Device that hands out a push token."""

    async def push_token(self):
        return DeviceResult(granted=True, data={"token": "ExponentPushToken[abc]", "platform": "ios"})


class PushServer:
    """Login endpoint plus a record of every push-token call."""

    def __init__(self, role="master"):
        self.role = role
        self.calls = []

    def __call__(self, request):
        if request.url.path.endswith("/auth/login"):
            return httpx.Response(200, json={
                "token": "server-token",
                "user": {"id": "u-1", "username": "gbd", "role": self.role, "name": "Admin"},
            })
        if request.url.path.endswith("/push-tokens"):
            self.calls.append((request.method, json.loads(request.content)))
        return httpx.Response(200, json={"message": "ok"})


class TestPushRegistration:
    """Push token registered on administrator login and removed on sign-out."""

    def test_administrator_login_registers_and_sign_out_removes(self, make_client):
        server = PushServer()
        client = make_client(handler=server, dev_mode=False, device=PushDevice())

        run(client.auth.login("gbd", "secret"))
        assert server.calls == [("POST", {"token": "ExponentPushToken[abc]", "platform": "ios"})]
        assert client.auth.push.token == "ExponentPushToken[abc]"

        run(client.auth.sign_out())
        assert server.calls[-1] == ("DELETE", {"token": "ExponentPushToken[abc]"})
        assert client.auth.push.token is None
        assert not client.auth.is_authenticated

    def test_technician_login_not_registered(self, make_client):
        server = PushServer(role="tecnico")
        client = make_client(handler=server, dev_mode=False, device=PushDevice())
        run(client.auth.login("alex", "secret"))
        run(client.auth.sign_out())
        assert server.calls == []

    def test_device_without_push_not_registered(self, make_client):
        server = PushServer()
        client = make_client(handler=server, dev_mode=False)
        run(client.auth.login("gbd", "secret"))
        assert server.calls == []
        assert client.auth.push.token is None

    def test_offline_login_not_registered(self, make_client):
        client = make_client(device=PushDevice())
        login_offline(client, "gbd")
        run(client.auth.sign_out())
        assert client.auth.push.token is None
        assert not client.auth.is_authenticated
