"""Tests for the remote API wrapper and server payload normalization."""

import json
from datetime import datetime, timezone

import httpx

from services.api_client import (
    UNAUTHORIZED_MESSAGE, RemoteApi, company_from_api, convert_records, intervention_from_api, parse_timestamp,
    user_from_api,
)

from conftest import run


def _api(handler, token=None):
    api = RemoteApi(base_url="https://api.test/api/", transport=httpx.MockTransport(handler))
    api.set_token(token)
    return api


class TestRequests:
    """Request building and response mapping."""

    def test_bearer_token_and_url(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json=[])

        result = run(_api(handler, token="abc").get_interventions())
        assert result.success
        assert result.data == []
        assert seen == {"url": "https://api.test/api/interventions", "auth": "Bearer abc"}

    def test_no_token_no_header(self):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json={})

        run(_api(handler).get_companies())
        assert seen["auth"] is None

    def test_json_body(self):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"success": True})

        run(_api(handler).save_push_token("tok", "ios"))
        assert seen == {"method": "POST", "body": {"token": "tok", "platform": "ios"}}

    def test_server_error_message(self):
        result = run(_api(lambda r: httpx.Response(422, json={"error": "Dati mancanti"})).get_companies())
        assert not result.success
        assert result.error == "Dati mancanti"
        assert result.status_code == 422

    def test_error_without_body(self):
        result = run(_api(lambda r: httpx.Response(500, text="boom")).get_users())
        assert result.error == "HTTP 500"

    def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("Connection refused", request=request)

        result = run(_api(handler).get_users())
        assert not result.success
        assert result.error == "Connection refused"
        assert result.status_code is None

    def test_unauthorized_calls_callback(self):
        calls = []
        api = _api(lambda r: httpx.Response(403), token="old")
        api.set_on_unauthorized(lambda: calls.append(True))

        result = run(api.get_intervention_photos("x"))

        assert result.error == UNAUTHORIZED_MESSAGE
        assert calls == [True]

    def test_photo_url(self):
        api = _api(lambda r: httpx.Response(200))
        assert api.photo_image_url("p1") == "https://api.test/api/photos/p1/image"


class TestNormalization:
    """Server payloads converted to local records."""

    def test_parse_timestamp(self):
        assert parse_timestamp(None) is None
        assert parse_timestamp("") is None
        assert parse_timestamp("2025-06-01T12:00:00") == datetime(2025, 6, 1, 12, tzinfo=timezone.utc)
        assert parse_timestamp(0) == datetime(1970, 1, 1, tzinfo=timezone.utc)

    def test_intervention(self):
        api = _api(lambda r: httpx.Response(200))
        intervention = intervention_from_api({
            "id": "i1",
            "number": 7,
            "client": {"name": "Anna", "address": "Via Roma", "civicNumber": None},
            "companyId": "c1",
            "companyName": "GBD",
            "category": "manutenzione",
            "status": "in_corso",
            "assignedByName": "Admin",
            "documentation": {"photos": ["p1"], "notes": "ok"},
            "updatedAt": "2025-06-01T12:00:00Z",
        }, api, number_prefix="INT-2025-")

        assert intervention.number == "INT-2025-007"
        assert intervention.client.civic_number == ""
        assert intervention.assigned_by == "Admin"
        assert intervention.documentation.photos[0].uri == "https://api.test/api/photos/p1/image"
        assert intervention.created_at == intervention.updated_at

    def test_company_and_user(self):
        company = company_from_api({"id": "c1", "name": "GBD", "createdAt": "2025-01-01T00:00:00Z"})
        user = user_from_api({"id": "u1", "username": "alex", "role": "TECNICO", "companyId": "c1"})
        assert company.phone == ""
        assert user.name == "alex"
        assert user.company_id == "c1"

    def test_convert_records_skips_invalid_entries(self):
        api = _api(lambda r: httpx.Response(200))
        converted = convert_records([
            {"id": "i1", "companyId": "c1", "companyName": "GBD", "category": "manutenzione"},
            {"id": "i2", "companyId": "c1", "companyName": None, "category": "manutenzione"},
            {"id": "i3", "category": "sconosciuta"},
            "not a record",
        ], lambda item: intervention_from_api(item, api), "intervention")

        assert [i.id for i in converted] == ["i1"]

    def test_convert_records_without_list(self):
        assert convert_records({"error": "boom"}, company_from_api, "company") == []
