"""Tests for the per-request Skyflow client and its factory.

Covers:
- Fresh client per call, bound to its own credential + route
- Request shape (URL, auth header, account header, body)
- Upstream errors pass through code/message/details
- Transport failures and timeouts become UpstreamServiceError
"""

import json

import httpx
import pytest

from mcp_helpers import VAULT_A_URL, VAULT_B_URL, FakeSkyflow
from vaultgate_api.auth.credentials import ApiKey, BearerToken
from vaultgate_api.config.vault import VaultRoute
from vaultgate_api.errors import UpstreamServiceError
from vaultgate_api.tools.entities import EntityType
from vaultgate_api.upstream.skyflow_client import (
    ACCOUNT_ID_HEADER,
    DEIDENTIFY_TEXT_PATH,
    REIDENTIFY_TEXT_PATH,
    create_client,
)


class TestCreateClient:
    def test_returns_fresh_instances(self):
        route = VaultRoute.from_url("vaultA", VAULT_A_URL)
        credential = BearerToken("token-A")

        first = create_client(credential, route)
        second = create_client(credential, route)

        assert first is not second

    def test_client_bound_to_its_inputs(self):
        route_a = VaultRoute.from_url("vaultA", VAULT_A_URL)
        route_b = VaultRoute.from_url("vaultB", VAULT_B_URL)

        client_a = create_client(BearerToken("token-A"), route_a)
        client_b = create_client(ApiKey("key-B"), route_b)

        assert client_a.route is route_a
        assert client_b.route is route_b
        assert client_a.credential_kind == "bearer_token"
        assert client_b.credential_kind == "api_key"

    def test_repr_hides_credential(self):
        client = create_client(BearerToken("supersecret"), VaultRoute.from_url("vaultA", VAULT_A_URL))
        assert "supersecret" not in repr(client)
        assert "vaultA" in repr(client)

    def test_timeout_from_environment(self, monkeypatch):
        monkeypatch.setenv("SKYFLOW_TIMEOUT_SECONDS", "7.5")
        client = create_client(BearerToken("t"), VaultRoute.from_url("vaultA", VAULT_A_URL))
        assert client.timeout == 7.5


class TestDeidentifyText:
    @pytest.mark.asyncio
    async def test_request_shape(self, make_skyflow_client):
        fake = FakeSkyflow()
        client = make_skyflow_client(fake, account_id="acc-1", workspace_id="ws-1")

        result = await client.deidentify_text(
            "My name is John Doe", entities=[EntityType.NAME, EntityType.SSN]
        )

        request = fake.requests[0]
        assert request.method == "POST"
        assert str(request.url) == VAULT_A_URL + DEIDENTIFY_TEXT_PATH
        assert request.headers["Authorization"] == "Bearer token-A"
        assert request.headers[ACCOUNT_ID_HEADER] == "acc-1"
        assert json.loads(request.content) == {
            "text": "My name is John Doe",
            "vault_id": "vaultA",
            "token_type": {"default": "vault_token"},
            "entity_types": ["name", "ssn"],
            "workspace_id": "ws-1",
        }

        assert result.processed_text == "[vaultA@cluster-a] My name is [NAME_1]"
        assert result.word_count == 4
        assert result.char_count == len("My name is John Doe")
        assert result.entities[0].token == "NAME_1"
        assert result.entities[0].entity_type == "name"
        assert result.entities[0].start_index == 11

    @pytest.mark.asyncio
    async def test_optional_fields_omitted(self, make_skyflow_client):
        fake = FakeSkyflow()
        client = make_skyflow_client(fake)

        await client.deidentify_text("hello")

        request = fake.requests[0]
        body = json.loads(request.content)
        assert "entity_types" not in body
        assert "workspace_id" not in body
        assert ACCOUNT_ID_HEADER not in request.headers

    @pytest.mark.asyncio
    async def test_upstream_error_passes_through(self, make_skyflow_client):
        fake = FakeSkyflow()
        fake.fail_with(
            403,
            {"error": {"http_code": 403, "message": "Invalid credentials", "details": [{"reason": "bad token"}]}},
        )
        client = make_skyflow_client(fake)

        with pytest.raises(UpstreamServiceError) as exc_info:
            await client.deidentify_text("hello")

        assert exc_info.value.http_code == 403
        assert exc_info.value.message == "Invalid credentials"
        assert exc_info.value.details == [{"reason": "bad token"}]

    @pytest.mark.asyncio
    async def test_non_integer_error_code_keeps_http_status(self, make_skyflow_client):
        fake = FakeSkyflow()
        fake.fail_with(
            400,
            {"error": {"http_code": "INVALID_ARGUMENT", "message": "Bad text", "details": ["too long"]}},
        )
        client = make_skyflow_client(fake)

        with pytest.raises(UpstreamServiceError) as exc_info:
            await client.deidentify_text("hello")

        assert exc_info.value.http_code == 400
        assert exc_info.value.message == "Bad text"
        assert exc_info.value.details == {"upstream_code": "INVALID_ARGUMENT", "details": ["too long"]}

    @pytest.mark.asyncio
    async def test_error_without_json_body(self, make_skyflow_client):
        client = make_skyflow_client(lambda request: httpx.Response(503, text="unavailable"))

        with pytest.raises(UpstreamServiceError) as exc_info:
            await client.deidentify_text("hello")

        assert exc_info.value.http_code == 503
        assert "503" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_missing_processed_text(self, make_skyflow_client):
        client = make_skyflow_client(lambda request: httpx.Response(200, json={"unexpected": True}))

        with pytest.raises(UpstreamServiceError) as exc_info:
            await client.deidentify_text("hello")

        assert exc_info.value.http_code == 502

    @pytest.mark.asyncio
    async def test_connection_failure(self, make_skyflow_client):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = make_skyflow_client(handler)

        with pytest.raises(UpstreamServiceError) as exc_info:
            await client.deidentify_text("hello")

        assert exc_info.value.http_code == 502

    @pytest.mark.asyncio
    async def test_timeout(self, make_skyflow_client):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        client = make_skyflow_client(handler)

        with pytest.raises(UpstreamServiceError) as exc_info:
            await client.deidentify_text("hello")

        assert exc_info.value.http_code == 504


class TestReidentifyText:
    @pytest.mark.asyncio
    async def test_request_shape(self, make_skyflow_client):
        fake = FakeSkyflow()
        client = make_skyflow_client(fake, vault_id="vaultB", vault_url=VAULT_B_URL)

        result = await client.reidentify_text("Hello [NAME_1]")

        request = fake.requests[0]
        assert str(request.url) == VAULT_B_URL + REIDENTIFY_TEXT_PATH
        assert json.loads(request.content) == {"text": "Hello [NAME_1]", "vault_id": "vaultB"}
        assert result.processed_text == "[vaultB@cluster-b] Hello [NAME_1]"

    @pytest.mark.asyncio
    async def test_missing_text(self, make_skyflow_client):
        client = make_skyflow_client(lambda request: httpx.Response(200, json={}))

        with pytest.raises(UpstreamServiceError):
            await client.reidentify_text("Hello [NAME_1]")
