"""Tests for JSON-RPC dispatch (McpProtocol) and MCP resources."""

import pytest
from mcp import types

from mcp_helpers import rpc
from vaultgate_api.errors import DomainError
from vaultgate_api.tools.detect import register_detect_tools
from vaultgate_api.tools.registry import HandlerRegistry
from vaultgate_api.tools.resources import (
    WELCOME_TEXT,
    ResourceRegistry,
    TemplateResource,
    register_default_resources,
)
from vaultgate_api.transport.protocol import RESOURCE_NOT_FOUND, SERVER_NAME, McpProtocol


@pytest.fixture
def resources() -> ResourceRegistry:
    registry = ResourceRegistry()
    register_default_resources(registry)
    registry.freeze()
    return registry


@pytest.fixture
def protocol(resources: ResourceRegistry) -> McpProtocol:
    tools = HandlerRegistry()
    register_detect_tools(tools)
    tools.freeze()
    return McpProtocol(tools, resources)


class TestResources:
    def test_read_static(self, resources):
        result = resources.read("welcome://message")
        assert result.contents[0].text == WELCOME_TEXT

    def test_read_template(self, resources):
        result = resources.read("greeting://Ada%20Lovelace")
        assert result.contents[0].text == "Hello, Ada Lovelace!"

    def test_read_unknown(self, resources):
        with pytest.raises(DomainError):
            resources.read("unknown://thing")

    def test_template_does_not_match_nested_path(self):
        template = TemplateResource(
            uri_template="greeting://{name}",
            name="greeting",
            title="Greeting",
            description="",
            read=lambda name: name,
        )
        assert template.match("greeting://a/b") is None
        assert template.match("greeting://bob") == {"name": "bob"}

    def test_frozen_registry_rejects_additions(self, resources):
        with pytest.raises(RuntimeError):
            register_default_resources(resources)


class TestMcpProtocol:
    @pytest.mark.asyncio
    async def test_initialize_negotiates_version(self, protocol):
        response = await protocol.handle_message(
            rpc("initialize", {"protocolVersion": "2025-03-26", "capabilities": {}, "clientInfo": {"name": "t", "version": "1"}})
        )

        result = response["result"]
        assert response["id"] == 1
        assert result["protocolVersion"] == "2025-03-26"
        assert result["serverInfo"]["name"] == SERVER_NAME
        assert "tools" in result["capabilities"]
        assert "resources" in result["capabilities"]

    @pytest.mark.asyncio
    async def test_initialize_unknown_version_gets_latest(self, protocol):
        response = await protocol.handle_message(rpc("initialize", {"protocolVersion": "1999-01-01"}))
        assert response["result"]["protocolVersion"] == types.LATEST_PROTOCOL_VERSION

    @pytest.mark.asyncio
    async def test_ping(self, protocol):
        assert await protocol.handle_message(rpc("ping", request_id="p-1")) == {
            "jsonrpc": "2.0",
            "id": "p-1",
            "result": {},
        }

    @pytest.mark.asyncio
    async def test_tools_list(self, protocol):
        response = await protocol.handle_message(rpc("tools/list"))
        names = [tool["name"] for tool in response["result"]["tools"]]
        assert names == ["deidentify", "reidentify"]
        assert "inputSchema" in response["result"]["tools"][0]

    @pytest.mark.asyncio
    async def test_tools_call_failure_is_result_not_error(self, protocol):
        response = await protocol.handle_message(
            rpc("tools/call", {"name": "nope", "arguments": {}})
        )
        assert "error" not in response
        assert response["result"]["isError"] is True

    @pytest.mark.asyncio
    async def test_tools_call_requires_name(self, protocol):
        response = await protocol.handle_message(rpc("tools/call", {}))
        assert response["error"]["code"] == types.INVALID_PARAMS

    @pytest.mark.asyncio
    async def test_resources_list_and_templates(self, protocol):
        listed = await protocol.handle_message(rpc("resources/list"))
        templates = await protocol.handle_message(rpc("resources/templates/list", request_id=2))

        assert [r["uri"] for r in listed["result"]["resources"]] == ["welcome://message"]
        assert [t["uriTemplate"] for t in templates["result"]["resourceTemplates"]] == ["greeting://{name}"]

    @pytest.mark.asyncio
    async def test_resources_read(self, protocol):
        response = await protocol.handle_message(rpc("resources/read", {"uri": "greeting://Bob"}))
        assert response["result"]["contents"][0]["text"] == "Hello, Bob!"

    @pytest.mark.asyncio
    async def test_resources_read_missing(self, protocol):
        response = await protocol.handle_message(rpc("resources/read", {"uri": "nope://x"}))
        assert response["error"]["code"] == RESOURCE_NOT_FOUND
        assert response["error"]["data"] == {"uri": "nope://x"}

    @pytest.mark.asyncio
    async def test_unknown_method(self, protocol):
        response = await protocol.handle_message(rpc("prompts/list"))
        assert response["error"]["code"] == types.METHOD_NOT_FOUND

    @pytest.mark.asyncio
    async def test_notification_has_no_response(self, protocol):
        message = {"jsonrpc": "2.0", "method": "notifications/initialized"}
        assert await protocol.handle_message(message) is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "message",
        [{"id": 1, "method": "ping"}, {"jsonrpc": "1.0", "id": 1, "method": "ping"}, "ping", 42],
    )
    async def test_invalid_envelope(self, protocol, message):
        response = await protocol.handle_message(message)
        assert response["error"]["code"] == types.INVALID_REQUEST

    @pytest.mark.asyncio
    async def test_params_must_be_object(self, protocol):
        response = await protocol.handle_message({"jsonrpc": "2.0", "id": 1, "method": "ping", "params": [1]})
        assert response["error"]["code"] == types.INVALID_PARAMS
