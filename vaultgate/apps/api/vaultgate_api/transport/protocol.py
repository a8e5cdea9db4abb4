"""MCP JSON-RPC dispatch.

One McpProtocol instance is built at startup and shared by every request.
It holds no per-request or per-tenant state: the tool and resource
registries are frozen before the first request, and tenant data reaches
handlers only through the ambient request context.

Wire models come from the mcp SDK (mcp.types); envelopes are plain
JSON-RPC 2.0 dicts.
"""

import logging
from typing import Any, Awaitable, Callable, Optional

from mcp import types

from vaultgate_api.errors import DomainError
from vaultgate_api.tools.registry import HandlerRegistry
from vaultgate_api.tools.resources import ResourceRegistry

logger = logging.getLogger(__name__)

SERVER_NAME = "vaultgate"
SERVER_VERSION = "1.0.0"

SUPPORTED_PROTOCOL_VERSIONS = frozenset(
    {types.LATEST_PROTOCOL_VERSION, "2025-06-18", "2025-03-26", "2024-11-05"}
)

# Not defined by mcp.types; JSON-RPC code MCP uses for resources/read misses.
RESOURCE_NOT_FOUND = -32002

JSONRPC_VERSION = "2.0"


class ProtocolError(Exception):
    """JSON-RPC level error (becomes an "error" member, not a tool failure)."""

    def __init__(self, code: int, message: str, data: Optional[Any] = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data


def error_response(request_id: Any, code: int, message: str, data: Optional[Any] = None) -> dict[str, Any]:
    error: dict[str, Any] = {"code": code, "message": message}
    if data is not None:
        error["data"] = data
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "error": error}


def _dump(model: Any) -> dict[str, Any]:
    return model.model_dump(by_alias=True, mode="json", exclude_none=True)


class McpProtocol:
    """Routes JSON-RPC messages to the tool and resource registries."""

    def __init__(
        self,
        tools: HandlerRegistry,
        resources: ResourceRegistry,
        *,
        name: str = SERVER_NAME,
        version: str = SERVER_VERSION,
    ):
        self.tools = tools
        self.resources = resources
        self.name = name
        self.version = version
        self._methods: dict[str, Callable[[dict[str, Any]], Awaitable[Any]]] = {
            "initialize": self._initialize,
            "ping": self._ping,
            "tools/list": self._list_tools,
            "tools/call": self._call_tool,
            "resources/list": self._list_resources,
            "resources/templates/list": self._list_resource_templates,
            "resources/read": self._read_resource,
        }

    async def handle_message(self, message: Any) -> Optional[dict[str, Any]]:
        """Handle one JSON-RPC message.

        Returns:
            Response envelope, or None for notifications
        """
        if not isinstance(message, dict) or message.get("jsonrpc") != JSONRPC_VERSION:
            request_id = message.get("id") if isinstance(message, dict) else None
            return error_response(request_id, types.INVALID_REQUEST, "Invalid JSON-RPC message")

        method = message.get("method")
        if not isinstance(method, str):
            if "result" in message or "error" in message:
                # Client responses are not expected by a stateless server.
                return None
            return error_response(message.get("id"), types.INVALID_REQUEST, "Missing method")

        if "id" not in message:
            logger.debug("mcp.notification", extra={"event": "mcp.notification", "rpc_method": method})
            return None

        request_id = message["id"]
        params = message.get("params") or {}
        if not isinstance(params, dict):
            return error_response(request_id, types.INVALID_PARAMS, "params must be an object")

        handler = self._methods.get(method)
        if handler is None:
            return error_response(request_id, types.METHOD_NOT_FOUND, f"Method not found: {method}")

        try:
            result = await handler(params)
        except ProtocolError as e:
            return error_response(request_id, e.code, e.message, e.data)

        return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "result": result}

    async def _initialize(self, params: dict[str, Any]) -> dict[str, Any]:
        requested = params.get("protocolVersion")
        version = requested if requested in SUPPORTED_PROTOCOL_VERSIONS else types.LATEST_PROTOCOL_VERSION
        return _dump(
            types.InitializeResult(
                protocolVersion=version,
                capabilities=types.ServerCapabilities(
                    tools=types.ToolsCapability(listChanged=False),
                    resources=types.ResourcesCapability(subscribe=False, listChanged=False),
                ),
                serverInfo=types.Implementation(name=self.name, version=self.version),
            )
        )

    async def _ping(self, params: dict[str, Any]) -> dict[str, Any]:
        return {}

    async def _list_tools(self, params: dict[str, Any]) -> dict[str, Any]:
        return _dump(types.ListToolsResult(tools=self.tools.list_tools()))

    async def _call_tool(self, params: dict[str, Any]) -> dict[str, Any]:
        name = params.get("name")
        if not isinstance(name, str) or not name:
            raise ProtocolError(types.INVALID_PARAMS, "tools/call requires a tool name")
        arguments = params.get("arguments")
        if arguments is not None and not isinstance(arguments, dict):
            raise ProtocolError(types.INVALID_PARAMS, "tools/call arguments must be an object")

        logger.info("mcp.tool.call", extra={"event": "mcp.tool.call", "tool": name})
        return _dump(await self.tools.dispatch(name, arguments))

    async def _list_resources(self, params: dict[str, Any]) -> dict[str, Any]:
        return _dump(types.ListResourcesResult(resources=self.resources.list_resources()))

    async def _list_resource_templates(self, params: dict[str, Any]) -> dict[str, Any]:
        return _dump(types.ListResourceTemplatesResult(resourceTemplates=self.resources.list_templates()))

    async def _read_resource(self, params: dict[str, Any]) -> dict[str, Any]:
        uri = params.get("uri")
        if not isinstance(uri, str) or not uri:
            raise ProtocolError(types.INVALID_PARAMS, "resources/read requires a uri")
        try:
            return _dump(self.resources.read(uri))
        except DomainError as e:
            raise ProtocolError(RESOURCE_NOT_FOUND, e.message, e.details) from e
