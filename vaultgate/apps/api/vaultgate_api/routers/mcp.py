"""MCP Streamable HTTP endpoint.

POST /mcp is stateless: every request resolves its own credential and
vault route, builds its own Skyflow client, and is served by a fresh
TransportSession under its own RequestContextScope. Nothing tenant-specific
outlives the request.

Order of checks:
1. Credential (401) - before any routing or upstream work
2. Vault route (400)
3. Client construction + JSON-RPC dispatch (200 / 202)
"""

import logging
from typing import Callable, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from fastapi.responses import JSONResponse

from vaultgate_api.auth.credentials import Credential
from vaultgate_api.auth.token_auth import get_credential
from vaultgate_api.config.env import get_vault_env_fallback
from vaultgate_api.config.vault import VaultRoute, resolve_vault_route
from vaultgate_api.context import (
    RequestContext,
    RequestContextScope,
    cluster_id_var,
    vault_id_var,
)
from vaultgate_api.errors import ConfigurationError, MisconfigurationError
from vaultgate_api.transport.protocol import McpProtocol
from vaultgate_api.transport.session import TransportSession
from vaultgate_api.upstream.skyflow_client import SkyflowClient, create_client

router = APIRouter()
logger = logging.getLogger(__name__)

ClientFactory = Callable[[Credential, VaultRoute], SkyflowClient]

METHOD_NOT_ALLOWED_DETAIL = "Method not allowed. This server is stateless; use POST /mcp."


async def get_vault_route(
    vault_id: Optional[str] = Query(None, alias="vaultId"),
    vault_url: Optional[str] = Query(None, alias="vaultUrl"),
    account_id: Optional[str] = Query(None, alias="accountId"),
    workspace_id: Optional[str] = Query(None, alias="workspaceId"),
) -> VaultRoute:
    """Resolve the vault route from query parameters with env fallback.

    Raises:
        HTTPException: 400 with the first failing check's message
    """
    try:
        return resolve_vault_route(
            vault_id=vault_id,
            vault_url=vault_url,
            account_id=account_id,
            workspace_id=workspace_id,
            env_fallback=get_vault_env_fallback(),
        )
    except ConfigurationError as e:
        logger.warning(
            "Vault route resolution failed",
            extra={"event": "mcp.route.invalid", "reason": e.message},
        )
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message) from e


def get_client_factory() -> ClientFactory:
    """Per-request client factory (overridden in tests)."""
    return create_client


def get_protocol(request: Request) -> McpProtocol:
    protocol = getattr(request.app.state, "mcp_protocol", None)
    if protocol is None:
        raise MisconfigurationError("MCP protocol is not configured on app.state")
    return protocol


@router.post("/mcp")
async def handle_mcp(
    request: Request,
    credential: Credential = Depends(get_credential),
    route: VaultRoute = Depends(get_vault_route),
    client_factory: ClientFactory = Depends(get_client_factory),
) -> Response:
    """Serve one JSON-RPC message (or batch) for one tenant."""
    vault_id_var.set(route.vault_id)
    cluster_id_var.set(route.cluster_id)

    protocol = get_protocol(request)
    context = RequestContext(client=client_factory(credential, route), route=route)

    logger.info(
        "mcp.request.accepted",
        extra={"event": "mcp.request.accepted", "credential_kind": credential.kind},
    )
    return await RequestContextScope.run(context, _serve_session, request, protocol)


async def _serve_session(request: Request, protocol: McpProtocol) -> Response:
    """Run one TransportSession for this request inside the tenant scope.

    A client that went away while its message was being dispatched is
    recorded as the close reason; in-flight upstream calls are not cancelled.
    """
    async with TransportSession() as session:
        session.activate(protocol)
        body = await request.body()
        status_code, payload = await session.handle(body)
        if await request.is_disconnected():
            await session.close("client_disconnected")

    if payload is None:
        return Response(status_code=status.HTTP_202_ACCEPTED)
    return JSONResponse(status_code=status_code, content=payload)


@router.get("/mcp")
async def mcp_get_not_allowed() -> None:
    """Server-initiated streams are not offered."""
    raise HTTPException(
        status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
        detail=METHOD_NOT_ALLOWED_DETAIL,
        headers={"Allow": "POST"},
    )


@router.delete("/mcp")
async def mcp_delete_not_allowed() -> None:
    """There are no sessions to terminate."""
    raise HTTPException(
        status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
        detail=METHOD_NOT_ALLOWED_DETAIL,
        headers={"Allow": "POST"},
    )
