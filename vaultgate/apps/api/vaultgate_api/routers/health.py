"""Health check endpoints."""

import logging

from fastapi import APIRouter, Request, Response, status
from pydantic import BaseModel

from vaultgate_api.transport.protocol import SERVER_VERSION

router = APIRouter()
logger = logging.getLogger(__name__)


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    version: str
    services: dict[str, str]


def check_registry(request: Request) -> str:
    """Check that the tool registry is mounted, frozen and non-empty.

    Returns:
        str: "up" if ready, reason otherwise
    """
    tools = getattr(request.app.state, "tool_registry", None)
    if tools is None:
        return "down: registry not configured"
    if not tools.frozen:
        return "down: registry not frozen"
    if len(tools) == 0:
        return "down: no tools registered"
    return "up"


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """
    Liveness endpoint.

    Always returns 200 OK (use /readyz for readiness). Skyflow is never
    contacted: there is no process-wide credential to probe it with.
    """
    return HealthResponse(status="healthy", version=SERVER_VERSION, services={"api": "up"})


@router.get("/readyz", response_model=HealthResponse)
async def readiness_check(request: Request, response: Response) -> HealthResponse:
    """
    Readiness endpoint.

    Returns 503 until the tool registry is frozen and populated.
    """
    services = {"api": "up", "tools": check_registry(request)}

    if any(svc_status != "up" for svc_status in services.values()):
        logger.warning("Readiness check failed", extra={"event": "health.not_ready", "services": services})
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return HealthResponse(status="not_ready", version=SERVER_VERSION, services=services)

    return HealthResponse(status="ready", version=SERVER_VERSION, services=services)
