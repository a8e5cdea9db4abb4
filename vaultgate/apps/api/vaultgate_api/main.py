"""Vaultgate API - FastAPI Application Entry Point."""

import logging
import time
import uuid

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from vaultgate_api.config.env import (
    get_cors_allowed_origins,
    get_log_level,
    json_logs_enabled,
)
from vaultgate_api.context import request_id_var
from vaultgate_api.errors import MisconfigurationError
from vaultgate_api.problem_details import create_problem_details_response, get_title_for_status
from vaultgate_api.routers import health, mcp
from vaultgate_api.schemas import ServiceInfo
from vaultgate_api.tools.detect import register_detect_tools
from vaultgate_api.tools.registry import HandlerRegistry
from vaultgate_api.tools.resources import ResourceRegistry, register_default_resources
from vaultgate_api.transport.protocol import SERVER_VERSION, McpProtocol
from vaultgate_api.utils import configure_json_logging

logger = logging.getLogger(__name__)

SERVICE_NAME = "Vaultgate MCP Server"


def build_protocol() -> McpProtocol:
    """Register every tool and resource once, freeze, and wrap in the dispatcher."""
    tools = HandlerRegistry()
    register_detect_tools(tools)
    tools.freeze()

    resources = ResourceRegistry()
    register_default_resources(resources)
    resources.freeze()

    return McpProtocol(tools, resources)


def create_app() -> FastAPI:
    """Create the FastAPI application.

    Process-wide state built here (registries, dispatcher) is tenant-agnostic.
    All tenant state is built per request inside routers.mcp.

    Returns:
        Configured FastAPI application instance
    """
    # Structured JSON logging; set VAULTGATE_JSON_LOGS=false to disable
    if json_logs_enabled():
        configure_json_logging(log_level=get_log_level())
        logger.info("Structured JSON logging enabled")

    app = FastAPI(
        title=SERVICE_NAME,
        description="Stateless multi-tenant MCP gateway in front of Skyflow Detect.",
        version=SERVER_VERSION,
        docs_url="/api-docs",
        redoc_url=None,
    )

    # MDN: credentials mode CANNOT use wildcard origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=get_cors_allowed_origins(),
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=[
            "Authorization",
            "Content-Type",
            "Accept",
            "Mcp-Protocol-Version",
            "Mcp-Session-Id",
            "X-Request-ID",
        ],
        expose_headers=["X-Request-ID"],
    )

    protocol = build_protocol()
    app.state.tool_registry = protocol.tools
    app.state.resource_registry = protocol.resources
    app.state.mcp_protocol = protocol

    app.include_router(health.router, tags=["health"])
    app.include_router(mcp.router, tags=["mcp"])

    @app.get("/", response_model=ServiceInfo)
    async def root() -> ServiceInfo:
        """Root endpoint."""
        return ServiceInfo(
            service=SERVICE_NAME,
            version=SERVER_VERSION,
            status="running",
            mcp_endpoint="/mcp",
        )

    _register_exception_handlers(app)
    _register_middlewares(app)

    return app


def _register_middlewares(app: FastAPI) -> None:
    # Registration order matters: the last one registered is outermost.

    @app.middleware("http")
    async def http_completion_logging_middleware(request: Request, call_next):
        """Log every HTTP request completion.

        - Every HTTP request emits "http.request.completed"
        - Fields: request_id, method, path, status_code, duration_ms
        - path never includes the query string (it may carry apiKey)
        - Logs even on exceptions (status_code=500)
        """
        start_time = time.perf_counter()
        status_code = 500

        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.info(
                "http.request.completed",
                extra={
                    "event": "http.request.completed",
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": status_code,
                    "duration_ms": round(duration_ms, 2),
                },
            )

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        """Generate and propagate request_id for observability.

        - Accepts X-Request-ID header from client (optional)
        - Generates new UUID if not provided
        - Returns X-Request-ID in response headers

        Registered last (outermost) so request_id is set in the parent
        context before inner middlewares run.
        """
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request_id_var.set(request_id)

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


def _register_exception_handlers(app: FastAPI) -> None:

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        """Handle HTTP exceptions with RFC 9457 Problem Details format.

        Preserves dict detail and any headers set by the raiser
        (WWW-Authenticate on 401, Allow on 405).
        """
        detail_value = exc.detail if exc.detail is not None else get_title_for_status(exc.status_code)
        return create_problem_details_response(
            status=exc.status_code,
            detail=detail_value,
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """Handle request validation errors (422) with Problem Details."""
        first_error = exc.errors()[0] if exc.errors() else {}
        field = ".".join(str(loc) for loc in first_error.get("loc", []))
        msg = first_error.get("msg", "Validation error")

        return create_problem_details_response(
            status=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Invalid field '{field}': {msg}",
            type_slug="validation-error",
            title="Request Validation Failed",
        )

    @app.exception_handler(MisconfigurationError)
    async def misconfiguration_handler(request: Request, exc: MisconfigurationError) -> JSONResponse:
        logger.error(f"Server misconfiguration: {exc}", extra={"event": "server.misconfigured"})
        return create_problem_details_response(
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server is misconfigured. Contact the operator.",
            type_slug="misconfiguration",
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle uncaught exceptions (500) with Problem Details.

        The exception is logged with a sanitized traceback; the response
        body never carries exception text.
        """
        logger.error(f"Unhandled exception: {type(exc).__name__}", exc_info=True)
        return create_problem_details_response(
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An unexpected error occurred. Please try again later.",
            type_slug="internal-error",
        )


app = create_app()
