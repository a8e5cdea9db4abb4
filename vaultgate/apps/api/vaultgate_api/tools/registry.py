"""Process-wide tool handler registry and the tool dispatch boundary.

Handlers are registered once at startup and are stateless: they receive
only their schema-validated input model. Tenant dependencies (client,
route) come from RequestContextScope.lookup(), never from closures over
startup-time data.

Every handler failure is converted here into a structured ToolFailure so
that a bad input or an upstream outage never escapes as a crash.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from mcp import types
from pydantic import BaseModel, ValidationError

from vaultgate_api.context import tool_name_var
from vaultgate_api.errors import DomainError, NoActiveContextError, UpstreamServiceError
from vaultgate_api.schemas import ToolFailure

logger = logging.getLogger(__name__)

ToolImplementation = Callable[[Any], Awaitable[BaseModel]]


@dataclass(frozen=True)
class Handler:
    """A registered tool: name, schemas and stateless implementation."""

    name: str
    description: str
    input_model: type[BaseModel]
    output_model: type[BaseModel]
    implementation: ToolImplementation
    title: Optional[str] = None

    def to_tool(self) -> types.Tool:
        return types.Tool(
            name=self.name,
            title=self.title,
            description=self.description,
            inputSchema=self.input_model.model_json_schema(by_alias=True),
            outputSchema=self.output_model.model_json_schema(by_alias=True),
        )


class HandlerRegistry:
    """Registry of tool handlers, read-only once frozen."""

    def __init__(self) -> None:
        self._handlers: dict[str, Handler] = {}
        self._frozen = False

    def __contains__(self, name: str) -> bool:
        return name in self._handlers

    def __len__(self) -> int:
        return len(self._handlers)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        """Disallow further registration (called once startup wiring is done)."""
        self._frozen = True

    def register(self, handler: Handler) -> None:
        if self._frozen:
            raise RuntimeError(f"Registry is frozen; cannot register tool {handler.name!r}")
        if handler.name in self._handlers:
            raise ValueError(f"Tool already registered: {handler.name!r}")
        self._handlers[handler.name] = handler

    def tool(
        self,
        name: str,
        *,
        description: str,
        input_model: type[BaseModel],
        output_model: type[BaseModel],
        title: Optional[str] = None,
    ) -> Callable[[ToolImplementation], ToolImplementation]:
        """Decorator form of register()."""

        def decorator(fn: ToolImplementation) -> ToolImplementation:
            self.register(
                Handler(
                    name=name,
                    title=title,
                    description=description,
                    input_model=input_model,
                    output_model=output_model,
                    implementation=fn,
                )
            )
            return fn

        return decorator

    def list_tools(self) -> list[types.Tool]:
        return [handler.to_tool() for handler in self._handlers.values()]

    async def dispatch(self, name: str, arguments: Optional[dict[str, Any]]) -> types.CallToolResult:
        """Validate arguments, invoke the handler, and shape the result.

        NoActiveContextError is re-raised: a handler running without a bound
        request context is a wiring bug and must not be reported as a tool
        failure.
        """
        handler = self._handlers.get(name)
        if handler is None:
            return failure_result(ToolFailure(message=f"Unknown tool: {name}", code=404))

        token = tool_name_var.set(name)
        try:
            try:
                params = handler.input_model.model_validate(arguments or {})
            except ValidationError as e:
                return failure_result(
                    ToolFailure(
                        message=f"Invalid arguments for tool {name}",
                        code=400,
                        details=json.loads(e.json(include_url=False)),
                    )
                )

            try:
                output = await handler.implementation(params)
            except DomainError as e:
                logger.info(
                    "tool.call.rejected",
                    extra={"event": "tool.call.rejected", "reason": e.message},
                )
                return failure_result(ToolFailure(message=e.message, code=400, details=e.details))
            except UpstreamServiceError as e:
                logger.warning(
                    "tool.call.upstream_error",
                    extra={"event": "tool.call.upstream_error", "http_code": e.http_code},
                )
                return failure_result(upstream_failure(e))
            except NoActiveContextError:
                raise
            except Exception as e:
                logger.error(f"Tool {name} raised unexpectedly: {e}", exc_info=True)
                return failure_result(
                    ToolFailure(message=f"Tool {name} failed unexpectedly", code=500)
                )

            if not isinstance(output, handler.output_model):
                logger.error(
                    "tool.call.bad_output",
                    extra={"event": "tool.call.bad_output", "output_type": type(output).__name__},
                )
                return failure_result(
                    ToolFailure(message=f"Tool {name} returned an invalid result", code=500)
                )

            logger.info("tool.call.completed", extra={"event": "tool.call.completed"})
            return success_result(output.model_dump(by_alias=True, exclude_none=True))
        finally:
            tool_name_var.reset(token)


def success_result(payload: dict[str, Any]) -> types.CallToolResult:
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=json.dumps(payload))],
        structuredContent=payload,
    )


def upstream_failure(error: UpstreamServiceError) -> ToolFailure:
    """Shape an upstream error; a non-integer code is moved into details."""
    code = error.http_code
    details = error.details
    if code is not None and (isinstance(code, bool) or not isinstance(code, int)):
        details = {"upstream_code": code, "details": details}
        code = None
    return ToolFailure(message=str(error.message), code=code, details=details)


def failure_result(failure: ToolFailure) -> types.CallToolResult:
    payload = failure.to_payload()
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=json.dumps(payload))],
        structuredContent=payload,
        isError=True,
    )
