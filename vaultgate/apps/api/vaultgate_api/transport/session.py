"""Per-request MCP transport session.

Lifecycle: CREATED (request arrived) -> ACTIVE (bound to the protocol,
consuming the body) -> CLOSED (resources released).

SECURITY:
- Exactly one session per inbound request. A reused session could answer
  with a stale JSON-RPC id and corrupt another caller's response, so
  activate() refuses anything but a fresh session.
- CLOSED is reached exactly once on every exit path (success, client
  disconnect, exception, cancellation). close() is idempotent and
  __aexit__ always calls it.
"""

import inspect
import json
import logging
import time
import uuid
from enum import Enum
from typing import Any, Callable, Optional

from mcp import types

from vaultgate_api.errors import SessionStateError
from vaultgate_api.transport.protocol import McpProtocol, error_response

logger = logging.getLogger(__name__)

CloseHook = Callable[["TransportSession"], Any]


class SessionState(str, Enum):
    """Lifecycle states; transitions only move forward."""

    CREATED = "created"
    ACTIVE = "active"
    CLOSED = "closed"


class TransportSession:
    """One JSON-RPC exchange over one HTTP request."""

    def __init__(self, session_id: Optional[str] = None):
        self.session_id = session_id or uuid.uuid4().hex
        self.state = SessionState.CREATED
        self.close_reason: Optional[str] = None
        self._protocol: Optional[McpProtocol] = None
        self._close_hooks: list[CloseHook] = []
        self._created_at = time.perf_counter()

        logger.debug(
            "mcp.session.created",
            extra={"event": "mcp.session.created", "session_id": self.session_id},
        )

    @property
    def is_closed(self) -> bool:
        return self.state is SessionState.CLOSED

    def on_close(self, hook: CloseHook) -> None:
        """Register a cleanup hook run once when the session closes."""
        if self.is_closed:
            raise SessionStateError(f"Session {self.session_id} is already closed")
        self._close_hooks.append(hook)

    def activate(self, protocol: McpProtocol) -> None:
        """Bind the session to the dispatch layer (CREATED -> ACTIVE)."""
        if self.state is not SessionState.CREATED:
            raise SessionStateError(
                f"Session {self.session_id} cannot be activated from state {self.state.value}"
            )
        self._protocol = protocol
        self.state = SessionState.ACTIVE

    async def handle(self, body: bytes) -> tuple[int, Optional[Any]]:
        """Parse the request body and dispatch it.

        Returns:
            (http_status, payload). payload is None when the body held only
            notifications (202 Accepted, no content).
        """
        if self.state is not SessionState.ACTIVE or self._protocol is None:
            raise SessionStateError(
                f"Session {self.session_id} cannot handle requests in state {self.state.value}"
            )

        try:
            message = json.loads(body)
        except (UnicodeDecodeError, json.JSONDecodeError):
            return 400, error_response(None, types.PARSE_ERROR, "Parse error: body is not valid JSON")

        if isinstance(message, list):
            if not message:
                return 400, error_response(None, types.INVALID_REQUEST, "Empty batch")
            responses = [await self._protocol.handle_message(item) for item in message]
            responses = [response for response in responses if response is not None]
            return (200, responses) if responses else (202, None)

        response = await self._protocol.handle_message(message)
        return (200, response) if response is not None else (202, None)

    async def close(self, reason: str = "completed") -> None:
        """Transition to CLOSED. Only the first call has any effect."""
        if self.is_closed:
            return
        self.state = SessionState.CLOSED
        self.close_reason = reason
        self._protocol = None

        hooks, self._close_hooks = self._close_hooks, []
        for hook in hooks:
            try:
                result = hook(self)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.warning(f"Session close hook failed: {e}", exc_info=True)

        logger.info(
            "mcp.session.closed",
            extra={
                "event": "mcp.session.closed",
                "session_id": self.session_id,
                "reason": reason,
                "duration_ms": round((time.perf_counter() - self._created_at) * 1000, 2),
            },
        )

    async def __aenter__(self) -> "TransportSession":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            await self.close()
        else:
            await self.close(f"error:{exc_type.__name__}")
