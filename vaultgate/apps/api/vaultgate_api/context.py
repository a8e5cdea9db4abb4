"""Request context management.

Two kinds of per-request state live here:

- Observability context variables (request_id, vault_id, cluster_id, tool)
  picked up automatically by JSONFormatter.
- The tenant RequestContext (per-request Skyflow client + vault route) that
  tool handlers read through RequestContextScope.lookup().

Both rely on contextvars: every asyncio Task runs in a snapshot of the
context taken at creation time, so a value bound inside one request's task
is never visible to a concurrently scheduled request, no matter how their
suspension points interleave.
"""

from contextvars import ContextVar
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable, TypeVar

from vaultgate_api.errors import NoActiveContextError

if TYPE_CHECKING:
    from vaultgate_api.config.vault import VaultRoute
    from vaultgate_api.upstream.skyflow_client import SkyflowClient

T = TypeVar("T")

# Request ID - unique per HTTP request
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

# Vault routing - set once the route resolves
vault_id_var: ContextVar[str] = ContextVar("vault_id", default="")
cluster_id_var: ContextVar[str] = ContextVar("cluster_id", default="")

# Tool currently being dispatched
tool_name_var: ContextVar[str] = ContextVar("tool_name", default="")


@dataclass(frozen=True)
class RequestContext:
    """Tenant dependencies for exactly one request."""

    client: "SkyflowClient"
    route: "VaultRoute"


# No default: lookup outside a scope must fail, never fall back.
_request_context_var: ContextVar[RequestContext] = ContextVar("request_context")


class RequestContextScope:
    """Binds a RequestContext to the dynamic extent of an async call graph."""

    @staticmethod
    async def run(
        context: RequestContext,
        body: Callable[..., Awaitable[T]],
        *args: Any,
    ) -> T:
        """Invoke body with context bound; unbind once body settles.

        Lookups performed transitively from body, including after any
        number of suspensions, return context. Tasks spawned from inside
        body inherit the binding through their context snapshot.
        """
        token = _request_context_var.set(context)
        try:
            return await body(*args)
        finally:
            _request_context_var.reset(token)

    @staticmethod
    def lookup() -> RequestContext:
        """Return the nearest enclosing bound context.

        Raises:
            NoActiveContextError: If called outside RequestContextScope.run()
        """
        try:
            return _request_context_var.get()
        except LookupError:
            raise NoActiveContextError(
                "No active request context. Handlers must be dispatched inside "
                "RequestContextScope.run()."
            ) from None
