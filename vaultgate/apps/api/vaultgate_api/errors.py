"""Exception taxonomy for the gateway.

Resolution failures (credentials, vault routing) are raised before any
tenant resource is built and surface as 401/400 problem responses.
Handler-level failures (DomainError, UpstreamServiceError) are caught at
the tool dispatch boundary and embedded in a 200 JSON-RPC response.
"""

from typing import Any, Optional


class AuthenticationError(Exception):
    """Credential absent or malformed (401)."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(Exception):
    """Vault routing parameters absent or malformed (400)."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class DomainError(Exception):
    """Semantically invalid tool input.

    Raised by tool implementations; never escapes the dispatch boundary.
    """

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class UpstreamServiceError(Exception):
    """Skyflow rejected the call or could not be reached.

    Carries the upstream HTTP-like status and error details so they can be
    passed through to the caller unchanged.
    """

    def __init__(
        self,
        message: str,
        http_code: Optional[int] = None,
        details: Optional[Any] = None,
    ):
        super().__init__(message)
        self.message = message
        self.http_code = http_code
        self.details = details


class NoActiveContextError(RuntimeError):
    """Request context looked up outside of an active scope.

    This is a programming error: a handler ran without being dispatched
    through RequestContextScope.run().
    """


class SessionStateError(RuntimeError):
    """Illegal TransportSession transition (e.g. re-activating a session)."""


class MisconfigurationError(Exception):
    """Process-level misconfiguration detected while serving a request (500)."""
