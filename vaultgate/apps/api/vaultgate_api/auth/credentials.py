"""Caller credential extraction.

Pure functions: only presence and surface format are checked here.
Skyflow validates authenticity when the per-request client first calls it.

Note the asymmetry kept for compatibility with existing callers: API keys
are trimmed, bearer tokens are returned verbatim.
"""

from dataclasses import dataclass, field
from typing import Optional, Union

from vaultgate_api.errors import AuthenticationError

BEARER_PREFIX = "Bearer "

MISSING_AUTH_HEADER = "Missing or invalid Authorization header"
EMPTY_BEARER_TOKEN = "Bearer token is empty"
MISSING_API_KEY = "Missing or invalid apiKey query parameter"
EMPTY_API_KEY = "API key is empty"
MISSING_CREDENTIALS = (
    "Missing or invalid credentials. Provide either Authorization header "
    "with Bearer token or apiKey query parameter."
)


@dataclass(frozen=True)
class BearerToken:
    """Credential supplied as Authorization: Bearer <token>."""

    value: str = field(repr=False)

    kind = "bearer_token"


@dataclass(frozen=True)
class ApiKey:
    """Credential supplied as ?apiKey=<key>."""

    value: str = field(repr=False)

    kind = "api_key"


Credential = Union[BearerToken, ApiKey]


@dataclass(frozen=True)
class ExtractionResult:
    """Outcome of a single extraction attempt."""

    is_present: bool
    token: Optional[str] = field(default=None, repr=False)
    error: Optional[str] = None


def extract_bearer_token(auth_header: Optional[str]) -> ExtractionResult:
    """Extract a bearer token from an Authorization header value.

    Examples:
        extract_bearer_token("Bearer abc123")  -> present, token "abc123"
        extract_bearer_token("Bearer  abc")    -> present, token " abc"
        extract_bearer_token("bearer abc")     -> absent (case-sensitive)
    """
    if not auth_header or not auth_header.startswith(BEARER_PREFIX):
        return ExtractionResult(is_present=False, error=MISSING_AUTH_HEADER)

    token = auth_header[len(BEARER_PREFIX):]

    if not token.strip():
        return ExtractionResult(is_present=False, error=EMPTY_BEARER_TOKEN)

    return ExtractionResult(is_present=True, token=token)


def extract_api_key(api_key_param: Optional[str]) -> ExtractionResult:
    """Extract an API key from the apiKey query parameter (trimmed)."""
    if not api_key_param or not isinstance(api_key_param, str):
        return ExtractionResult(is_present=False, error=MISSING_API_KEY)

    api_key = api_key_param.strip()

    if not api_key:
        return ExtractionResult(is_present=False, error=EMPTY_API_KEY)

    return ExtractionResult(is_present=True, token=api_key)


def resolve_credentials(
    auth_header: Optional[str],
    api_key_param: Optional[str],
) -> Credential:
    """Resolve the request credential; the header wins over the query.

    Raises:
        AuthenticationError: If neither source yields a usable credential
    """
    bearer = extract_bearer_token(auth_header)
    if bearer.is_present and bearer.token:
        return BearerToken(bearer.token)

    api_key = extract_api_key(api_key_param)
    if api_key.is_present and api_key.token:
        return ApiKey(api_key.token)

    raise AuthenticationError(MISSING_CREDENTIALS)
