"""Credential resolution dependency for the MCP endpoint.

SECURITY:
- Credentials accepted as Authorization: Bearer <token> or ?apiKey=<key>
  (header wins when both are present)
- Only presence/format is checked here; Skyflow validates authenticity
- Uniform 401 Problem Details with WWW-Authenticate: Bearer
- Logs record which sources were present and the credential kind, never values
"""

import logging

from fastapi import HTTPException, Request, status

from vaultgate_api.auth.credentials import Credential, resolve_credentials
from vaultgate_api.errors import AuthenticationError

logger = logging.getLogger(__name__)


async def get_credential(request: Request) -> Credential:
    """Resolve the caller credential for this request.

    Args:
        request: FastAPI request

    Returns:
        BearerToken or ApiKey

    Raises:
        HTTPException: 401 if no usable credential is present
    """
    auth_header = request.headers.get("authorization")
    api_key_param = request.query_params.get("apiKey")

    try:
        credential = resolve_credentials(auth_header, api_key_param)
    except AuthenticationError as e:
        logger.warning(
            "Credential resolution failed",
            extra={
                "event": "auth.credentials.missing",
                "authorization_header": "present" if auth_header else "missing",
                "api_key_query": "present" if api_key_param else "missing",
            },
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.message,
            headers={"WWW-Authenticate": "Bearer"},
        ) from e

    logger.info(
        "Credential resolved",
        extra={"event": "auth.credentials.resolved", "credential_kind": credential.kind},
    )
    return credential
