"""Per-request Skyflow Detect client.

SECURITY:
- One SkyflowClient per inbound request, bound to that request's
  credential and vault route. Never cached, pooled, or shared: two requests
  from the same tenant may legitimately carry different credentials.
- Construction does no I/O. Each upstream call opens its own
  httpx.AsyncClient, so no connection state outlives a single operation.
- Credentials never appear in logs or reprs.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

import httpx

from vaultgate_api.auth.credentials import Credential
from vaultgate_api.config.env import get_skyflow_timeout
from vaultgate_api.config.vault import VaultRoute
from vaultgate_api.errors import UpstreamServiceError
from vaultgate_api.tools.entities import EntityType

logger = logging.getLogger(__name__)

DEIDENTIFY_TEXT_PATH = "/v1/detect/deidentify/string"
REIDENTIFY_TEXT_PATH = "/v1/detect/reidentify/string"

ACCOUNT_ID_HEADER = "X-SKYFLOW-ACCOUNT-ID"
DEFAULT_TOKEN_TYPE = "vault_token"


@dataclass(frozen=True)
class DetectedEntity:
    """One entity found while deidentifying text."""

    token: Optional[str]
    entity_type: Optional[str]
    start_index: Optional[int] = None
    end_index: Optional[int] = None


@dataclass(frozen=True)
class DeidentifyTextResult:
    """Parsed response of the deidentify string endpoint."""

    processed_text: str
    word_count: int
    char_count: int
    entities: list[DetectedEntity] = field(default_factory=list)


@dataclass(frozen=True)
class ReidentifyTextResult:
    """Parsed response of the reidentify string endpoint."""

    processed_text: str


class SkyflowClient:
    """Skyflow Detect API client bound to one credential + vault route."""

    def __init__(
        self,
        credential: Credential,
        route: VaultRoute,
        *,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._credential = credential
        self.route = route
        self.timeout = timeout if timeout is not None else get_skyflow_timeout()
        self._transport = transport

    def __repr__(self) -> str:
        return (
            f"SkyflowClient(credential_kind={self.credential_kind!r}, "
            f"vault_id={self.route.vault_id!r}, cluster_id={self.route.cluster_id!r})"
        )

    @property
    def credential_kind(self) -> str:
        return self._credential.kind

    def _headers(self) -> dict[str, str]:
        # Skyflow accepts API keys as bearer credentials.
        headers = {
            "Authorization": f"Bearer {self._credential.value}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if self.route.account_id:
            headers[ACCOUNT_ID_HEADER] = self.route.account_id
        return headers

    async def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        """POST to the vault and return the decoded JSON body.

        Raises:
            UpstreamServiceError: On transport failure, non-2xx status or
                non-JSON body
        """
        url = f"{self.route.base_url}{path}"
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                response = await client.post(url, json=payload, headers=self._headers())
        except httpx.TimeoutException as e:
            logger.warning(
                "skyflow.request.timeout",
                extra={"event": "skyflow.request.timeout", "path": path},
            )
            raise UpstreamServiceError(
                "Skyflow request timed out", http_code=504, details={"path": path}
            ) from e
        except httpx.HTTPError as e:
            logger.warning(
                "skyflow.request.failed",
                extra={
                    "event": "skyflow.request.failed",
                    "path": path,
                    "error_type": type(e).__name__,
                },
            )
            raise UpstreamServiceError(
                f"Skyflow request failed: {type(e).__name__}",
                http_code=502,
                details={"path": path},
            ) from e

        if response.is_error:
            raise _error_from_response(response, path)

        try:
            return response.json()
        except ValueError as e:
            raise UpstreamServiceError(
                "Skyflow returned a non-JSON response",
                http_code=502,
                details={"path": path, "status_code": response.status_code},
            ) from e

    async def deidentify_text(
        self,
        text: str,
        entities: Optional[Sequence[EntityType]] = None,
    ) -> DeidentifyTextResult:
        """Replace sensitive data in text with vault-token placeholders."""
        payload: dict[str, Any] = {
            "text": text,
            "vault_id": self.route.vault_id,
            "token_type": {"default": DEFAULT_TOKEN_TYPE},
        }
        if entities:
            payload["entity_types"] = [entity.value for entity in entities]
        if self.route.workspace_id:
            payload["workspace_id"] = self.route.workspace_id

        body = await self._post(DEIDENTIFY_TEXT_PATH, payload)

        processed_text = body.get("processed_text")
        if not isinstance(processed_text, str):
            raise UpstreamServiceError(
                "Skyflow deidentify response missing processed_text",
                http_code=502,
                details={"keys": sorted(body)},
            )

        return DeidentifyTextResult(
            processed_text=processed_text,
            word_count=int(body.get("word_count") or 0),
            char_count=int(body.get("character_count") or 0),
            entities=[_parse_entity(item) for item in body.get("entities") or []],
        )

    async def reidentify_text(self, text: str) -> ReidentifyTextResult:
        """Restore original values for vault-token placeholders in text."""
        payload: dict[str, Any] = {"text": text, "vault_id": self.route.vault_id}
        if self.route.workspace_id:
            payload["workspace_id"] = self.route.workspace_id

        body = await self._post(REIDENTIFY_TEXT_PATH, payload)

        processed_text = body.get("text")
        if not isinstance(processed_text, str):
            raise UpstreamServiceError(
                "Skyflow reidentify response missing text",
                http_code=502,
                details={"keys": sorted(body)},
            )
        return ReidentifyTextResult(processed_text=processed_text)


def create_client(
    credential: Credential,
    route: VaultRoute,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> SkyflowClient:
    """Build a fresh client for one request. Pure: no I/O, no caching."""
    return SkyflowClient(credential, route, transport=transport)


def _parse_entity(item: dict[str, Any]) -> DetectedEntity:
    location = item.get("location") or {}
    return DetectedEntity(
        token=item.get("token"),
        entity_type=item.get("entity_type") or item.get("entity"),
        start_index=location.get("start_index"),
        end_index=location.get("end_index"),
    )


def _error_from_response(response: httpx.Response, path: str) -> UpstreamServiceError:
    """Translate a Skyflow error response, passing code/message/details through.

    Skyflow error body: {"error": {"http_code": 400, "message": "...", "details": [...]}}
    """
    message = f"Skyflow request failed with status {response.status_code}"
    http_code = response.status_code
    details: Any = None

    try:
        body = response.json()
    except ValueError:
        body = None

    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict):
            if isinstance(error.get("message"), str) and error["message"]:
                message = error["message"]
            details = error.get("details")
            upstream_code = error.get("http_code")
            if isinstance(upstream_code, int) and not isinstance(upstream_code, bool):
                http_code = upstream_code
            elif upstream_code is not None:
                # gRPC-style status names; keep the HTTP status as the code.
                details = {"upstream_code": upstream_code, "details": details}
        elif isinstance(error, str):
            message = error

    logger.warning(
        "skyflow.request.rejected",
        extra={
            "event": "skyflow.request.rejected",
            "path": path,
            "status_code": response.status_code,
        },
    )
    return UpstreamServiceError(message, http_code=http_code, details=details)
