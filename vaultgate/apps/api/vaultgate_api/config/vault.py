"""Vault routing resolution.

A VaultRoute addresses one tenant's vault. Its cluster_id is always
derived from vault_url; a route whose URL does not carry a cluster id
cannot be constructed.
"""

import re
from dataclasses import dataclass
from typing import Optional

from vaultgate_api.errors import ConfigurationError

# https://<cluster>.vault.skyflowapis.com[/...]
_CLUSTER_ID_PATTERN = re.compile(r"https://([^.]+)\.vault")

VAULT_ID_REQUIRED = (
    "vaultId is required (provide as query parameter or VAULT_ID environment variable)"
)
VAULT_URL_REQUIRED = (
    "vaultUrl is required (provide as query parameter or VAULT_URL environment variable)"
)
INVALID_VAULT_URL = (
    "Invalid vaultUrl format. Expected format: https://<clusterId>.vault.skyflowapis.com"
)


def extract_cluster_id(vault_url: str) -> Optional[str]:
    """Extract the cluster id from a vault URL.

    Examples:
        extract_cluster_id("https://abc123.vault.skyflowapis.com")     -> "abc123"
        extract_cluster_id("https://abc123.vault.skyflowapis.com/x/y") -> "abc123"
        extract_cluster_id("http://abc123.vault.skyflowapis.com")      -> None
        extract_cluster_id("not-a-url")                                -> None
    """
    match = _CLUSTER_ID_PATTERN.match(vault_url)
    return match.group(1) if match else None


@dataclass(frozen=True)
class VaultEnvFallback:
    """Process-wide routing defaults (VAULT_ID, VAULT_URL, ...)."""

    vault_id: Optional[str] = None
    vault_url: Optional[str] = None
    account_id: Optional[str] = None
    workspace_id: Optional[str] = None


@dataclass(frozen=True)
class VaultRoute:
    """Resolved routing parameters for one request."""

    vault_id: str
    cluster_id: str
    vault_url: str
    account_id: Optional[str] = None
    workspace_id: Optional[str] = None

    def __post_init__(self) -> None:
        if extract_cluster_id(self.vault_url) != self.cluster_id:
            raise ConfigurationError(INVALID_VAULT_URL)

    @classmethod
    def from_url(
        cls,
        vault_id: str,
        vault_url: str,
        account_id: Optional[str] = None,
        workspace_id: Optional[str] = None,
    ) -> "VaultRoute":
        """Build a route, deriving cluster_id from vault_url."""
        cluster_id = extract_cluster_id(vault_url)
        if not cluster_id:
            raise ConfigurationError(INVALID_VAULT_URL)
        return cls(
            vault_id=vault_id,
            cluster_id=cluster_id,
            vault_url=vault_url,
            account_id=account_id,
            workspace_id=workspace_id,
        )

    @property
    def base_url(self) -> str:
        """Vault URL without trailing slash, for building API paths."""
        return self.vault_url.rstrip("/")


def resolve_vault_route(
    vault_id: Optional[str] = None,
    vault_url: Optional[str] = None,
    account_id: Optional[str] = None,
    workspace_id: Optional[str] = None,
    env_fallback: Optional[VaultEnvFallback] = None,
) -> VaultRoute:
    """Resolve a VaultRoute from request parameters with env fallback.

    Per field: explicit parameter, then env_fallback, then failure (for
    required fields). vaultId is checked before vaultUrl; a present but
    malformed vaultUrl is reported as a format error, not as missing.

    Raises:
        ConfigurationError: First failing check's message
    """
    fallback = env_fallback or VaultEnvFallback()

    resolved_vault_id = vault_id or fallback.vault_id
    resolved_vault_url = vault_url or fallback.vault_url

    if not resolved_vault_id:
        raise ConfigurationError(VAULT_ID_REQUIRED)

    if not resolved_vault_url:
        raise ConfigurationError(VAULT_URL_REQUIRED)

    return VaultRoute.from_url(
        vault_id=resolved_vault_id,
        vault_url=resolved_vault_url,
        account_id=account_id or fallback.account_id,
        workspace_id=workspace_id or fallback.workspace_id,
    )
