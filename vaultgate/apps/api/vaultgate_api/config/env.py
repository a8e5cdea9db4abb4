"""Environment variable resolution utilities.

Canonical env names + fail-fast validation. Read at call time so tests can
patch os.environ.
"""

import os
from typing import Optional

from vaultgate_api.config.vault import VaultEnvFallback

DEFAULT_PORT = 3000
DEFAULT_SKYFLOW_TIMEOUT_SECONDS = 30.0

DEV_CORS_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:6274",  # MCP Inspector
    "http://127.0.0.1:3000",
    "http://127.0.0.1:6274",
]


def _get_non_empty(name: str) -> Optional[str]:
    value = os.getenv(name)
    return value if value else None


def get_vault_env_fallback() -> VaultEnvFallback:
    """Get process-wide vault routing defaults.

    Used when a request omits vaultId / vaultUrl / accountId / workspaceId.

    Returns:
        VaultEnvFallback (fields are None when unset or empty)
    """
    return VaultEnvFallback(
        vault_id=_get_non_empty("VAULT_ID"),
        vault_url=_get_non_empty("VAULT_URL"),
        account_id=_get_non_empty("ACCOUNT_ID"),
        workspace_id=_get_non_empty("WORKSPACE_ID"),
    )


def get_port() -> int:
    """Get HTTP listen port.

    Returns:
        PORT as int (default 3000)

    Raises:
        ValueError: If PORT is set but not a valid TCP port
    """
    raw = os.getenv("PORT")
    if not raw:
        return DEFAULT_PORT
    try:
        port = int(raw)
    except ValueError:
        raise ValueError(f"PORT must be an integer, got: {raw!r}") from None
    if not 0 < port < 65536:
        raise ValueError(f"PORT must be between 1 and 65535, got: {port}")
    return port


def get_log_level() -> str:
    """Get log level name (LOG_LEVEL, default INFO)."""
    return os.getenv("LOG_LEVEL", "INFO").upper()


def json_logs_enabled() -> bool:
    """Structured JSON logs are on unless VAULTGATE_JSON_LOGS=false."""
    return os.getenv("VAULTGATE_JSON_LOGS", "true").lower() != "false"


def get_cors_allowed_origins() -> list[str]:
    """Get CORS allowlist.

    Production: explicit comma-separated CORS_ALLOWED_ORIGINS.
    Dev fallback: localhost variants (never "*").
    """
    cors_origins_env = os.getenv("CORS_ALLOWED_ORIGINS", "")
    if cors_origins_env:
        return [origin.strip() for origin in cors_origins_env.split(",") if origin.strip()]
    return list(DEV_CORS_ORIGINS)


def get_skyflow_timeout() -> float:
    """Get upstream Skyflow request timeout in seconds.

    Raises:
        ValueError: If SKYFLOW_TIMEOUT_SECONDS is not a positive number
    """
    raw = os.getenv("SKYFLOW_TIMEOUT_SECONDS")
    if not raw:
        return DEFAULT_SKYFLOW_TIMEOUT_SECONDS
    try:
        timeout = float(raw)
    except ValueError:
        raise ValueError(f"SKYFLOW_TIMEOUT_SECONDS must be a number, got: {raw!r}") from None
    if timeout <= 0:
        raise ValueError(f"SKYFLOW_TIMEOUT_SECONDS must be positive, got: {timeout}")
    return timeout
