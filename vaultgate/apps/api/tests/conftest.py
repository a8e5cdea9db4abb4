"""Pytest configuration and fixtures."""

import sys
from pathlib import Path
# Inject sys.path for reliable pytest imports
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))  # => .../apps/api

import os

# JSON logging is exercised explicitly in test_structured_logging.
os.environ.setdefault("VAULTGATE_JSON_LOGS", "false")

from typing import Callable

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from mcp_helpers import VAULT_A_URL, FakeSkyflow
from vaultgate_api.auth.credentials import BearerToken, Credential
from vaultgate_api.config.vault import VaultRoute
from vaultgate_api.main import create_app
from vaultgate_api.routers.mcp import get_client_factory
from vaultgate_api.upstream.skyflow_client import SkyflowClient

_VAULT_ENV_VARS = ("VAULT_ID", "VAULT_URL", "ACCOUNT_ID", "WORKSPACE_ID")


@pytest.fixture(autouse=True)
def clean_vault_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Routing env fallbacks are opt-in per test."""
    for name in _VAULT_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def fake_skyflow() -> FakeSkyflow:
    return FakeSkyflow()


@pytest.fixture
def created_clients() -> list[SkyflowClient]:
    """Every client built by the overridden factory, in creation order."""
    return []


@pytest.fixture
def app(fake_skyflow: FakeSkyflow, created_clients: list[SkyflowClient]) -> FastAPI:
    """Fresh application whose per-request clients talk to FakeSkyflow."""
    application = create_app()
    transport = httpx.MockTransport(fake_skyflow)

    def factory(credential: Credential, route: VaultRoute) -> SkyflowClient:
        skyflow_client = SkyflowClient(credential, route, timeout=5.0, transport=transport)
        created_clients.append(skyflow_client)
        return skyflow_client

    application.dependency_overrides[get_client_factory] = lambda: factory
    return application


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    """Test client for FastAPI app."""
    return TestClient(app)


@pytest.fixture
def make_skyflow_client() -> Callable[..., SkyflowClient]:
    """Build a SkyflowClient against an arbitrary httpx handler."""

    def _make(handler, vault_id: str = "vaultA", vault_url: str = VAULT_A_URL, **route_kwargs) -> SkyflowClient:
        route = VaultRoute.from_url(vault_id, vault_url, **route_kwargs)
        return SkyflowClient(
            BearerToken("token-A"),
            route,
            timeout=5.0,
            transport=httpx.MockTransport(handler),
        )

    return _make
