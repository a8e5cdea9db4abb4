"""Vaultgate: stateless multi-tenant MCP gateway for Skyflow Detect."""
