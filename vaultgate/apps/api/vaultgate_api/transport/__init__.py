"""MCP transport: JSON-RPC dispatch and per-request sessions."""
