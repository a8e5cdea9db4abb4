"""MCP tools and resources."""
