"""MCP server for the delivery pricing advisor."""
