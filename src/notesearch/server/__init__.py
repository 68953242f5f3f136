"""MCP server exposing the notes index to assistants."""

from notesearch.server.mcp_server import create_mcp_server

__all__ = ["create_mcp_server"]
