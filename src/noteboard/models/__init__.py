"""Data models for the Noteboard MCP server."""
