"""MCP server for the note board."""
