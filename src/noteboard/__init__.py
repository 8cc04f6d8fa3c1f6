"""
Noteboard MCP - a shared sticky-note wall exposed as an MCP server.
This package implements the placement and synchronization engine behind a
canvas of freely repositionable note cards: non-overlapping placement,
reflow on canvas changes, and reconciliation of optimistic local edits
with the store's change feed.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("noteboard-mcp")
except PackageNotFoundError:
    __version__ = "0.3.0"
