"""Error types for the MCP server manager.

Defines a small hierarchy of exceptions raised by the manager, the connection
registry and the transports to signal bad configuration, process launch
failures, protocol failures, unknown servers and malformed tool schemas.
"""

from __future__ import annotations

from typing import Optional


class McpManagerError(Exception):
    """Base error for all server manager exceptions."""

    def __init__(self, message: str, *, server_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.server_id = server_id


class ConfigError(McpManagerError):
    """Raised when a server configuration is missing fields or uses an unsupported transport."""


class SpawnError(McpManagerError):
    """Raised when the server process could not be created."""

    def __init__(self, server_id: str, reason: str) -> None:
        super().__init__(f"Failed to spawn MCP server '{server_id}': {reason}", server_id=server_id)
        self.reason = reason


class HandshakeError(McpManagerError):
    """Raised when a spawned server does not complete protocol initialization."""

    def __init__(self, server_id: str, reason: str) -> None:
        super().__init__(f"Handshake with MCP server '{server_id}' failed: {reason}", server_id=server_id)
        self.reason = reason


class RemoteError(McpManagerError):
    """Raised for protocol-level failures after a connection exists.

    The string form is the remote's message text so it can be surfaced as-is in
    a :class:`~toolmesh.mcp.schemas.core.ToolCallResult`.
    """

    def __init__(self, server_id: str, message: str) -> None:
        super().__init__(message, server_id=server_id)


class ServerNotFoundError(McpManagerError):
    """Raised when an operation names a server with no live connection."""

    def __init__(self, server_id: str) -> None:
        super().__init__(f"Server '{server_id}' not found", server_id=server_id)


class ToolValidationError(McpManagerError):
    """Raised when a tool's input schema is not usable by schema-strict consumers."""

    def __init__(self, tool_name: str, message: str) -> None:
        super().__init__(message)
        self.tool_name = tool_name
