"""MCP server manager and supporting components.

This subpackage keeps live connections to external tool-provider servers that
speak the Model Context Protocol, and exposes one async facade over them.

Scope
-----

- starting servers from configuration (child processes over stdio, or
  recorded http/websocket endpoints),
- listing each server's tools with normalized input schemas,
- invoking a tool and returning a uniform success/error result,
- reporting which servers are connected and probing them on request.

Key modules
-----------

- ``manager``: ``ServerManager``, the facade the application talks to.
- ``registry``: the name -> ``Connection`` map guarded by one lock.
- ``transport``: the ``ToolTransport`` protocol with stdio and network implementations.
- ``normalizer`` / ``validation``: input-schema cleanup and structural checks.
- ``config_loader``: parsing of multi-server configuration documents.
- ``schemas``: Pydantic models for configuration and tool DTOs.
- ``errors``: the manager's exception hierarchy.
"""

from .config_loader import parse_servers_document
from .errors import (
    ConfigError,
    HandshakeError,
    McpManagerError,
    RemoteError,
    ServerNotFoundError,
    SpawnError,
    ToolValidationError,
)
from .manager import ServerManager
from .registry import Connection, ConnectionRegistry
from .schemas import InputSchema, McpTool, ServerConfig, ToolCallResult, TransportKind

__all__ = [
    "ConfigError",
    "Connection",
    "ConnectionRegistry",
    "HandshakeError",
    "InputSchema",
    "McpManagerError",
    "McpTool",
    "RemoteError",
    "ServerConfig",
    "ServerManager",
    "ServerNotFoundError",
    "SpawnError",
    "ToolCallResult",
    "ToolValidationError",
    "TransportKind",
    "parse_servers_document",
]
