"""Schemas for the MCP server manager.

Defines base, configuration and domain Pydantic models shared by the
transports, the registry and the manager facade.
"""

from .config import ServerConfig, TransportKind
from .core import InputSchema, McpTool, ToolCallResult

__all__ = [
    "InputSchema",
    "McpTool",
    "ServerConfig",
    "ToolCallResult",
    "TransportKind",
]
