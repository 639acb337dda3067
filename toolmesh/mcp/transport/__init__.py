"""Transport interfaces for reaching MCP servers.

Defines the :class:`ToolTransport` protocol implemented by every live binding
to a server, and :func:`spawn_transport`, which picks the implementation for a
:class:`~toolmesh.mcp.schemas.config.ServerConfig`. Concrete transports live
alongside this module (``stdio.py``, ``network.py``).
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, List, Optional, Protocol, runtime_checkable

import httpx

from toolmesh.core.config import ToolmeshSettings

from ..schemas.config import ServerConfig, TransportKind
from ..schemas.core import McpTool
from .network import NetworkEndpointTransport
from .stdio import StdioToolTransport


@runtime_checkable
class ToolTransport(Protocol):
    """Protocol for one live binding to a server.

    Examples:
        >>> transport = await spawn_transport(config, settings)
        >>> tools = await transport.list_tools()
        >>> payload = await transport.call_tool("echo", {"text": "hi"})
        >>> await transport.shutdown()
    """

    @property
    def kind(self) -> TransportKind:
        """The transport kind this binding was created for."""
        ...

    async def list_tools(self) -> List[McpTool]:
        """Request the full tool catalog in one round trip.

        Returns:
            The server's tools with normalized input schemas.

        Raises:
            RemoteError: If the server fails the request.
        """
        ...

    async def call_tool(self, name: str, arguments: Any) -> Any:
        """Invoke one tool and return its JSON payload.

        Args:
            name: Tool name as listed by the server.
            arguments: Tool arguments; anything but a JSON object is sent as ``{}``.

        Raises:
            RemoteError: If the server fails the request or flags the result as an error.
        """
        ...

    async def ping(self, timeout: float) -> bool:
        """Actively check that the server still answers. Never raises."""
        ...

    async def shutdown(self) -> None:
        """Close the binding. Best-effort: bounded in time and never raises."""
        ...


TransportFactory = Callable[[ServerConfig, ToolmeshSettings], Awaitable[ToolTransport]]


async def spawn_transport(
    config: ServerConfig,
    settings: ToolmeshSettings,
    *,
    http_client: Optional[httpx.AsyncClient] = None,
) -> ToolTransport:
    """Create the transport for ``config``.

    Stdio configs launch the command and complete the protocol handshake.
    Network configs are only recorded; nothing is contacted.

    Raises:
        ConfigError: If the config lacks what its transport needs.
        SpawnError: If the process could not be created.
        HandshakeError: If the process did not complete initialization in time.
    """
    if config.transport is TransportKind.STDIO:
        return await StdioToolTransport.spawn(
            config,
            handshake_timeout=settings.handshake_timeout_seconds,
            shutdown_timeout=settings.shutdown_timeout_seconds,
            call_timeout=settings.call_timeout_seconds,
        )
    return await NetworkEndpointTransport.spawn(config, client=http_client)


__all__ = [
    "NetworkEndpointTransport",
    "StdioToolTransport",
    "ToolTransport",
    "TransportFactory",
    "spawn_transport",
]
