"""MCP server manager facade.

:class:`ServerManager` is the component the surrounding application talks to.
It turns configuration-level requests into registry and transport operations:

* lifecycle: ``start_server`` (idempotent per name), ``stop_server``
  (idempotent), ``aclose``;
* tools: ``list_tools``, ``list_all_tools``, ``get_validated_tools``,
  ``list_tools_from_config``;
* invocation: ``call_tool``, which always returns a :class:`ToolCallResult`;
* status: ``get_connected_servers``, ``is_server_alive``,
  ``check_all_servers`` and the explicit ``probe_server`` /
  ``evict_unresponsive`` liveness checks.

Typical usage:
    settings = ToolmeshSettings()
    async with ServerManager(settings=settings) as manager:
        await manager.start_server(ServerConfig(name="fs", command="npx", args=[...]))
        tools = await manager.list_tools("fs")
        result = await manager.call_tool("fs", "read_file", {"path": "/tmp/a.txt"})

The manager is constructed explicitly and shared by whoever needs it; there is
no module-level instance.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Iterable, List, Mapping, Optional, Tuple, Union

import httpx

from toolmesh.core.config import ToolmeshSettings, get_settings

from .config_loader import ConfigDocument, parse_servers_document
from .errors import McpManagerError, ServerNotFoundError
from .registry import Connection, ConnectionRegistry
from .schemas.config import ServerConfig, TransportKind
from .schemas.core import McpTool, ToolCallResult
from .transport import ToolTransport, TransportFactory, spawn_transport
from .validation import filter_valid_tools, validate_tool_schema

logger = logging.getLogger(__name__)


def _status_message(config: ServerConfig) -> str:
    if config.transport is TransportKind.HTTP:
        return f"HTTP server configured: {config.name}"
    if config.transport is TransportKind.WEBSOCKET:
        return f"WebSocket server configured: {config.name}"
    return f"Started and connected to MCP server: {config.name}"


class ServerManager:
    """Async facade owning every connection to external tool-provider servers.

    - Connections live in a :class:`ConnectionRegistry`; one per server name.
    - Transports are created by ``transport_factory`` (defaults to
      :func:`spawn_transport`); inject a factory to control process creation.
    - Provide ``http_client`` when you need custom timeouts/proxies for probes
      of network endpoints.
    """

    def __init__(
        self,
        *,
        settings: Optional[ToolmeshSettings] = None,
        registry: Optional[ConnectionRegistry] = None,
        transport_factory: Optional[TransportFactory] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._registry = registry or ConnectionRegistry()
        self._http_client = http_client
        self._transport_factory: TransportFactory = transport_factory or self._spawn
        # name -> (lock, number of tasks holding or waiting on it)
        self._start_locks: Dict[str, Tuple[asyncio.Lock, int]] = {}

    async def _spawn(self, config: ServerConfig, settings: ToolmeshSettings) -> ToolTransport:
        return await spawn_transport(config, settings, http_client=self._http_client)

    @property
    def settings(self) -> ToolmeshSettings:
        return self._settings

    @property
    def registry(self) -> ConnectionRegistry:
        return self._registry

    async def __aenter__(self) -> "ServerManager":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    @asynccontextmanager
    async def _starting(self, name: str) -> AsyncIterator[None]:
        """Serialize starts of one name; the lock is dropped once no task holds or awaits it."""
        entry = self._start_locks.get(name)
        lock, users = entry if entry is not None else (asyncio.Lock(), 0)
        self._start_locks[name] = (lock, users + 1)
        try:
            async with lock:
                yield
        finally:
            lock, users = self._start_locks[name]
            if users <= 1:
                del self._start_locks[name]
            else:
                self._start_locks[name] = (lock, users - 1)

    def _prefixed(self, server_name: str, tools: Iterable[McpTool]) -> List[McpTool]:
        sep = self._settings.tool_name_separator
        return [tool.with_name(f"{server_name}{sep}{tool.name}") for tool in tools]

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start_server(self, config: Union[ServerConfig, Mapping[str, Any]]) -> str:
        """Start (or reuse) the connection for ``config.name``.

        Starting a name that is already registered returns success without
        spawning anything. Concurrent starts for one name are serialized, so
        only the first one spawns.

        Args:
            config: A :class:`ServerConfig`, or a mapping parsed into one.

        Returns:
            A human-readable status message.

        Raises:
            ConfigError: If the configuration is invalid for its transport.
            SpawnError: If the process could not be created.
            HandshakeError: If the process did not complete initialization.
        """
        if not isinstance(config, ServerConfig):
            config = ServerConfig.from_dict(config)

        async with self._starting(config.name):
            if await self._registry.contains(config.name):
                logger.info("MCP server '%s' already running; reusing its connection", config.name)
                return f"MCP server already running: {config.name}"
            transport = await self._transport_factory(config, self._settings)
            await self._registry.insert(Connection(name=config.name, config=config, transport=transport))

        message = _status_message(config)
        logger.info(message)
        return message

    async def stop_server(self, name: str) -> None:
        """Stop the named server. Unknown or already stopped names are ignored."""
        connection = await self._registry.remove(name)
        if connection is None:
            logger.debug("stop_server: MCP server '%s' has no connection", name)
            return
        await self._shutdown(connection)

    async def _shutdown(self, connection: Connection) -> None:
        try:
            await connection.transport.shutdown()
        except Exception:
            logger.warning("Failed to stop MCP server '%s' cleanly", connection.name, exc_info=True)

    async def aclose(self) -> None:
        """Stop every registered server concurrently."""
        connections = await self._registry.drain()
        if connections:
            logger.info("Stopping %d MCP servers", len(connections))
            await asyncio.gather(*(self._shutdown(c) for c in connections))

    # ------------------------------------------------------------------
    # Tools
    # ------------------------------------------------------------------

    async def call_tool(self, server_name: str, tool_name: str, arguments: Any = None) -> ToolCallResult:
        """Invoke ``tool_name`` on ``server_name``.

        Never raises: unknown servers and remote failures are reported through
        ``ToolCallResult.error`` with ``success`` False.
        """
        connection = await self._registry.get(server_name)
        if connection is None:
            return ToolCallResult.failed(str(ServerNotFoundError(server_name)))
        try:
            payload = await connection.transport.call_tool(tool_name, arguments)
        except McpManagerError as exc:
            logger.debug("Tool '%s' on MCP server '%s' failed: %s", tool_name, server_name, exc)
            return ToolCallResult.failed(str(exc))
        except Exception as exc:
            logger.exception("Unexpected error calling tool '%s' on MCP server '%s'", tool_name, server_name)
            return ToolCallResult.failed(str(exc) or type(exc).__name__)
        return ToolCallResult.succeeded(payload)

    async def list_tools(self, server_name: str) -> List[McpTool]:
        """List the tools of one server.

        Raises:
            ServerNotFoundError: If the server has no connection.
            RemoteError: If the server fails the request.
        """
        connection = await self._registry.get(server_name)
        if connection is None:
            raise ServerNotFoundError(server_name)
        return await connection.transport.list_tools()

    async def list_all_tools(self) -> List[McpTool]:
        """Collect tools from every registered server, prefixed with the server name.

        A server that fails to list is logged and left out; the rest are
        still returned.
        """
        connections = await self._registry.snapshot()
        outcomes = await asyncio.gather(
            *(c.transport.list_tools() for c in connections),
            return_exceptions=True,
        )
        all_tools: List[McpTool] = []
        for connection, outcome in zip(connections, outcomes):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                logger.warning("Failed to get tools from MCP server '%s': %s", connection.name, outcome)
                continue
            all_tools.extend(self._prefixed(connection.name, outcome))
        return all_tools

    async def get_validated_tools(self, server_name: str) -> List[McpTool]:
        """List a server's tools, dropping the ones whose schema fails validation."""
        return filter_valid_tools(await self.list_tools(server_name))

    validate_tool_schema = staticmethod(validate_tool_schema)

    async def list_tools_from_config(self, document: ConfigDocument) -> List[McpTool]:
        """Ensure every server in a multi-server document is running and collect its tools.

        The whole document is parsed before any server is touched. Servers that
        fail to start or list are logged and skipped. Tool names are prefixed
        with ``<server><separator>``.

        Raises:
            ConfigError: If the document shape or any entry is invalid.
        """
        configs = parse_servers_document(document)
        logger.info("Found %d servers in config", len(configs))
        per_server = await asyncio.gather(*(self._tools_for_config(cfg) for cfg in configs))
        all_tools = [tool for tools in per_server for tool in tools]
        logger.info("Total tools collected: %d", len(all_tools))
        return all_tools

    async def _tools_for_config(self, config: ServerConfig) -> List[McpTool]:
        if await self._registry.contains(config.name):
            logger.debug("MCP server '%s' already running", config.name)
        else:
            try:
                await self.start_server(config)
            except McpManagerError as exc:
                logger.warning("Failed to start MCP server '%s': %s", config.name, exc)
                return []
            except Exception:
                logger.exception("Unexpected error starting MCP server '%s'", config.name)
                return []
            # a fresh process may still be settling after its handshake
            if self._settings.settle_delay_seconds > 0:
                await asyncio.sleep(self._settings.settle_delay_seconds)

        try:
            tools = await self.list_tools(config.name)
        except McpManagerError as exc:
            logger.warning("Error getting tools for MCP server '%s': %s", config.name, exc)
            return []
        except Exception:
            logger.exception("Unexpected error getting tools for MCP server '%s'", config.name)
            return []
        logger.debug("Got %d tools from MCP server '%s'", len(tools), config.name)
        return self._prefixed(config.name, tools)

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    async def get_connected_servers(self) -> List[str]:
        return await self._registry.keys()

    async def is_server_alive(self, name: str) -> bool:
        """True when ``name`` has a registered connection. No probe is performed."""
        return await self._registry.contains(name)

    async def check_all_servers(self) -> Dict[str, bool]:
        return {name: True for name in await self._registry.keys()}

    check_server_status = is_server_alive
    check_all_servers_status = check_all_servers

    async def probe_server(self, name: str) -> bool:
        """Actively check that the named server still answers (protocol ping or HTTP GET)."""
        connection = await self._registry.get(name)
        if connection is None:
            return False
        return await self._ping(connection)

    async def _ping(self, connection: Connection) -> bool:
        try:
            return await connection.transport.ping(self._settings.probe_timeout_seconds)
        except Exception as exc:
            logger.debug("Probe of MCP server '%s' raised: %s", connection.name, exc)
            return False

    async def evict_unresponsive(self) -> List[str]:
        """Probe every connection and stop the ones that do not answer.

        Returns:
            Names of the evicted servers.
        """
        connections = await self._registry.snapshot()
        answers = await asyncio.gather(*(self._ping(c) for c in connections))
        evicted: List[str] = []
        for connection, alive in zip(connections, answers):
            if alive:
                continue
            if await self._registry.discard(connection):
                logger.warning("Evicting unresponsive MCP server '%s'", connection.name)
                await self._shutdown(connection)
                evicted.append(connection.name)
        return evicted
