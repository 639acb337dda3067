"""Records for servers reached over an existing network endpoint.

``http`` and ``websocket`` servers are assumed to be running already. Starting
one only validates the configuration and records the endpoint; no protocol
session is opened and nothing is contacted. The only network traffic is the
explicit :meth:`NetworkEndpointTransport.ping` probe.
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional

import httpx

from ..errors import ConfigError, RemoteError
from ..schemas.config import ServerConfig, TransportKind
from ..schemas.core import McpTool

logger = logging.getLogger(__name__)


def probe_url(endpoint: str) -> str:
    """Map an endpoint to the URL used for an HTTP reachability probe (ws -> http, wss -> https)."""
    if endpoint.startswith("wss://"):
        return "https://" + endpoint[len("wss://") :]
    if endpoint.startswith("ws://"):
        return "http://" + endpoint[len("ws://") :]
    return endpoint


class NetworkEndpointTransport:
    """Registered network endpoint without a protocol session.

    Provide ``client`` when you need custom timeouts/proxies for probes;
    otherwise a short-lived ``httpx.AsyncClient`` is created per probe.
    """

    def __init__(self, config: ServerConfig, *, client: Optional[httpx.AsyncClient] = None) -> None:
        if not config.transport.is_network:
            raise ConfigError(
                f"Transport '{config.transport.value}' is not a network transport", server_id=config.name
            )
        endpoint = config.endpoint
        if not endpoint:
            raise ConfigError(
                f"Either url or port is required for {config.transport.value} transport", server_id=config.name
            )
        self._config = config
        self._endpoint = endpoint
        self._client = client

    @classmethod
    async def spawn(cls, config: ServerConfig, *, client: Optional[httpx.AsyncClient] = None) -> "NetworkEndpointTransport":
        transport = cls(config, client=client)
        logger.info(
            "Registered %s endpoint for MCP server '%s': %s", config.transport.value, config.name, transport.endpoint
        )
        return transport

    @property
    def kind(self) -> TransportKind:
        return self._config.transport

    @property
    def name(self) -> str:
        return self._config.name

    @property
    def endpoint(self) -> str:
        return self._endpoint

    def _not_connected(self) -> RemoteError:
        return RemoteError(
            self.name,
            f"MCP server '{self.name}' is a registered {self.kind.value} endpoint ({self._endpoint}) "
            "and is not connected; tool listing and invocation are unavailable",
        )

    async def list_tools(self) -> List[McpTool]:
        raise self._not_connected()

    async def call_tool(self, name: str, arguments: Any) -> Any:
        raise self._not_connected()

    async def ping(self, timeout: float) -> bool:
        url = probe_url(self._endpoint)
        try:
            if self._client is not None:
                await self._client.get(url, timeout=timeout)
            else:
                async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
                    await client.get(url)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.debug("Probe of %s for MCP server '%s' failed: %s", url, self.name, exc)
            return False
        # Any HTTP response, whatever its status, means the endpoint is listening.
        return True

    async def shutdown(self) -> None:
        logger.info("Unregistered %s endpoint for MCP server '%s'", self.kind.value, self.name)
