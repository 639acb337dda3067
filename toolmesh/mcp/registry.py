"""Connection registry.

The registry is the only shared mutable state of the manager: a mapping from
server name to its live :class:`Connection`, guarded by a single
``asyncio.Lock``. Contention is low (start/stop/call are user driven), and one
lock keeps check-and-insert sequences for the same name from interleaving.

Shutting a connection down is never done while the lock is held; callers
take ownership with :meth:`ConnectionRegistry.remove` or
:meth:`ConnectionRegistry.drain` and shut down afterwards.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional

from .schemas.config import ServerConfig
from .transport import ToolTransport

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Connection:
    """Live binding between a server name and its transport."""

    name: str
    config: ServerConfig
    transport: ToolTransport
    connected_at: datetime = field(default_factory=_utcnow)


class ConnectionRegistry:
    def __init__(self) -> None:
        self._connections: Dict[str, Connection] = {}
        self._lock = asyncio.Lock()

    async def insert(self, connection: Connection) -> None:
        """Register ``connection`` under its name.

        A previous entry for the same name is dropped without being shut down;
        callers that care must stop it first.
        """
        async with self._lock:
            previous = self._connections.get(connection.name)
            self._connections[connection.name] = connection
        if previous is not None and previous is not connection:
            logger.warning("Replaced existing connection for MCP server '%s' without shutting it down", connection.name)

    async def remove(self, name: str) -> Optional[Connection]:
        """Remove and return the connection for ``name``, transferring ownership to the caller."""
        async with self._lock:
            return self._connections.pop(name, None)

    async def discard(self, connection: Connection) -> bool:
        """Remove ``connection`` only if it is still the one registered under its name."""
        async with self._lock:
            if self._connections.get(connection.name) is not connection:
                return False
            del self._connections[connection.name]
            return True

    async def get(self, name: str) -> Optional[Connection]:
        async with self._lock:
            return self._connections.get(name)

    async def contains(self, name: str) -> bool:
        async with self._lock:
            return name in self._connections

    async def keys(self) -> List[str]:
        async with self._lock:
            return list(self._connections.keys())

    async def snapshot(self) -> List[Connection]:
        """Return the registered connections in registration order."""
        async with self._lock:
            return list(self._connections.values())

    async def drain(self) -> List[Connection]:
        """Remove every connection at once and return them for shutdown."""
        async with self._lock:
            connections = list(self._connections.values())
            self._connections.clear()
        return connections
