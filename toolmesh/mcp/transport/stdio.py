"""Stdio process transport built on the official ``mcp`` client SDK.

One :class:`StdioToolTransport` owns one child process. The SDK's
``stdio_client`` and ``ClientSession`` context managers are entered and exited
by a dedicated background task, so the session can be used and shut down from
any task without crossing cancel-scope boundaries.
"""

from __future__ import annotations

import asyncio
import logging
import os
from datetime import timedelta
from typing import Any, Dict, List, Optional

from mcp import ClientSession, StdioServerParameters
from mcp.client.stdio import stdio_client

from ..errors import ConfigError, HandshakeError, RemoteError, SpawnError
from ..normalizer import normalize_input_schema
from ..schemas.config import ServerConfig, TransportKind
from ..schemas.core import McpTool

logger = logging.getLogger(__name__)


def _unwrap(exc: BaseException) -> BaseException:
    """Return the single leaf of nested one-member exception groups raised by task groups."""
    while isinstance(exc, BaseExceptionGroup) and len(exc.exceptions) == 1:
        exc = exc.exceptions[0]
    return exc


def _describe(exc: BaseException) -> str:
    leaf = _unwrap(exc)
    return str(leaf) or type(leaf).__name__


def _error_text(result: Any) -> str:
    parts: List[str] = []
    for block in getattr(result, "content", None) or []:
        text = getattr(block, "text", None)
        if isinstance(text, str) and text:
            parts.append(text)
    return "\n".join(parts)


class StdioToolTransport:
    """Protocol session with a server launched as a child process.

    - ``start()`` spawns the command and waits for ``initialize`` to finish.
    - ``list_tools()`` / ``call_tool()`` are single request/response round trips.
    - ``shutdown()`` asks the session task to exit, then cancels it if needed.
    """

    def __init__(
        self,
        config: ServerConfig,
        *,
        handshake_timeout: float = 10.0,
        shutdown_timeout: float = 5.0,
        call_timeout: Optional[float] = None,
    ) -> None:
        self._config = config
        self._handshake_timeout = handshake_timeout
        self._shutdown_timeout = shutdown_timeout
        self._call_timeout = call_timeout
        self._session: Optional[ClientSession] = None
        self._runner: Optional[asyncio.Task[None]] = None
        self._closing = asyncio.Event()

    @classmethod
    async def spawn(cls, config: ServerConfig, **kwargs: Any) -> "StdioToolTransport":
        transport = cls(config, **kwargs)
        await transport.start()
        return transport

    @property
    def kind(self) -> TransportKind:
        return TransportKind.STDIO

    @property
    def name(self) -> str:
        return self._config.name

    @property
    def is_open(self) -> bool:
        return self._session is not None and self._runner is not None and not self._runner.done()

    def server_parameters(self) -> StdioServerParameters:
        """Build SDK launch parameters; ``config.env`` is overlaid on the parent environment."""
        env: Dict[str, str] = dict(os.environ)
        env.update(self._config.env or {})
        return StdioServerParameters(
            command=self._config.command or "",
            args=list(self._config.args),
            env=env,
            cwd=self._config.cwd,
        )

    async def start(self) -> None:
        """Spawn the process and complete the protocol handshake.

        Raises:
            ConfigError: If the config has no command.
            SpawnError: If the command could not be executed.
            HandshakeError: If initialization failed or exceeded the handshake timeout.
        """
        if self._runner is not None:
            raise RuntimeError(f"Transport for '{self.name}' was already started")
        if not self._config.command:
            raise ConfigError("Command is required for stdio transport", server_id=self.name)

        params = self.server_parameters()
        logger.info("Starting MCP server '%s': %s %s", self.name, params.command, " ".join(params.args))
        ready: asyncio.Future[ClientSession] = asyncio.get_running_loop().create_future()
        self._runner = asyncio.create_task(self._run(params, ready), name=f"mcp-stdio:{self.name}")
        try:
            self._session = await asyncio.wait_for(ready, timeout=self._handshake_timeout)
        except asyncio.TimeoutError as exc:
            await self._abort()
            raise HandshakeError(
                self.name, f"no response to initialize within {self._handshake_timeout:g}s"
            ) from exc
        except OSError as exc:
            await self._abort()
            raise SpawnError(self.name, _describe(exc)) from exc
        except asyncio.CancelledError:
            await self._abort()
            raise
        except Exception as exc:
            await self._abort()
            raise HandshakeError(self.name, _describe(exc)) from exc
        logger.debug("MCP server '%s' completed the handshake", self.name)

    async def _run(self, params: StdioServerParameters, ready: asyncio.Future[ClientSession]) -> None:
        read_timeout = timedelta(seconds=self._call_timeout) if self._call_timeout else None
        try:
            async with stdio_client(params) as (read_stream, write_stream):
                async with ClientSession(read_stream, write_stream, read_timeout_seconds=read_timeout) as session:
                    await session.initialize()
                    if not ready.done():
                        ready.set_result(session)
                    await self._closing.wait()
        except Exception as exc:
            leaf = _unwrap(exc)
            if not ready.done():
                ready.set_exception(leaf if isinstance(leaf, Exception) else exc)
            else:
                logger.warning("Session with MCP server '%s' ended with error: %s", self.name, _describe(exc))

    async def _abort(self) -> None:
        self._closing.set()
        self._session = None
        runner = self._runner
        if runner is not None and not runner.done():
            runner.cancel()
            await asyncio.wait({runner}, timeout=self._shutdown_timeout)

    def _require_session(self) -> ClientSession:
        session = self._session
        if session is None or not self.is_open:
            raise RemoteError(self.name, f"Connection to MCP server '{self.name}' is closed")
        return session

    async def list_tools(self) -> List[McpTool]:
        session = self._require_session()
        try:
            resp = await session.list_tools()
        except Exception as exc:
            raise RemoteError(self.name, f"Failed to list tools: {_describe(exc)}") from exc

        tools: List[McpTool] = []
        for tool in getattr(resp, "tools", None) or []:
            name = getattr(tool, "name", None)
            if not isinstance(name, str) or not name:
                continue
            description = getattr(tool, "description", None)
            tools.append(
                McpTool(
                    name=name,
                    description=description if isinstance(description, str) else "",
                    input_schema=normalize_input_schema(getattr(tool, "inputSchema", None), tool_name=name),
                )
            )
        logger.debug("MCP server '%s' listed %d tools", self.name, len(tools))
        return tools

    async def call_tool(self, name: str, arguments: Any) -> Any:
        session = self._require_session()
        if not isinstance(arguments, dict):
            if arguments is not None:
                logger.debug("Coercing non-object arguments for tool '%s' to {}", name)
            arguments = {}
        logger.debug("Calling tool '%s' on '%s' args_keys=%s", name, self.name, list(arguments.keys()))
        try:
            result = await session.call_tool(name, arguments)
        except Exception as exc:
            raise RemoteError(self.name, _describe(exc)) from exc

        if getattr(result, "isError", False):
            raise RemoteError(self.name, _error_text(result) or f"Tool '{name}' reported an error")
        if hasattr(result, "model_dump"):
            return result.model_dump(mode="json", by_alias=True, exclude_none=True)
        return result

    async def ping(self, timeout: float) -> bool:
        session = self._session
        if session is None or not self.is_open:
            return False
        try:
            await asyncio.wait_for(session.send_ping(), timeout=timeout)
        except Exception as exc:
            logger.debug("Ping to MCP server '%s' failed: %s", self.name, _describe(exc))
            return False
        return True

    async def shutdown(self) -> None:
        runner = self._runner
        self._session = None
        if runner is None or runner.done():
            return
        self._closing.set()
        done, _ = await asyncio.wait({runner}, timeout=self._shutdown_timeout)
        if not done:
            logger.warning(
                "MCP server '%s' did not stop within %gs; cancelling its session",
                self.name,
                self._shutdown_timeout,
            )
            runner.cancel()
            done, _ = await asyncio.wait({runner}, timeout=self._shutdown_timeout)
        if done:
            logger.info("Stopped MCP server '%s'", self.name)
        else:
            logger.warning("Abandoning unresponsive session task of MCP server '%s'", self.name)
