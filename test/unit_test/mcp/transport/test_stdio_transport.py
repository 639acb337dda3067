from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import pytest
from mcp import types

from toolmesh.mcp.errors import ConfigError, HandshakeError, RemoteError, SpawnError
from toolmesh.mcp.schemas.config import ServerConfig, TransportKind
from toolmesh.mcp.transport import stdio as s_mod
from toolmesh.mcp.transport.stdio import StdioToolTransport


class _FakeClientSession:
    """Stands in for ``mcp.ClientSession``; behaviour is driven by class attributes set per test."""

    instances: List["_FakeClientSession"] = []
    tools: List[Any] = []
    call_result: Any = None
    call_error: Optional[Exception] = None
    init_error: Optional[Exception] = None
    init_hangs: bool = False
    exit_hangs: bool = False
    ping_error: Optional[Exception] = None

    def __init__(self, read_stream: Any, write_stream: Any, **kwargs: Any) -> None:
        self.kwargs = kwargs
        self.initialized = False
        self.exited = False
        self.calls: List[tuple] = []
        type(self).instances.append(self)

    async def __aenter__(self) -> "_FakeClientSession":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self.exit_hangs:
            await asyncio.sleep(30)
        self.exited = True

    async def initialize(self) -> None:
        if self.init_hangs:
            await asyncio.sleep(30)
        if self.init_error is not None:
            raise self.init_error
        self.initialized = True

    async def list_tools(self) -> Any:
        return types.ListToolsResult(tools=[]) if not self.tools else SimpleNamespace(tools=self.tools)

    async def call_tool(self, name: str, arguments: Dict[str, Any]) -> Any:
        self.calls.append((name, arguments))
        if self.call_error is not None:
            raise self.call_error
        return self.call_result

    async def send_ping(self) -> Any:
        if self.ping_error is not None:
            raise self.ping_error
        return types.EmptyResult()


@pytest.fixture
def fake_session(monkeypatch: pytest.MonkeyPatch):
    class _Session(_FakeClientSession):
        instances: List[_FakeClientSession] = []

    _Session.instances = []
    monkeypatch.setattr(s_mod, "ClientSession", _Session, raising=True)
    return _Session


@pytest.fixture
def stdio_state(monkeypatch: pytest.MonkeyPatch) -> Dict[str, Any]:
    state: Dict[str, Any] = {"error": None}

    @asynccontextmanager
    async def _fake_stdio_client(params):
        state["params"] = params
        if state["error"] is not None:
            raise state["error"]
        state["entered"] = True
        try:
            yield (object(), object())
        finally:
            state["exited"] = True

    monkeypatch.setattr(s_mod, "stdio_client", _fake_stdio_client, raising=True)
    return state


def _config() -> ServerConfig:
    return ServerConfig(name="echo", command="python", args=["-m", "echo_server"], env={"TOKEN": "t"}, cwd="/tmp")


def _transport(**kwargs: Any) -> StdioToolTransport:
    cfg = _config()
    kwargs.setdefault("handshake_timeout", 1.0)
    kwargs.setdefault("shutdown_timeout", 0.2)
    return StdioToolTransport(cfg, **kwargs)


@pytest.mark.asyncio
async def test_start_list_call_shutdown(fake_session, stdio_state) -> None:
    fake_session.tools = [
        types.Tool(
            name="echo",
            description="Echo text",
            inputSchema={"type": "object", "properties": {"text": {"type": "string"}}, "required": ["text"]},
        ),
        SimpleNamespace(name="", description=None, inputSchema=None),
        SimpleNamespace(name="loose", description=None, inputSchema="not-a-schema"),
    ]
    fake_session.call_result = types.CallToolResult(content=[types.TextContent(type="text", text="hi")])

    transport = await StdioToolTransport.spawn(_config(), handshake_timeout=1.0, shutdown_timeout=0.2)
    assert transport.kind is TransportKind.STDIO
    assert transport.is_open is True
    session = fake_session.instances[0]
    assert session.initialized is True
    assert session.kwargs == {"read_timeout_seconds": None}

    tools = await transport.list_tools()
    assert [t.name for t in tools] == ["echo", "loose"]
    assert tools[0].input_schema.required == ["text"]
    assert tools[1].description == ""
    assert tools[1].input_schema.schema_type == "object"

    payload = await transport.call_tool("echo", {"text": "hi"})
    assert payload["content"] == [{"type": "text", "text": "hi"}]
    assert payload["isError"] is False

    await transport.shutdown()
    assert session.exited is True
    assert stdio_state["exited"] is True
    assert transport.is_open is False


@pytest.mark.asyncio
async def test_server_parameters_overlay_env_and_cwd(
    fake_session, stdio_state, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("PARENT_ONLY", "1")
    monkeypatch.setenv("TOKEN", "parent")
    transport = _transport()

    await transport.start()
    params = stdio_state["params"]
    await transport.shutdown()

    assert params.command == "python"
    assert params.args == ["-m", "echo_server"]
    assert params.env["PARENT_ONLY"] == "1"
    assert params.env["TOKEN"] == "t"
    assert str(params.cwd) == "/tmp"


@pytest.mark.asyncio
async def test_call_timeout_becomes_session_read_timeout(fake_session, stdio_state) -> None:
    transport = _transport(call_timeout=2.5)
    await transport.start()
    await transport.shutdown()

    assert fake_session.instances[0].kwargs["read_timeout_seconds"].total_seconds() == 2.5


@pytest.mark.asyncio
async def test_missing_executable_raises_spawn_error(fake_session, stdio_state) -> None:
    stdio_state["error"] = FileNotFoundError(2, "No such file or directory")
    transport = _transport()

    with pytest.raises(SpawnError, match="Failed to spawn MCP server 'echo'"):
        await transport.start()
    assert transport.is_open is False


@pytest.mark.asyncio
async def test_exception_group_is_unwrapped(fake_session, stdio_state) -> None:
    stdio_state["error"] = ExceptionGroup("task group", [PermissionError(13, "Permission denied")])

    with pytest.raises(SpawnError, match="Permission denied"):
        await _transport().start()


@pytest.mark.asyncio
async def test_handshake_timeout(fake_session, stdio_state) -> None:
    fake_session.init_hangs = True
    transport = _transport(handshake_timeout=0.05)

    with pytest.raises(HandshakeError, match="no response to initialize"):
        await transport.start()
    assert transport.is_open is False
    assert stdio_state["exited"] is True


@pytest.mark.asyncio
async def test_initialize_failure_raises_handshake_error(fake_session, stdio_state) -> None:
    fake_session.init_error = RuntimeError("protocol version mismatch")

    with pytest.raises(HandshakeError, match="protocol version mismatch"):
        await _transport().start()


@pytest.mark.asyncio
async def test_start_without_command_is_config_error() -> None:
    cfg = ServerConfig.model_construct(name="x", transport=TransportKind.STDIO, command=None, args=[], env=None, cwd=None)
    with pytest.raises(ConfigError, match="Command is required"):
        await StdioToolTransport(cfg).start()


@pytest.mark.asyncio
async def test_error_result_becomes_remote_error(fake_session, stdio_state) -> None:
    fake_session.call_result = types.CallToolResult(
        content=[types.TextContent(type="text", text="Unknown tool: nope")], isError=True
    )
    transport = _transport()
    await transport.start()

    with pytest.raises(RemoteError) as info:
        await transport.call_tool("nope", {})
    await transport.shutdown()

    assert str(info.value) == "Unknown tool: nope"
    assert info.value.server_id == "echo"


@pytest.mark.asyncio
async def test_call_failure_becomes_remote_error(fake_session, stdio_state) -> None:
    fake_session.call_error = RuntimeError("Connection closed")
    transport = _transport()
    await transport.start()

    with pytest.raises(RemoteError, match="Connection closed"):
        await transport.call_tool("echo", {"text": "x"})
    await transport.shutdown()


@pytest.mark.asyncio
@pytest.mark.parametrize("arguments", [None, [1, 2], "text", 3])
async def test_non_object_arguments_are_sent_as_empty_object(fake_session, stdio_state, arguments: Any) -> None:
    fake_session.call_result = types.CallToolResult(content=[])
    transport = _transport()
    await transport.start()

    await transport.call_tool("echo", arguments)
    await transport.shutdown()

    assert fake_session.instances[0].calls == [("echo", {})]


@pytest.mark.asyncio
async def test_ping(fake_session, stdio_state) -> None:
    transport = _transport()
    await transport.start()

    assert await transport.ping(0.5) is True
    fake_session.ping_error = RuntimeError("broken pipe")
    assert await transport.ping(0.5) is False

    await transport.shutdown()
    assert await transport.ping(0.5) is False


@pytest.mark.asyncio
async def test_requests_after_shutdown_fail_with_remote_error(fake_session, stdio_state) -> None:
    transport = _transport()
    await transport.start()
    await transport.shutdown()

    with pytest.raises(RemoteError, match="is closed"):
        await transport.list_tools()
    # a second shutdown is a no-op
    await transport.shutdown()


@pytest.mark.asyncio
async def test_shutdown_is_bounded_when_session_hangs(fake_session, stdio_state) -> None:
    fake_session.exit_hangs = True
    transport = _transport(shutdown_timeout=0.05)
    await transport.start()

    await asyncio.wait_for(transport.shutdown(), timeout=2.0)

    assert transport.is_open is False
