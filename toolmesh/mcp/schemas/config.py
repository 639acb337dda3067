"""Server configuration schemas.

A :class:`ServerConfig` describes how to reach one tool-provider: either a
command launched as a child process speaking the protocol over stdio, or an
already-running network endpoint.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from pydantic import ConfigDict, Field, ValidationError, field_validator, model_validator

from ..errors import ConfigError
from .base import BaseSchema


class TransportKind(str, Enum):
    STDIO = "stdio"
    HTTP = "http"
    WEBSOCKET = "websocket"

    @property
    def is_network(self) -> bool:
        return self is not TransportKind.STDIO


class ServerConfig(BaseSchema):
    # Server entries come from user-maintained JSON; unknown keys are ignored.
    model_config = ConfigDict(extra="ignore")

    name: str = Field(
        ...,
        description="Unique key of the server within the manager.",
        min_length=1,
        max_length=128,
        examples=["filesystem", "sequential-thinking"],
    )
    transport: TransportKind = Field(
        default=TransportKind.STDIO,
        description="How the server is reached: a stdio child process or a pre-existing network endpoint.",
        examples=[TransportKind.STDIO],
    )
    command: Optional[str] = Field(
        default=None,
        description="Executable launched for stdio transport.",
        examples=["npx", "uvx", "python"],
    )
    args: List[str] = Field(
        default_factory=list,
        description="Arguments passed to the command.",
        examples=[["-y", "@modelcontextprotocol/server-filesystem", "/tmp"]],
    )
    env: Optional[Dict[str, str]] = Field(
        default=None,
        description="Variables merged over the parent environment for the child process.",
    )
    cwd: Optional[str] = Field(
        default=None,
        description="Optional working directory for the child process.",
    )
    url: Optional[str] = Field(
        default=None,
        description="Endpoint URL for http/websocket transports.",
        examples=["http://localhost:8080/mcp"],
    )
    port: Optional[int] = Field(
        default=None,
        ge=1,
        le=65535,
        description="Local port for http/websocket transports when no URL is given.",
    )

    @field_validator("name")
    @classmethod
    def _reject_blank_name(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Server name must not be blank")
        return value

    @field_validator("transport", mode="before")
    @classmethod
    def _normalize_transport(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @model_validator(mode="after")
    def _check_transport_requirements(self) -> "ServerConfig":
        if self.transport is TransportKind.STDIO:
            if not self.command or not self.command.strip():
                raise ValueError("Command is required for stdio transport")
        elif self.url is None and self.port is None:
            raise ValueError(f"Either url or port is required for {self.transport.value} transport")
        return self

    @property
    def endpoint(self) -> Optional[str]:
        """Network endpoint of the server, or None for stdio transport."""
        if not self.transport.is_network:
            return None
        if self.url:
            return self.url
        scheme = "ws" if self.transport is TransportKind.WEBSOCKET else "http"
        return f"{scheme}://localhost:{self.port}"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ServerConfig":
        """Build a config from an already-parsed JSON object.

        Raises:
            ConfigError: If the mapping is not a valid server configuration.
        """
        if not isinstance(data, Mapping):
            raise ConfigError(f"Invalid server config: expected an object, got {type(data).__name__}")
        try:
            return cls.model_validate(dict(data))
        except ValidationError as exc:
            name = data.get("name")
            errors = "; ".join(_describe(err) for err in exc.errors())
            raise ConfigError(
                f"Invalid server config{f' for {name!r}' if name else ''}: {errors}",
                server_id=name if isinstance(name, str) else None,
            ) from exc


def _describe(err: Dict[str, Any]) -> str:
    loc = ".".join(str(part) for part in err.get("loc", ()) if part != "__root__")
    msg = str(err.get("msg", "invalid value"))
    # model-level validator messages arrive as "Value error, <text>"
    msg = msg.removeprefix("Value error, ")
    return f"{loc}: {msg}" if loc else msg
