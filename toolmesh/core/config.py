"""
Configuration Settings.

This module defines the runtime configuration of the server manager using
Pydantic's BaseSettings. Values are loaded from environment variables and an
optional ``.env`` file without explicit dotenv loading.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ToolmeshSettings(BaseSettings):
    """
    Server manager settings model.

    All properties are bound from environment variables (``TOOLMESH_*``) and the
    ``.env`` file. Fields may also be populated by name when constructing the
    settings explicitly, which is how tests and embedding applications inject
    their own values.
    """

    # =====================================================================
    # Pydantic Configuration
    # =====================================================================
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # =====================================================================
    # Process lifecycle
    # =====================================================================
    handshake_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        le=600,
        description="Deadline for spawning a stdio server and completing the protocol handshake",
        alias="TOOLMESH_HANDSHAKE_TIMEOUT",
    )
    shutdown_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        le=120,
        description="Time allowed for a graceful session shutdown before the session task is cancelled",
        alias="TOOLMESH_SHUTDOWN_TIMEOUT",
    )
    call_timeout_seconds: Optional[float] = Field(
        default=None,
        gt=0,
        description="Optional read timeout applied to every protocol request (None waits indefinitely)",
        alias="TOOLMESH_CALL_TIMEOUT",
    )
    settle_delay_seconds: float = Field(
        default=1.0,
        ge=0,
        le=60,
        description="Pause after a fresh spawn before the first tool listing during config ingestion",
        alias="TOOLMESH_SETTLE_DELAY",
    )
    probe_timeout_seconds: float = Field(
        default=3.0,
        gt=0,
        le=60,
        description="Deadline for an on-demand liveness probe",
        alias="TOOLMESH_PROBE_TIMEOUT",
    )

    # =====================================================================
    # Tool aggregation
    # =====================================================================
    tool_name_separator: str = Field(
        default="__",
        min_length=1,
        description="Separator placed between server name and tool name in aggregated listings",
        alias="TOOLMESH_TOOL_NAME_SEPARATOR",
    )

    # =====================================================================
    # Logging
    # =====================================================================
    log_level: str = Field(
        default="INFO",
        description="Console logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
        alias="TOOLMESH_LOG_LEVEL",
    )
    log_format: str = Field(
        default="detailed",
        description="Log format: simple, detailed or json",
        alias="TOOLMESH_LOG_FORMAT",
    )
    enable_file_logging: bool = Field(
        default=False,
        description="Also write logs to <log_file_dir>/toolmesh.log",
        alias="TOOLMESH_ENABLE_FILE_LOGGING",
    )
    log_file_dir: str = Field(
        default="logs",
        description="Directory for the log file when file logging is enabled",
        alias="TOOLMESH_LOG_FILE_DIR",
    )


@lru_cache(maxsize=1)
def get_settings() -> ToolmeshSettings:
    """Return the lazily created settings instance shared by default consumers."""
    return ToolmeshSettings()
