"""Toolmesh.

This package manages connections to external tool-provider servers that speak
the Model Context Protocol (MCP) and gives an application one place to discover
and invoke their tools.

High-level architecture
-----------------------

- **Connections**: each configured server is reached through a transport. Stdio
  servers run as child processes owned by the manager; http and websocket
  servers are recorded endpoints that are assumed to be running already.
- **Tools**: tool catalogs are fetched on demand, their input schemas are
  normalized into a predictable shape, and tools from many servers can be
  aggregated under ``<server>__<tool>`` names.

Core subpackages
----------------

- ``toolmesh.mcp``:

  - ``ServerManager`` facade (start/stop, list, call, status).
  - Transports built on the official ``mcp`` client SDK.
  - Pydantic schemas for configuration and tool DTOs.

- ``toolmesh.core``:

  - ``ToolmeshSettings`` (pydantic-settings, ``TOOLMESH_*`` environment variables).
  - Logging configuration.

Typical workflow
----------------

1. Call ``toolmesh.core.logging_config.setup_logging()`` once at startup.
2. Create a ``ServerManager`` and keep it for the application's lifetime.
3. Start servers (``start_server`` or ``list_tools_from_config``).
4. List and call tools; close the manager on exit.
"""

from .mcp import ServerManager

__all__ = [
    "ServerManager",
]
