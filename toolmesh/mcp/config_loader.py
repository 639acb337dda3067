"""Parsing of multi-server configuration documents.

Two document shapes are accepted:

- ``{"mcpServers": {"<name>": {...settings...}}}``, the format used by desktop
  MCP clients, where the key is the server name and transport defaults to
  ``stdio``;
- ``{"servers": [{"name": "...", ...}]}``, where every entry names itself.

Every entry is validated before anything is returned, so a caller never acts
on a partially parsed document.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Mapping, Union

from .errors import ConfigError
from .schemas.config import ServerConfig, TransportKind

logger = logging.getLogger(__name__)

ConfigDocument = Union[Mapping[str, Any], str, bytes]


def _load(document: ConfigDocument) -> Mapping[str, Any]:
    if isinstance(document, (str, bytes)):
        try:
            document = json.loads(document)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise ConfigError(f"Invalid config: not valid JSON ({exc})") from exc
    if not isinstance(document, Mapping):
        raise ConfigError(f"Invalid config: expected a JSON object, got {type(document).__name__}")
    return document


def parse_servers_document(document: ConfigDocument) -> List[ServerConfig]:
    """Normalize a multi-server document into a list of :class:`ServerConfig`.

    Args:
        document: A parsed JSON object, or JSON text.

    Returns:
        One config per server entry, in document order.

    Raises:
        ConfigError: If the document has neither an ``mcpServers`` object nor a
            ``servers`` array, or if any entry is invalid.
    """
    doc = _load(document)
    mcp_servers = doc.get("mcpServers")
    servers = doc.get("servers")

    entries: List[Dict[str, Any]] = []
    if isinstance(mcp_servers, Mapping):
        logger.debug("Parsing mcpServers document with %d entries", len(mcp_servers))
        for name, settings in mcp_servers.items():
            if not isinstance(settings, Mapping):
                raise ConfigError(
                    f"Invalid server config for {name!r}: expected an object, got {type(settings).__name__}",
                    server_id=str(name),
                )
            entry = dict(settings)
            entry["name"] = name
            entry.setdefault("transport", TransportKind.STDIO.value)
            entries.append(entry)
    elif isinstance(servers, list):
        logger.debug("Parsing servers array document with %d entries", len(servers))
        for index, settings in enumerate(servers):
            if not isinstance(settings, Mapping):
                raise ConfigError(
                    f"Invalid server config at index {index}: expected an object, got {type(settings).__name__}"
                )
            entries.append(dict(settings))
    else:
        raise ConfigError("Invalid config: missing mcpServers object or servers array")

    return [ServerConfig.from_dict(entry) for entry in entries]
