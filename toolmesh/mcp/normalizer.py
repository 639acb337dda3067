"""Tool input-schema normalization.

Servers describe tool arguments with loosely shaped JSON Schema payloads. This
module turns any such payload into an :class:`InputSchema` without failing:
malformed known keys fall back to their defaults, unknown keys are carried
over verbatim.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from .schemas.core import InputSchema

logger = logging.getLogger(__name__)

KNOWN_SCHEMA_KEYS = frozenset({"type", "properties", "required", "description", "title"})


def normalize_input_schema(raw: Any, *, tool_name: Optional[str] = None) -> InputSchema:
    """Normalize an arbitrary JSON value into an :class:`InputSchema`.

    Args:
        raw: The schema payload as reported by the server.
        tool_name: Optional tool name used only for log context.

    Returns:
        The canonical schema. A non-object payload yields the default empty
        object schema and logs a warning.
    """
    if hasattr(raw, "model_dump"):
        raw = raw.model_dump(by_alias=True, exclude_none=True)
    if not isinstance(raw, dict):
        logger.warning(
            "Received non-object input schema for tool %s (%s); using default object schema",
            tool_name or "<unknown>",
            type(raw).__name__,
        )
        return InputSchema()

    data: Dict[str, Any] = {key: value for key, value in raw.items() if key not in KNOWN_SCHEMA_KEYS}

    schema_type = raw.get("type")
    data["type"] = schema_type if isinstance(schema_type, str) else "object"

    props = raw.get("properties")
    data["properties"] = dict(props) if isinstance(props, dict) else {}

    required = raw.get("required")
    if isinstance(required, list):
        names: List[str] = [item for item in required if isinstance(item, str)]
        if names:
            data["required"] = names

    for key in ("description", "title"):
        value = raw.get(key)
        if isinstance(value, str):
            data[key] = value

    return InputSchema.model_validate(data)
