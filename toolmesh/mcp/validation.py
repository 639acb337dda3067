"""Schema checks applied before tools are handed to schema-strict consumers."""

from __future__ import annotations

import logging
from typing import Iterable, List

from .errors import ToolValidationError
from .schemas.core import McpTool

logger = logging.getLogger(__name__)


def validate_tool_schema(tool: McpTool) -> None:
    """Check that a tool's input schema is well formed.

    The schema type must be ``"object"`` and every required name must be a key
    of ``properties``.

    Raises:
        ToolValidationError: If either rule is violated.
    """
    schema = tool.input_schema
    if schema.schema_type != "object":
        raise ToolValidationError(
            tool.name,
            f"Tool '{tool.name}' has invalid schema type '{schema.schema_type}', expected 'object'",
        )
    for field_name in schema.required or []:
        if field_name not in schema.properties:
            raise ToolValidationError(
                tool.name,
                f"Tool '{tool.name}' requires field '{field_name}' but it's not defined in properties",
            )


def filter_valid_tools(tools: Iterable[McpTool]) -> List[McpTool]:
    """Return only the tools that pass :func:`validate_tool_schema`, in order."""
    valid: List[McpTool] = []
    for tool in tools:
        try:
            validate_tool_schema(tool)
        except ToolValidationError as exc:
            logger.info("Dropping tool '%s': %s", tool.name, exc)
            continue
        valid.append(tool)
    return valid
