from __future__ import annotations

import pytest

from toolmesh.mcp.errors import ToolValidationError
from toolmesh.mcp.schemas.core import InputSchema, McpTool
from toolmesh.mcp.validation import filter_valid_tools, validate_tool_schema


def _tool(name: str, **schema: object) -> McpTool:
    return McpTool(name=name, input_schema=InputSchema.model_validate(schema))


def test_valid_schema_passes() -> None:
    validate_tool_schema(_tool("ok", type="object", properties={"a": {}}, required=["a"]))
    validate_tool_schema(_tool("no_required", type="object"))


def test_non_object_type_is_rejected() -> None:
    with pytest.raises(ToolValidationError) as info:
        validate_tool_schema(_tool("arr", type="array"))
    assert str(info.value) == "Tool 'arr' has invalid schema type 'array', expected 'object'"
    assert info.value.tool_name == "arr"


def test_required_field_missing_from_properties_is_rejected() -> None:
    with pytest.raises(ToolValidationError, match="requires field 'path' but it's not defined in properties"):
        validate_tool_schema(_tool("read", type="object", properties={"other": {}}, required=["path"]))


def test_filter_valid_tools_keeps_order_and_drops_invalid() -> None:
    tools = [
        _tool("a", type="object"),
        _tool("b", type="string"),
        _tool("c", type="object", required=["x"]),
        _tool("d", type="object", properties={"x": {}}, required=["x"]),
    ]

    assert [t.name for t in filter_valid_tools(tools)] == ["a", "d"]
