from __future__ import annotations

import logging
from typing import Any

import pytest

from toolmesh.mcp.normalizer import normalize_input_schema


def test_normalizes_well_formed_schema() -> None:
    raw = {
        "type": "object",
        "properties": {"path": {"type": "string"}},
        "required": ["path"],
        "description": "Read a file",
        "title": "ReadFile",
    }

    schema = normalize_input_schema(raw)

    assert schema.schema_type == "object"
    assert schema.properties == {"path": {"type": "string"}}
    assert schema.required == ["path"]
    assert schema.description == "Read a file"
    assert schema.title == "ReadFile"
    assert schema.additional_properties == {}


def test_unknown_keys_are_preserved_and_dumped_back() -> None:
    raw = {
        "type": "object",
        "properties": {},
        "additionalProperties": False,
        "$schema": "http://json-schema.org/draft-07/schema#",
    }

    schema = normalize_input_schema(raw)

    assert schema.additional_properties == {
        "additionalProperties": False,
        "$schema": "http://json-schema.org/draft-07/schema#",
    }
    dumped = schema.to_json_schema()
    assert dumped["type"] == "object"
    assert dumped["additionalProperties"] is False
    assert dumped["$schema"] == "http://json-schema.org/draft-07/schema#"
    assert "required" not in dumped


@pytest.mark.parametrize("raw", [None, "string", 42, ["type", "object"], True])
def test_non_object_yields_default_and_warns(raw: Any, caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING):
        schema = normalize_input_schema(raw, tool_name="weird")

    assert schema.schema_type == "object"
    assert schema.properties == {}
    assert schema.required is None
    assert "weird" in caplog.text


def test_malformed_known_keys_fall_back() -> None:
    schema = normalize_input_schema(
        {"type": 7, "properties": ["a"], "required": "a", "description": 1, "title": None}
    )

    assert schema.schema_type == "object"
    assert schema.properties == {}
    assert schema.required is None
    assert schema.description is None
    assert schema.title is None


def test_required_keeps_only_strings_and_drops_empty() -> None:
    assert normalize_input_schema({"required": ["a", 1, None, "b"]}).required == ["a", "b"]
    assert normalize_input_schema({"required": []}).required is None
    assert normalize_input_schema({"required": [1, 2]}).required is None


def test_non_object_type_string_is_kept_for_validation() -> None:
    assert normalize_input_schema({"type": "array"}).schema_type == "array"


def test_accepts_pydantic_like_objects() -> None:
    class _Model:
        def model_dump(self, **kwargs: Any) -> dict:
            return {"type": "object", "properties": {"q": {"type": "string"}}}

    schema = normalize_input_schema(_Model())
    assert schema.properties == {"q": {"type": "string"}}
