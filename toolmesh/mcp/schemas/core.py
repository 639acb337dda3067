"""Core domain models exchanged by the manager: tools, schemas and call results."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import ConfigDict, Field, computed_field, model_validator

from .base import BaseSchema


class InputSchema(BaseSchema):
    """Canonical description of a tool's call arguments.

    Keys the model does not know about are kept as extra fields so that a
    schema survives a round trip without losing vocabulary; they are exposed
    through :attr:`additional_properties` and flattened back on dump.
    """

    model_config = ConfigDict(extra="allow")

    schema_type: str = Field(
        default="object",
        alias="type",
        description="JSON Schema type of the arguments object; consumers expect 'object'.",
    )
    properties: Dict[str, Any] = Field(
        default_factory=dict,
        description="Parameter name -> JSON Schema fragment.",
    )
    required: Optional[List[str]] = Field(
        default=None,
        description="Required parameter names; None when the source listed none.",
    )
    description: Optional[str] = Field(default=None, description="Optional schema description.")
    title: Optional[str] = Field(default=None, description="Optional schema title.")

    @property
    def additional_properties(self) -> Dict[str, Any]:
        return dict(self.model_extra or {})

    def to_json_schema(self) -> Dict[str, Any]:
        """Dump back to a plain JSON Schema object (``type`` key, unknown keys flattened)."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class McpTool(BaseSchema):
    name: str = Field(..., description="Tool name; unique within one server's listing.", min_length=1)
    description: str = Field(default="", description="Short description of what the tool does.")
    input_schema: InputSchema = Field(
        default_factory=InputSchema,
        description="Normalized schema of the tool's arguments.",
    )

    def with_name(self, name: str) -> "McpTool":
        return self.model_copy(update={"name": name})


class ToolCallResult(BaseSchema):
    """Outcome envelope of one tool invocation.

    Exactly one of ``result`` / ``error`` carries the outcome; ``success`` is
    derived from which one it is and is never stored separately.
    """

    # dumps include the computed ``success`` key; accept it back on validation
    model_config = ConfigDict(extra="ignore")

    result: Optional[Any] = Field(default=None, description="JSON payload returned by the tool on success.")
    error: Optional[str] = Field(default=None, description="Error message when the invocation failed.")

    @model_validator(mode="after")
    def _check_exclusive(self) -> "ToolCallResult":
        if self.error is not None and self.result is not None:
            raise ValueError("ToolCallResult cannot carry both a result and an error")
        return self

    @computed_field  # type: ignore[prop-decorator]
    @property
    def success(self) -> bool:
        return self.error is None

    @classmethod
    def succeeded(cls, result: Any) -> "ToolCallResult":
        return cls(result=result)

    @classmethod
    def failed(cls, error: str) -> "ToolCallResult":
        return cls(error=error)
