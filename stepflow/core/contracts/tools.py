from typing import Any

from pydantic import BaseModel, Field


class ToolContract(BaseModel):
    requires_parameters: bool = True
    input_schema: str = "{}"
    output_schema: str | None = None


class ToolResult(BaseModel):
    is_success: bool
    data: Any = None
    error_message: str | None = None

    @classmethod
    def ok(cls, data: Any = None) -> "ToolResult":
        return cls(is_success=True, data=data)

    @classmethod
    def fail(cls, error_message: str) -> "ToolResult":
        return cls(is_success=False, error_message=error_message)


class ToolDescription(BaseModel):
    name: str
    description: str = ""
    category: str = "general"
    input_schema: str = "{}"
    usage_count: int = Field(default=0)
