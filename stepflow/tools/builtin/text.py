from __future__ import annotations

import json
from typing import Any

from stepflow.core.contracts.tools import ToolContract, ToolResult
from stepflow.tools.base import Tool

_OPERATIONS = {
    "upper": str.upper,
    "lower": str.lower,
    "title": str.title,
    "strip": str.strip,
    "reverse": lambda s: s[::-1],
}


class EchoTool(Tool):
    name = "echo"
    description = "Return the given message unchanged."
    category = "utility"
    contract = ToolContract(
        requires_parameters=True,
        input_schema=json.dumps({
            "type": "object",
            "properties": {"message": {"type": "string"}},
            "required": ["message"],
        }),
    )

    async def execute(self, parsed_input: Any) -> ToolResult:
        return ToolResult.ok(self.arg(parsed_input, "message", ""))


class TextTransformerTool(Tool):
    name = "TextTransformer"
    description = f"Apply a text operation ({', '.join(_OPERATIONS)}) to the given text."
    category = "text"
    contract = ToolContract(
        requires_parameters=True,
        input_schema=json.dumps({
            "type": "object",
            "properties": {
                "text": {"type": "string"},
                "operation": {"type": "string", "enum": list(_OPERATIONS)},
            },
            "required": ["text", "operation"],
        }),
    )

    async def execute(self, parsed_input: Any) -> ToolResult:
        if not isinstance(parsed_input, dict):
            return ToolResult.fail("TextTransformer expects a JSON object with text and operation")
        text = self.arg(parsed_input, "text")
        operation = str(self.arg(parsed_input, "operation", "")).lower()
        if text is None:
            return ToolResult.fail("Error: no text provided.")
        fn = _OPERATIONS.get(operation)
        if fn is None:
            return ToolResult.fail(f"Unsupported operation: {operation or '(none)'}")
        return ToolResult.ok({"transformedText": fn(str(text)), "operation": operation})
