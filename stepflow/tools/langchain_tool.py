from __future__ import annotations

import json
import logging
from typing import Any

from langchain_core.tools import BaseTool

from stepflow.core.contracts.tools import ToolContract, ToolResult
from stepflow.tools.base import Tool

log = logging.getLogger("tools.langchain")


class LangChainTool(Tool):
    """Expose a langchain `BaseTool` (e.g. one built with `@tool`) as a plan-step target."""

    category = "langchain"

    def __init__(self, tool: BaseTool, category: str | None = None):
        self._tool = tool
        self.name = tool.name
        self.description = tool.description or ""
        if category:
            self.category = category
        args = tool.args or {}
        self.contract = ToolContract(
            requires_parameters=bool(args),
            input_schema=json.dumps({"type": "object", "properties": args}, default=str),
        )

    async def execute(self, parsed_input: Any) -> ToolResult:
        tool_input: Any = parsed_input
        if parsed_input is None:
            tool_input = {}
        elif isinstance(parsed_input, str) and len(self._tool.args) == 1:
            # single-argument tools accept the raw string for their only argument
            tool_input = {next(iter(self._tool.args)): parsed_input}
        try:
            out = await self._tool.ainvoke(tool_input)
        except Exception as e:
            log.warning("langchain tool %s failed: %s", self.name, e)
            return ToolResult.fail(f"{self.name} failed: {e}")
        content = getattr(out, "content", out)
        return ToolResult.ok(content)
