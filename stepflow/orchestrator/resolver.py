"""Map a step's target name to a tool or a model function."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from stepflow.core.contracts.functions import ModelRole
from stepflow.functions.base import ModelFunction
from stepflow.functions.registry import FunctionRegistry
from stepflow.tools.base import Tool
from stepflow.tools.registry import ToolRegistry


@dataclass(frozen=True)
class ToolItem:
    tool: Tool

    @property
    def name(self) -> str:
        return self.tool.name


@dataclass(frozen=True)
class FunctionItem:
    function: ModelFunction

    @property
    def name(self) -> str:
        return self.function.role.value


ExecutableItem = Union[ToolItem, FunctionItem]


class ExecutableResolver:
    """Tools win over model-function roles; no caching, no side effects."""

    def __init__(self, tools: ToolRegistry, functions: FunctionRegistry):
        self.tools = tools
        self.functions = functions

    def resolve(self, target_name: str | None, kind: str | None = None) -> ExecutableItem | None:
        """`kind` ("tool" or "function") restricts the lookup to one registry."""
        if not target_name:
            return None
        if kind != "function":
            tool = self.tools.get(target_name)
            if tool is not None:
                return ToolItem(tool)
        if kind == "tool":
            return None
        role = ModelRole.parse(target_name)
        if role is None:
            return None
        function = self.functions.get(role)
        if function is None:
            return None
        return FunctionItem(function)
