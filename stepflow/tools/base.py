from __future__ import annotations

from typing import Any

from stepflow.core.contracts.tools import ToolContract, ToolResult


class Tool:
    """A deterministic callable a plan step can target by name.

    Subclasses set the class attributes and implement `execute`. `parsed_input`
    is the step's bound parameters: a dict when they parsed as a JSON object,
    otherwise the raw string (or None).
    """

    name: str = ""
    description: str = ""
    category: str = "general"
    contract: ToolContract = ToolContract()

    async def execute(self, parsed_input: Any) -> ToolResult:
        raise NotImplementedError

    @staticmethod
    def arg(parsed_input: Any, key: str, default: Any = None) -> Any:
        """Read `key` from a dict input; a bare string input stands in for the first argument."""
        if isinstance(parsed_input, dict):
            for k, v in parsed_input.items():
                if k.lower() == key.lower():
                    return v
            return default
        if isinstance(parsed_input, str) and parsed_input.strip():
            return parsed_input
        return default

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r}>"
