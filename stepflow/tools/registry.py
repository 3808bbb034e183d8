from __future__ import annotations

import threading
from pathlib import Path
from typing import Any

from stepflow.core.contracts.tools import ToolDescription
from stepflow.tools.base import Tool
from stepflow.tools.builtin.files import ListDirectoryTool, ReadFileTool, WriteFileTool
from stepflow.tools.builtin.http import HttpRequestTool
from stepflow.tools.builtin.text import EchoTool, TextTransformerTool


class ToolRegistry:
    """Name -> Tool lookup shared by concurrent runs. Lookups and usage counters are lock-guarded."""

    def __init__(self, tools: list[Tool] | None = None):
        self._lock = threading.Lock()
        self._tools: dict[str, Tool] = {}
        self._usage: dict[str, int] = {}
        for t in tools or []:
            self.register(t)

    def register(self, tool: Tool) -> None:
        if not tool.name:
            raise ValueError(f"{tool!r} has no name")
        with self._lock:
            self._tools[tool.name] = tool
            self._usage.setdefault(tool.name, 0)

    def unregister(self, name: str) -> bool:
        with self._lock:
            self._usage.pop(name, None)
            return self._tools.pop(name, None) is not None

    def get(self, name: str | None) -> Tool | None:
        if not name:
            return None
        with self._lock:
            tool = self._tools.get(name)
            if tool is not None:
                return tool
            lowered = name.lower()
            for key, t in self._tools.items():
                if key.lower() == lowered:
                    return t
        return None

    def list(self) -> list[Tool]:
        with self._lock:
            return list(self._tools.values())

    def record_usage(self, name: str) -> int:
        with self._lock:
            self._usage[name] = self._usage.get(name, 0) + 1
            return self._usage[name]

    def usage(self, name: str) -> int:
        with self._lock:
            return self._usage.get(name, 0)

    def describe(self) -> list[ToolDescription]:
        with self._lock:
            return [
                ToolDescription(
                    name=t.name,
                    description=t.description,
                    category=t.category,
                    input_schema=t.contract.input_schema,
                    usage_count=self._usage.get(t.name, 0),
                )
                for t in self._tools.values()
            ]


def get_tools(tool_names: list[str], workspace_root: str | Path | None = None, http_client: Any = None) -> list[Tool]:
    """Build the built-in tools named in `tool_names`. Unknown names are skipped."""
    root = Path(workspace_root or Path.cwd())
    factories = {
        "echo": lambda: EchoTool(),
        "texttransformer": lambda: TextTransformerTool(),
        "readfile": lambda: ReadFileTool(root),
        "writefile": lambda: WriteFileTool(root),
        "listdirectory": lambda: ListDirectoryTool(root),
        "http_request": lambda: HttpRequestTool(client=http_client),
    }
    result = []
    for name in tool_names:
        factory = factories.get(name.lower())
        if factory is None:
            continue
        result.append(factory())
    return result
