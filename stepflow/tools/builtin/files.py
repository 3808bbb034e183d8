"""File-system tools confined to a workspace root."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from stepflow.core.contracts.tools import ToolContract, ToolResult
from stepflow.tools.base import Tool

MAX_READ_BYTES = 1_000_000


class _WorkspaceTool(Tool):
    category = "file_system"

    def __init__(self, workspace_root: str | Path):
        self.workspace_root = Path(workspace_root).resolve()

    def _resolve(self, raw_path: Any) -> Path:
        if not isinstance(raw_path, str) or not raw_path.strip():
            raise ValueError("no path provided")
        path = Path(raw_path.strip())
        if not path.is_absolute():
            path = self.workspace_root / path
        path = path.resolve()
        if not path.is_relative_to(self.workspace_root):
            raise ValueError(f"path escapes the workspace: {raw_path}")
        return path


class ReadFileTool(_WorkspaceTool):
    name = "ReadFile"
    description = "Read a UTF-8 text file from the workspace."
    contract = ToolContract(
        requires_parameters=True,
        input_schema=json.dumps({
            "type": "object",
            "properties": {"path": {"type": "string"}},
            "required": ["path"],
        }),
    )

    async def execute(self, parsed_input: Any) -> ToolResult:
        try:
            path = self._resolve(self.arg(parsed_input, "path"))
        except ValueError as e:
            return ToolResult.fail(str(e))
        if not path.is_file():
            return ToolResult.fail(f"File not found: {path.relative_to(self.workspace_root)}")
        size = path.stat().st_size
        if size > MAX_READ_BYTES:
            return ToolResult.fail(f"File too large: {size} bytes")
        content = path.read_text(encoding="utf-8", errors="replace")
        return ToolResult.ok({
            "path": str(path.relative_to(self.workspace_root)),
            "content": content,
            "size": size,
        })


class WriteFileTool(_WorkspaceTool):
    name = "WriteFile"
    description = "Write text content to a file in the workspace, creating parent directories."
    contract = ToolContract(
        requires_parameters=True,
        input_schema=json.dumps({
            "type": "object",
            "properties": {"path": {"type": "string"}, "content": {"type": "string"}},
            "required": ["path", "content"],
        }),
    )

    async def execute(self, parsed_input: Any) -> ToolResult:
        if not isinstance(parsed_input, dict):
            return ToolResult.fail("WriteFile expects a JSON object with path and content")
        try:
            path = self._resolve(self.arg(parsed_input, "path"))
        except ValueError as e:
            return ToolResult.fail(str(e))
        content = self.arg(parsed_input, "content", "")
        if not isinstance(content, str):
            content = json.dumps(content, ensure_ascii=False)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return ToolResult.ok({
            "path": str(path.relative_to(self.workspace_root)),
            "bytes_written": len(content.encode("utf-8")),
        })


class ListDirectoryTool(_WorkspaceTool):
    name = "ListDirectory"
    description = "List files and sub-directories of a workspace directory."
    contract = ToolContract(
        requires_parameters=False,
        input_schema=json.dumps({
            "type": "object",
            "properties": {"path": {"type": "string"}, "pattern": {"type": "string"}},
        }),
    )

    async def execute(self, parsed_input: Any) -> ToolResult:
        try:
            path = self._resolve(self.arg(parsed_input, "path") or ".")
        except ValueError as e:
            return ToolResult.fail(str(e))
        if not path.is_dir():
            return ToolResult.fail(f"Directory not found: {path}")
        pattern = self.arg(parsed_input, "pattern") if isinstance(parsed_input, dict) else None
        entries = sorted(path.glob(pattern or "*"))
        return ToolResult.ok({
            "path": str(path.relative_to(self.workspace_root)),
            "files": [str(p.relative_to(self.workspace_root)) for p in entries if p.is_file()],
            "directories": [str(p.relative_to(self.workspace_root)) for p in entries if p.is_dir()],
        })
