from __future__ import annotations

import json
from typing import Any

import httpx

from stepflow.core.contracts.tools import ToolContract, ToolResult
from stepflow.tools.base import Tool

MAX_BODY_CHARS = 20_000


class HttpRequestTool(Tool):
    name = "http_request"
    description = "Send an HTTP request and return status code and body."
    category = "network"
    contract = ToolContract(
        requires_parameters=True,
        input_schema=json.dumps({
            "type": "object",
            "properties": {
                "url": {"type": "string"},
                "method": {"type": "string", "enum": ["GET", "POST", "PUT", "DELETE"]},
                "payload": {"type": "object"},
                "headers": {"type": "object"},
            },
            "required": ["url"],
        }),
    )

    def __init__(self, client: httpx.AsyncClient | None = None, timeout: float = 30.0):
        self._client = client
        self._timeout = timeout

    async def execute(self, parsed_input: Any) -> ToolResult:
        url = self.arg(parsed_input, "url")
        if not isinstance(url, str) or not url.strip():
            return ToolResult.fail("Error: no URL provided.")
        method = "GET"
        payload = None
        headers = None
        if isinstance(parsed_input, dict):
            method = str(self.arg(parsed_input, "method", "GET")).upper()
            payload = self.arg(parsed_input, "payload")
            headers = self.arg(parsed_input, "headers")
        try:
            if self._client is not None:
                r = await self._client.request(method, url, json=payload, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    r = await client.request(method, url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            return ToolResult.fail(f"{method} {url} failed: {e}")
        body = r.text
        if len(body) > MAX_BODY_CHARS:
            body = body[:MAX_BODY_CHARS] + "…"
        data = {"status_code": r.status_code, "content": body}
        if r.status_code >= 400:
            return ToolResult(is_success=False, data=data, error_message=f"{method} {url} → HTTP {r.status_code}")
        return ToolResult.ok(data)
