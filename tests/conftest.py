"""Fakes shared by the test modules: scripted model functions, recording tools, flaky providers."""
from __future__ import annotations

import json
from typing import Any

import pytest

from stepflow.core.contracts.functions import ModelContext, ModelResult, ModelRole, StreamChunk
from stepflow.core.contracts.tools import ToolContract, ToolResult
from stepflow.functions.base import ModelFunction
from stepflow.functions.registry import FunctionRegistry
from stepflow.llm.providers import LLMProvider
from stepflow.orchestrator.plan_executor import PlanExecutor
from stepflow.tools.base import Tool
from stepflow.tools.registry import ToolRegistry


class ScriptedFunction(ModelFunction):
    """Replies with the scripted answers in order; the last one repeats."""

    def __init__(self, role: ModelRole, *replies: Any, streaming: bool = False):
        self.role = role
        self.replies = list(replies) or [""]
        self.supports_streaming = streaming
        self.calls: list[ModelContext] = []

    def _next(self) -> ModelResult:
        reply = self.replies[min(len(self.calls) - 1, len(self.replies) - 1)]
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, ModelResult):
            return reply
        if isinstance(reply, (dict, list)):
            return ModelResult(role=self.role, raw_response=json.dumps(reply), parsed_data=reply)
        return ModelResult(role=self.role, raw_response=str(reply))

    async def execute(self, context: ModelContext) -> ModelResult:
        self.calls.append(context)
        return self._next()

    async def execute_stream(self, context: ModelContext):
        self.calls.append(context)
        result = self._next()
        for word in result.raw_response.split(" "):
            yield StreamChunk(content=word + " ")
        yield StreamChunk(is_final=True, parsed_result=result)


class RecordingTool(Tool):
    """Returns a fixed result (or the result of `fn(parsed_input)`) and records every input."""

    def __init__(self, name: str, result: Any = None, requires_parameters: bool = True, fn=None):
        self.name = name
        self.description = f"{name} test tool"
        self.contract = ToolContract(requires_parameters=requires_parameters)
        self._result = result
        self._fn = fn
        self.inputs: list[Any] = []

    async def execute(self, parsed_input: Any) -> ToolResult:
        self.inputs.append(parsed_input)
        if self._fn is not None:
            return self._fn(parsed_input)
        if isinstance(self._result, ToolResult):
            return self._result
        return ToolResult.ok(self._result)


class FakeProvider(LLMProvider):
    """Backend whose replies are scripted; an Exception entry is raised instead of returned."""

    def __init__(self, name: str, *replies: Any, models: list[str] | None = None, tokens: Any = None):
        self.name = name
        self.replies = list(replies) or ["ok"]
        self._models = models or ["m1"]
        self.tokens = tokens
        self.calls = 0
        self.prompts: list[Any] = []
        self.available: Any = True

    @property
    def supported_models(self) -> list[str]:
        return self._models

    def _next(self) -> Any:
        reply = self.replies[min(self.calls, len(self.replies) - 1)]
        self.calls += 1
        if isinstance(reply, BaseException):
            raise reply
        return reply

    async def generate(self, prompt: Any, model: str | None = None) -> str:
        self.prompts.append(prompt)
        return self._next()

    async def generate_stream(self, prompt: Any, model: str | None = None):
        self.prompts.append(prompt)
        reply = self._next()
        for part in reply:
            if isinstance(part, BaseException):
                raise part
            yield part

    async def count_tokens(self, text: str, model: str | None = None) -> int:
        if isinstance(self.tokens, BaseException):
            raise self.tokens
        return self.tokens

    async def is_available(self) -> bool:
        if isinstance(self.available, BaseException):
            raise self.available
        return self.available


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_executor(tools: list[Tool] | None = None, functions: list[ModelFunction] | None = None) -> PlanExecutor:
    return PlanExecutor(ToolRegistry(tools or []), FunctionRegistry(functions or []))


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
