"""Run one bound step against a tool or a model function."""
from __future__ import annotations

import json
import logging
import time
from typing import Any, Callable

from pydantic import BaseModel

from stepflow.core.bindings import BindingContext
from stepflow.core.contracts.execution import StepExecutionResult
from stepflow.core.contracts.functions import ModelContext, ModelResult
from stepflow.core.contracts.plan import Step
from stepflow.core.exceptions import ExecutableMismatchError
from stepflow.orchestrator.resolver import ExecutableItem, FunctionItem, ToolItem
from stepflow.tools.registry import ToolRegistry

log = logging.getLogger("executor")

OnChunk = Callable[[str], Any]


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


def _parse_parameters(parameters: str | None) -> Any:
    if parameters is None:
        return None
    try:
        return json.loads(parameters)
    except (json.JSONDecodeError, TypeError):
        return parameters


def _serialize(data: Any) -> str | None:
    if data is None:
        return None
    if isinstance(data, str):
        return data
    if isinstance(data, BaseModel):
        return data.model_dump_json()
    return json.dumps(data, ensure_ascii=False, default=str)


class ToolStepExecutor:
    def __init__(self, tools: ToolRegistry | None = None):
        self.tools = tools

    async def execute(
        self,
        step: Step,
        item: ExecutableItem,
        parameters: str | None,
        goal: str,
        bindings: BindingContext,
        on_chunk: OnChunk | None = None,
    ) -> StepExecutionResult:
        if not isinstance(item, ToolItem):
            raise ExecutableMismatchError(f"ToolStepExecutor cannot run {type(item).__name__}")
        tool = item.tool
        start = time.perf_counter()
        result = await tool.execute(_parse_parameters(parameters))
        elapsed = _elapsed_ms(start)
        if self.tools is not None:
            self.tools.record_usage(tool.name)
        log.info("tool %s finished in %dms success=%s", tool.name, elapsed, result.is_success)
        return StepExecutionResult(
            step_number=step.step_number,
            description=step.description,
            target_name=step.target_name,
            parameters=parameters,
            is_success=result.is_success,
            output=_serialize(result.data),
            error_message=result.error_message,
            execution_time_ms=elapsed,
            output_variable=step.output_variable,
        )


class FunctionStepExecutor:
    def __init__(self, ambient_parameters: dict[str, Any] | None = None, session_id: str | None = None):
        self.ambient_parameters = dict(ambient_parameters or {})
        self.session_id = session_id

    def build_context(self, parameters: str | None, goal: str, bindings: BindingContext) -> ModelContext:
        merged: dict[str, Any] = {**self.ambient_parameters, **bindings.snapshot()}
        bound = _parse_parameters(parameters)
        if isinstance(bound, dict):
            merged.update(bound)
        elif bound is not None and bound != "":
            merged["content"] = bound if isinstance(bound, str) else json.dumps(bound, ensure_ascii=False)
        return ModelContext(goal=goal, parameters=merged, session_id=self.session_id)

    async def execute(
        self,
        step: Step,
        item: ExecutableItem,
        parameters: str | None,
        goal: str,
        bindings: BindingContext,
        on_chunk: OnChunk | None = None,
    ) -> StepExecutionResult:
        if not isinstance(item, FunctionItem):
            raise ExecutableMismatchError(f"FunctionStepExecutor cannot run {type(item).__name__}")
        function = item.function
        context = self.build_context(parameters, goal, bindings)
        start = time.perf_counter()

        if function.supports_streaming and on_chunk is not None:
            parts: list[str] = []
            result: ModelResult | None = None
            async for chunk in function.execute_stream(context):
                if chunk.content:
                    on_chunk(chunk.content)
                    parts.append(chunk.content)
                if chunk.is_final and isinstance(chunk.parsed_result, ModelResult):
                    result = chunk.parsed_result
            raw = "".join(parts)
            if result is None:
                result = ModelResult(role=function.role, raw_response=raw)
            elif not result.raw_response:
                result = result.model_copy(update={"raw_response": raw})
        else:
            result = await function.execute(context)

        elapsed = _elapsed_ms(start)
        is_success = result.is_success
        flag = getattr(result.parsed_data, "is_success", None)
        if isinstance(flag, bool):
            is_success = flag
        error = result.error_message
        if not is_success and not error:
            error = getattr(result.parsed_data, "error_message", None) or f"{function.role.value} reported failure"
        output = _serialize(result.parsed_data) if result.parsed_data is not None else result.raw_response
        log.info("function %s finished in %dms success=%s", function.role.value, elapsed, is_success)
        return StepExecutionResult(
            step_number=step.step_number,
            description=step.description,
            target_name=step.target_name,
            parameters=parameters,
            is_success=is_success,
            output=output,
            error_message=None if is_success else error,
            execution_time_ms=elapsed,
            output_variable=step.output_variable,
        )
