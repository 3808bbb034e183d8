"""Single pass over a plan: resolve, bind, execute each step in order, stop at the first failure."""
from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Callable

from stepflow.core.bindings import BindingContext
from stepflow.core.contracts.execution import ExecutionResult, StepExecutionResult
from stepflow.core.contracts.functions import StreamChunk
from stepflow.core.contracts.plan import Plan, Step
from stepflow.functions.registry import FunctionRegistry
from stepflow.orchestrator.binder import ParameterBinder
from stepflow.orchestrator.executors import FunctionStepExecutor, ToolStepExecutor
from stepflow.orchestrator.resolver import ExecutableResolver, ToolItem
from stepflow.orchestrator.streaming import relay_chunks
from stepflow.tools.registry import ToolRegistry

log = logging.getLogger("plan_executor")

OnChunk = Callable[[str], Any]
OnStepCompleted = Callable[[StepExecutionResult], Any]


def _preview(text: str | None, n: int = 120) -> str:
    if not text:
        return ""
    return (text[:n] + "…") if len(text) > n else text


class PlanExecutor:
    def __init__(
        self,
        tools: ToolRegistry,
        functions: FunctionRegistry,
        binder: ParameterBinder | None = None,
        tool_executor: ToolStepExecutor | None = None,
        function_executor: FunctionStepExecutor | None = None,
    ):
        self.tools = tools
        self.functions = functions
        self.resolver = ExecutableResolver(tools, functions)
        self.binder = binder or ParameterBinder(functions)
        self.tool_executor = tool_executor or ToolStepExecutor(tools)
        self.function_executor = function_executor or FunctionStepExecutor()

    async def execute(
        self,
        plan: Plan,
        bindings: BindingContext,
        goal: str = "",
        on_step_completed: OnStepCompleted | None = None,
        on_chunk: OnChunk | None = None,
    ) -> ExecutionResult:
        started_at = datetime.now(timezone.utc)
        start = time.perf_counter()

        if not plan.is_executable:
            log.info("plan not executable: %s", plan.execution_blocker)
            return ExecutionResult(
                is_success=False,
                error_message=plan.execution_blocker,
                summary=plan.summary,
                started_at=started_at,
                completed_at=datetime.now(timezone.utc),
            )

        results: list[StepExecutionResult] = []
        error = None
        for step in plan.ordered_steps():
            result = await self.execute_step(step, bindings, goal, on_chunk)
            results.append(result)
            if result.is_success and step.output_variable:
                bindings.set(step.output_variable, result.output)
            if on_step_completed is not None:
                on_step_completed(result)
            if not result.is_success:
                error = f"Step {step.step_number} failed: {result.error_message}"
                log.warning(error)
                break

        total_ms = int((time.perf_counter() - start) * 1000)
        return ExecutionResult(
            is_success=error is None,
            steps=results,
            error_message=error,
            summary=f"{len(results)} steps completed successfully" if error is None else plan.summary,
            total_execution_time_ms=total_ms,
            started_at=started_at,
            completed_at=datetime.now(timezone.utc),
        )

    async def execute_step(
        self,
        step: Step,
        bindings: BindingContext,
        goal: str = "",
        on_chunk: OnChunk | None = None,
        kind: str | None = None,
    ) -> StepExecutionResult:
        """Resolve, bind and run one step. Never raises except on cancellation.

        `kind` ("tool" or "function") limits resolution to one registry.
        """
        start = time.perf_counter()
        log.info("[step %s] → %s: %s", step.step_number, step.target_name, _preview(step.description, 80))
        try:
            item = self.resolver.resolve(step.target_name, kind)
            if item is None:
                return self._failed(step, f"target not found: {step.target_name}", start)

            tool = item.tool if isinstance(item, ToolItem) else None
            bound = await self.binder.process(tool, step.parameters, goal, step.description, bindings, on_chunk)
            if not bound.is_success:
                return self._failed(step, bound.error_message or "parameter binding failed", start, step.parameters)

            executor = self.tool_executor if isinstance(item, ToolItem) else self.function_executor
            result = await executor.execute(step, item, bound.processed_parameters, goal, bindings, on_chunk)
        except Exception as e:
            log.exception("[step %s] %s raised", step.step_number, step.target_name)
            return self._failed(step, str(e) or type(e).__name__, start, step.parameters)

        if result.is_success:
            log.info("[step %s] ← %s: %s (%s ms)", step.step_number, step.target_name, _preview(result.output), result.execution_time_ms)
        else:
            log.warning("[step %s] ← %s failed: %s", step.step_number, step.target_name, result.error_message)
        return result

    def _failed(self, step: Step, error: str, start: float, parameters: str | None = None) -> StepExecutionResult:
        log.warning("[step %s] ← %s: %s", step.step_number, step.target_name, error)
        return StepExecutionResult(
            step_number=step.step_number,
            description=step.description,
            target_name=step.target_name,
            parameters=parameters,
            is_success=False,
            error_message=error,
            execution_time_ms=int((time.perf_counter() - start) * 1000),
            output_variable=step.output_variable,
        )

    async def execute_stream(
        self,
        plan: Plan,
        bindings: BindingContext,
        goal: str = "",
        on_step_completed: OnStepCompleted | None = None,
    ) -> AsyncIterator[StreamChunk]:
        """Chunks as steps produce them; the final chunk carries the ExecutionResult."""
        async for chunk in relay_chunks(
            lambda on_chunk: self.execute(plan, bindings, goal, on_step_completed, on_chunk)
        ):
            yield chunk
