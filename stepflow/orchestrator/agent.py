"""Single-shot run: plan once, interpret the plan, evaluate, report."""
from __future__ import annotations

import json
import logging
from typing import Any, Callable

from pydantic import BaseModel, ValidationError

from stepflow.core.bindings import BindingContext
from stepflow.core.contracts.execution import ExecutionResult
from stepflow.core.contracts.functions import EvaluationResult, ModelContext, ModelRole
from stepflow.core.contracts.plan import Plan
from stepflow.functions.base import parse_json_object
from stepflow.functions.prompts import PLAN_FORMAT
from stepflow.orchestrator.plan_executor import PlanExecutor
from stepflow.orchestrator.reporter import format_step_results, synthesize_final_answer

log = logging.getLogger("orchestrator")


class AgentRunResult(BaseModel):
    is_success: bool
    goal: str
    plan: Plan | None = None
    execution: ExecutionResult | None = None
    evaluation: EvaluationResult | None = None
    final_answer: str | None = None
    error_message: str | None = None


class AgentOrchestrator:
    def __init__(self, executor: PlanExecutor):
        self.executor = executor

    @property
    def functions(self):
        return self.executor.functions

    async def create_plan(self, goal: str) -> Plan:
        """Ask the planner role for a Plan. Raises ValueError when none can be produced."""
        planner = self.functions.get(ModelRole.PLANNER)
        if planner is None:
            raise ValueError("no planner function registered")
        tools = [{"name": t.name, "description": t.description, "input_schema": t.input_schema} for t in self.executor.tools.describe()]
        result = await planner.execute(ModelContext(goal=goal, parameters={
            "available_tools": json.dumps(tools, ensure_ascii=False),
            "available_functions": ", ".join(r.value for r in self.functions.roles()),
            "history": "(nothing yet)",
            "output_format": PLAN_FORMAT,
        }))
        if not result.is_success:
            raise ValueError(f"planner failed: {result.error_message}")
        obj = parse_json_object(result)
        if obj is None:
            raise ValueError(f"planner returned no JSON plan: {result.content[:200]}")
        try:
            return Plan.model_validate(obj)
        except ValidationError as e:
            raise ValueError(f"planner returned an invalid plan: {e}") from e

    async def execute(
        self,
        goal: str,
        bindings: BindingContext | None = None,
        on_chunk: Callable[[str], Any] | None = None,
    ) -> AgentRunResult:
        bindings = bindings if bindings is not None else BindingContext()
        log.info("GOAL: %s", (goal[:200] + "…") if len(goal) > 200 else goal)
        partial = AgentRunResult(is_success=False, goal=goal)
        try:
            return await self._run(goal, bindings, on_chunk, partial)
        except Exception as e:
            log.exception("orchestrator failed")
            partial.error_message = f"orchestrator error: {e}"
            return partial

    async def _run(
        self,
        goal: str,
        bindings: BindingContext,
        on_chunk: Callable[[str], Any] | None,
        partial: AgentRunResult,
    ) -> AgentRunResult:
        """Fills `partial` with the plan and execution as they are produced."""
        try:
            plan = await self.create_plan(goal)
        except ValueError as e:
            log.warning("plan failed: %s", e)
            return AgentRunResult(is_success=False, goal=goal, error_message=str(e))
        partial.plan = plan

        if not plan.is_executable:
            log.info("plan blocked: %s", plan.execution_blocker)
            return AgentRunResult(is_success=False, goal=goal, plan=plan, error_message=plan.execution_blocker)
        for s in plan.ordered_steps():
            log.info("PLAN step %s → %s: %s", s.step_number, s.target_name, s.description[:80])

        execution = await self.executor.execute(plan, bindings, goal, on_chunk=on_chunk)
        partial.execution = execution
        evaluation = await self._evaluate(goal, execution)
        partial.evaluation = evaluation
        final_answer = await synthesize_final_answer(goal, execution.steps, self.functions)
        is_success = execution.is_success and (evaluation is None or evaluation.is_success)
        error = execution.error_message
        if error is None and not is_success and evaluation is not None:
            error = evaluation.error_message or evaluation.assessment or "evaluation reported failure"
        log.info("FINAL ANSWER: %s", (final_answer or "(empty)")[:300])
        return AgentRunResult(
            is_success=is_success,
            goal=goal,
            plan=plan,
            execution=execution,
            evaluation=evaluation,
            final_answer=final_answer,
            error_message=error,
        )

    async def _evaluate(self, goal: str, execution: ExecutionResult) -> EvaluationResult | None:
        evaluator = self.functions.get(ModelRole.EVALUATOR)
        if evaluator is None:
            return None
        result = await evaluator.execute(ModelContext(goal=goal, parameters={"results": format_step_results(execution.steps)}))
        if isinstance(result.parsed_data, EvaluationResult):
            return result.parsed_data
        log.warning("evaluation unusable: %s", result.error_message)
        return None
