"""Plan → execute actions → check completion, repeated up to a bound."""
from __future__ import annotations

from stepflow.core.contracts.functions import ModelResult, ModelRole
from stepflow.core.contracts.runs import HistoryEntry, PlannedAction
from stepflow.functions.prompts import ACTIONS_FORMAT
from stepflow.strategies.base import (
    BaseStrategy,
    OnChunk,
    RunContext,
    classify_action,
    parse_json_object,
    read_is_complete,
)

# without a completion checker the goal counts as reached once this many history entries succeeded
MIN_SUCCESSFUL_ENTRIES = 3


def extract_actions(result: ModelResult) -> list[PlannedAction]:
    """Actions from an {"actions": [...]} reply; anything unparseable gives an empty list."""
    obj = parse_json_object(result)
    if obj is None:
        return []
    raw = obj.get("actions")
    if not isinstance(raw, list):
        return []
    actions = []
    for a in raw:
        if not isinstance(a, dict):
            continue
        params = a.get("parameters")
        actions.append(PlannedAction(
            type=str(a.get("type") or "unknown"),
            name=str(a.get("name") or ""),
            parameters=params if isinstance(params, dict) else {},
        ))
    return actions


class PlanExecuteStrategy(BaseStrategy):
    name = "plan_execute"
    default_max_iterations = 10

    async def _run(self, ctx: RunContext, on_chunk: OnChunk | None) -> None:
        for iteration in range(1, self.max_iterations + 1):
            ctx.iterations = iteration
            self.log.info("iteration %d/%d", iteration, self.max_iterations)
            self._emit(on_chunk, f"[plan_execute] iteration {iteration}: planning\n")

            plan = await self._plan(ctx)
            if plan is None:
                break

            actions = extract_actions(plan)
            self.log.info("planned %d actions", len(actions))
            self._emit(on_chunk, f"[plan_execute] executing {len(actions)} actions\n")
            for action in actions:
                await self._execute_action(ctx, action, len(ctx.history) + 1, on_chunk)

            if await self._is_complete(ctx):
                ctx.is_completed = True
                self.log.info("goal reached after %d iterations", iteration)
                self._emit(on_chunk, "[plan_execute] goal reached\n")
                break

        if not ctx.is_completed and ctx.error is None:
            self.log.warning("maximum iterations reached: %d", self.max_iterations)
            ctx.set_error(f"maximum iterations ({self.max_iterations}) exceeded")

        for h in reversed(ctx.history):
            if h.is_success and h.output:
                ctx.final_answer = h.output
                break

    async def _plan(self, ctx: RunContext) -> ModelResult | None:
        planner = self._function(ModelRole.PLANNER)
        if planner is None:
            ctx.set_error("planning failed: no planner function registered")
            return None
        try:
            result = await planner.execute(self.model_context(
                ctx,
                available_tools=self.available_tools(),
                available_functions=self.available_functions(),
                history=ctx.history_text(),
                output_format=ACTIONS_FORMAT,
            ))
        except Exception as e:
            self.log.warning("planner raised: %s", e)
            ctx.set_error(f"planning failed: {e}")
            return None
        if not result.is_success:
            ctx.set_error(f"planning failed: {result.error_message}")
            return None
        return result

    async def _execute_action(self, ctx: RunContext, action: PlannedAction, step_number: int, on_chunk: OnChunk | None) -> None:
        entry = HistoryEntry(step_type=action.type, description=f"{action.type}: {action.name}", input=action.parameters_json())
        kind, target = classify_action(action)
        if kind is None:
            self.log.warning("unknown action type: %s", action.type)
            entry.error_message = f"unknown action type: {action.type}"
            ctx.add_history(entry)
            return

        result = await self.run_action(ctx, action, step_number, on_chunk)
        entry.is_success = result.is_success
        entry.output = result.output
        entry.error_message = result.error_message
        ctx.add_history(entry)
        if not result.is_success:
            self.log.warning("action %s failed: %s", action, result.error_message)
            return
        key = f"{kind}_{target}_result"
        ctx.shared_data[key] = result.output
        ctx.bindings.set(key, result.output)

    async def _is_complete(self, ctx: RunContext) -> bool:
        checker = self._function(ModelRole.COMPLETION_CHECKER)
        if checker is None:
            return sum(1 for h in ctx.history if h.is_success) >= MIN_SUCCESSFUL_ENTRIES
        result = await checker.execute(self.model_context(ctx, history=ctx.history_text()))
        return read_is_complete(result)
