"""Reason → act → observe loop with an explicit thought history and a final-answer synthesis."""
from __future__ import annotations

import json

from stepflow.core.contracts.functions import ModelResult, ModelRole
from stepflow.core.contracts.runs import HistoryEntry, PlannedAction, ThoughtRecord
from stepflow.functions.prompts import DECISION_FORMAT
from stepflow.strategies.base import (
    BaseStrategy,
    OnChunk,
    RunContext,
    classify_action,
    parse_json_object,
    read_is_complete,
)

GOAL_KEYWORDS = ("complete", "success", "done", "finished")
# the goal check is skipped until this many thought/action/observation cycles exist
MIN_CYCLES_FOR_GOAL_CHECK = 2


def parse_decision(result: ModelResult | None) -> PlannedAction | None:
    """The planner's next action; a non-JSON reply mentioning "finish" is a finish decision."""
    obj = parse_json_object(result)
    if obj is not None:
        params = obj.get("parameters")
        return PlannedAction(
            type=str(obj.get("type") or "unknown"),
            name=str(obj.get("name") or ""),
            parameters=params if isinstance(params, dict) else {},
        )
    if result is not None and "finish" in result.content.lower():
        return PlannedAction(type="finish")
    return None


def format_records(records: list[ThoughtRecord]) -> str:
    if not records:
        return "(no previous steps)"
    parts = []
    for r in records:
        parts.append(f"Thought: {r.thought}\nAction: {r.action}\nObservation: {r.observation}")
    return "\n\n".join(parts)


class ReActStrategy(BaseStrategy):
    name = "react"
    default_max_iterations = 15

    async def _run(self, ctx: RunContext, on_chunk: OnChunk | None) -> None:
        records: list[ThoughtRecord] = []
        try:
            await self._loop(ctx, records, on_chunk)
        except Exception as e:
            self.log.exception("react loop failed")
            ctx.set_error(f"strategy error: {e}")
        await self._synthesize(ctx, records, on_chunk)

    async def _loop(self, ctx: RunContext, records: list[ThoughtRecord], on_chunk: OnChunk | None) -> None:
        for iteration in range(1, self.max_iterations + 1):
            ctx.iterations = iteration
            self.log.info("iteration %d/%d", iteration, self.max_iterations)

            thought = await self._think(ctx, records)
            self._emit(on_chunk, f"[react] thought {iteration}: {thought}\n")

            action = await self._decide(ctx, records, thought)
            if action is None or action.is_finish:
                self.log.info("finish decided at iteration %d", iteration)
                ctx.is_completed = True
                return

            observation = await self._act(ctx, action, iteration, on_chunk)
            self._emit(on_chunk, f"[react] {action} -> {observation[:200]}\n")

            record = ThoughtRecord(thought=thought, action=action, observation=observation)
            records.append(record)
            ctx.shared_data[f"react_iteration_{iteration}"] = {
                "thought": thought,
                "action": str(action),
                "observation": observation,
            }

            if len(records) >= MIN_CYCLES_FOR_GOAL_CHECK and await self._goal_achieved(ctx, records):
                self.log.info("goal achieved at iteration %d", iteration)
                ctx.is_completed = True
                return

        self.log.warning("maximum iterations reached: %d", self.max_iterations)
        ctx.set_error(f"maximum iterations ({self.max_iterations}) exceeded")

    async def _think(self, ctx: RunContext, records: list[ThoughtRecord]) -> str:
        reasoner = self._function(ModelRole.REASONER, ModelRole.ANALYZER)
        if reasoner is None:
            raise LookupError("no reasoner or analyzer function registered")
        history = format_records(records)
        result = await reasoner.execute(self.model_context(ctx, history=history))
        ctx.add_history(HistoryEntry(
            step_type="thought",
            description="generate thought",
            input=history,
            output=result.content,
            is_success=result.is_success,
            error_message=result.error_message,
        ))
        return result.content

    async def _decide(self, ctx: RunContext, records: list[ThoughtRecord], thought: str) -> PlannedAction | None:
        planner = self._function(ModelRole.PLANNER)
        if planner is None:
            raise LookupError("no planner function registered")
        result = await planner.execute(self.model_context(
            ctx,
            history=f"{format_records(records)}\n\nLatest thought: {thought}",
            available_tools=self.available_tools(),
            available_functions=self.available_functions(),
            output_format=DECISION_FORMAT,
        ))
        action = parse_decision(result)
        if action is None:
            self.log.warning("unparseable decision, finishing: %r", result.content[:200])
        return action

    async def _act(self, ctx: RunContext, action: PlannedAction, iteration: int, on_chunk: OnChunk | None) -> str:
        entry = HistoryEntry(step_type="action", description=f"{action.type}: {action.name}", input=action.parameters_json())
        kind, _ = classify_action(action)
        if kind is None:
            observation = f"unknown action type: {action.type}"
            entry.error_message = observation
        else:
            result = await self.run_action(ctx, action, iteration, on_chunk)
            entry.is_success = result.is_success
            entry.error_message = result.error_message
            observation = (result.output or "") if result.is_success else (result.error_message or "action failed")
        entry.output = observation
        ctx.add_history(entry)
        return observation

    async def _goal_achieved(self, ctx: RunContext, records: list[ThoughtRecord]) -> bool:
        checker = self._function(ModelRole.EVALUATOR, ModelRole.COMPLETION_CHECKER)
        if checker is None:
            last = records[-1].observation.lower()
            return any(k in last for k in GOAL_KEYWORDS)
        result = await checker.execute(self.model_context(
            ctx,
            history=format_records(records),
            results=json.dumps([r.model_dump() for r in records], ensure_ascii=False, default=str),
        ))
        return read_is_complete(result)

    async def _synthesize(self, ctx: RunContext, records: list[ThoughtRecord], on_chunk: OnChunk | None) -> None:
        summarizer = self._function(ModelRole.SUMMARIZER, ModelRole.GENERATOR)
        if summarizer is None:
            self.log.warning("no summarizer or generator registered, skipping final answer")
            return
        history = format_records(records)
        try:
            result = await summarizer.execute(self.model_context(ctx, history=history, content=f"Goal: {ctx.goal}"))
        except Exception as e:
            self.log.warning("final answer synthesis failed: %s", e)
            ctx.add_history(HistoryEntry(step_type="summary", description="final answer", error_message=str(e)))
            if ctx.error is None:
                ctx.set_error(f"final answer synthesis failed: {e}")
            return
        ctx.final_answer = result.content
        ctx.shared_data["final_answer"] = result.content
        ctx.add_history(HistoryEntry(
            step_type="summary",
            description="final answer",
            output=result.content,
            is_success=result.is_success,
            error_message=result.error_message,
        ))
        self._emit(on_chunk, f"[react] final answer: {result.content}\n")
