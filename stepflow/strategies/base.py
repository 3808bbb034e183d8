"""Shared run state and helpers for the iteration strategies."""
from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Callable

from stepflow.core.bindings import BindingContext
from stepflow.core.contracts.execution import StepExecutionResult
from stepflow.core.contracts.functions import ModelContext, ModelResult, ModelRole, StreamChunk
from stepflow.core.contracts.plan import Step
from stepflow.core.contracts.runs import HistoryEntry, PlannedAction, StrategyResult
from stepflow.functions.base import ModelFunction, parse_json_object
from stepflow.orchestrator.plan_executor import PlanExecutor
from stepflow.orchestrator.streaming import relay_chunks

OnChunk = Callable[[str], Any]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class RunContext:
    """Mutable state of one strategy run. Never shared between runs."""

    goal: str
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    is_completed: bool = False
    error: str | None = None
    iterations: int = 0
    final_answer: str | None = None
    shared_data: dict[str, Any] = field(default_factory=dict)
    history: list[HistoryEntry] = field(default_factory=list)
    bindings: BindingContext = field(default_factory=BindingContext)
    started_at: datetime = field(default_factory=_utcnow)
    completed_at: datetime | None = None

    def add_history(self, entry: HistoryEntry) -> None:
        if entry.ended_at is None:
            entry.ended_at = _utcnow()
        self.history.append(entry)

    def set_error(self, message: str) -> None:
        self.error = message

    def history_text(self, limit: int = 2000) -> str:
        lines = []
        for i, h in enumerate(self.history, 1):
            status = "ok" if h.is_success else f"failed: {h.error_message}"
            output = (h.output or "")[:limit]
            lines.append(f"{i}. [{h.step_type}] {h.description} ({status})\n{output}".rstrip())
        return "\n".join(lines) if lines else "(nothing yet)"


def read_is_complete(result: ModelResult | None) -> bool:
    obj = parse_json_object(result)
    if obj is None:
        return False
    value = obj.get("is_complete")
    return value if isinstance(value, bool) else False


def classify_action(action: PlannedAction) -> tuple[str | None, str]:
    """("tool" | "llm" | None, target name) with tool_/llm_ prefixes stripped."""
    kind = action.type.strip().lower()
    name = action.name.strip()
    if kind == "tool" or kind.startswith("tool_"):
        name = name or action.type.strip()[5:]
        if name.lower().startswith("tool_"):
            name = name[5:]
        return "tool", name
    if kind in ("llm", "model", "function") or kind.startswith("llm_"):
        name = name or action.type.strip()[4:]
        if name.lower().startswith("llm_"):
            name = name[4:]
        return "llm", name
    return None, name


class BaseStrategy:
    name: str = ""
    default_max_iterations: int = 10

    def __init__(self, executor: PlanExecutor, max_iterations: int | None = None):
        self.executor = executor
        if max_iterations is None:
            max_iterations = self.default_max_iterations
        if max_iterations < 1:
            raise ValueError(f"max_iterations must be at least 1, got {max_iterations}")
        self.max_iterations = max_iterations
        self.log = logging.getLogger(f"strategy.{self.name}")

    @property
    def functions(self):
        return self.executor.functions

    @property
    def tools(self):
        return self.executor.tools

    async def execute(
        self,
        goal: str,
        session_id: str | None = None,
        bindings: BindingContext | None = None,
        on_chunk: OnChunk | None = None,
    ) -> StrategyResult:
        ctx = RunContext(goal=goal, bindings=bindings if bindings is not None else BindingContext())
        if session_id:
            ctx.session_id = session_id
        self.log.info("%s start (session=%s): %s", self.name, ctx.session_id, goal[:200])
        try:
            await self._run(ctx, on_chunk)
        except Exception as e:
            self.log.exception("%s failed", self.name)
            ctx.set_error(f"strategy error: {e}")
        ctx.completed_at = _utcnow()
        is_success = ctx.is_completed and ctx.error is None
        self.log.info("%s end: success=%s iterations=%d error=%s", self.name, is_success, ctx.iterations, ctx.error)
        return StrategyResult(
            is_success=is_success,
            strategy=self.name,
            goal=goal,
            session_id=ctx.session_id,
            iterations=ctx.iterations,
            final_answer=ctx.final_answer,
            error_message=ctx.error,
            history=ctx.history,
            shared_data=ctx.shared_data,
            started_at=ctx.started_at,
            completed_at=ctx.completed_at,
        )

    async def execute_stream(
        self,
        goal: str,
        session_id: str | None = None,
        bindings: BindingContext | None = None,
    ) -> AsyncIterator[StreamChunk]:
        """Status lines and model output as they happen; the final chunk carries the StrategyResult."""
        async for chunk in relay_chunks(lambda on_chunk: self.execute(goal, session_id, bindings, on_chunk)):
            yield chunk

    async def _run(self, ctx: RunContext, on_chunk: OnChunk | None) -> None:
        raise NotImplementedError

    # --- helpers ---

    def _emit(self, on_chunk: OnChunk | None, text: str) -> None:
        if on_chunk is not None:
            on_chunk(text)

    def _function(self, *roles: ModelRole) -> ModelFunction | None:
        for role in roles:
            f = self.functions.get(role)
            if f is not None:
                return f
        return None

    def available_tools(self) -> str:
        return json.dumps(
            [{"name": t.name, "description": t.description, "category": t.category} for t in self.tools.describe()],
            ensure_ascii=False,
        )

    def available_functions(self) -> str:
        return ", ".join(r.value for r in self.functions.roles())

    def model_context(self, ctx: RunContext, **parameters: Any) -> ModelContext:
        return ModelContext(goal=ctx.goal, parameters=parameters, session_id=ctx.session_id)

    async def run_action(
        self,
        ctx: RunContext,
        action: PlannedAction,
        step_number: int,
        on_chunk: OnChunk | None,
    ) -> StepExecutionResult:
        """Run one planned action through the interpreter's single-step dispatch."""
        kind, target = classify_action(action)
        step = Step(
            step_number=step_number,
            description=f"{action.type}: {action.name}",
            target_name=target,
            parameters=action.parameters_json() if action.parameters else None,
        )
        registry = "function" if kind == "llm" else kind
        return await self.executor.execute_step(step, ctx.bindings, ctx.goal, on_chunk, kind=registry)
