"""Synthesize a final answer from step results using the summarizer role."""
from __future__ import annotations

import logging

from stepflow.core.contracts.execution import StepExecutionResult
from stepflow.core.contracts.functions import ModelContext, ModelRole
from stepflow.functions.registry import FunctionRegistry

log = logging.getLogger("reporter")


def format_step_results(step_results: list[StepExecutionResult], max_output: int = 4000) -> str:
    parts = []
    for sr in step_results:
        out = sr.output if sr.is_success else f"FAILED: {sr.error_message}"
        out = out or ""
        if len(out) > max_output:
            out = out[:max_output] + "…"
        parts.append(f"Step {sr.step_number} ({sr.target_name}): {out}")
    return "\n\n".join(parts)


def last_output(step_results: list[StepExecutionResult]) -> str | None:
    for sr in reversed(step_results):
        if sr.is_success and sr.output:
            return sr.output
    return None


async def synthesize_final_answer(goal: str, step_results: list[StepExecutionResult], functions: FunctionRegistry) -> str | None:
    """Summarizer over the formatted results; without one, the last successful output."""
    summarizer = functions.get(ModelRole.SUMMARIZER)
    if summarizer is None or not step_results:
        return last_output(step_results)
    result = await summarizer.execute(ModelContext(goal=goal, parameters={"results": format_step_results(step_results)}))
    if not result.is_success:
        log.warning("summarizer failed: %s", result.error_message)
        return last_output(step_results)
    return result.content
