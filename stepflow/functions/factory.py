from __future__ import annotations

from stepflow.core.config.models import EngineConfig
from stepflow.core.contracts.functions import (
    CompletionCheckResult,
    EvaluationResult,
    ModelRole,
    ParameterGenerationResult,
)
from stepflow.functions.base import PromptFunction
from stepflow.functions.prompts import build_prompt
from stepflow.functions.registry import FunctionRegistry
from stepflow.llm.providers import LLMProvider

RESULT_MODELS = {
    ModelRole.PARAMETER_GENERATOR: ParameterGenerationResult,
    ModelRole.EVALUATOR: EvaluationResult,
    ModelRole.COMPLETION_CHECKER: CompletionCheckResult,
}


def build_functions(provider: LLMProvider, config: EngineConfig | None = None) -> FunctionRegistry:
    """One PromptFunction per role; per-role config may override prompt, model and streaming."""
    registry = FunctionRegistry()
    for role in ModelRole:
        fc = config.get_function_config(role) if config else None
        registry.register(PromptFunction(
            role,
            provider,
            build_prompt(role, fc.system_prompt if fc else None),
            result_model=RESULT_MODELS.get(role),
            model=fc.model if fc else None,
            streaming=fc.streaming if fc else False,
        ))
    return registry
