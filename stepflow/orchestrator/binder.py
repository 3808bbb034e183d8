"""Bind a step's parameter template against the run's variables."""
from __future__ import annotations

import json
import logging
import re
from typing import Any, Callable

from pydantic import BaseModel, ValidationError

from stepflow.core.bindings import BindingContext
from stepflow.core.contracts.execution import ParameterProcessingResult
from stepflow.core.contracts.functions import (
    ModelContext,
    ModelResult,
    ModelRole,
    ParameterGenerationResult,
)
from stepflow.functions.registry import FunctionRegistry
from stepflow.tools.base import Tool

log = logging.getLogger("binder")

# {var}, {var.prop}, {var[0]}, {var.prop[0]}
PLACEHOLDER = re.compile(r"\{([A-Za-z_]\w*)(?:\.([A-Za-z_]\w*))?(?:\[(\d+)\])?\}")

# tried in order when a whole JSON object is substituted; compared lowercased without underscores
CONTENT_KEYS = ("transformedtext", "content", "output", "result", "data")
# tried in order when an index is applied to a JSON object
ARRAY_KEYS = ("files", "items", "data", "results", "list")

_MISSING = object()


def _as_json(value: Any) -> Any:
    """The JSON structure carried by `value`, or _MISSING."""
    if isinstance(value, (dict, list)):
        return value
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, str):
        text = value.strip()
        if text[:1] in ("{", "["):
            try:
                return json.loads(text)
            except json.JSONDecodeError:
                return _MISSING
    return _MISSING


def _norm(key: str) -> str:
    return key.lower().replace("_", "")


def _get_ci(obj: dict, key: str) -> Any:
    if key in obj:
        return obj[key]
    lowered = key.lower()
    for k, v in obj.items():
        if k.lower() == lowered:
            return v
    return _MISSING


def _first_key(obj: dict, candidates: tuple[str, ...], want_list: bool = False) -> Any:
    normalized = {_norm(k): v for k, v in reversed(list(obj.items()))}
    for name in candidates:
        v = normalized.get(name, _MISSING)
        if v is _MISSING:
            continue
        if want_list and not isinstance(v, list):
            continue
        return v
    return _MISSING


def _render(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, BaseModel):
        return value.model_dump_json()
    return json.dumps(value, ensure_ascii=False, default=str)


def resolve_placeholder(bindings: BindingContext, name: str, prop: str | None, index: str | None) -> Any:
    """Value for one placeholder, or _MISSING to leave it verbatim."""
    if name not in bindings:
        return _MISSING
    value = bindings.get(name)

    if prop:
        data = _as_json(value)
        if not isinstance(data, dict):
            return _MISSING
        value = _get_ci(data, prop)
        if value is _MISSING:
            return _MISSING
    elif index is None:
        data = _as_json(value)
        if isinstance(data, dict):
            picked = _first_key(data, CONTENT_KEYS)
            return value if picked is _MISSING else picked
        return value

    if index is not None:
        data = _as_json(value)
        if isinstance(data, dict):
            data = _first_key(data, ARRAY_KEYS, want_list=True)
        if not isinstance(data, list):
            return _MISSING
        i = int(index)
        if i >= len(data):
            return _MISSING
        value = data[i]
    return value


def substitute(template: str | None, bindings: BindingContext) -> str | None:
    """Replace placeholders in one left-to-right pass; unresolved ones stay as written."""
    if not template:
        return template
    escape = template.lstrip().startswith("{") and '"' in template

    def repl(m: re.Match) -> str:
        value = resolve_placeholder(bindings, m.group(1), m.group(2), m.group(3))
        if value is _MISSING:
            return m.group(0)
        text = _render(value)
        if escape:
            text = json.dumps(text, ensure_ascii=False)[1:-1]
        return text

    return PLACEHOLDER.sub(repl, template)


def is_valid_parameters(parameters: str | None) -> bool:
    if parameters is None or not parameters.strip():
        return False
    text = parameters.strip()
    if text[0] in ("{", "["):
        try:
            json.loads(text)
        except json.JSONDecodeError:
            return False
    return True


class ParameterBinder:
    """Substitution, validation, then model-generated parameters as a fallback."""

    def __init__(self, functions: FunctionRegistry | None = None):
        self.functions = functions

    async def process(
        self,
        tool: Tool | None,
        raw_parameters: str | None,
        goal: str,
        step_description: str,
        bindings: BindingContext,
        on_chunk: Callable[[str], Any] | None = None,
    ) -> ParameterProcessingResult:
        substituted = substitute(raw_parameters, bindings)
        if tool is None or not tool.contract.requires_parameters:
            return ParameterProcessingResult(is_success=True, processed_parameters=substituted)
        if is_valid_parameters(substituted):
            return ParameterProcessingResult(is_success=True, processed_parameters=substituted)

        log.info("parameters for %s invalid after substitution, generating: %r", tool.name, (substituted or "")[:120])
        return await self._generate(tool, goal, step_description, bindings, on_chunk)

    async def _generate(
        self,
        tool: Tool,
        goal: str,
        step_description: str,
        bindings: BindingContext,
        on_chunk: Callable[[str], Any] | None,
    ) -> ParameterProcessingResult:
        generator = self.functions.get(ModelRole.PARAMETER_GENERATOR) if self.functions else None
        if generator is None:
            return ParameterProcessingResult(
                is_success=False,
                error_message=f"invalid parameters for {tool.name} and no parameter generator is registered",
            )
        context = ModelContext(
            goal=goal,
            parameters={
                "tool_name": tool.name,
                "input_schema": tool.contract.input_schema,
                "step_description": step_description,
                "bindings": bindings.to_json(),
            },
        )
        result: ModelResult | None = None
        if generator.supports_streaming and on_chunk is not None:
            async for chunk in generator.execute_stream(context):
                if chunk.content:
                    on_chunk(chunk.content)
                if chunk.is_final and isinstance(chunk.parsed_result, ModelResult):
                    result = chunk.parsed_result
        else:
            result = await generator.execute(context)

        generated = _generation_result(result)
        if generated is None or not generated.is_valid:
            reason = (generated.error_message if generated else None) or (result.error_message if result else None)
            return ParameterProcessingResult(
                is_success=False,
                error_message=f"parameter generation failed for {tool.name}: {reason or 'no result'}",
            )
        log.info("generated parameters for %s: %s", tool.name, (generated.parameters or "")[:120])
        return ParameterProcessingResult(is_success=True, processed_parameters=generated.parameters)


def _generation_result(result: ModelResult | None) -> ParameterGenerationResult | None:
    if result is None or not result.is_success:
        return None
    data = result.parsed_data
    if isinstance(data, ParameterGenerationResult):
        return data
    if isinstance(data, dict):
        try:
            return ParameterGenerationResult.model_validate(data)
        except ValidationError:
            return None
    return None
