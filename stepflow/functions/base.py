from __future__ import annotations

import json
import logging
from typing import Any, AsyncIterator

from langchain_core.exceptions import OutputParserException
from langchain_core.messages import BaseMessage
from langchain_core.output_parsers import JsonOutputParser
from langchain_core.prompts import ChatPromptTemplate
from pydantic import BaseModel

from stepflow.core.contracts.functions import ModelContext, ModelResult, ModelRole, StreamChunk
from stepflow.core.exceptions import StructuredOutputError
from stepflow.llm.providers import LLMProvider, parse_structured

log = logging.getLogger("functions")


class ModelFunction:
    """A generative-model invocation registered under a role.

    `execute_stream` yields content chunks and ends with one `is_final` chunk whose
    `parsed_result` is the complete `ModelResult`.
    """

    role: ModelRole = ModelRole.UNIVERSAL
    supports_streaming: bool = False

    async def execute(self, context: ModelContext) -> ModelResult:
        raise NotImplementedError

    async def execute_stream(self, context: ModelContext) -> AsyncIterator[StreamChunk]:
        result = await self.execute(context)
        yield StreamChunk(content=result.raw_response, is_final=True, parsed_result=result)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.role.value}>"


class PromptFunction(ModelFunction):
    """Renders a ChatPromptTemplate from the context and sends it through an LLMProvider.

    With `result_model`, the reply is parsed into that pydantic model and a parse failure gives an
    unsuccessful result. Without it, a JSON object or array reply is exposed as `parsed_data`.
    """

    def __init__(
        self,
        role: ModelRole,
        provider: LLMProvider,
        prompt: ChatPromptTemplate,
        result_model: type[BaseModel] | None = None,
        model: str | None = None,
        streaming: bool = False,
    ):
        self.role = role
        self.provider = provider
        self.prompt = prompt
        self.result_model = result_model
        self.model = model
        self.supports_streaming = streaming

    def _values(self, context: ModelContext) -> dict[str, str]:
        values = {}
        for var in self.prompt.input_variables:
            if var == "goal":
                values[var] = context.goal
            elif var == "parameters":
                values[var] = _to_text(context.parameters)
            else:
                values[var] = _to_text(context.parameters.get(var, ""))
        return values

    def render(self, context: ModelContext) -> str:
        """The prompt flattened to text, for logs and inspection."""
        return self.prompt.format(**self._values(context))

    def messages(self, context: ModelContext) -> list[BaseMessage]:
        return self.prompt.format_messages(**self._values(context))

    def _result(self, raw: str) -> ModelResult:
        if self.result_model is not None:
            try:
                parsed = parse_structured(raw, self.result_model)
            except StructuredOutputError as e:
                log.warning("%s: %s", self.role.value, e)
                return ModelResult(role=self.role, is_success=False, raw_response=raw, error_message=str(e))
            return ModelResult(role=self.role, raw_response=raw, parsed_data=parsed)
        return ModelResult(role=self.role, raw_response=raw, parsed_data=_loose_json(raw))

    async def execute(self, context: ModelContext) -> ModelResult:
        messages = self.messages(context)
        log.debug("%s prompt: %s", self.role.value, str(messages[-1].content)[:200])
        raw = await self.provider.generate(messages, self.model)
        return self._result(raw)

    async def execute_stream(self, context: ModelContext) -> AsyncIterator[StreamChunk]:
        if not self.supports_streaming:
            async for chunk in super().execute_stream(context):
                yield chunk
            return
        parts: list[str] = []
        async for text in self.provider.generate_stream(self.messages(context), self.model):
            parts.append(text)
            yield StreamChunk(content=text)
        yield StreamChunk(is_final=True, parsed_result=self._result("".join(parts)))


def _to_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, BaseModel):
        return value.model_dump_json(indent=2)
    return json.dumps(value, ensure_ascii=False, indent=2, default=str)


def _loose_json(raw: str) -> Any:
    try:
        data = JsonOutputParser().parse(raw)
    except OutputParserException:
        return None
    return data if isinstance(data, (dict, list)) else None


def parse_json_object(result: ModelResult | None) -> dict | None:
    """A model reply as a JSON object, or None. Accepts markdown-fenced JSON."""
    if result is None:
        return None
    data = result.parsed_data
    if isinstance(data, BaseModel):
        return data.model_dump()
    if isinstance(data, dict):
        return data
    text = result.content
    if not text or not text.strip():
        return None
    try:
        parsed = JsonOutputParser().parse(text)
    except OutputParserException:
        return None
    return parsed if isinstance(parsed, dict) else None
