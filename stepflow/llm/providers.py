"""Invocation backends: the `LLMProvider` contract and a langchain chat-model implementation."""
from __future__ import annotations

from typing import AsyncIterator, Sequence, TypeVar, Union

from langchain_core.exceptions import OutputParserException
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import BaseMessage
from langchain_core.output_parsers import JsonOutputParser
from pydantic import BaseModel, ValidationError

from stepflow.core.exceptions import StructuredOutputError

T = TypeVar("T", bound=BaseModel)

# plain text, or chat messages that keep their system / human roles
Prompt = Union[str, Sequence[BaseMessage]]


def check_prompt(prompt: Prompt) -> None:
    if isinstance(prompt, str):
        empty = not prompt.strip()
    else:
        empty = not any(str(m.content).strip() for m in prompt)
    if empty:
        raise ValueError("prompt must be non-empty")


class LLMProvider:
    """One model-invocation backend. Subclasses implement generate / generate_stream / count_tokens."""

    name: str = ""

    @property
    def supported_models(self) -> list[str]:
        return []

    @property
    def default_model(self) -> str:
        return self.supported_models[0] if self.supported_models else ""

    def supports_model(self, model: str | None) -> bool:
        return model is None or model in self.supported_models

    async def generate(self, prompt: Prompt, model: str | None = None) -> str:
        raise NotImplementedError

    async def generate_stream(self, prompt: Prompt, model: str | None = None) -> AsyncIterator[str]:
        raise NotImplementedError
        yield  # pragma: no cover

    async def generate_structured(self, prompt: Prompt, result_type: type[T], model: str | None = None) -> T:
        text = await self.generate(prompt, model)
        return parse_structured(text, result_type)

    async def count_tokens(self, text: str, model: str | None = None) -> int:
        raise NotImplementedError

    async def is_available(self) -> bool:
        return True

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r}>"


def parse_structured(text: str, result_type: type[T]) -> T:
    """Parse a model reply (optionally fenced in markdown) into `result_type`."""
    parser = JsonOutputParser(pydantic_object=result_type)
    try:
        data = parser.parse(text)
        return result_type.model_validate(data)
    except (OutputParserException, ValidationError) as e:
        raise StructuredOutputError(f"cannot parse {result_type.__name__} from model output: {e}") from e


class LangChainProvider(LLMProvider):
    """Backend over langchain chat models keyed by model name (the first is the default)."""

    def __init__(self, name: str, chat_models: dict[str, BaseChatModel], default_model: str | None = None):
        if not chat_models:
            raise ValueError(f"provider {name!r} needs at least one chat model")
        self.name = name
        self._chat_models = dict(chat_models)
        self._default_model = default_model or next(iter(self._chat_models))

    @property
    def supported_models(self) -> list[str]:
        return list(self._chat_models)

    @property
    def default_model(self) -> str:
        return self._default_model

    def _chat(self, model: str | None) -> BaseChatModel:
        key = model or self._default_model
        chat = self._chat_models.get(key)
        if chat is None:
            raise ValueError(f"model {key!r} is not served by provider {self.name!r}")
        return chat

    async def generate(self, prompt: Prompt, model: str | None = None) -> str:
        check_prompt(prompt)
        out = await self._chat(model).ainvoke(prompt)
        return out.content if hasattr(out, "content") else str(out)

    async def generate_stream(self, prompt: Prompt, model: str | None = None) -> AsyncIterator[str]:
        check_prompt(prompt)
        async for chunk in self._chat(model).astream(prompt):
            text = chunk.content if hasattr(chunk, "content") else str(chunk)
            if text:
                yield text

    async def count_tokens(self, text: str, model: str | None = None) -> int:
        return self._chat(model).get_num_tokens(text)
