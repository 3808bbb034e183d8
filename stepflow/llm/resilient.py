"""Failover across interchangeable invocation backends with a per-backend circuit breaker."""
from __future__ import annotations

import asyncio
import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import AsyncIterator, Awaitable, Callable, TypeVar

from pydantic import BaseModel

from stepflow.core.exceptions import AllProvidersFailedError, ProviderUnavailableError
from stepflow.llm.providers import LLMProvider, Prompt, check_prompt

log = logging.getLogger("llm.resilient")

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)

DEFAULT_MAX_FAILURE_COUNT = 3
DEFAULT_BREAKER_TIMEOUT_SECONDS = 60.0


@dataclass
class _BreakerState:
    is_open: bool = False
    failure_count: int = 0
    last_failure_time: float = float("-inf")
    last_success_time: float | None = None


def estimate_tokens(text: str) -> int:
    return math.ceil(len(text.split()) * 1.3)


class ResilientProvider(LLMProvider):
    """Presents several backends as one. Breaker state lives in a lock-guarded map keyed by backend name."""

    def __init__(
        self,
        providers: list[LLMProvider],
        max_failure_count: int = DEFAULT_MAX_FAILURE_COUNT,
        circuit_breaker_timeout: float = DEFAULT_BREAKER_TIMEOUT_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._providers = list(providers or [])
        if not self._providers:
            raise ValueError("ResilientProvider needs at least one provider")
        self._max_failure_count = max_failure_count
        self._timeout = circuit_breaker_timeout
        self._clock = clock
        self._lock = threading.Lock()
        self._breakers = {p.name: _BreakerState() for p in self._providers}
        self.name = f"Resilient[{','.join(p.name for p in self._providers)}]"
        log.info("%s ready with %d providers", self.name, len(self._providers))

    @property
    def supported_models(self) -> list[str]:
        seen: list[str] = []
        for p in self._providers:
            for m in p.supported_models:
                if m not in seen:
                    seen.append(m)
        return seen

    @property
    def default_model(self) -> str:
        eligible = self._eligible()
        return (eligible[0] if eligible else self._providers[0]).default_model

    # --- breaker bookkeeping ---

    def _eligible(self, model: str | None = None) -> list[LLMProvider]:
        now = self._clock()
        result = []
        with self._lock:
            for p in self._providers:
                if model is not None and not p.supports_model(model):
                    continue
                state = self._breakers[p.name]
                if state.is_open:
                    if now - state.last_failure_time > self._timeout:
                        state.is_open = False
                        log.info("circuit half-open: %s", p.name)
                    else:
                        continue
                result.append(p)
        return result

    def _record_failure(self, name: str) -> None:
        with self._lock:
            state = self._breakers[name]
            state.failure_count += 1
            state.last_failure_time = self._clock()
            if state.failure_count >= self._max_failure_count and not state.is_open:
                state.is_open = True
                log.warning("circuit opened: %s (failures=%d)", name, state.failure_count)

    def _record_success(self, name: str) -> None:
        with self._lock:
            state = self._breakers[name]
            was_open = state.failure_count >= self._max_failure_count
            state.is_open = False
            state.failure_count = 0
            state.last_success_time = self._clock()
        if was_open:
            log.info("circuit closed: %s", name)

    def is_open(self, name: str) -> bool:
        """Whether `name` is currently skipped (open and still within the timeout)."""
        now = self._clock()
        with self._lock:
            state = self._breakers[name]
            return state.is_open and now - state.last_failure_time <= self._timeout

    def failure_count(self, name: str) -> int:
        with self._lock:
            return self._breakers[name].failure_count

    def _require_eligible(self, model: str | None) -> list[LLMProvider]:
        eligible = self._eligible(model)
        if not eligible:
            names = ", ".join(p.name for p in self._providers)
            raise ProviderUnavailableError(f"no provider available (model={model}): {names}")
        return eligible

    async def _failover(self, op: str, model: str | None, call: Callable[[LLMProvider], Awaitable[T]]) -> T:
        eligible = self._require_eligible(model)
        last_error: Exception | None = None
        for p in eligible:
            try:
                log.debug("%s via %s (model=%s)", op, p.name, model)
                result = await call(p)
            except Exception as e:
                last_error = e
                log.warning("%s failed on %s, trying next provider: %s", op, p.name, e)
                self._record_failure(p.name)
                continue
            self._record_success(p.name)
            return result
        attempted = [p.name for p in eligible]
        log.error("%s failed on every provider: %s", op, ", ".join(attempted))
        raise AllProvidersFailedError(
            f"{op} failed on every available provider: {', '.join(attempted)}", attempted=attempted
        ) from last_error

    # --- invocation contract ---

    async def generate(self, prompt: Prompt, model: str | None = None) -> str:
        check_prompt(prompt)
        return await self._failover("generate", model, lambda p: p.generate(prompt, model))

    async def generate_structured(self, prompt: Prompt, result_type: type[M], model: str | None = None) -> M:
        check_prompt(prompt)
        return await self._failover(
            "generate_structured", model, lambda p: p.generate_structured(prompt, result_type, model)
        )

    async def generate_stream(self, prompt: Prompt, model: str | None = None) -> AsyncIterator[str]:
        check_prompt(prompt)
        eligible = self._require_eligible(model)
        last_error: Exception | None = None
        for p in eligible:
            emitted = False
            try:
                async for chunk in p.generate_stream(prompt, model):
                    emitted = True
                    yield chunk
            except Exception as e:
                self._record_failure(p.name)
                if emitted:
                    # output already reached the caller: no failover after the first chunk
                    raise AllProvidersFailedError(
                        f"stream from {p.name} failed mid-response: {e}", attempted=[p.name]
                    ) from e
                last_error = e
                log.warning("stream failed on %s before first chunk, trying next provider: %s", p.name, e)
                continue
            if emitted:
                self._record_success(p.name)
                return
            log.warning("stream from %s produced no output, trying next provider", p.name)
        attempted = [p.name for p in eligible]
        raise AllProvidersFailedError(
            f"generate_stream failed on every available provider: {', '.join(attempted)}", attempted=attempted
        ) from last_error

    async def count_tokens(self, text: str, model: str | None = None) -> int:
        eligible = self._eligible()
        for p in eligible:
            try:
                return await p.count_tokens(text, model)
            except Exception as e:
                log.warning("count_tokens failed on %s: %s", p.name, e)
        log.warning("count_tokens failed on every provider, using estimate")
        return estimate_tokens(text)

    async def is_available(self) -> bool:
        results = await asyncio.gather(*(self._check(p) for p in self._providers))
        return any(results)

    async def _check(self, provider: LLMProvider) -> bool:
        try:
            available = await provider.is_available()
        except Exception as e:
            log.warning("availability check failed on %s: %s", provider.name, e)
            self._record_failure(provider.name)
            return False
        if available:
            self._record_success(provider.name)
        return available
