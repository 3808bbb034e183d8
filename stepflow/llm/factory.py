from __future__ import annotations

import logging
import os

from langchain_openai import ChatOpenAI

from stepflow.core.config.models import EngineConfig, ProviderConfig
from stepflow.core.exceptions import ConfigError
from stepflow.llm.providers import LangChainProvider
from stepflow.llm.resilient import ResilientProvider

log = logging.getLogger("llm.factory")


def _build_openai(cfg: ProviderConfig) -> LangChainProvider:
    api_key = os.environ.get(cfg.api_key_env)
    if not api_key:
        log.warning("provider %s: %s is not set", cfg.name, cfg.api_key_env)
    models = {}
    for model in cfg.models:
        kwargs = {"model": model, "temperature": cfg.temperature}
        if api_key:
            kwargs["api_key"] = api_key
        if cfg.base_url:
            kwargs["base_url"] = cfg.base_url
        models[model] = ChatOpenAI(**kwargs)
    return LangChainProvider(cfg.name, models, default_model=cfg.get_default_model())


def build_provider(config: EngineConfig) -> ResilientProvider:
    """Build one backend per configured provider and wrap them in a ResilientProvider."""
    if not config.providers:
        raise ConfigError("no providers configured")
    backends = []
    for cfg in config.providers:
        if cfg.type != "openai":
            raise ConfigError(f"provider {cfg.name}: unsupported type {cfg.type!r}")
        backends.append(_build_openai(cfg))
    return ResilientProvider(
        backends,
        max_failure_count=config.resilience.max_failure_count,
        circuit_breaker_timeout=config.resilience.circuit_breaker_timeout_seconds,
    )
