from stepflow.core.bindings import BindingContext
from stepflow.core.config.loader import load_engine_config
from stepflow.core.config.models import EngineConfig
from stepflow.core.exceptions import (
    AllProvidersFailedError,
    ConfigError,
    ExecutableMismatchError,
    ProviderUnavailableError,
    StructuredOutputError,
)

__all__ = [
    "BindingContext",
    "load_engine_config",
    "EngineConfig",
    "ConfigError",
    "ExecutableMismatchError",
    "ProviderUnavailableError",
    "AllProvidersFailedError",
    "StructuredOutputError",
]
