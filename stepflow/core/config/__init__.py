from stepflow.core.config.env import get_env_vars
from stepflow.core.config.loader import load_engine_config
from stepflow.core.config.models import (
    EngineConfig,
    FunctionConfig,
    ProviderConfig,
    ResilienceConfig,
    StrategyConfig,
    ToolsConfig,
)

__all__ = [
    "load_engine_config",
    "EngineConfig",
    "ProviderConfig",
    "FunctionConfig",
    "StrategyConfig",
    "ResilienceConfig",
    "ToolsConfig",
    "get_env_vars",
]
