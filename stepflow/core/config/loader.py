import json
from pathlib import Path

from stepflow.core.config.env import load_env_from_path, resolve_path
from stepflow.core.config.models import EngineConfig
from stepflow.core.exceptions import ConfigError


def _check_engine(config: EngineConfig, path: Path) -> None:
    if not config.providers:
        raise ConfigError(f"No providers configured in {path}")
    names = [p.name for p in config.providers]
    if len(names) != len(set(names)):
        raise ConfigError(f"Duplicate provider names in {path}: {names}")
    served = {m for p in config.providers for m in p.models}
    for f in config.functions:
        if f.model and f.model not in served:
            raise ConfigError(f"Function {f.role.value} uses model {f.model!r}, which no provider serves ({path})")


def load_engine_config(config_path: str | Path, project_root: Path | None = None) -> EngineConfig:
    """Read and validate the engine config. Relative paths (config, env file, workspace) resolve against `project_root`."""
    root = project_root or Path.cwd()
    path = resolve_path(config_path, root)
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {path}: {e}") from e
    try:
        config = EngineConfig.model_validate(data)
    except Exception as e:
        raise ConfigError(f"Invalid config schema in {path}: {e}") from e
    _check_engine(config, path)
    config.tools.workspace_root = str(resolve_path(config.tools.workspace_root, root))
    load_env_from_path(config.env_file_path, root)
    return config
