import json
from pathlib import Path

import pytest

from stepflow.core.config import EngineConfig, FunctionConfig, get_env_vars, load_engine_config
from stepflow.core.config.env import load_env_from_path
from stepflow.core.contracts import ModelRole
from stepflow.core.exceptions import ConfigError
from stepflow.llm.factory import build_provider


def _write(path, data):
    path.write_text(json.dumps(data) if not isinstance(data, str) else data, encoding="utf-8")
    return path


def test_loads_config_relative_to_project_root(tmp_path):
    _write(tmp_path / "engine.json", {
        "engine_id": "test",
        "providers": [{"name": "openai", "models": ["gpt-4o-mini"]}],
        "functions": [{"role": "CompletionChecker", "streaming": True}],
        "strategy": {"default": "react", "react_max_iterations": 4},
    })
    config = load_engine_config("engine.json", project_root=tmp_path)
    assert config.engine_id == "test"
    assert config.strategy.default == "react"
    assert config.strategy.react_max_iterations == 4
    assert config.get_function_config(ModelRole.COMPLETION_CHECKER).streaming
    assert config.get_function_config(ModelRole.PLANNER) is None
    assert config.get_provider("openai").get_default_model() == "gpt-4o-mini"
    assert config.resilience.max_failure_count == 3
    assert config.tools.workspace_root == str(tmp_path)


def test_missing_file(tmp_path):
    with pytest.raises(ConfigError, match="not found"):
        load_engine_config(tmp_path / "nope.json")


def test_invalid_json(tmp_path):
    path = _write(tmp_path / "engine.json", "{not json")
    with pytest.raises(ConfigError, match="Invalid JSON"):
        load_engine_config(path)


def test_invalid_schema(tmp_path):
    path = _write(tmp_path / "engine.json", {"engine_id": "x", "functions": [{"role": "wizard"}]})
    with pytest.raises(ConfigError, match="Invalid config schema"):
        load_engine_config(path)


def test_shipped_sample_config_is_valid():
    root = Path(__file__).resolve().parents[1]
    config = load_engine_config("config/engine.json", project_root=root)
    assert config.providers
    assert "http_request" in config.tools.enabled


@pytest.mark.parametrize("name,role", [
    ("completion_checker", ModelRole.COMPLETION_CHECKER),
    ("COMPLETION_CHECKER", ModelRole.COMPLETION_CHECKER),
    ("CompletionChecker", ModelRole.COMPLETION_CHECKER),
    ("parameter-generator", ModelRole.PARAMETER_GENERATOR),
    ("planner", ModelRole.PLANNER),
    ("wizard", None),
    ("", None),
])
def test_role_parsing(name, role):
    assert ModelRole.parse(name) is role


def test_function_config_rejects_unknown_role():
    with pytest.raises(ValueError):
        FunctionConfig(role="wizard")


def test_build_provider_requires_providers():
    with pytest.raises(ConfigError):
        build_provider(EngineConfig(engine_id="x"))


def test_build_provider_rejects_unknown_type():
    config = EngineConfig(engine_id="x", providers=[{"name": "local", "type": "carrier-pigeon"}])
    with pytest.raises(ConfigError, match="unsupported type"):
        build_provider(config)


def test_build_provider_wraps_backends(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    config = EngineConfig(engine_id="x", providers=[
        {"name": "primary", "models": ["gpt-4o-mini"]},
        {"name": "backup", "models": ["gpt-4o"], "base_url": "http://localhost:9999/v1"},
    ])
    provider = build_provider(config)
    assert provider.name == "Resilient[primary,backup]"
    assert provider.supported_models == ["gpt-4o-mini", "gpt-4o"]


def test_env_file_does_not_override_existing_variables(tmp_path, monkeypatch):
    monkeypatch.setenv("STEPFLOW_TEST_KEEP", "from-shell")
    monkeypatch.delenv("STEPFLOW_TEST_NEW", raising=False)
    _write(tmp_path / ".env", "STEPFLOW_TEST_KEEP=from-file\nSTEPFLOW_TEST_NEW=loaded\n")
    env = get_env_vars(".env", project_root=tmp_path)
    assert env["STEPFLOW_TEST_KEEP"] == "from-shell"
    assert env["STEPFLOW_TEST_NEW"] == "loaded"
    monkeypatch.delenv("STEPFLOW_TEST_NEW")


@pytest.mark.parametrize("data,message", [
    ({"engine_id": "x"}, "No providers"),
    ({"engine_id": "x", "providers": [{"name": "a"}, {"name": "a"}]}, "Duplicate provider names"),
    ({"engine_id": "x", "providers": [{"name": "a", "models": ["small"]}],
      "functions": [{"role": "planner", "model": "large"}]}, "no provider serves"),
])
def test_engine_checks(tmp_path, data, message):
    path = _write(tmp_path / "engine.json", data)
    with pytest.raises(ConfigError, match=message):
        load_engine_config(path)


def test_absolute_workspace_root_is_kept(tmp_path):
    workspace = tmp_path / "ws"
    _write(tmp_path / "engine.json", {
        "engine_id": "x",
        "providers": [{"name": "a"}],
        "tools": {"workspace_root": str(workspace)},
    })
    config = load_engine_config(tmp_path / "engine.json")
    assert config.tools.workspace_root == str(workspace)


def test_missing_env_file_is_skipped(tmp_path):
    assert not load_env_from_path("missing.env", tmp_path)
    assert not load_env_from_path(None, tmp_path)
