from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from stepflow.core.contracts.functions import ModelRole


class ProviderConfig(BaseModel):
    name: str
    type: str = "openai"  # "openai" is the only wire backend shipped
    models: list[str] = Field(default_factory=lambda: ["gpt-4o-mini"])
    default_model: str | None = None
    api_key_env: str = "OPENAI_API_KEY"
    base_url: str | None = None
    temperature: float = 0.0

    def get_default_model(self) -> str:
        return self.default_model or self.models[0]


class FunctionConfig(BaseModel):
    role: ModelRole
    system_prompt: str | None = None  # overrides the built-in prompt for this role
    model: str | None = None
    streaming: bool = False

    @field_validator("role", mode="before")
    @classmethod
    def _parse_role(cls, value):
        if isinstance(value, str):
            role = ModelRole.parse(value)
            if role is None:
                raise ValueError(f"unknown model role: {value}")
            return role
        return value


class StrategyConfig(BaseModel):
    default: str = "plan_execute"  # "plan_execute" | "react" | "single"
    plan_execute_max_iterations: int = Field(default=10, ge=1)
    react_max_iterations: int = Field(default=15, ge=1)


class ResilienceConfig(BaseModel):
    max_failure_count: int = Field(default=3, ge=1)
    circuit_breaker_timeout_seconds: float = Field(default=60.0, gt=0)


class ToolsConfig(BaseModel):
    enabled: list[str] = Field(default_factory=lambda: ["echo", "ReadFile", "WriteFile", "ListDirectory", "TextTransformer"])
    workspace_root: str = "."


class EngineConfig(BaseModel):
    engine_id: str
    env_file_path: str | None = None
    providers: list[ProviderConfig] = Field(default_factory=list)
    functions: list[FunctionConfig] = Field(default_factory=list)
    strategy: StrategyConfig = Field(default_factory=StrategyConfig)
    resilience: ResilienceConfig = Field(default_factory=ResilienceConfig)
    tools: ToolsConfig = Field(default_factory=ToolsConfig)

    def get_function_config(self, role: ModelRole) -> FunctionConfig | None:
        for f in self.functions:
            if f.role == role:
                return f
        return None

    def get_provider(self, name: str) -> ProviderConfig | None:
        for p in self.providers:
            if p.name == name:
                return p
        return None
