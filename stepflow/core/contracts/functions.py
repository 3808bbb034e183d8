import json
import uuid
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator


class ModelRole(str, Enum):
    PLANNER = "planner"
    PARAMETER_GENERATOR = "parameter_generator"
    EVALUATOR = "evaluator"
    COMPLETION_CHECKER = "completion_checker"
    REASONER = "reasoner"
    ANALYZER = "analyzer"
    SUMMARIZER = "summarizer"
    GENERATOR = "generator"
    UNIVERSAL = "universal"

    @classmethod
    def parse(cls, name: str | None) -> "ModelRole | None":
        """Accepts "completion_checker", "COMPLETION_CHECKER" or "CompletionChecker"; None if unknown."""
        if not name:
            return None
        key = name.strip().lower().replace("-", "_")
        compact = key.replace("_", "")
        for role in cls:
            if role.value == key or role.value.replace("_", "") == compact:
                return role
        return None


class ModelContext(BaseModel):
    goal: str = ""
    parameters: dict[str, Any] = Field(default_factory=dict)
    execution_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    session_id: str | None = None


class ModelResult(BaseModel):
    role: ModelRole | None = None
    is_success: bool = True
    raw_response: str = ""
    parsed_data: Any = None
    error_message: str | None = None

    @property
    def content(self) -> str:
        if self.raw_response:
            return self.raw_response
        if self.parsed_data is None:
            return ""
        if isinstance(self.parsed_data, BaseModel):
            return self.parsed_data.model_dump_json()
        return json.dumps(self.parsed_data, ensure_ascii=False, default=str)


class StreamChunk(BaseModel):
    content: str = ""
    is_final: bool = False
    parsed_result: Any = None


class ParameterGenerationResult(BaseModel):
    is_valid: bool = True
    parameters: str | None = None
    error_message: str | None = None

    @field_validator("parameters", mode="before")
    @classmethod
    def _serialize(cls, value: Any) -> Any:
        if isinstance(value, (dict, list)):
            return json.dumps(value, ensure_ascii=False)
        return value


class CompletionCheckResult(BaseModel):
    is_complete: bool = False
    reason: str | None = None


class EvaluationResult(BaseModel):
    is_success: bool = True
    is_complete: bool = False
    quality_score: float = 0.0
    assessment: str | None = None
    recommendations: list[str] = Field(default_factory=list)
    error_message: str | None = None
