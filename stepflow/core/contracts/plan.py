import json
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator


class Step(BaseModel):
    step_number: int
    description: str = ""
    target_name: str
    parameters: str | None = None  # template, may contain {var} / {var.prop[i]} placeholders
    output_variable: str | None = None

    @field_validator("parameters", mode="before")
    @classmethod
    def _serialize_structured_parameters(cls, value: Any) -> Any:
        # Planners often emit the parameter template as a JSON object rather than a string
        if isinstance(value, (dict, list)):
            return json.dumps(value, ensure_ascii=False)
        return value


class Plan(BaseModel):
    is_executable: bool = True
    execution_blocker: str | None = None
    summary: str | None = None
    steps: list[Step] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_invariants(self) -> "Plan":
        if not self.is_executable and not (self.execution_blocker or "").strip():
            raise ValueError("a non-executable plan must carry an execution_blocker")
        numbers = [s.step_number for s in self.steps]
        if len(numbers) != len(set(numbers)):
            raise ValueError(f"step numbers must be unique, got {numbers}")
        return self

    def ordered_steps(self) -> list[Step]:
        return sorted(self.steps, key=lambda s: s.step_number)
