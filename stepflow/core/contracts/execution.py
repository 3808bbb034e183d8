from datetime import datetime, timezone

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StepExecutionResult(BaseModel):
    step_number: int
    description: str = ""
    target_name: str
    parameters: str | None = None  # bound parameters actually sent to the target
    is_success: bool
    output: str | None = None
    error_message: str | None = None
    execution_time_ms: int = 0
    output_variable: str | None = None


class ExecutionResult(BaseModel):
    is_success: bool
    steps: list[StepExecutionResult] = Field(default_factory=list)
    error_message: str | None = None
    summary: str | None = None
    total_execution_time_ms: int = 0
    started_at: datetime = Field(default_factory=_utcnow)
    completed_at: datetime = Field(default_factory=_utcnow)

    @property
    def successful_steps(self) -> int:
        return sum(1 for s in self.steps if s.is_success)

    @property
    def failed_steps(self) -> int:
        return sum(1 for s in self.steps if not s.is_success)


class ParameterProcessingResult(BaseModel):
    is_success: bool
    processed_parameters: str | None = None
    error_message: str | None = None
