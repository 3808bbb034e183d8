import json
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class HistoryEntry(BaseModel):
    step_type: str
    description: str = ""
    input: str | None = None
    output: str | None = None
    is_success: bool = False
    error_message: str | None = None
    started_at: datetime = Field(default_factory=_utcnow)
    ended_at: datetime | None = None


class PlannedAction(BaseModel):
    type: str
    name: str = ""
    parameters: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_finish(self) -> bool:
        return self.type.strip().lower() == "finish"

    def __str__(self) -> str:
        args = ", ".join(f"{k}={v}" for k, v in self.parameters.items())
        return f"{self.type}:{self.name}({args})"

    def parameters_json(self) -> str:
        return json.dumps(self.parameters, ensure_ascii=False, default=str)


class ThoughtRecord(BaseModel):
    thought: str
    action: PlannedAction
    observation: str = ""


class StrategyResult(BaseModel):
    is_success: bool
    strategy: str
    goal: str
    session_id: str | None = None
    iterations: int = 0
    final_answer: str | None = None
    error_message: str | None = None
    history: list[HistoryEntry] = Field(default_factory=list)
    shared_data: dict[str, Any] = Field(default_factory=dict)
    started_at: datetime = Field(default_factory=_utcnow)
    completed_at: datetime = Field(default_factory=_utcnow)
