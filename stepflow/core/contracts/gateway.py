from pydantic import BaseModel


class RunRequest(BaseModel):
    goal: str
    strategy: str | None = None  # "plan_execute" | "react" | "single"
    session_id: str | None = None


class RunResponse(BaseModel):
    run_id: str
    status: str  # "completed" | "failed"
    final_answer: str | None = None
    error: str | None = None
    iterations: int = 0
