"""Keep run state (request, plan, result) in process memory."""
from __future__ import annotations

import copy
import threading
import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel


def _dump(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    return value


class InMemorySessionStore:
    def __init__(self):
        self._lock = threading.Lock()
        self._runs: dict[str, dict[str, Any]] = {}
        self._latest: str | None = None

    def create_run(self, goal: str, strategy: str, session_id: str | None = None) -> str:
        run_id = str(uuid.uuid4())
        with self._lock:
            self._runs[run_id] = {
                "run_id": run_id,
                "goal": goal,
                "strategy": strategy,
                "session_id": session_id,
                "status": "running",
                "final_answer": None,
                "error_message": None,
                "created_at": datetime.now(timezone.utc).isoformat(),
                "plan": None,
                "result": None,
            }
            self._latest = run_id
        return run_id

    def save_plan(self, run_id: str, plan: Any) -> None:
        with self._lock:
            self._runs[run_id]["plan"] = _dump(plan)

    def save_result(
        self,
        run_id: str,
        status: str,
        final_answer: str | None = None,
        error_message: str | None = None,
        result: Any = None,
    ) -> None:
        with self._lock:
            run = self._runs[run_id]
            run["status"] = status
            run["final_answer"] = final_answer
            run["error_message"] = error_message
            run["result"] = _dump(result)

    def get_run(self, run_id: str) -> dict[str, Any] | None:
        with self._lock:
            run = self._runs.get(run_id)
            return copy.deepcopy(run) if run else None

    def latest_run_id(self) -> str | None:
        with self._lock:
            return self._latest
