from __future__ import annotations

import threading

from stepflow.core.contracts.functions import ModelRole
from stepflow.functions.base import ModelFunction


class FunctionRegistry:
    """Role -> ModelFunction lookup shared by concurrent runs."""

    def __init__(self, functions: list[ModelFunction] | None = None):
        self._lock = threading.Lock()
        self._functions: dict[ModelRole, ModelFunction] = {}
        for f in functions or []:
            self.register(f)

    def register(self, function: ModelFunction) -> None:
        with self._lock:
            self._functions[function.role] = function

    def unregister(self, role: ModelRole | str) -> bool:
        key = role if isinstance(role, ModelRole) else ModelRole.parse(role)
        with self._lock:
            return self._functions.pop(key, None) is not None

    def get(self, role: ModelRole | str | None) -> ModelFunction | None:
        key = role if isinstance(role, ModelRole) else ModelRole.parse(role)
        if key is None:
            return None
        with self._lock:
            return self._functions.get(key)

    def roles(self) -> list[ModelRole]:
        with self._lock:
            return list(self._functions)

    def __contains__(self, role: object) -> bool:
        return self.get(role) is not None  # type: ignore[arg-type]
