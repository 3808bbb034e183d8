"""Per-run variable store threading step outputs into later steps' parameters."""
from __future__ import annotations

import json
from typing import Any, Iterator

from pydantic import BaseModel


class BindingContext:
    """String-keyed values produced by completed steps of one run.

    Owned by a single run; never share an instance between concurrent runs.
    """

    def __init__(self, initial: dict[str, Any] | None = None):
        self._values: dict[str, Any] = dict(initial or {})

    def get(self, name: str, default: Any = None) -> Any:
        return self._values.get(name, default)

    def set(self, name: str, value: Any) -> None:
        if not name:
            raise ValueError("variable name must be non-empty")
        self._values[name] = value

    def __contains__(self, name: object) -> bool:
        return name in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def snapshot(self) -> dict[str, Any]:
        return dict(self._values)

    def to_json(self, indent: int | None = 2) -> str:
        return json.dumps(self._values, ensure_ascii=False, indent=indent, default=_json_default)

    def __repr__(self) -> str:
        return f"BindingContext({sorted(self._values)})"


def _json_default(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    return str(value)
