"""
Shared state for a single analysis run.

An ``AnalysisContext`` is created when a strategy starts (or handed in by
the caller to chain strategies), mutated by every step and returned at the
end.  Values are JSON-like: dicts, lists, strings, numbers, booleans, None.
"""

from __future__ import annotations

import copy
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from .errors import MissingContextKeyError


@dataclass
class AnalysisMetadata:
    model_name: str = ""
    provider_name: str = ""
    total_steps: int = 0
    files_read: List[str] = field(default_factory=list)
    tokens_used: int = 0


@dataclass
class AnalysisContext:
    """Named values produced by the steps of one run, plus run metadata.

    Keys may be overwritten but are never removed.  Lookups with ``get``
    treat a missing key as "no prior data"; ``require`` is for steps that
    cannot proceed without it.
    """

    request: str
    data: Dict[str, Any] = field(default_factory=dict)
    metadata: AnalysisMetadata = field(default_factory=AnalysisMetadata)

    def set(self, key: str, value: Any) -> None:
        self.data[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def require(self, key: str) -> Any:
        if key not in self.data:
            raise MissingContextKeyError(key)
        return self.data[key]

    def keys(self) -> List[str]:
        return list(self.data.keys())

    def __contains__(self, key: object) -> bool:
        return key in self.data

    def to_dict(self) -> Dict[str, Any]:
        """Return a deep, JSON-ready snapshot of the context."""
        return {
            "request": self.request,
            "data": copy.deepcopy(self.data),
            "metadata": asdict(self.metadata),
        }

    @classmethod
    def seeded(cls, request: str, values: Optional[Dict[str, Any]] = None) -> "AnalysisContext":
        context = cls(request)
        for key, value in (values or {}).items():
            context.set(key, value)
        return context
