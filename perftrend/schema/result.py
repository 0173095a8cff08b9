"""Persisted record models: commits and test results."""

from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional

from perftrend.core.types import LogEntry

from .serialization import make_json_safe


@dataclass(frozen=True)
class CommitRecord:
    commit: str
    message: str
    time: int
    build_failed: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return make_json_safe(asdict(self))

    @classmethod
    def from_log_entry(cls, entry: LogEntry, build_failed: bool = False) -> "CommitRecord":
        return cls(
            commit=entry.hash,
            message="\n".join(entry.message),
            time=int(entry.time.timestamp()),
            build_failed=build_failed,
        )


@dataclass(frozen=True)
class TestResult:
    """Outcome of sampling one test against one commit.

    A failed sample has ``value == 0`` and carries the failure message in ``error``.
    """

    __test__ = False  # not a pytest class

    test_id: str
    commit: str
    value: int = 0
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None

    def to_dict(self) -> Dict[str, Any]:
        return make_json_safe(asdict(self))

