"""Core data models for perftrend."""

from __future__ import annotations

import sys
from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Dict, List


@dataclass(frozen=True)
class ExecutionStats:
    """Resource usage of one child process. Times in nanoseconds, maxRSS in bytes."""

    real_time: int = 0
    user_time: int = 0
    kernel_time: int = 0
    max_rss: int = 0

    @classmethod
    def worst(cls) -> "ExecutionStats":
        """Sentinel that loses every minimum fold."""
        return cls(*(sys.maxsize for _ in fields(cls)))

    def best(self, other: "ExecutionStats") -> "ExecutionStats":
        """Component-wise minimum."""
        return ExecutionStats(
            *(min(getattr(self, f.name), getattr(other, f.name)) for f in fields(self))
        )


@dataclass(frozen=True)
class LogEntry:
    """One commit of the tracked repository."""

    hash: str
    message: List[str] = field(default_factory=list)
    time: datetime = field(default_factory=lambda: datetime.fromtimestamp(0))


@dataclass(frozen=True)
class ScoreFactors:
    # Prefer commits in base 2:
    base2: int = 100  # points per trailing zero

    # Prefer commits which are already built and cached:
    cached: int = 500

    # Prefer recent commits:
    recent_max: int = 1000  # points for the newest commit
    recent_exp: int = 50  # curve exponent

    # Prefer untested commits:
    untested: int = 100  # total budget, awarded in full if never tested

    # Prefer commits between big differences in test results:
    diff_max: int = 1000  # points for a 100% difference
    diff_exact: int = 5  # multiplier for exact tests


@dataclass
class ToDoEntry:
    commit: LogEntry
    score: int
    reasons: Dict[str, int] = field(default_factory=dict)
