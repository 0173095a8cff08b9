"""perftrend core primitives."""

from .types import ExecutionStats, LogEntry, ScoreFactors, ToDoEntry
from .registry import Registry

__all__ = [
    "ExecutionStats",
    "LogEntry",
    "ScoreFactors",
    "ToDoEntry",
    "Registry",
]
