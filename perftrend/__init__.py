"""perftrend: continuous performance-regression benchmarking for a compiler toolchain."""

__version__ = "0.1.0"

from .core import ExecutionStats, LogEntry, ScoreFactors, ToDoEntry
from .server import CommitScheduler, ResultStore
from .worker import TrendWorker

__all__ = [
    "ExecutionStats",
    "LogEntry",
    "ScoreFactors",
    "ToDoEntry",
    "CommitScheduler",
    "ResultStore",
    "TrendWorker",
]
