"""Scheduling, persistence and snapshot export."""

from .scheduler import CommitScheduler, format_todo, trailing_zeros
from .snapshot import build_snapshot, load_snapshot, save_snapshot
from .store import ResultStore

__all__ = [
    "CommitScheduler",
    "format_todo",
    "trailing_zeros",
    "build_snapshot",
    "load_snapshot",
    "save_snapshot",
    "ResultStore",
]
