"""Shared serialization helpers for schema objects."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any


def make_json_safe(obj: Any, depth: int = 0, max_depth: int = 10) -> Any:
    """Recursively convert objects to JSON-serializable forms."""
    if depth > max_depth:
        return str(obj)
    if obj is None or isinstance(obj, (str, int, float, bool)):
        return obj
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, datetime):
        return int(obj.timestamp())
    if isinstance(obj, dict):
        return {str(k): make_json_safe(v, depth + 1, max_depth) for k, v in obj.items()}
    if isinstance(obj, (list, tuple, set)):
        return [make_json_safe(x, depth + 1, max_depth) for x in obj]
    return str(obj)
