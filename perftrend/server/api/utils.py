"""Utility functions for the perftrend API server."""

import logging
from datetime import datetime, timezone
from typing import Any, Dict

import psutil

from perftrend.server.store import ResultStore

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def format_timestamp(dt: datetime) -> str:
    return dt.isoformat() + "Z"


def get_system_health(store: ResultStore) -> Dict[str, Any]:
    try:
        memory = psutil.virtual_memory()
        commits = store.get_commits()
        results = store.get_results()
        return {
            "status": "healthy",
            "timestamp": format_timestamp(_utcnow()),
            "commits": len(commits),
            "failed_commits": sum(1 for c in commits if c.build_failed),
            "results": len(results),
            "failed_results": sum(1 for r in results if r.failed),
            "memory_usage": {
                "cpu_percent": psutil.cpu_percent(interval=None),
                "memory_percent": memory.percent,
                "memory_available": f"{memory.available / (1024**3):.1f}GB",
                "memory_total": f"{memory.total / (1024**3):.1f}GB",
            },
        }
    except Exception as exc:
        logger.error(f"Error getting system health: {exc}")
        return {
            "status": "unhealthy",
            "timestamp": format_timestamp(_utcnow()),
            "error": str(exc),
        }
