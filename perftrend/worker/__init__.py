"""Worker module for perftrend."""

from .trend_worker import TrendWorker

__all__ = ["TrendWorker"]
