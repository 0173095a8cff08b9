"""Shared schema models for perftrend."""

from .result import CommitRecord, TestResult
from .serialization import make_json_safe

__all__ = ["CommitRecord", "TestResult", "make_json_safe"]
