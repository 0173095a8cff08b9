"""API response models for the perftrend server."""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from perftrend.common import Unit


class CommitModel(BaseModel):
    commit: str = Field(..., description="Commit hash")
    message: str = Field(default="", description="Full commit message")
    time: int = Field(..., description="Commit time (Unix seconds)")
    build_failed: bool = Field(default=False, description="True once a build of this commit has failed")


class ResultModel(BaseModel):
    test_id: str
    commit: str
    value: int = Field(default=0, description="Measured value; 0 when the test failed")
    error: Optional[str] = Field(default=None, description="Failure message, if the test could not be sampled")


class CatalogTestModel(BaseModel):
    id: str
    name: str
    description: str
    unit: Unit
    exact: bool


class SystemHealthResponse(BaseModel):
    status: str
    timestamp: str
    commits: int = 0
    failed_commits: int = 0
    results: int = 0
    failed_results: int = 0
    memory_usage: Dict[str, Any] = Field(default_factory=dict)
    error: Optional[str] = None
