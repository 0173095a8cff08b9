"""Version/build manager abstraction (repository access and toolchain builds)."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from perftrend.core.types import LogEntry

# history[commit_hash][submodule_name] = pinned submodule commit hash
SubmoduleHistory = Dict[str, Dict[str, str]]


class VersionManager(ABC):
    name: str = "unknown"

    @property
    @abstractmethod
    def tracked_refs(self) -> List[str]:
        """Refs whose first-parent history is benchmarked."""

    @abstractmethod
    def update(self) -> None:
        """Fetch all tracked repositories. Idempotent; may raise on transient errors."""

    @abstractmethod
    def get_commit_log(self) -> List[LogEntry]:
        """Commits of the tracked refs, oldest first."""

    @abstractmethod
    def get_submodule_history(self, refs: Sequence[str]) -> SubmoduleHistory:
        """Submodule pins for every commit reachable from ``refs``."""

    @abstractmethod
    def get_cache_state(self, history: SubmoduleHistory) -> Dict[str, bool]:
        """Whether a built toolchain already exists for each commit."""

    @abstractmethod
    def build_revision(self, commit: str) -> None:
        """Build (or restore from cache) ``commit``. Raises BuildFailure."""

    @property
    @abstractmethod
    def bin_dir(self) -> Optional[Path]:
        """``bin`` directory of the toolchain last prepared by build_revision."""
