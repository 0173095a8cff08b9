"""perftrend version/build manager interfaces."""

from .base import SubmoduleHistory, VersionManager
from .git import GitVersionManager

__all__ = ["SubmoduleHistory", "VersionManager", "GitVersionManager"]
