"""Git-backed version manager.

Builds are cached per set of submodule pins: two meta-repository commits that
pin identical submodule revisions share one installed toolchain.
"""

from __future__ import annotations

import hashlib
import logging
import os
import shlex
import shutil
import subprocess
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Union

from perftrend.common import BuildFailure
from perftrend.core.types import LogEntry

from .base import SubmoduleHistory, VersionManager

logger = logging.getLogger(__name__)

SUBMODULE_MODE = "160000"
RECORD_SEP = "\x1e"
FIELD_SEP = "\x1f"


def parse_commit_log(raw: str) -> List[LogEntry]:
    """Parse ``git log --format=%H%x1f%ct%x1f%B%x1e`` output."""
    entries = []
    for record in raw.split(RECORD_SEP):
        record = record.lstrip("\n")
        if not record:
            continue
        commit, timestamp, body = record.split(FIELD_SEP, 2)
        entries.append(
            LogEntry(
                hash=commit,
                message=body.rstrip("\n").split("\n"),
                time=datetime.fromtimestamp(int(timestamp)),
            )
        )
    return entries


def parse_submodule_history(raw: str) -> SubmoduleHistory:
    """Replay ``git log --reverse --raw`` output into per-commit submodule pins."""
    history: SubmoduleHistory = {}
    state: Dict[str, str] = {}
    for record in raw.split(RECORD_SEP):
        lines = [line for line in record.split("\n") if line]
        if not lines:
            continue
        commit = lines[0].strip()
        for line in lines[1:]:
            if not line.startswith(":"):
                continue
            meta, path = line[1:].split("\t", 1)
            old_mode, new_mode, _old_hash, new_hash, status = meta.split()
            if new_mode == SUBMODULE_MODE and not status.startswith("D"):
                state[path] = new_hash
            elif old_mode == SUBMODULE_MODE:
                state.pop(path, None)
        history[commit] = dict(state)
    return history


def cache_key(commit: str, pins: Optional[Mapping[str, str]]) -> str:
    if not pins:
        return commit
    digest = hashlib.sha1()
    for name in sorted(pins):
        digest.update(f"{name}={pins[name]}\n".encode("utf-8"))
    return digest.hexdigest()


class GitVersionManager(VersionManager):
    name = "git"

    def __init__(
        self,
        repo_path: Union[str, Path],
        cache_dir: Union[str, Path],
        build_command: str,
        remote: str = "origin",
        branch: str = "master",
    ):
        self.repo_path = Path(repo_path)
        self.cache_dir = Path(cache_dir)
        self.build_command = shlex.split(build_command)
        self.remote = remote
        self.branch = branch
        self.history: SubmoduleHistory = {}
        self._current: Optional[Path] = None

    @classmethod
    def from_settings(cls, settings) -> "GitVersionManager":
        return cls(
            repo_path=settings.repo_path,
            cache_dir=settings.cache_dir,
            build_command=settings.build_command,
            remote=settings.remote,
            branch=settings.branch,
        )

    @property
    def tracked_refs(self) -> List[str]:
        return [f"{self.remote}/{self.branch}"]

    @property
    def bin_dir(self) -> Optional[Path]:
        return self._current / "bin" if self._current is not None else None

    def _git(self, *args: str) -> str:
        proc = subprocess.run(
            ["git", "-C", str(self.repo_path), *args],
            check=True,
            capture_output=True,
            text=True,
        )
        return proc.stdout

    def update(self) -> None:
        logger.info(f"Fetching {self.remote} in {self.repo_path}")
        self._git("fetch", "--prune", "--recurse-submodules=on-demand", self.remote)

    def get_commit_log(self) -> List[LogEntry]:
        raw = self._git(
            "log", "--first-parent", "--reverse", f"--format=%H{FIELD_SEP}%ct{FIELD_SEP}%B{RECORD_SEP}",
            *self.tracked_refs,
        )
        return parse_commit_log(raw)

    def get_submodule_history(self, refs: Sequence[str]) -> SubmoduleHistory:
        raw = self._git(
            "log", "--first-parent", "--reverse", "--root", "--raw", "--no-abbrev", "--no-renames",
            "--diff-merges=first-parent", f"--format={RECORD_SEP}%H", *refs,
        )
        self.history = parse_submodule_history(raw)
        return self.history

    def _install_dir(self, commit: str, history: Optional[SubmoduleHistory] = None) -> Path:
        history = self.history if history is None else history
        return self.cache_dir / cache_key(commit, history.get(commit))

    def get_cache_state(self, history: SubmoduleHistory) -> Dict[str, bool]:
        return {commit: (self._install_dir(commit, history) / "bin").is_dir() for commit in history}

    def build_revision(self, commit: str) -> None:
        install_dir = self._install_dir(commit)
        if (install_dir / "bin").is_dir():
            logger.info(f"Using cached build {install_dir.name} for {commit}")
            self._current = install_dir
            return

        self.cache_dir.mkdir(parents=True, exist_ok=True)
        staging = install_dir.with_name(install_dir.name + ".partial")
        if staging.exists():
            shutil.rmtree(staging)
        try:
            self._git("checkout", "--force", "--detach", commit)
            self._git("submodule", "update", "--init", "--recursive", "--force")
            env = dict(os.environ, PERFTREND_INSTALL_DIR=str(staging.absolute()))
            logger.info(f"Building {commit}: {self.build_command}")
            subprocess.run(self.build_command, cwd=str(self.repo_path), env=env, check=True)
            if not (staging / "bin").is_dir():
                raise BuildFailure(f"Build of {commit} did not produce {staging / 'bin'}")
        except (subprocess.CalledProcessError, OSError) as exc:
            shutil.rmtree(staging, ignore_errors=True)
            raise BuildFailure(f"Build of {commit} failed: {exc}") from exc
        except BuildFailure:
            shutil.rmtree(staging, ignore_errors=True)
            raise

        if install_dir.exists():
            shutil.rmtree(install_dir)
        os.replace(staging, install_dir)
        self._current = install_dir
