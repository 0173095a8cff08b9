"""Fake child-process runner for pipeline and catalog tests."""

import os
from pathlib import Path

import pytest

from perftrend.common import MeasurementFailure
from perftrend.core.types import ExecutionStats


class FakeRunner:
    """Stands in for ``measure``: records calls and creates the artifacts a real toolchain would."""

    def __init__(self):
        self.calls = []
        self.paths = []
        self.stats = {}
        self.failures = {}
        self.object_size = 10
        self.binary_size = 100
        self.skip_artifacts = set()
        self.seen_stale = []

    def queue(self, kind, *stats):
        self.stats.setdefault(kind, []).extend(stats)

    def fail_next(self, kind, message="failed with status 1"):
        self.failures[kind] = message

    @staticmethod
    def kind_of(command):
        if command[0] == "dmd" and "-c" in command:
            return "compile"
        if command[0] == "dmd":
            return "link"
        return "run"

    def count(self, kind):
        return sum(1 for command in self.calls if self.kind_of(command) == kind)

    def __call__(self, command, cwd):
        command = [str(part) for part in command]
        cwd = Path(cwd)
        kind = self.kind_of(command)
        self.calls.append(command)
        self.paths.append(os.environ.get("PATH"))

        artifact = {"compile": cwd / "test.o", "link": cwd / "test"}.get(kind)
        if artifact is not None:
            self.seen_stale.append(artifact.exists())

        if kind in self.failures:
            raise MeasurementFailure(self.failures.pop(kind))

        if artifact is not None and kind not in self.skip_artifacts:
            size = self.object_size if kind == "compile" else self.binary_size
            artifact.write_bytes(b"\0" * size)

        queued = self.stats.get(kind)
        if queued:
            return queued.pop(0)
        return ExecutionStats(real_time=1000, user_time=500, kernel_time=100, max_rss=4096)


@pytest.fixture
def fake_runner(monkeypatch):
    runner = FakeRunner()
    monkeypatch.setattr("perftrend.toolkit.pipeline.measure", runner)
    return runner
