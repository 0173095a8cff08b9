"""Incremental Source -> Compile -> Link -> Run pipeline for one program.

Every stage is a ``Target`` whose behaviour comes from the ``STAGES`` table.
``Target.need(n)`` is memoized on the number of runs requested so far: the
dependencies are satisfied once, and only the missing iterations of the
requested stage are executed, each folded into ``best_stats``.
"""

from __future__ import annotations

import logging
import os
import shutil
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional, Union

from perftrend.common import InvariantViolation, MeasurementFailure, Stage
from perftrend.core.types import ExecutionStats

from .execution import measure
from .programs import ProgramInfo

logger = logging.getLogger(__name__)

IS_WINDOWS = os.name == "nt"


@dataclass(frozen=True)
class Toolchain:
    """How to invoke the compiler under test."""

    compiler: str = "dmd"
    compile_flags: List[str] = field(default_factory=lambda: ["-O", "-inline", "-release"])
    source_extension: str = ".d"

    @classmethod
    def from_settings(cls, settings) -> "Toolchain":
        return cls(
            compiler=settings.compiler,
            compile_flags=list(settings.compile_flags),
            source_extension=settings.source_extension,
        )

    @property
    def compile_command(self) -> List[str]:
        return [self.compiler, "-c", *self.compile_flags]


@contextmanager
def prefixed_path(bin_dir: Optional[Union[str, Path]]) -> Iterator[None]:
    """Put ``bin_dir`` first on PATH for the duration of the block."""
    old_path = os.environ.get("PATH")
    if bin_dir is not None:
        os.environ["PATH"] = str(Path(bin_dir).absolute()) + os.pathsep + (old_path or "")
        logger.debug(f"PATH={os.environ['PATH']}")
    try:
        yield
    finally:
        if old_path is None:
            os.environ.pop("PATH", None)
        else:
            os.environ["PATH"] = old_path


@dataclass(frozen=True)
class StageSpec:
    dependency: Optional[Stage]
    command: Optional[Callable[["Program"], List[str]]]
    output: Optional[Callable[["Program"], Path]]


STAGES: Dict[Stage, StageSpec] = {
    # Source has no command: it writes the program text instead.
    Stage.SOURCE: StageSpec(None, None, lambda p: p.src_file),
    Stage.COMPILE: StageSpec(
        Stage.SOURCE,
        lambda p: [*p.toolchain.compile_command, p.src_file.name],
        lambda p: p.obj_file,
    ),
    Stage.LINK: StageSpec(
        Stage.COMPILE,
        lambda p: [p.toolchain.compiler, p.obj_file.name],
        lambda p: p.exe_file,
    ),
    Stage.RUN: StageSpec(
        Stage.LINK,
        lambda p: [str(p.exe_file.absolute())],
        None,
    ),
}


class Target:
    """One pipeline stage of a program."""

    def __init__(self, program: "Program", stage: Stage):
        self.program = program
        self.stage = stage
        self.runs = 0
        self.best_stats = ExecutionStats.worst()

    def __repr__(self) -> str:
        return f"Target({self.program.info.id}:{self.stage.value}, runs={self.runs})"

    @property
    def spec(self) -> StageSpec:
        return STAGES[self.stage]

    @property
    def dependency(self) -> Optional["Target"]:
        if self.spec.dependency is None:
            return None
        return self.program.target(self.spec.dependency)

    @property
    def command(self) -> Optional[List[str]]:
        return self.spec.command(self.program) if self.spec.command else None

    @property
    def output_file(self) -> Optional[Path]:
        return self.spec.output(self.program) if self.spec.output else None

    def need(self, runs: int = 1) -> None:
        """Make sure this stage has run at least ``runs`` times."""
        if self.stage is Stage.SOURCE and runs > 1:
            raise InvariantViolation(f"source stage of {self.program.info.id} can only run once, {runs} requested")

        dependency = self.dependency
        if dependency is not None:
            dependency.need()

        if runs > self.runs:
            self._run(runs - self.runs)
            self.runs = runs

    def _run(self, iterations: int) -> None:
        if self.spec.command is None:
            self.program.write_source()
            return

        best = self.best_stats if self.runs else ExecutionStats.worst()
        with prefixed_path(self.program.bin_dir):
            for _ in range(iterations):
                output = self.output_file
                if output is not None and output.exists():
                    output.unlink()

                stats = measure(self.command, cwd=self.program.scratch_dir)

                if output is not None and not output.exists():
                    raise MeasurementFailure(f"Program did not create output file {output}")
                best = best.best(stats)

        # Only a fully successful batch of iterations is credited.
        self.best_stats = best


class Program:
    """A benchmark program and the state of its pipeline."""

    def __init__(self, info: ProgramInfo, scratch_dir: Union[str, Path], toolchain: Optional[Toolchain] = None):
        self.info = info
        self.scratch_dir = Path(scratch_dir)
        self.toolchain = toolchain or Toolchain()
        self.bin_dir: Optional[Path] = None
        self.targets: Dict[Stage, Target] = self._fresh_targets()

    def _fresh_targets(self) -> Dict[Stage, Target]:
        return {stage: Target(self, stage) for stage in Stage}

    @property
    def src_file(self) -> Path:
        return self.scratch_dir / f"test{self.toolchain.source_extension}"

    @property
    def obj_file(self) -> Path:
        return self.scratch_dir / ("test.obj" if IS_WINDOWS else "test.o")

    @property
    def exe_file(self) -> Path:
        return self.scratch_dir / ("test.exe" if IS_WINDOWS else "test")

    def target(self, stage: Stage) -> Target:
        return self.targets[stage]

    def write_source(self) -> None:
        if self.scratch_dir.exists():
            shutil.rmtree(self.scratch_dir)
        self.scratch_dir.mkdir(parents=True)
        self.src_file.write_text(self.info.code, encoding="utf-8")

    def reset(self, bin_dir: Optional[Union[str, Path]] = None) -> None:
        """Drop all cached stage state, optionally switching toolchains."""
        if self.scratch_dir.exists():
            shutil.rmtree(self.scratch_dir)
        if bin_dir is not None:
            self.bin_dir = Path(bin_dir)
        self.targets = self._fresh_targets()
