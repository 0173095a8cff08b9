"""Test catalog: every measurement evaluated against every commit.

The catalog is the cross-product of the registered programs, the measured
stages and the ``ExecutionStats`` fields, plus an object-size and a
binary-size probe per program. It is generated from the static tables below.
"""

from __future__ import annotations

import html
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Union

from perftrend.common import Stage, Unit

from .pipeline import Program, Toolchain
from .registry import list_programs


@dataclass(frozen=True)
class StatRow:
    field: str
    id: str
    unit: Unit
    exact: bool
    name: str
    description: str


@dataclass(frozen=True)
class StageRow:
    stage: Stage
    name: str
    description: Callable[[Program], str]


@dataclass(frozen=True)
class SizeRow:
    stage: Stage
    id: str
    name: str
    description: str


STAT_ROWS = (
    StatRow("real_time", "realtime", Unit.TIME, False, "real time", "total real (elapsed) time spent"),
    StatRow("user_time", "usertime", Unit.TIME, False, "user time", "total user time (CPU time spent in userspace) spent"),
    StatRow(
        "kernel_time", "kerneltime", Unit.TIME, False, "kernel time", "total kernel time (CPU time spent in the kernel) spent"
    ),
    StatRow("max_rss", "maxrss", Unit.BYTES, True, "max RSS", "peak RSS (resident set size memory usage) used"),
)

STAGE_ROWS = (
    StageRow(
        Stage.COMPILE,
        "compilation",
        lambda p: f"compilation (<tt>{html.escape(' '.join(p.toolchain.compile_command))}</tt> invocation)",
    ),
    StageRow(
        Stage.LINK,
        "linking",
        lambda p: f"linking (<tt>{html.escape(p.toolchain.compiler)} {html.escape(p.obj_file.name)}</tt> invocation)",
    ),
    StageRow(Stage.RUN, "execution", lambda p: "test program execution"),
)

SIZE_ROWS = (
    SizeRow(Stage.COMPILE, "objectsize", "object file size", "file size of the compiled intermediary object file"),
    SizeRow(Stage.LINK, "binarysize", "binary file size", "file size of the linked executable binary file"),
)


@dataclass(frozen=True, eq=False)
class TestDescriptor:
    """One measurement. ``field`` is None for artifact-size probes."""

    __test__ = False  # not a pytest class

    id: str
    name: str
    description: str
    unit: Unit
    exact: bool
    program: Program
    stage: Stage
    field: Optional[str] = None

    def sample(self) -> int:
        target = self.program.target(self.stage)
        if self.field is None:
            target.need()
            return target.output_file.stat().st_size
        target.need(self.program.info.iterations)
        return getattr(target.best_stats, self.field)

    def reset(self) -> None:
        self.program.reset()

    def metadata(self) -> dict:
        return {
            "name": self.name,
            "description": self.description,
            "id": self.id,
            "unit": self.unit.value,
            "exact": self.exact,
        }


def _describe(program: Program, text: str) -> str:
    return (
        f"The <span class='test-description'>{text}</span> for the following program:"
        f"<pre>{html.escape(program.info.code)}</pre>"
    )


def program_tests(program: Program) -> List[TestDescriptor]:
    info = program.info
    tests: List[TestDescriptor] = []
    for stage_row in STAGE_ROWS:
        for stat in STAT_ROWS:
            text = f"{stat.description} during {stage_row.description(program)} (best of {info.iterations} runs)"
            tests.append(
                TestDescriptor(
                    id=f"program-{info.id}-{stage_row.stage.value}-{stat.id}-{info.iterations}",
                    name=f"{info.name} - {stage_row.name} - {stat.name}",
                    description=_describe(program, text),
                    unit=stat.unit,
                    exact=stat.exact,
                    program=program,
                    stage=stage_row.stage,
                    field=stat.field,
                )
            )
    for size in SIZE_ROWS:
        tests.append(
            TestDescriptor(
                id=f"program-{info.id}-{size.id}-{info.iterations}",
                name=f"{info.name} - {size.name}",
                description=_describe(program, size.description),
                unit=Unit.BYTES,
                exact=True,
                program=program,
                stage=size.stage,
            )
        )
    return tests


def build_catalog(programs: Iterable[Program]) -> List[TestDescriptor]:
    tests: List[TestDescriptor] = []
    for program in programs:
        tests.extend(program_tests(program))
    return tests


def default_catalog(scratch_dir: Union[str, Path], toolchain: Optional[Toolchain] = None) -> List[TestDescriptor]:
    """Catalog over every registered program, sharing one scratch directory."""
    programs = [Program(info, scratch_dir, toolchain) for info in list_programs().values()]
    return build_catalog(programs)
