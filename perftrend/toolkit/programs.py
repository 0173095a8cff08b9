"""Benchmark program catalog entries."""

from __future__ import annotations

import textwrap
from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class ProgramInfo:
    id: str
    name: str
    raw_code: str
    iterations: int = 10

    @property
    def code(self) -> str:
        """Source text with the literal's indentation removed and tabs as four spaces."""
        return textwrap.dedent(self.raw_code).replace("\t", "    ").strip()


DEFAULT_PROGRAMS: Tuple[ProgramInfo, ...] = (
    ProgramInfo(
        "empty",
        "Empty program",
        """
        void main()
        {
        }
        """,
    ),
    ProgramInfo(
        "hello",
        '"Hello, world"',
        """
        import std.stdio;

        void main()
        {
            writeln("Hello, world!");
        }
        """,
    ),
)
