"""Measurement toolkit: process stats, program pipelines and the test catalog."""

from .catalog import TestDescriptor, build_catalog, default_catalog
from .execution import measure
from .pipeline import Program, Target, Toolchain, prefixed_path
from .programs import ProgramInfo
from .registry import get_program, list_programs, register_program

__all__ = [
    "TestDescriptor",
    "build_catalog",
    "default_catalog",
    "measure",
    "Program",
    "Target",
    "Toolchain",
    "prefixed_path",
    "ProgramInfo",
    "get_program",
    "list_programs",
    "register_program",
]
