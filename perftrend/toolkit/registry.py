"""Program registry and lookup helpers."""

from __future__ import annotations

from typing import Dict

from perftrend.core import Registry

from .programs import DEFAULT_PROGRAMS, ProgramInfo

_PROGRAM_REGISTRY = Registry()


def _ensure_default_programs() -> None:
    for info in DEFAULT_PROGRAMS:
        if info.id not in _PROGRAM_REGISTRY:
            _PROGRAM_REGISTRY.register(info.id, info)


def get_program(program_id: str) -> ProgramInfo:
    _ensure_default_programs()
    return _PROGRAM_REGISTRY.get(program_id.strip().lower())


def register_program(info: ProgramInfo) -> None:
    _ensure_default_programs()
    _PROGRAM_REGISTRY.register(info.id.strip().lower(), info)


def list_programs() -> Dict[str, ProgramInfo]:
    _ensure_default_programs()
    return _PROGRAM_REGISTRY.items()
