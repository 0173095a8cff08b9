"""Run one child process and collect its resource usage.

On POSIX the child is reaped with ``os.wait4``, which hands back the kernel's
rusage accounting for exactly that child. Elsewhere the child is polled through
psutil while it runs; those CPU and memory figures are coarse and only the
wall-clock time should be trusted.
"""

from __future__ import annotations

import logging
import os
import subprocess
import sys
import time
from pathlib import Path
from typing import Dict, Mapping, Optional, Sequence, Union

import psutil

from perftrend.common import MeasurementFailure
from perftrend.core.types import ExecutionStats

logger = logging.getLogger(__name__)

POLL_INTERVAL_SEC = 0.01


def _nsecs(seconds: float) -> int:
    return int(round(seconds * 1_000_000_000))


def _rss_bytes(ru_maxrss: int) -> int:
    # Linux reports kilobytes, macOS bytes.
    if sys.platform == "darwin":
        return int(ru_maxrss)
    return int(ru_maxrss) * 1024


def _wait_rusage(proc: subprocess.Popen, argv: Sequence[str]) -> Dict[str, int]:
    while True:
        try:
            _, status, rusage = os.wait4(proc.pid, 0)
        except InterruptedError:
            continue

        if os.WIFSIGNALED(status):
            proc.returncode = -os.WTERMSIG(status)
            raise MeasurementFailure(f"{list(argv)} failed with signal {os.WTERMSIG(status)}")
        if not os.WIFEXITED(status):
            continue

        proc.returncode = os.WEXITSTATUS(status)
        if proc.returncode != 0:
            raise MeasurementFailure(f"{list(argv)} failed with status {proc.returncode}")

        return {
            "user_time": _nsecs(rusage.ru_utime),
            "kernel_time": _nsecs(rusage.ru_stime),
            "max_rss": _rss_bytes(rusage.ru_maxrss),
        }


def _wait_polling(proc: subprocess.Popen, argv: Sequence[str]) -> Dict[str, int]:
    user_time = kernel_time = 0.0
    max_rss = 0
    try:
        child: Optional[psutil.Process] = psutil.Process(proc.pid)
    except psutil.Error:
        child = None

    while True:
        if child is not None:
            try:
                with child.oneshot():
                    cpu = child.cpu_times()
                    memory = child.memory_info()
                user_time, kernel_time = cpu.user, cpu.system
                max_rss = max(max_rss, getattr(memory, "peak_wset", memory.rss))
            except psutil.Error:
                child = None
        try:
            returncode = proc.wait(timeout=POLL_INTERVAL_SEC)
            break
        except subprocess.TimeoutExpired:
            continue

    if returncode < 0:
        raise MeasurementFailure(f"{list(argv)} failed with signal {-returncode}")
    if returncode != 0:
        raise MeasurementFailure(f"{list(argv)} failed with status {returncode}")

    return {"user_time": _nsecs(user_time), "kernel_time": _nsecs(kernel_time), "max_rss": int(max_rss)}


def measure(
    command: Sequence[Union[str, Path]],
    cwd: Union[str, Path],
    env: Optional[Mapping[str, str]] = None,
) -> ExecutionStats:
    """Spawn ``command`` with inherited stdio and wait for it.

    Raises:
        MeasurementFailure: the process could not start, was killed by a
            signal, or exited with a non-zero status.
    """
    argv = [str(part) for part in command]
    logger.info(f"Running program: {argv}")

    try:
        proc = subprocess.Popen(argv, cwd=str(cwd), env=dict(env) if env is not None else None)
    except OSError as exc:
        raise MeasurementFailure(f"{argv} could not be started: {exc}") from exc

    start = time.perf_counter_ns()
    if hasattr(os, "wait4"):
        usage = _wait_rusage(proc, argv)
    else:
        usage = _wait_polling(proc, argv)
    real_time = time.perf_counter_ns() - start

    return ExecutionStats(real_time=real_time, **usage)
