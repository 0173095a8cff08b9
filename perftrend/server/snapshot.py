"""Compressed JSON snapshot of all data, for the web front-end."""

from __future__ import annotations

import gzip
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Sequence, Union

from perftrend.schema import make_json_safe

from .store import ResultStore

logger = logging.getLogger(__name__)


def build_snapshot(store: ResultStore, tests: Sequence) -> Dict[str, Any]:
    return {
        "commits": [
            {"commit": c.commit, "message": c.message, "time": c.time} for c in store.get_commits()
        ],
        "results": [
            {"testID": r.test_id, "commit": r.commit, "value": r.value, "error": r.error}
            for r in store.get_results()
        ],
        "tests": [make_json_safe(test.metadata()) for test in tests],
    }


def save_snapshot(store: ResultStore, tests: Sequence, target: Union[str, Path]) -> Path:
    """Write the snapshot to ``target`` atomically (temporary file, then rename)."""
    logger.info("Saving results...")
    target = Path(target)
    target.parent.mkdir(parents=True, exist_ok=True)
    payload = json.dumps(build_snapshot(store, tests)).encode("utf-8")

    fd, tmp_name = tempfile.mkstemp(prefix=target.name, suffix=".tmp", dir=str(target.parent))
    try:
        with os.fdopen(fd, "wb") as raw, gzip.GzipFile(fileobj=raw, mode="wb", compresslevel=9) as f:
            f.write(payload)
        os.replace(tmp_name, target)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise
    return target


def load_snapshot(path: Union[str, Path]) -> Dict[str, Any]:
    with gzip.open(path, "rb") as f:
        return json.loads(f.read().decode("utf-8"))
