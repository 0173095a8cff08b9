"""SQLite persistence for commits and test results.

Tables:
  - Commits holds every commit we attempted to build: hash, message, commit
    time, and whether the build failed. A failed flag is never cleared.
  - Results holds one row per (test, commit). Error, if set, is the message
    of the failure that prevented the test from producing a value.
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Set, Union

from perftrend.schema import CommitRecord, TestResult

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS [Commits] (
    [Commit] TEXT PRIMARY KEY,
    [Message] TEXT NOT NULL DEFAULT '',
    [Time] INTEGER NOT NULL DEFAULT 0,
    [BuildFailed] INTEGER NOT NULL DEFAULT 0
);
CREATE TABLE IF NOT EXISTS [Results] (
    [TestID] TEXT NOT NULL,
    [Commit] TEXT NOT NULL,
    [Value] INTEGER NOT NULL DEFAULT 0,
    [Error] TEXT,
    PRIMARY KEY ([TestID], [Commit])
);
"""


class ResultStore:
    """Query and transaction interface over the results database."""

    def __init__(self, db_path: Union[str, Path]):
        self.db_path = str(db_path)
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        # Autocommit mode; multi-statement writes go through transaction().
        self.conn = sqlite3.connect(self.db_path, isolation_level=None, check_same_thread=False)
        self.conn.executescript(SCHEMA)
        self._in_transaction = False

    def close(self) -> None:
        self.conn.close()

    def __enter__(self) -> "ResultStore":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """All-or-nothing block of statements."""
        if self._in_transaction:
            yield self.conn
            return
        self.conn.execute("BEGIN")
        self._in_transaction = True
        try:
            yield self.conn
        except BaseException:
            self.conn.execute("ROLLBACK")
            raise
        else:
            self.conn.execute("COMMIT")
        finally:
            self._in_transaction = False

    def record_commit(self, record: CommitRecord) -> None:
        self.conn.execute(
            "INSERT INTO [Commits] ([Commit], [Message], [Time], [BuildFailed]) VALUES (?, ?, ?, ?) "
            "ON CONFLICT([Commit]) DO UPDATE SET [Message]=excluded.[Message], [Time]=excluded.[Time], "
            "[BuildFailed]=MAX([BuildFailed], excluded.[BuildFailed])",
            (record.commit, record.message, record.time, int(record.build_failed)),
        )

    def record_results(self, results: Iterable[TestResult]) -> None:
        """Insert a batch of results atomically. A duplicate key aborts the whole batch."""
        with self.transaction() as conn:
            conn.executemany(
                "INSERT INTO [Results] ([TestID], [Commit], [Value], [Error]) VALUES (?, ?, ?, ?)",
                [(r.test_id, r.commit, r.value, r.error) for r in results],
            )

    def load_bad_commits(self) -> Set[str]:
        rows = self.conn.execute("SELECT [Commit] FROM [Commits] WHERE [BuildFailed]=1")
        return {commit for (commit,) in rows}

    def load_result_matrix(self) -> Dict[str, Dict[str, int]]:
        """results[commit][test_id] = value"""
        matrix: Dict[str, Dict[str, int]] = {}
        for commit, test_id, value in self.conn.execute("SELECT [Commit], [TestID], [Value] FROM [Results]"):
            matrix.setdefault(commit, {})[test_id] = value
        return matrix

    def get_commits(self) -> List[CommitRecord]:
        rows = self.conn.execute("SELECT [Commit], [Message], [Time], [BuildFailed] FROM [Commits] ORDER BY [Time]")
        return [CommitRecord(commit, message, time, bool(failed)) for commit, message, time, failed in rows]

    def get_results(self, commit: Optional[str] = None, test_id: Optional[str] = None) -> List[TestResult]:
        query = "SELECT [TestID], [Commit], [Value], [Error] FROM [Results]"
        clauses, params = [], []
        if commit is not None:
            clauses.append("[Commit]=?")
            params.append(commit)
        if test_id is not None:
            clauses.append("[TestID]=?")
            params.append(test_id)
        if clauses:
            query += " WHERE " + " AND ".join(clauses)
        return [TestResult(*row) for row in self.conn.execute(query, params)]
