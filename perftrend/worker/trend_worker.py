"""The benchmarking daemon loop.

Each cycle refreshes the repository, ranks every commit, then walks the
ranking: build the commit (or reuse its cached build), sample every test that
has no result for it yet, and persist that batch in one transaction. A batch
is cut short once it has run longer than the update interval so the commit
log is refreshed at least that often.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Set, Union

from perftrend.backend import SubmoduleHistory, VersionManager
from perftrend.common import BuildFailure, ErrorCode, MeasurementFailure
from perftrend.core.types import ScoreFactors, ToDoEntry
from perftrend.schema import CommitRecord, TestResult
from perftrend.server.scheduler import CommitScheduler, format_todo
from perftrend.server.snapshot import save_snapshot
from perftrend.server.store import ResultStore

logger = logging.getLogger("perftrend.worker")


class TrendWorker:
    """Single sequential worker: one commit, one test, one child process at a time."""

    def __init__(
        self,
        version_manager: VersionManager,
        store: ResultStore,
        tests: Sequence,
        factors: Optional[ScoreFactors] = None,
        *,
        update_interval: float = 300.0,
        idle_duration: float = 60.0,
        snapshot_path: Optional[Union[str, Path]] = None,
        todo_dump_path: Optional[Union[str, Path]] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.version_manager = version_manager
        self.store = store
        self.tests = list(tests)
        self.scheduler = CommitScheduler(factors)
        self.update_interval = update_interval
        self.idle_duration = idle_duration
        self.snapshot_path = Path(snapshot_path) if snapshot_path else None
        self.todo_dump_path = Path(todo_dump_path) if todo_dump_path else None
        self.clock = clock
        self.sleep = sleep

        # In-memory mirrors of the store. Both only ever grow.
        self.bad_commits: Set[str] = set()
        self.test_results: Dict[str, Dict[str, int]] = {}
        self.history: SubmoduleHistory = {}
        self.running = False
        self.stop_requested = False

    @classmethod
    def from_settings(cls, settings, version_manager: VersionManager, store: ResultStore, tests: Sequence) -> "TrendWorker":
        return cls(
            version_manager,
            store,
            tests,
            settings.score_factors(),
            update_interval=settings.effective_update_interval,
            idle_duration=settings.effective_idle_duration,
            snapshot_path=settings.snapshot_path,
            todo_dump_path=settings.todo_dump_path or None,
        )

    def load_info(self) -> None:
        """Load existing data from the store at startup."""
        logger.info("Loading existing data...")
        self.bad_commits = self.store.load_bad_commits()
        self.test_results = self.store.load_result_matrix()

    def update(self) -> bool:
        """Refresh the repository, retrying until it succeeds.

        Returns False if a stop was requested before the refresh succeeded.
        """
        logger.info("Updating...")
        while not self.stop_requested:
            try:
                self.version_manager.update()
                break
            except Exception as e:
                logger.error(f"[{ErrorCode.UPDATE_ERROR.value}] Update error: {e}")
                self.sleep(self.update_interval)
        else:
            logger.info("Stop requested - update abandoned")
            return False

        self.history = self.version_manager.get_submodule_history(self.version_manager.tracked_refs)
        return True

    def get_todo(self) -> List[ToDoEntry]:
        logger.info("Finding things to do...")
        commits = self.version_manager.get_commit_log()
        cache_state = self.version_manager.get_cache_state(self.history)
        todo = self.scheduler.get_todo(commits, cache_state, self.test_results, self.tests)

        if self.todo_dump_path is not None:
            self.todo_dump_path.parent.mkdir(parents=True, exist_ok=True)
            self.todo_dump_path.write_text(format_todo(todo), encoding="utf-8")
        return todo

    def prepare_commit(self, entry: ToDoEntry) -> bool:
        """Build (or pull from cache) a commit for testing. Return True if it is ready."""
        commit = entry.commit
        logger.debug(f"Considering commit: {commit.hash} ({commit.time}, score {entry.score})")
        if commit.hash in self.bad_commits:
            logger.debug("Commit known to be bad - skipping")
            return False

        recorded = self.test_results.get(commit.hash, {})
        if all(test.id in recorded for test in self.tests):
            logger.debug("No new tests to sample - skipping")
            return False

        logger.info(f"Building commit: {commit.hash}")
        failed = False
        try:
            self.version_manager.build_revision(commit.hash)
        except BuildFailure as e:
            failed = True
            logger.error(f"[{e.code.value}] Build error: {e}")

        self.store.record_commit(CommitRecord.from_log_entry(commit, build_failed=failed))
        if failed:
            self.bad_commits.add(commit.hash)
            return False
        return True

    def run_tests(self, entry: ToDoEntry) -> List[TestResult]:
        commit = entry.commit.hash
        recorded = self.test_results.get(commit, {})
        tests_to_run = [test for test in self.tests if test.id not in recorded]

        logger.info("Resetting tests...")
        programs = {id(test.program): test.program for test in tests_to_run}
        for program in programs.values():
            program.reset(bin_dir=self.version_manager.bin_dir)

        results: List[TestResult] = []
        for test in tests_to_run:
            logger.info(f"Running test: {test.id}")
            try:
                value = test.sample()
                results.append(TestResult(test.id, commit, value))
                logger.info(f"Test succeeded with value: {value}")
            except MeasurementFailure as e:
                results.append(TestResult(test.id, commit, 0, str(e)))
                logger.error(f"[{e.code.value}] Test failed with error: {e}")

        logger.info("Saving test results...")
        self.store.record_results(results)
        self.test_results.setdefault(commit, {}).update({r.test_id: r.value for r in results})
        return results

    def run_batch(self) -> int:
        """Work through the ranking until it is exhausted or the update interval has passed.

        Returns the number of commits tested.
        """
        todo = self.get_todo()
        start = self.clock()
        tested = 0

        logger.info("Running tests...")
        for entry in todo:
            if self.prepare_commit(entry):
                self.run_tests(entry)
                tested += 1
            if self.stop_requested or self.clock() - start > self.update_interval:
                break
        return tested

    def save_snapshot(self) -> None:
        if self.snapshot_path is not None:
            save_snapshot(self.store, self.tests, self.snapshot_path)

    def run_once(self) -> int:
        self.load_info()
        if not self.update():
            return 0
        tested = self.run_batch()
        self.save_snapshot()
        return tested

    def start(self) -> None:
        self.running = True
        self.stop_requested = False
        self.load_info()
        self.update()
        self.save_snapshot()

        while self.running:
            self.run_batch()
            self.save_snapshot()
            if not self.running:
                break

            logger.info("Idling...")
            self.sleep(self.idle_duration)
            self.update()

    def stop(self) -> None:
        self.running = False
        self.stop_requested = True
