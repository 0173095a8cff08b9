import pytest

from perftrend.schema import CommitRecord, TestResult
from perftrend.server.store import ResultStore


@pytest.fixture
def store(tmp_path):
    store = ResultStore(tmp_path / "db" / "perftrend.sqlite")
    yield store
    store.close()


@pytest.fixture
def populated_store(store):
    store.record_commit(CommitRecord("aaa", "first\n\nbody", 100))
    store.record_commit(CommitRecord("bbb", "second", 200, build_failed=True))
    store.record_commit(CommitRecord("ccc", "third", 300))
    store.record_results(
        [
            TestResult("program-hello-run-realtime-10", "aaa", 1500),
            TestResult("program-hello-binarysize-10", "aaa", 4096),
            TestResult("program-hello-run-realtime-10", "ccc", 0, "failed with status 1"),
        ]
    )
    return store
