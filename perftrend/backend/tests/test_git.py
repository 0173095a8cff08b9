"""Tests for the git version manager."""

import shlex
import subprocess
import sys
from datetime import datetime

import pytest

from perftrend.backend.git import GitVersionManager, cache_key, parse_commit_log, parse_submodule_history
from perftrend.common import BuildFailure

RAW_LOG = (
    "aaa\x1f100\x1fFirst line\n\nLonger body\n\x1e\n"
    "bbb\x1f200\x1fSecond\n\x1e\n"
)

RAW_HISTORY = (
    "\x1eaaa\n\n"
    ":000000 160000 0000000 1111111 A\tdruntime\n"
    ":000000 100644 0000000 abcdef0 A\tREADME.md\n"
    "\x1ebbb\n\n"
    ":160000 160000 1111111 2222222 M\tdruntime\n"
    ":000000 160000 0000000 3333333 A\tphobos\n"
    "\x1eccc\n"
    "\x1eddd\n\n"
    ":160000 000000 2222222 0000000 D\tdruntime\n"
)

BUILD_SCRIPT = """
import os, sys
prefix = os.environ["PERFTREND_INSTALL_DIR"]
if sys.argv[1] == "ok":
    os.makedirs(os.path.join(prefix, "bin"))
    open(os.path.join(prefix, "bin", "dmd"), "w").close()
elif sys.argv[1] == "fail":
    sys.exit(2)
"""


def test_parse_commit_log():
    entries = parse_commit_log(RAW_LOG)

    assert [e.hash for e in entries] == ["aaa", "bbb"]
    assert entries[0].message == ["First line", "", "Longer body"]
    assert entries[1].message == ["Second"]
    assert entries[1].time == datetime.fromtimestamp(200)


def test_parse_commit_log_empty():
    assert parse_commit_log("") == []


def test_parse_submodule_history():
    history = parse_submodule_history(RAW_HISTORY)

    assert history == {
        "aaa": {"druntime": "1111111"},
        "bbb": {"druntime": "2222222", "phobos": "3333333"},
        "ccc": {"druntime": "2222222", "phobos": "3333333"},
        "ddd": {"phobos": "3333333"},
    }


def test_cache_key():
    assert cache_key("abc", None) == "abc"
    assert cache_key("abc", {}) == "abc"
    pins = {"druntime": "1111", "phobos": "2222"}
    assert cache_key("abc", pins) == cache_key("def", dict(reversed(list(pins.items()))))
    assert cache_key("abc", pins) != cache_key("abc", {"druntime": "1111", "phobos": "3333"})


@pytest.fixture
def make_manager(tmp_path, monkeypatch):
    script = tmp_path / "build.py"
    script.write_text(BUILD_SCRIPT)
    repo = tmp_path / "repo"
    repo.mkdir()

    def factory(mode="ok"):
        manager = GitVersionManager(
            repo_path=repo,
            cache_dir=tmp_path / "cache",
            build_command=shlex.join([sys.executable, str(script), mode]),
        )
        manager.git_calls = []

        def fake_git(*args):
            manager.git_calls.append(args)
            return ""

        monkeypatch.setattr(manager, "_git", fake_git)
        return manager

    return factory


def test_tracked_refs(make_manager):
    assert make_manager().tracked_refs == ["origin/master"]


def test_get_commit_log_uses_first_parent_history(make_manager, monkeypatch):
    manager = make_manager()
    seen = []

    def fake_git(*args):
        seen.append(args)
        return RAW_LOG

    monkeypatch.setattr(manager, "_git", fake_git)

    assert [e.hash for e in manager.get_commit_log()] == ["aaa", "bbb"]
    assert "--first-parent" in seen[0]
    assert "--reverse" in seen[0]
    assert seen[0][-1] == "origin/master"


def test_build_success_installs_into_cache(make_manager):
    manager = make_manager("ok")
    manager.history = {"aaa": {"druntime": "1111"}, "bbb": {"druntime": "1111"}, "ccc": {"druntime": "2222"}}

    assert manager.bin_dir is None
    manager.build_revision("aaa")

    assert manager.bin_dir == manager.cache_dir / cache_key("aaa", {"druntime": "1111"}) / "bin"
    assert (manager.bin_dir / "dmd").exists()
    assert manager.git_calls[0] == ("checkout", "--force", "--detach", "aaa")
    # commits with identical pins share the build
    assert manager.get_cache_state(manager.history) == {"aaa": True, "bbb": True, "ccc": False}
    assert not any(p.name.endswith(".partial") for p in manager.cache_dir.iterdir())


def test_build_reuses_cached_toolchain(make_manager):
    manager = make_manager("fail")
    manager.history = {"aaa": {}}
    (manager.cache_dir / "aaa" / "bin").mkdir(parents=True)

    manager.build_revision("aaa")

    assert manager.git_calls == []
    assert manager.bin_dir == manager.cache_dir / "aaa" / "bin"


def test_build_command_failure(make_manager):
    manager = make_manager("fail")

    with pytest.raises(BuildFailure, match="aaa"):
        manager.build_revision("aaa")

    assert manager.bin_dir is None
    assert list(manager.cache_dir.iterdir()) == []


def test_build_without_bin_dir_is_failure(make_manager):
    manager = make_manager("nothing")

    with pytest.raises(BuildFailure, match="did not produce"):
        manager.build_revision("aaa")

    assert manager.get_cache_state({"aaa": {}}) == {"aaa": False}


def test_git_failure_is_build_failure(make_manager, monkeypatch):
    manager = make_manager("ok")

    def broken_git(*args):
        raise subprocess.CalledProcessError(128, ["git", *args])

    monkeypatch.setattr(manager, "_git", broken_git)

    with pytest.raises(BuildFailure):
        manager.build_revision("aaa")
