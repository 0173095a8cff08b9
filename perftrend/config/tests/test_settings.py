"""Tests for environment-driven settings and logging configuration."""

from pathlib import Path

import pytest

from perftrend.config.settings import Settings, get_logging_config, settings
from perftrend.core.types import ScoreFactors


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    for name in ("PERFTREND_DEBUG", "PERFTREND_COMPILE_FLAGS", "PERFTREND_SCORE_CACHED", "PERFTREND_WORK_DIR", "PERFTREND_COMPILER"):
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    config = Settings()
    assert config.compiler == "dmd"
    assert config.compile_flags == ["-O", "-inline", "-release"]
    assert config.effective_update_interval == 300.0
    assert config.effective_idle_duration == 60.0
    assert config.score_factors() == ScoreFactors()


def test_debug_shortens_intervals(monkeypatch):
    monkeypatch.setenv("PERFTREND_DEBUG", "true")
    config = Settings()
    assert config.effective_update_interval == 60.0
    assert config.effective_idle_duration == 0.0


def test_explicit_intervals_win():
    config = Settings(debug=True, update_interval=10, idle_duration=5)
    assert config.effective_update_interval == 10
    assert config.effective_idle_duration == 5


def test_compile_flags_from_env(monkeypatch):
    monkeypatch.setenv("PERFTREND_COMPILE_FLAGS", "-O -version='Some Thing'")
    assert Settings().compile_flags == ["-O", "-version=Some Thing"]


def test_score_factors_from_env(monkeypatch):
    monkeypatch.setenv("PERFTREND_SCORE_CACHED", "0")
    assert Settings().score_factors().cached == 0


def test_scratch_dir(monkeypatch):
    monkeypatch.setenv("PERFTREND_WORK_DIR", "/srv/trend")
    assert Settings().scratch_dir == Path("/srv/trend/temp-trend")


def test_dotenv_file(tmp_path):
    (tmp_path / ".env").write_text("PERFTREND_COMPILER=ldc2\n")
    assert Settings().compiler == "ldc2"


def test_logging_config_writes_under_log_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "log_dir", str(tmp_path / "logs"))
    monkeypatch.setattr(settings, "quiet", True)
    monkeypatch.setattr(settings, "log_to_file", True)

    config = get_logging_config()

    assert "console" not in config["handlers"]
    assert Path(config["handlers"]["file_worker"]["filename"]) == tmp_path / "logs" / "worker.log"
    assert config["loggers"]["perftrend.worker"]["handlers"] == ["file_worker"]
    assert (tmp_path / "logs").is_dir()


def test_logging_config_console_only(monkeypatch):
    monkeypatch.setattr(settings, "quiet", False)
    monkeypatch.setattr(settings, "log_to_file", False)

    config = get_logging_config()

    assert set(config["handlers"]) == {"console"}
    assert config["loggers"][""]["handlers"] == ["console"]
