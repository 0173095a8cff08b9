"""perftrend configuration settings."""

import os
import shlex
from pathlib import Path
from typing import Annotated, Any, Dict, List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from perftrend.core.types import ScoreFactors

PROJECT_ROOT = Path(__file__).parent.parent


class Settings(BaseSettings):
    """Application settings with environment variable support (``PERFTREND_*``)."""

    model_config = SettingsConfigDict(
        env_prefix="PERFTREND_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    work_dir: str = Field(default="work", description="Root for the scratch directory used by program pipelines.")
    db_path: str = Field(default="data/perftrend.sqlite")
    snapshot_path: str = Field(
        default="web/data/data.json.gz",
        description="Compressed JSON snapshot consumed by the web front-end.",
    )

    repo_path: str = Field(default="repo", description="Checkout of the toolchain repository under test.")
    remote: str = Field(default="origin")
    branch: str = Field(default="master")
    cache_dir: str = Field(default="cache", description="One installed toolchain per cache key.")
    build_command: str = Field(
        default="make install",
        description="Run inside the checkout; PERFTREND_INSTALL_DIR names the install prefix.",
    )

    compiler: str = Field(default="dmd")
    compile_flags: Annotated[List[str], NoDecode] = Field(default_factory=lambda: ["-O", "-inline", "-release"])
    source_extension: str = Field(default=".d")

    debug: bool = Field(default=False)
    update_interval: Optional[float] = Field(
        default=None,
        description="Seconds between repository refreshes. Defaults to 300 (60 in debug mode).",
    )
    idle_duration: Optional[float] = Field(
        default=None,
        description="Seconds to sleep after each batch. Defaults to 60 (0 in debug mode).",
    )
    todo_dump_path: str = Field(default="", description="Write the per-commit score breakdown here when set.")

    score_base2: int = Field(default=100, description="Points per trailing zero bit of the commit index.")
    score_cached: int = Field(default=500, description="Points if the commit's build is already cached.")
    score_recent_max: int = Field(default=1000, description="Points for the newest commit.")
    score_recent_exp: int = Field(default=50, description="Recency curve exponent.")
    score_untested: int = Field(default=100, description="Points per untested test, averaged over the catalog.")
    score_diff_max: int = Field(default=1000, description="Points for a 100% difference between neighbours.")
    score_diff_exact: int = Field(default=5, description="Multiplier for exact tests.")

    quiet: bool = Field(default=False, description="Disable console logging.")
    log_level: str = Field(default="INFO")
    log_dir: str = Field(default="logs")
    log_to_file: bool = Field(default=True)
    log_backup_count: int = Field(default=5)

    api_host: str = Field(default="127.0.0.1")
    api_port: int = Field(default=10908)

    @field_validator("compile_flags", mode="before")
    @classmethod
    def validate_compile_flags(cls, v):
        if isinstance(v, str):
            return shlex.split(v)
        return v

    @property
    def effective_update_interval(self) -> float:
        if self.update_interval is not None:
            return self.update_interval
        return 60.0 if self.debug else 300.0

    @property
    def effective_idle_duration(self) -> float:
        if self.idle_duration is not None:
            return self.idle_duration
        return 0.0 if self.debug else 60.0

    @property
    def scratch_dir(self) -> Path:
        return Path(self.work_dir) / "temp-trend"

    def score_factors(self) -> ScoreFactors:
        return ScoreFactors(
            base2=self.score_base2,
            cached=self.score_cached,
            recent_max=self.score_recent_max,
            recent_exp=self.score_recent_exp,
            untested=self.score_untested,
            diff_max=self.score_diff_max,
            diff_exact=self.score_diff_exact,
        )

    def get_log_path(self) -> Path:
        log_path = Path(self.log_dir)
        if not log_path.is_absolute():
            log_path = PROJECT_ROOT / self.log_dir
        return log_path

    def setup_log_directory(self) -> None:
        os.makedirs(self.get_log_path(), exist_ok=True)


settings = Settings()


def get_logging_config() -> Dict[str, Any]:
    log_path = settings.get_log_path()
    console = [] if settings.quiet else ["console"]

    handlers: Dict[str, Any] = {}
    if not settings.quiet:
        handlers["console"] = {
            "level": settings.log_level,
            "formatter": "standard",
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stdout",
        }

    if settings.log_to_file:
        settings.setup_log_directory()
        for name, filename in (("file_main", "perftrend.log"), ("file_worker", "worker.log"), ("file_api", "api.log")):
            handlers[name] = {
                "level": settings.log_level,
                "formatter": "detailed",
                "class": "logging.handlers.RotatingFileHandler",
                "filename": str(log_path / filename),
                "maxBytes": 104857600,
                "backupCount": settings.log_backup_count,
                "encoding": "utf8",
            }

    def _handlers(file_handler: str) -> List[str]:
        return console + ([file_handler] if settings.log_to_file else [])

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {"format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s"},
            "detailed": {
                "format": "%(asctime)s [%(levelname)s] %(name)s [%(filename)s:%(lineno)d] - %(message)s"
            },
        },
        "handlers": handlers,
        "loggers": {
            "": {"handlers": _handlers("file_main"), "level": settings.log_level, "propagate": False},
            "perftrend.api": {"handlers": _handlers("file_api"), "level": settings.log_level, "propagate": False},
            "perftrend.worker": {
                "handlers": _handlers("file_worker"),
                "level": settings.log_level,
                "propagate": False,
            },
            "uvicorn": {"handlers": _handlers("file_api"), "level": settings.log_level, "propagate": False},
            "uvicorn.access": {"handlers": _handlers("file_api"), "level": "INFO", "propagate": False},
        },
    }


def setup_logging(component_name: str = "worker"):
    import logging.config

    logging.config.dictConfig(get_logging_config())

    if component_name == "api":
        logger_name = "perftrend.api"
    elif component_name == "worker":
        logger_name = "perftrend.worker"
    else:
        logger_name = ""

    logger = logging.getLogger(logger_name)
    logger.info(f"Logging configured for {component_name} - File logging: {settings.log_to_file}")
    if settings.log_to_file:
        logger.info(f"Log files will be written to: {settings.get_log_path()}")
    return logger
