"""Logging configuration built around structlog JSON logging."""

from __future__ import annotations

import logging.config
import os
from pathlib import Path
from typing import Any

import structlog

ROOT_LOGGER = "tally_crawler"
CRAWLER_LOG = "crawler.log"
ERROR_LOG = "error.log"

_LOGGING_INITIALISED = False


def default_log_dir() -> Path:
    env_root = os.environ.get("TALLY_CRAWLER_HOME")
    if env_root:
        return Path(env_root).expanduser().resolve() / "logs"
    return Path(__file__).resolve().parents[1] / "logs"


def _file_handler(path: Path, level: str) -> dict[str, Any]:
    return {
        "class": "logging.FileHandler",
        "level": level,
        "filename": str(path),
        "encoding": "utf-8",
        "formatter": "json",
    }


def build_logging_config(level: str, log_dir: Path) -> dict[str, Any]:
    """Return the ``dictConfig`` payload for the application loggers.

    Every record goes to the console as JSON. ``crawler.log`` keeps INFO and
    above for ``log show``; ``error.log`` keeps only failures. The console
    handler writes to stderr because stdout carries exported records.
    """

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "()": "pythonjsonlogger.jsonlogger.JsonFormatter",
                "fmt": "%(asctime)s %(levelname)s %(name)s %(message)s",
            }
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stderr",
                "level": level,
                "formatter": "json",
            },
            "crawler_file": _file_handler(log_dir / CRAWLER_LOG, "INFO"),
            "error_file": _file_handler(log_dir / ERROR_LOG, "ERROR"),
        },
        "loggers": {
            ROOT_LOGGER: {
                "handlers": ["console", "crawler_file", "error_file"],
                "level": level,
                "propagate": False,
            },
        },
    }


def configure_logging(verbose: bool = False, log_dir: Path | None = None) -> structlog.BoundLogger:
    """Configure structlog + stdlib handlers once and return the application logger."""

    global _LOGGING_INITIALISED
    log_dir = log_dir or default_log_dir()
    log_dir.mkdir(parents=True, exist_ok=True)
    for name in (CRAWLER_LOG, ERROR_LOG):
        (log_dir / name).touch(exist_ok=True)

    if not _LOGGING_INITIALISED:
        logging.config.dictConfig(build_logging_config("DEBUG" if verbose else "INFO", log_dir))
        structlog.configure(
            processors=[
                structlog.contextvars.merge_contextvars,
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.stdlib.add_log_level,
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
            ],
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )
        _LOGGING_INITIALISED = True
    return structlog.get_logger(ROOT_LOGGER)


def component_logger(component: str, **context: Any) -> structlog.BoundLogger:
    """Logger for one pipeline component, nested under the application logger."""

    return structlog.get_logger(f"{ROOT_LOGGER}.{component}", component=component, **context)


def log_file(log_dir: Path, errors_only: bool = False) -> Path:
    return log_dir / (ERROR_LOG if errors_only else CRAWLER_LOG)


def tail_log(path: Path, line_count: int = 100) -> list[str]:
    """Return the last N lines from a log file."""

    if not path.exists():
        return []
    with path.open("r", encoding="utf-8", errors="ignore") as stream:
        lines = stream.readlines()
    return lines[-line_count:]


__all__ = [
    "build_logging_config",
    "component_logger",
    "configure_logging",
    "default_log_dir",
    "log_file",
    "tail_log",
]
