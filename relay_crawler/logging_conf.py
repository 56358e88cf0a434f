"""structlog on top of stdlib logging, with JSON files per run and per job."""

from __future__ import annotations

import logging
import logging.config
from collections import deque
from pathlib import Path
from threading import Lock

import structlog

from .config.loader import _slugify, resolve_home

ROOT_LOGGER = "relay_crawler"
JSON_FORMAT = "%(asctime)s %(levelname)s %(name)s %(threadName)s %(message)s"

_configured = False
_job_handlers: dict[Path, logging.FileHandler] = {}
_job_lock = Lock()


def log_dir() -> Path:
    return resolve_home() / "logs"


def job_log_path(job_name: str) -> Path:
    """Per-job log file, named by the same slug as the job config file."""

    return log_dir() / "jobs" / f"{_slugify(job_name) or 'job'}.log"


def _dict_config(directory: Path, level: str) -> dict:
    handlers = {
        "console": {"class": "logging.StreamHandler", "level": level, "formatter": "json"},
        "crawler_file": {
            "class": "logging.FileHandler",
            "level": "INFO",
            "filename": str(directory / "crawler.log"),
            "encoding": "utf-8",
            "formatter": "json",
        },
        "error_file": {
            "class": "logging.FileHandler",
            "level": "ERROR",
            "filename": str(directory / "error.log"),
            "encoding": "utf-8",
            "formatter": "json",
        },
    }
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"json": {"()": "pythonjsonlogger.jsonlogger.JsonFormatter", "fmt": JSON_FORMAT}},
        "handlers": handlers,
        "loggers": {
            ROOT_LOGGER: {"handlers": list(handlers), "level": level, "propagate": False},
        },
    }


def configure_logging(verbose: bool = False) -> structlog.BoundLogger:
    """Install handlers once; later calls only adjust the level."""

    global _configured
    level = "DEBUG" if verbose else "INFO"
    directory = log_dir()
    (directory / "jobs").mkdir(parents=True, exist_ok=True)

    if _configured:
        logging.getLogger(ROOT_LOGGER).setLevel(level)
        return structlog.get_logger(ROOT_LOGGER)

    logging.config.dictConfig(_dict_config(directory, level))
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
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    _configured = True
    return structlog.get_logger(ROOT_LOGGER)


def job_logger(job_name: str, verbose: bool = False) -> structlog.BoundLogger:
    """Logger bound to ``job=job_name`` that also writes ``logs/jobs/<job>.log``."""

    configure_logging(verbose)
    path = job_log_path(job_name)
    logger_name = f"{ROOT_LOGGER}.job.{path.stem}"
    with _job_lock:
        if path not in _job_handlers:
            path.parent.mkdir(parents=True, exist_ok=True)
            handler = logging.FileHandler(path, encoding="utf-8")
            handler.setLevel(logging.DEBUG if verbose else logging.INFO)
            root_handlers = logging.getLogger(ROOT_LOGGER).handlers
            if root_handlers:
                handler.setFormatter(root_handlers[0].formatter)
            logging.getLogger(logger_name).addHandler(handler)
            _job_handlers[path] = handler
    return structlog.get_logger(logger_name).bind(job=job_name)


def tail_log(path: Path, line_count: int = 100) -> list[str]:
    if not path.exists() or line_count < 1:
        return []
    with path.open("r", encoding="utf-8", errors="ignore") as stream:
        return list(deque(stream, maxlen=line_count))


def available_job_logs() -> list[Path]:
    jobs_dir = log_dir() / "jobs"
    if not jobs_dir.exists():
        return []
    return sorted(jobs_dir.glob("*.log"))


__all__ = ["available_job_logs", "configure_logging", "job_log_path", "job_logger", "log_dir", "tail_log"]
