from __future__ import annotations

import os
import sys
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from loguru import logger as _logger

_CONFIGURED = False
LOG_DIR_ENV = "APP_LOG_DIR"
LOG_LEVEL_ENV = "APP_LOG_LEVEL"

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)


def _resolve_log_dir(explicit: str | Path | None) -> Path | None:
    """Directory for the rotating file sink, or None when ``APP_LOG_DIR`` is unset."""

    if explicit is not None:
        return Path(explicit).expanduser().resolve()
    env_value = os.getenv(LOG_DIR_ENV)
    if env_value:
        return Path(env_value).expanduser().resolve()
    return None


def configure_logger(*, log_dir: str | Path | None = None, level: str | None = None) -> None:
    """Configure the Loguru logger exactly once per process."""

    global _CONFIGURED
    if _CONFIGURED:
        return

    log_level = (level or os.getenv(LOG_LEVEL_ENV, "INFO")).upper()

    _logger.remove()
    _logger.add(
        sys.stdout,
        level=log_level,
        format=LOG_FORMAT,
        colorize=sys.stdout.isatty(),
    )

    target_dir = _resolve_log_dir(log_dir)
    if target_dir is not None:
        target_dir.mkdir(parents=True, exist_ok=True)
        _logger.add(
            target_dir / "reviewbot_{time:YYYY-MM-DD}.log",
            rotation="50 MB",
            retention="10 days",
            level="DEBUG",
            format=LOG_FORMAT,
            enqueue=True,
            backtrace=True,
            diagnose=False,
        )

    _CONFIGURED = True


def get_logger(*, log_dir: str | Path | None = None, level: str | None = None):
    """Return the configured logger, configuring it on first access."""

    configure_logger(log_dir=log_dir, level=level)
    return _logger


def log_with_context(logger_instance, **context: str | int | None) -> Any:
    """Bind review context (repository, pull number, file...) to a logger.

    Usage:
        ctx_logger = log_with_context(get_logger(), repository="owner/repo", pull_number=7)
        ctx_logger.info("Fetching files")
    """
    return logger_instance.bind(**{k: v for k, v in context.items() if v is not None})


def log_timing(logger_instance, operation: str, **context: str | int | None):
    """Context manager that logs how long an operation took.

    Usage:
        with log_timing(logger, "list_files", repository="owner/repo"):
            ...
    """
    @contextmanager
    def _timing():
        start_time = time.monotonic()
        ctx_logger = log_with_context(logger_instance, **context)
        ctx_logger.debug(f"Starting {operation}")
        try:
            yield ctx_logger
        except Exception as exc:
            duration = time.monotonic() - start_time
            ctx_logger.error(f"Failed {operation} after {duration:.3f}s: {exc}")
            raise
        duration = time.monotonic() - start_time
        ctx_logger.debug(f"Completed {operation} in {duration:.3f}s")
    return _timing()


def log_success(logger_instance, message: str, **context: str | int | None) -> None:
    log_with_context(logger_instance, **context).info(f"=== SUCCESS: {message} ===")


def log_failure(logger_instance, message: str, error: Exception | None = None, **context: str | int | None) -> None:
    """Log a failure with context, including the error when one is given."""
    ctx_logger = log_with_context(logger_instance, **context)
    if error:
        ctx_logger.error(f"=== FAILURE: {message} | {type(error).__name__}: {error} ===")
    else:
        ctx_logger.error(f"=== FAILURE: {message} ===")
