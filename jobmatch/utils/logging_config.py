"""
Logging setup for the Job Match Engine.

Everything the engine logs goes through loggers below ``jobmatch``; call
``configure_for_environment()`` (or ``setup_logging``) once at process start.
"""
import functools
import inspect
import logging
import logging.config
import os
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Dict

LOG_FORMATS = {
    "simple": "%(levelname)s - %(name)s - %(message)s",
    "detailed": "%(asctime)s | %(levelname)-8s | %(name)-32s | %(funcName)s:%(lineno)d | %(message)s",
    "json": '{"ts": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "msg": "%(message)s"}',
}

# third-party loggers that flood INFO with per-request lines
QUIET_LOGGERS = ("chromadb", "httpx", "urllib3")

ENVIRONMENT_PROFILES: Dict[str, Dict[str, Any]] = {
    "production": {"enable_file": True, "format_style": "json"},
    "development": {"level": "DEBUG", "enable_file": True, "format_style": "detailed"},
    "testing": {"level": "WARNING", "enable_file": False, "format_style": "simple"},
}


def _rotating_handler(path: Path, level: str) -> Dict[str, Any]:
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "level": level,
        "formatter": "detailed",
        "filename": str(path),
        "maxBytes": 10 * 1024 * 1024,
        "backupCount": 5,
        "encoding": "utf8",
    }


def setup_logging(
    level: str = "INFO",
    log_file: str = None,
    enable_console: bool = True,
    enable_file: bool = True,
    format_style: str = "detailed"
) -> None:
    """
    Configure the ``jobmatch`` logger tree through ``dictConfig``.

    Args:
        level: Level for engine loggers (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Log file path, defaults to ``$LOG_DIR/jobmatch_<date>.log``
        enable_console: Log to stdout
        enable_file: Log to a rotating file plus a separate error file
        format_style: One of 'simple', 'detailed', 'json'
    """
    stamp = datetime.now().strftime('%Y%m%d')
    log_dir = Path(os.getenv("LOG_DIR", "logs"))

    handlers: Dict[str, Any] = {}
    if enable_console:
        handlers["console"] = {
            "class": "logging.StreamHandler",
            "level": level,
            "formatter": "simple" if format_style == "simple" else "detailed",
            "stream": "ext://sys.stdout",
        }
    if enable_file:
        log_dir.mkdir(parents=True, exist_ok=True)
        log_file = Path(log_file) if log_file else log_dir / f"jobmatch_{stamp}.log"
        handlers["file"] = _rotating_handler(log_file, level)
        handlers["error_file"] = _rotating_handler(log_dir / f"jobmatch_errors_{stamp}.log", "ERROR")

    loggers: Dict[str, Any] = {
        "jobmatch": {"level": level, "handlers": list(handlers), "propagate": False},
    }
    for name in QUIET_LOGGERS:
        loggers[name] = {"level": "WARNING"}

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "detailed": {
                "format": LOG_FORMATS.get(format_style, LOG_FORMATS["detailed"]),
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "simple": {"format": LOG_FORMATS["simple"]},
        },
        "handlers": handlers,
        "loggers": loggers,
    })

    logger = logging.getLogger("jobmatch.logging")
    logger.info(f"Logging ready (level={level}, handlers={', '.join(handlers) or 'none'})")
    if enable_file:
        logger.info(f"Writing logs to {log_file}")


def get_logger(name: str) -> logging.Logger:
    """Logger for ``name``, placed under the ``jobmatch`` namespace."""
    if name == "jobmatch" or name.startswith("jobmatch."):
        return logging.getLogger(name)
    return logging.getLogger(f"jobmatch.{name}")


def log_function_call(func):
    """Log entry, duration and failure of a (sync or async) function at DEBUG."""
    logger = get_logger(func.__module__)

    def _done(started: float, error: Exception = None):
        took = time.perf_counter() - started
        if error is None:
            logger.debug(f"{func.__name__} returned after {took:.3f}s")
        else:
            logger.error(f"{func.__name__} raised after {took:.3f}s: {error}")

    if inspect.iscoroutinefunction(func):
        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            logger.debug(f"Calling {func.__name__} ({len(args)} args, kwargs={sorted(kwargs)})")
            started = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                _done(started, e)
                raise
            _done(started)
            return result
        return async_wrapper

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        logger.debug(f"Calling {func.__name__} ({len(args)} args, kwargs={sorted(kwargs)})")
        started = time.perf_counter()
        try:
            result = func(*args, **kwargs)
        except Exception as e:
            _done(started, e)
            raise
        _done(started)
        return result
    return wrapper


def configure_for_environment():
    """Pick a logging profile from ``ENVIRONMENT``; ``LOG_LEVEL`` sets the default level."""
    environment = os.getenv("ENVIRONMENT", "development").lower()
    options = {"level": os.getenv("LOG_LEVEL", "INFO").upper()}
    options.update(ENVIRONMENT_PROFILES.get(environment, {}))
    setup_logging(**options)


class PerformanceMonitor:
    """Times a block and logs it, as a warning when it runs past ``threshold_ms``."""

    def __init__(self, operation_name: str, logger: logging.Logger = None, threshold_ms: float = 1000):
        self.operation_name = operation_name
        self.logger = logger or get_logger("performance")
        self.threshold_ms = threshold_ms
        self.elapsed_ms = 0.0
        self._started = None

    def __enter__(self):
        self._started = time.perf_counter()
        self.logger.debug(f"{self.operation_name} started")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.elapsed_ms = (time.perf_counter() - self._started) * 1000
        if exc_type is not None:
            self.logger.warning(f"{self.operation_name} aborted after {self.elapsed_ms:.1f}ms: {exc_type.__name__}")
        elif self.elapsed_ms > self.threshold_ms:
            self.logger.warning(f"{self.operation_name} took {self.elapsed_ms:.1f}ms (threshold {self.threshold_ms}ms)")
        else:
            self.logger.info(f"{self.operation_name} took {self.elapsed_ms:.1f}ms")
        return False
