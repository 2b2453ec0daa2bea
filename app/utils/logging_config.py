"""
Logging setup for the HR Insights API

ENVIRONMENT picks a preset (level, file output, line format). LOG_LEVEL
overrides the production level and LOG_DIR moves the log files.
"""
import functools
import inspect
import logging
import logging.config
import os
import time
from datetime import date
from pathlib import Path
from typing import Any, Dict, Optional

FORMATS = {
    "simple": {"format": "%(levelname)s - %(name)s - %(message)s"},
    "detailed": {
        "format": "%(asctime)s | %(levelname)-8s | %(name)-36s | %(funcName)-20s:%(lineno)-4d | %(message)s",
        "datefmt": "%Y-%m-%d %H:%M:%S",
    },
}

# environment -> (level, write files, console format); a level of None means LOG_LEVEL
PRESETS = {
    "production": (None, True, "detailed"),
    "development": ("DEBUG", True, "detailed"),
    "testing": ("WARNING", False, "simple"),
}

ROTATE_BYTES = 10 * 1024 * 1024
ROTATE_KEEP = 5


def _rotating_file(path: Path, level: str) -> Dict[str, Any]:
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "level": level,
        "formatter": "detailed",
        "filename": str(path),
        "maxBytes": ROTATE_BYTES,
        "backupCount": ROTATE_KEEP,
        "encoding": "utf8",
    }


def build_logging_config(level: str, log_dir: Optional[Path] = None, console_format: str = "detailed") -> Dict[str, Any]:
    """dictConfig payload: console always, plus daily app and error files when log_dir is given"""
    handlers: Dict[str, Any] = {
        "console": {
            "class": "logging.StreamHandler",
            "level": level,
            "formatter": console_format if console_format in FORMATS else "detailed",
            "stream": "ext://sys.stdout",
        }
    }
    if log_dir is not None:
        stamp = date.today().strftime("%Y%m%d")
        handlers["file"] = _rotating_file(log_dir / f"hr_insights_{stamp}.log", level)
        handlers["error_file"] = _rotating_file(log_dir / f"hr_insights_errors_{stamp}.log", "ERROR")

    app_handlers = list(handlers)
    server_handlers = [h for h in app_handlers if h != "error_file"]
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {name: dict(spec) for name, spec in FORMATS.items()},
        "handlers": handlers,
        "loggers": {
            "": {"level": level, "handlers": app_handlers, "propagate": False},
            "uvicorn": {"level": "INFO", "handlers": server_handlers, "propagate": False},
            "uvicorn.access": {"level": "INFO", "handlers": ["console"], "propagate": False},
        },
    }


def configure_for_environment(environment: str = None) -> Dict[str, Any]:
    """Apply the preset for ENVIRONMENT (unknown names log at LOG_LEVEL to the console only)"""
    environment = (environment or os.getenv("ENVIRONMENT", "development")).lower()
    level, to_files, console_format = PRESETS.get(environment, (None, False, "detailed"))
    level = level or os.getenv("LOG_LEVEL", "INFO").upper()

    log_dir = None
    if to_files:
        log_dir = Path(os.getenv("LOG_DIR", "logs"))
        log_dir.mkdir(parents=True, exist_ok=True)

    config = build_logging_config(level, log_dir, console_format)
    logging.config.dictConfig(config)
    get_logger("logging").info(
        f"Logging configured for {environment}: level={level}, files={log_dir or 'off'}"
    )
    return config


def get_logger(name: str) -> logging.Logger:
    """Logger under the hr_insights namespace"""
    return logging.getLogger(f"hr_insights.{name}")


def log_function_call(func):
    """Debug-log entry and duration of a sync or async function; errors are logged and re-raised"""
    logger = get_logger(func.__module__)

    def finished(start: float, error: Exception = None):
        elapsed = time.perf_counter() - start
        if error is None:
            logger.debug(f"Completed {func.__name__} in {elapsed:.3f}s")
        else:
            logger.error(f"Error in {func.__name__} after {elapsed:.3f}s: {error}")

    if inspect.iscoroutinefunction(func):
        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            logger.debug(f"Entering {func.__name__} with args={len(args)}, kwargs={list(kwargs)}")
            start = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                finished(start, e)
                raise
            finished(start)
            return result
        return async_wrapper

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        logger.debug(f"Entering {func.__name__} with args={len(args)}, kwargs={list(kwargs)}")
        start = time.perf_counter()
        try:
            result = func(*args, **kwargs)
        except Exception as e:
            finished(start, e)
            raise
        finished(start)
        return result
    return wrapper


class PerformanceMonitor:
    """Times a block; slow blocks log a warning, failures an error"""

    def __init__(self, operation_name: str, logger: logging.Logger = None, threshold_ms: float = 1000):
        self.operation_name = operation_name
        self.logger = logger or get_logger("performance")
        self.threshold_ms = threshold_ms
        self.elapsed_ms = None
        self._start = None

    def __enter__(self):
        self._start = time.perf_counter()
        self.logger.debug(f"Starting {self.operation_name}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.elapsed_ms = (time.perf_counter() - self._start) * 1000
        if exc_type is not None:
            self.logger.error(f"{self.operation_name} failed after {self.elapsed_ms:.2f}ms: {exc_val}")
        elif self.elapsed_ms > self.threshold_ms:
            self.logger.warning(
                f"{self.operation_name} took {self.elapsed_ms:.2f}ms (threshold {self.threshold_ms}ms)"
            )
        else:
            self.logger.info(f"{self.operation_name} completed in {self.elapsed_ms:.2f}ms")
