import enum
import functools
import logging
import numbers
import os
import time
from typing import Any, Callable, TypeVar

# Default to CRITICAL (effectively off) unless explicitly set for debug
LOG_LEVEL = os.getenv("APP_LOG_LEVEL", "CRITICAL").upper()
logging.basicConfig(level=getattr(logging, LOG_LEVEL, logging.CRITICAL))

F = TypeVar("F", bound=Callable[..., Any])

_MAX_REPR = 80


def _summarize(value: Any) -> str:
    """Short, log-safe rendering of an argument or return value."""
    if value is None or isinstance(value, (bool, numbers.Number)):
        return repr(value)
    if isinstance(value, enum.Enum):
        return f"{type(value).__name__}.{value.name}"
    if isinstance(value, str):
        text = value if len(value) <= _MAX_REPR else value[:_MAX_REPR] + "..."
        return repr(text)
    if isinstance(value, (list, tuple, dict, set)):
        return f"<{type(value).__name__} len={len(value)}>"
    return f"<{type(value).__name__}>"


def log_call(func: F) -> F:
    """Decorator that logs function entry, exit and runtime at DEBUG level."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        logger = logging.getLogger(func.__module__)
        log_debug = logger.isEnabledFor(logging.DEBUG)
        if log_debug:
            logger.debug("Entering %s", func.__qualname__)
            logger.debug(
                "args=%s kwargs=%s",
                [_summarize(a) for a in args],
                {k: _summarize(v) for k, v in kwargs.items()},
            )
        start = time.perf_counter()
        result = func(*args, **kwargs)
        runtime_ms = (time.perf_counter() - start) * 1000.0
        if log_debug:
            logger.debug("return=%s", _summarize(result))
            logger.debug("Exiting %s (%.2fms)", func.__qualname__, runtime_ms)
        return result

    return wrapper  # type: ignore[return-value]
