"""Error taxonomy + helpers for guarding lazy evaluation."""

import functools
import logging
import time
from typing import Any, Callable, Dict, Iterable, Iterator, Optional

logger = logging.getLogger(__name__)


class SequenceError(Exception):
    """Base error for the lazy sequence engine."""

    def __init__(self, message: str, code: str = "SEQUENCE_ERROR", context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.context = context or {}


class AccessError(SequenceError):
    """Raised when resolving an attribute or index on a sequence fails."""

    def __init__(self, message: str, key: Any, target: Any, context: Optional[Dict[str, Any]] = None):
        self.key = key
        self.target_type = type(target).__name__
        super().__init__(
            f"Error accessing {key!r} on {self.target_type}: {message}",
            "ACCESS_ERROR",
            {"key": key, "target_type": self.target_type, **(context or {})}
        )


class RangeError(SequenceError, IndexError):
    """Raised for negative indices."""

    def __init__(self, message: str = "Index must be >= 0", index: Optional[int] = None):
        super().__init__(message, "RANGE_ERROR", {"index": index})
        self.index = index


class RegistryError(SequenceError):
    """Raised when a plugin cannot be registered."""

    def __init__(self, message: str, name: Optional[str] = None):
        super().__init__(message, "REGISTRY_ERROR", {"name": name})
        self.name = name


class RegistryFrozenError(RegistryError):
    """Raised when registering into a frozen registry."""

    def __init__(self, name: Optional[str] = None):
        super().__init__(f"Registry is frozen; cannot register {name!r}", name)
        self.code = "REGISTRY_FROZEN"


class IterationLimitError(SequenceError):
    """Raised by the iteration guards when a bound is exceeded."""

    def __init__(self, message: str, limit: Any, context: Optional[Dict[str, Any]] = None):
        super().__init__(
            f"Iteration limit exceeded ({limit}): {message}",
            "ITERATION_LIMIT",
            {"limit": limit, **(context or {})}
        )
        self.limit = limit


def create_error_handler(log_errors: bool = False, raise_errors: bool = True,
                         on_error: Optional[Callable[[SequenceError, Dict[str, Any]], Any]] = None):
    """Build a handler that normalizes any exception into a SequenceError.

    The handler logs (optionally), notifies ``on_error`` and then either
    raises the normalized error or returns it.
    """

    def handler(error: BaseException, context: Optional[Dict[str, Any]] = None) -> SequenceError:
        context = context or {}
        if isinstance(error, SequenceError):
            enhanced = error
        else:
            enhanced = SequenceError(str(error) or type(error).__name__, "UNKNOWN",
                                     {"original": error, **context})
            enhanced.__cause__ = error

        if log_errors:
            logger.error(f"[{enhanced.code}] {enhanced}")
            if enhanced.context:
                logger.error(f"Context: {enhanced.context}")

        if on_error is not None:
            on_error(enhanced, context)

        if raise_errors:
            raise enhanced
        return enhanced

    return handler


handle_error = create_error_handler(log_errors=False, raise_errors=True)


def safe(fn: Callable, fallback: Any = None, error_handler: Optional[Callable] = None) -> Callable:
    """Wrap ``fn`` so failures go through ``error_handler``.

    With a non-raising handler, ``fallback`` is returned when given,
    otherwise the normalized error.
    """
    error_handler = error_handler or handle_error

    @functools.wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except Exception as e:
            handled = error_handler(e, {"fn": getattr(fn, "__name__", repr(fn)), "args": args})
            return fallback if fallback is not None else handled

    return wrapper


def with_limit(source: Iterable, max_items: int) -> Iterator:
    """Yield from ``source``; raise once more than ``max_items`` are pulled."""
    count = 0
    for item in source:
        count += 1
        if count > max_items:
            raise IterationLimitError(f"more than {max_items} items produced", max_items)
        yield item


def with_timeout(source: Iterable, seconds: float, check_every: int = 1000) -> Iterator:
    """Yield from ``source``; raise when wall time exceeds ``seconds``."""
    start = time.monotonic()

    def check():
        elapsed = time.monotonic() - start
        if elapsed > seconds:
            raise IterationLimitError(f"operation exceeded {seconds}s", seconds, {"elapsed": elapsed})

    check()
    for count, item in enumerate(source, 1):
        if count % check_every == 0:
            check()
        yield item
