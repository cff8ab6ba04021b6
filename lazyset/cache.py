"""Cache strategies backing indexed access on lazy sequences."""

import logging
from typing import Any, Callable, Dict, List

from lazyset.models import DEFAULT_CACHE_SIZE, DEFAULT_WINDOW_SIZE, WindowEvent

logger = logging.getLogger(__name__)


class _Absent:
    """Marker for an index the cache does not hold."""
    __slots__ = ()

    def __repr__(self):
        return "ABSENT"

    def __bool__(self):
        return False


ABSENT = _Absent()


class MaterializeBuffer:
    """
    Unbounded, append-only buffer of produced values. Exists purely so the
    producer never has to run twice.
    """

    def __init__(self):
        self.values: List[Any] = []
        self.exhausted = False

    def get(self, index: int) -> Any:
        return self.values[index] if 0 <= index < len(self.values) else ABSENT

    def push(self, value: Any):
        self.values.append(value)

    def clear(self):
        self.values = []
        self.exhausted = False

    @property
    def start(self) -> int:
        return 0

    def __len__(self):
        return len(self.values)

    def __iter__(self):
        return iter(self.values)


class SlidingWindowCache:
    """
    Bounded buffer keeping only the most recent ``max_size`` values.

    Eviction drops from the front and advances ``start``; a "window" event
    fires every time the buffer length is a multiple of ``window_size``.
    """

    def __init__(self, max_size: int = DEFAULT_CACHE_SIZE, window_size: int = DEFAULT_WINDOW_SIZE):
        self.max_size = max(1, max_size)
        self.window_size = max(1, window_size)
        self.values: List[Any] = []
        self.start = 0
        self._listeners: Dict[str, List[Callable]] = {}

    def get(self, index: int) -> Any:
        offset = index - self.start
        return self.values[offset] if 0 <= offset < len(self.values) else ABSENT

    def push(self, value: Any):
        self.values.append(value)
        if len(self.values) > self.max_size:
            evicted = len(self.values) - self.max_size
            del self.values[:evicted]
            self.start += evicted
        if len(self.values) % self.window_size == 0:
            self.emit("window", WindowEvent(size=len(self.values), start=self.start))

    def on(self, event: str, handler: Callable):
        self._listeners.setdefault(event, []).append(handler)

    def emit(self, event: str, data: Any):
        for handler in self._listeners.get(event, []):
            handler(data)

    def clear(self):
        self.values = []
        self.start = 0

    def __len__(self):
        return len(self.values)
