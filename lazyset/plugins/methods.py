"""
Bundled sequence-consuming methods. Each receives the current sequence as
its first argument; generator functions are wrapped lazily.
"""

import logging
import random
from collections import deque
from collections.abc import Iterable, Mapping
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)

_ATOMIC = (str, bytes, bytearray, Mapping)


def zip_with(seq, other, fn: Optional[Callable] = None):
    """Pair elements positionally up to the shorter sequence"""
    for a, b in zip(seq, seq.spawn(other)):
        yield fn(a, b) if fn is not None else (a, b)


def window(seq, size: int):
    """Sliding windows of ``size`` consecutive elements"""
    buf = deque(maxlen=size)
    for x in seq:
        buf.append(x)
        if len(buf) == size:
            yield list(buf)


def _flatten(items):
    for x in items:
        if isinstance(x, Iterable) and not isinstance(x, _ATOMIC):
            yield from _flatten(x)
        else:
            yield x


def flatten(seq):
    """Recursively flatten nested iterables (text and mappings stay whole)"""
    yield from _flatten(seq)


def unique(seq, key: Optional[Callable] = None):
    """Drop repeated elements, keeping first occurrences"""
    seen = set()
    for x in seq:
        marker = key(x) if key is not None else x
        try:
            hash(marker)
        except TypeError:
            marker = repr(marker)
        if marker not in seen:
            seen.add(marker)
            yield x


def cycle(seq):
    """Repeat the sequence forever (materializes one pass)"""
    cache = list(seq)
    if not cache:
        return
    while True:
        yield from cache


def concat(seq, *others):
    yield from seq
    for other in others:
        yield from seq.spawn(other)


def sort(seq, key: Optional[Callable] = None, reverse: bool = False):
    return seq.spawn(sorted(seq, key=key, reverse=reverse))


def sort_by(seq, fn: Callable):
    return sort(seq, key=fn)


def sample(seq, n: int, rng: Optional[random.Random] = None):
    """Up to ``n`` elements drawn without replacement"""
    items = list(seq)
    rng = rng or random
    return seq.spawn(rng.sample(items, min(n, len(items))))


def to_map(seq, key_fn: Callable, val_fn: Callable = lambda x: x) -> Dict[Any, Any]:
    return {key_fn(x): val_fn(x) for x in seq}


def shrink(seq):
    """
    Reduce to the simplest equivalent value: an empty sequence becomes
    None, a single element is unwrapped (through nested one-element lists),
    and multiple elements become a list with one-element lists unwrapped.
    """
    items = list(seq)
    if not items:
        return None
    if len(items) == 1:
        value = items[0]
        while isinstance(value, (list, tuple)):
            if not value:
                return None
            if len(value) > 1:
                return value
            value = value[0]
        return value
    return [x[0] if isinstance(x, (list, tuple)) and len(x) == 1 else x for x in items]


def debug(seq, label: str = ""):
    """Log every element at DEBUG level as it passes through"""
    prefix = f"[debug {label}]" if label else "[debug]"
    return seq.on(lambda x: logger.debug(f"{prefix} {x!r}"))


METHODS = {
    "zip": zip_with,
    "window": window,
    "flatten": flatten,
    "unique": unique,
    "cycle": cycle,
    "concat": concat,
    "mix": concat,
    "sort": sort,
    "sort_by": sort_by,
    "sample": sample,
    "to_map": to_map,
    "shrink": shrink,
    "debug": debug,
}
