"""
Lazy sequence engine: the factory that normalizes any input into a
restartable lazy sequence, and the dispatch layer that resolves index,
built-in and registered-operation access on it.
"""

import functools
import inspect
import logging
import math
import operator
from collections import deque
from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from itertools import islice, takewhile
from typing import Any, Callable, Dict, List, Optional

from lazyset.cache import ABSENT, MaterializeBuffer, SlidingWindowCache
from lazyset.errors import AccessError, RangeError
from lazyset.models import Arity, OperationKind, SequenceOptions
from lazyset.registry import OperationDescriptor, OperationRegistry, get_default_registry

logger = logging.getLogger(__name__)

# Reductions over more elements than this fold pairwise instead of
# spreading every element as a positional argument.
REDUCTION_SPREAD_LIMIT = 1000

# Eager pre-fill on the first indexed access of a materialized sequence.
EAGER_MIN_CHUNK = 100
EAGER_LARGE_CHUNK = 500

_NO_INITIAL = object()

TEXT_TYPES = (str, bytes, bytearray)


class ShapeKind(str, Enum):
    EMPTY = "empty"
    SINGLETON = "singleton"
    MULTI = "multi"


@dataclass(frozen=True)
class Shape:
    """Write-once result of peeking the first two elements."""
    kind: ShapeKind
    value: Any = None

    @property
    def is_empty(self) -> bool:
        return self.kind is ShapeKind.EMPTY

    @property
    def is_singleton(self) -> bool:
        return self.kind is ShapeKind.SINGLETON

    @property
    def is_multi(self) -> bool:
        return self.kind is ShapeKind.MULTI

    @classmethod
    def of(cls, head: List[Any]) -> "Shape":
        if not head:
            return cls(ShapeKind.EMPTY)
        if len(head) == 1:
            return cls(ShapeKind.SINGLETON, head[0])
        return cls(ShapeKind.MULTI)


def _empty():
    return iter(())


def _bound(n: Optional[float]) -> Optional[int]:
    """Clamp a count to >= 0; ``None`` and +inf mean unbounded."""
    if n is None:
        return None
    if isinstance(n, float) and math.isinf(n):
        return None if n > 0 else 0
    return max(0, int(n))


class LazySequence:
    """
    A chainable, lazy, possibly infinite sequence. Nothing is produced
    until a consumer iterates, indexes or calls an eager method.

    Names not defined on the class are looked up in the operation
    registry, so ``seq.add(10)`` or ``seq.sq()`` dispatch to registered
    plugins.
    """

    def __init__(self, producer: Callable[[], Iterable], source: Optional[Sequence] = None,
                 options: Optional[SequenceOptions] = None,
                 registry: Optional[OperationRegistry] = None):
        self._producer = producer
        self._source = source
        self._options = options or SequenceOptions()
        self._registry = registry if registry is not None else get_default_registry()
        self._shape: Optional[Shape] = None

        self._memo: Optional[MaterializeBuffer] = None
        self._window: Optional[SlidingWindowCache] = None
        if source is None:
            if self._options.memo_target:
                self._memo = MaterializeBuffer()
            elif self._options.window_capacity:
                self._window = SlidingWindowCache(self._options.window_capacity, self._options.window_size)
                if self._options.on_window is not None:
                    self._window.on("window", self._options.on_window)

        # shared producer iterator used to fill the caches
        self._cursor: Optional[Iterator] = None
        self._position = 0

    # --------- introspection ----------
    @property
    def options(self) -> SequenceOptions:
        return self._options

    @property
    def registry(self) -> OperationRegistry:
        return self._registry

    @property
    def length(self) -> Optional[int]:
        """Known length; only defined for collection-backed sequences."""
        return len(self._source) if self._source is not None else None

    @property
    def shape(self) -> Shape:
        return self._peek()

    @property
    def is_singleton(self) -> bool:
        return self._peek().is_singleton

    def _peek(self) -> Shape:
        if self._shape is None:
            head = self._source if self._source is not None else iter(self)
            self._shape = Shape.of(list(islice(head, 2)))
        return self._shape

    @property
    def cache(self):
        """The active cache buffer (materialize or sliding window), if any."""
        return self._memo if self._memo is not None else self._window

    # --------- iterator protocol ----------
    def __iter__(self):
        if self._source is not None:
            return iter(self._source)
        if self._memo is not None:
            return self._memo_iter()
        return iter(self._producer())

    def _memo_iter(self):
        index = 0
        while True:
            if index < len(self._memo):
                yield self._memo.values[index]
                index += 1
            elif not self._advance():
                return

    def _advance(self) -> bool:
        """Pull one value from the shared cursor into the active cache."""
        if self._memo is not None and self._memo.exhausted:
            return False
        if self._cursor is None:
            self._cursor = iter(self._producer())
        try:
            value = next(self._cursor)
        except StopIteration:
            if self._memo is not None:
                self._memo.exhausted = True
            return False
        self._position += 1
        if self._memo is not None:
            self._memo.push(value)
        elif self._window is not None:
            self._window.push(value)
        return True

    def _restart(self):
        logger.debug(f"Restarting producer at position {self._position} (index evicted from window)")
        self._cursor = None
        self._position = 0
        self._window.clear()

    # --------- indexed access ----------
    def _resolve_index(self, index: int) -> Any:
        if self._source is not None:
            return self._source[index] if index < len(self._source) else ABSENT

        if self._memo is not None:
            if not len(self._memo) and not self._memo.exhausted:
                if index < EAGER_MIN_CHUNK:
                    eager = EAGER_MIN_CHUNK
                else:
                    eager = min(self._options.memo_target, max(index + 1, EAGER_LARGE_CHUNK))
                while len(self._memo) < eager and self._advance():
                    pass
            while len(self._memo) <= index and self._advance():
                pass
            return self._memo.get(index)

        if self._window is not None:
            cached = self._window.get(index)
            if cached is not ABSENT:
                return cached
            if index < self._position:
                self._restart()
            while self._position <= index and self._advance():
                pass
            return self._window.get(index)

        return next(islice(self._producer(), index, None), ABSENT)

    def __getitem__(self, key):
        if isinstance(key, slice):
            return self._slice(key)
        if isinstance(key, str):
            return getattr(self, key)
        try:
            index = operator.index(key)
        except TypeError:
            return None
        if index < 0:
            raise RangeError(index=index)
        try:
            value = self._resolve_index(index)
        except Exception as e:
            raise AccessError(str(e), index, self) from e
        return None if value is ABSENT else value

    def _slice(self, key: slice) -> "LazySequence":
        start, stop, step = key.start, key.stop, key.step
        if any(bound is not None and bound < 0 for bound in (start, stop, step)):
            raise RangeError("Slice bounds must be >= 0")
        if self._source is not None:
            return self.spawn(self._source[key])
        return self._derive(lambda: islice(self, start, stop, step))

    # --------- registered operations ----------
    def __getattr__(self, name):
        if name.startswith("_"):
            raise AttributeError(name)
        member = getattr(type(self), name, None)
        if isinstance(member, property):
            # the getter itself raised AttributeError; surface it
            return member.fget(self)
        if member is not None:
            raise AttributeError(name)
        try:
            descriptor = self._registry.lookup(name)
            if descriptor is None:
                return None
            return self.bind(descriptor)
        except Exception as e:
            raise AccessError(str(e), name, self) from e

    def bind(self, descriptor: OperationDescriptor) -> Callable:
        """Bind a registry descriptor to this sequence as its receiver."""
        if descriptor.kind is OperationKind.METHOD:
            return functools.partial(self._call_method, descriptor.fn)
        return functools.partial(self._call_operation, descriptor)

    def _call_method(self, fn: Callable, *args, **kwargs):
        if inspect.isgeneratorfunction(fn):
            return self._derive(lambda: fn(self, *args, **kwargs))
        result = fn(self, *args, **kwargs)
        if inspect.isgenerator(result):
            return self.spawn(result)
        return result

    def _call_operation(self, descriptor: OperationDescriptor, *args):
        fn, arity = descriptor.fn, descriptor.arity

        if arity is Arity.VARIADIC and not args:
            return self._reduce_with(fn)
        if arity is Arity.UNARY and not args:
            return self._map_unary(fn)
        if arity is Arity.BINARY and len(args) == 1:
            return self._broadcast(fn, args[0])

        shape = self._peek()
        if shape.is_singleton:
            return fn(shape.value, *args)
        return self._derive(lambda: (fn(x, *args) for x in self))

    def _map_unary(self, fn: Callable):
        shape = self._peek()
        if shape.is_singleton:
            return fn(shape.value)
        return self._derive(lambda: (fn(x) for x in self))

    def _broadcast(self, fn: Callable, operand: Any):
        other = self.spawn(operand)
        left, right = self._peek(), other._peek()

        if left.is_singleton and right.is_singleton:
            return fn(left.value, right.value)
        if left.is_singleton:
            value = left.value
            return self._derive(lambda: (fn(value, x) for x in other))
        if right.is_singleton:
            value = right.value
            return self._derive(lambda: (fn(x, value) for x in self))
        return self._derive(lambda: (fn(a, b) for a, b in zip(self, other)))

    def _reduce_with(self, fn: Callable):
        items = self.to_array()
        if not items:
            return fn()
        if len(items) < REDUCTION_SPREAD_LIMIT:
            return fn(*items)
        # exact only for associative reductions (sum, min, max)
        return functools.reduce(fn, items)

    # --------- helpers ----------
    def _derive(self, producer: Callable[[], Iterable]) -> "LazySequence":
        return LazySequence(producer, registry=self._registry)

    def spawn(self, source: Any = None, **options) -> "LazySequence":
        """Normalize ``source`` into a sequence sharing this registry."""
        return make_sequence(source, registry=self._registry, **options)

    def __repr__(self):
        if self._source is not None:
            return f"LazySequence({self._source!r})"
        name = getattr(self._producer, "__name__", type(self._producer).__name__)
        return f"LazySequence(<{name}>)"

    # --------- chainable operators (lazy) ----------
    def map(self, fn: Callable) -> "LazySequence":
        return self._derive(lambda: (fn(x) for x in self))

    def filter(self, pred: Callable) -> "LazySequence":
        return self._derive(lambda: (x for x in self if pred(x)))

    def take(self, n: Optional[int]) -> "LazySequence":
        """First ``n`` elements; ``None`` or infinity leaves the sequence unbounded."""
        n = _bound(n)
        return self._derive(lambda: islice(self, n))

    def skip(self, n: Optional[int]) -> "LazySequence":
        n = _bound(n)
        if n is None:
            return self._derive(_empty)
        return self._derive(lambda: islice(self, n, None))

    def take_while(self, pred: Callable) -> "LazySequence":
        return self._derive(lambda: takewhile(pred, self))

    def take_range(self, start: int, stop: int) -> "LazySequence":
        """Elements with index in [start, stop] (inclusive)."""
        start = _bound(start)
        if start is None:
            return self._derive(_empty)
        if stop is None or stop == math.inf:
            end = None
        else:
            end = start if stop == -math.inf else max(start, int(stop) + 1)
        return self._derive(lambda: islice(self, start, end))

    def on(self, fn: Callable) -> "LazySequence":
        """Run ``fn`` for its side effect as each element passes through."""
        def tap():
            for x in self:
                fn(x)
                yield x
        return self._derive(tap)

    def batch(self, size: int) -> "LazySequence":
        """Group elements into tuples of ``size``; the last may be shorter."""
        size = max(1, int(size))

        def batches():
            it = iter(self)
            while True:
                bucket = tuple(islice(it, size))
                if not bucket:
                    return
                yield bucket
        return self._derive(batches)

    def chunk(self, size: int) -> "LazySequence":
        """Like batch() but yields lists"""
        return self.batch(size).map(list)

    def page(self, page_number: int, page_size: int) -> "LazySequence":
        """Page ``page_number`` (1-based) of ``page_size`` elements."""
        if page_number < 1:
            raise ValueError("Page number must be >= 1")
        size = max(0, int(page_size))
        offset = (page_number - 1) * size
        return self._derive(lambda: islice(self, offset, offset + size))

    def paginate(self, page_size: int):
        """Pages of up to ``page_size`` elements, produced in a single pass."""
        yield from self.chunk(page_size)

    def pipe(self, *steps):
        from lazyset.compose import pipe
        return pipe(*steps)(self)

    # --------- forcing evaluation ----------
    def to_array(self) -> List[Any]:
        return list(self)

    to_list = to_array

    def to_json(self) -> List[Any]:
        return list(self)

    def to_string(self, maxlen: int = 100) -> str:
        return ",".join(str(x) for x in islice(self, maxlen))

    def value(self) -> Any:
        """Unwrap a singleton; anything else materializes to a list."""
        shape = self._peek()
        if shape.is_singleton:
            return shape.value
        return self.to_array()

    def get(self, index: int, default: Any = None) -> Any:
        """Return the element at ``index`` or ``default`` past the end."""
        if index < 0:
            raise RangeError(index=index)
        value = self._resolve_index(index)
        return default if value is ABSENT else value

    def reduce(self, fn: Callable, initial: Any = _NO_INITIAL) -> Any:
        """Apply a function of two arguments cumulatively to items, from left to right"""
        if initial is _NO_INITIAL:
            return functools.reduce(fn, self)
        return functools.reduce(fn, self, initial)

    def count(self) -> int:
        if self._source is not None:
            return len(self._source)
        return sum(1 for _ in self)

    def first(self, default: Any = None) -> Any:
        return next(iter(self), default)

    def last(self, default: Any = None) -> Any:
        tail = deque(self, maxlen=1)
        return tail[0] if tail else default

    def is_empty(self) -> bool:
        if self._shape is not None:
            return self._shape.is_empty
        return next(iter(self), ABSENT) is ABSENT

    def any(self, pred: Optional[Callable] = None) -> bool:
        return any(self if pred is None else map(pred, self))

    def all(self, pred: Optional[Callable] = None) -> bool:
        return all(self if pred is None else map(pred, self))

    def find(self, pred: Callable, default: Any = None) -> Any:
        return next((x for x in self if pred(x)), default)

    def group_by(self, key_fn: Callable) -> Dict[Any, List[Any]]:
        groups: Dict[Any, List[Any]] = {}
        for item in self:
            groups.setdefault(key_fn(item), []).append(item)
        return groups

    def for_each(self, fn: Callable):
        for x in self:
            fn(x)

    def clear_cache(self) -> "LazySequence":
        """Drop cached values; the next access restarts the producer."""
        if self._memo is not None:
            self._memo.clear()
        if self._window is not None:
            self._window.clear()
        self._cursor = None
        self._position = 0
        return self


BUILTIN_METHODS = frozenset(
    name for name, member in vars(LazySequence).items()
    if not name.startswith("_") and (callable(member) or isinstance(member, property))
)


def _normalize_options(options, option_kwargs) -> Optional[SequenceOptions]:
    if options is None and not option_kwargs:
        return None
    if isinstance(options, SequenceOptions):
        if not option_kwargs:
            return options
        return SequenceOptions(**{**options.model_dump(), **option_kwargs})
    return SequenceOptions(**{**(options or {}), **option_kwargs})


def make_sequence(source: Any = None, options: Any = None, *,
                  registry: Optional[OperationRegistry] = None, **option_kwargs) -> LazySequence:
    """
    Normalize any input into a LazySequence.

    - ``None`` becomes the empty sequence
    - a generator function is used directly as the producer
    - a list, tuple, range (any non-text Sequence) is replayed and kept
      for direct indexed access
    - other iterables are replayed; one-shot iterators are materialized
      so the sequence stays restartable
    - text, mappings and any other value become a singleton
    """
    opts = _normalize_options(options, option_kwargs)

    if isinstance(source, LazySequence):
        if opts is None and (registry is None or registry is source.registry):
            return source
        return LazySequence(source.__iter__, options=opts, registry=registry or source.registry)

    if source is None:
        seq = LazySequence(_empty, options=opts, registry=registry)
        seq._shape = Shape(ShapeKind.EMPTY)
        return seq

    if inspect.isgeneratorfunction(source):
        return LazySequence(source, options=opts, registry=registry)

    if isinstance(source, TEXT_TYPES) or isinstance(source, Mapping):
        return _singleton(source, opts, registry)

    if isinstance(source, Sequence):
        return LazySequence(lambda: iter(source), source=source, options=opts, registry=registry)

    if isinstance(source, Iterator):
        opts = opts or SequenceOptions()
        if not opts.memo:
            logger.debug("One-shot iterator source; enabling materialization")
            opts = opts.model_copy(update={"memo": True, "cache": False})
        return LazySequence(lambda: source, options=opts, registry=registry)

    if isinstance(source, Iterable):
        return LazySequence(lambda: iter(source), options=opts, registry=registry)

    return _singleton(source, opts, registry)


def _singleton(value: Any, opts: Optional[SequenceOptions], registry: Optional[OperationRegistry]) -> LazySequence:
    def producer():
        yield value
    seq = LazySequence(producer, options=opts, registry=registry)
    seq._shape = Shape(ShapeKind.SINGLETON, value)
    return seq
