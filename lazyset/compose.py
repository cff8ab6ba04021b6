"""
Composition engine: ``pipe`` chains steps over a running value, with
elementwise conditional steps that can short-circuit the sequence.
"""

import inspect
import logging
import numbers
from collections.abc import Mapping
from typing import Any, Callable, Iterable, List, Optional, Tuple

from lazyset.lazy import LazySequence, make_sequence
from lazyset.models import Arity, OperationKind, PipeSettings

logger = logging.getLogger(__name__)


class _Signal:
    __slots__ = ("name",)

    def __init__(self, name: str):
        self.name = name

    def __repr__(self):
        return self.name


# Returned by a conditional branch: stop producing output.
STOP = _Signal("STOP")
# Returned by a conditional branch: emit the original element, then stop.
EMIT_AND_STOP = _Signal("EMIT_AND_STOP")

_NOTHING = object()


class PipeStep:
    """A step applied elementwise across the running sequence."""

    def __call__(self, x):
        raise NotImplementedError

    def _elements(self, value: Any) -> LazySequence:
        return value if isinstance(value, LazySequence) else make_sequence(value)

    def apply(self, value: Any) -> LazySequence:
        seq = self._elements(value)

        def produce():
            for x in seq:
                out = self.emit(x)
                if out is STOP:
                    return
                if out is EMIT_AND_STOP:
                    yield x
                    return
                yield out
        return seq.spawn(produce)

    def emit(self, x):
        return self(x)


class Conditional(PipeStep):
    """
    if-then-else step. On each element:

    - a branch returning STOP ends the output
    - a branch returning EMIT_AND_STOP emits the element and ends the output
    - any other result is emitted and processing continues
    - with no else branch, elements failing the predicate pass through
    """

    def __init__(self, pred: Callable, then: Callable, else_: Any = None):
        self.pred = pred
        self.then = then
        self.else_ = else_

    def emit(self, x):
        if self.pred(x):
            return self.then(x)
        if self.else_ is None:
            return x
        if self.else_ is STOP:
            return STOP
        return self.else_(x)

    def __call__(self, x):
        out = self.emit(x)
        return x if out is EMIT_AND_STOP else out

    def __repr__(self):
        return f"Conditional(pred={self.pred!r}, then={self.then!r}, else_={self.else_!r})"


class Route(PipeStep):
    """Send each element to the handler of the first matching route."""

    def __init__(self, routes: Any):
        items = routes.items() if isinstance(routes, Mapping) else routes
        self.routes: List[Tuple[Callable, Callable]] = [
            (key if callable(key) else _equals(key), handler) for key, handler in items
        ]

    def __call__(self, x):
        for matches, handler in self.routes:
            if matches(x):
                return handler(x)
        return x


def _equals(expected):
    return lambda v: v == expected


def iif(pred: Callable, then: Callable, else_: Any = None) -> Conditional:
    return Conditional(pred, then, else_)


def when(pred: Callable, fn: Callable) -> Conditional:
    return Conditional(pred, fn)


def unless(pred: Callable, fn: Callable) -> Conditional:
    return Conditional(lambda x: not pred(x), fn)


def route(routes: Any) -> Route:
    """Build a routing step from a mapping or (predicate, handler) pairs.

    Non-callable keys match by equality.
    """
    return Route(routes)


def _accepts_no_args(fn: Callable) -> bool:
    try:
        inspect.signature(fn).bind()
    except TypeError:
        return False
    except ValueError:
        return True
    return True


def _is_degenerate(result: Any) -> bool:
    if isinstance(result, bool):
        return False
    if isinstance(result, numbers.Number):
        return result == 0
    if isinstance(result, list):
        return not result
    if isinstance(result, LazySequence):
        return result.is_empty()
    return False


def _check_reduction(step: Callable, running: Any, result: Any, settings: PipeSettings) -> Any:
    if not settings.reduction_fallback:
        return result
    descriptor = getattr(step, "descriptor", None)
    if descriptor is None or descriptor.kind is not OperationKind.OPERATION:
        return result
    if descriptor.arity is not Arity.VARIADIC or not isinstance(running, LazySequence):
        return result
    if not _is_degenerate(result) or running.is_empty():
        return result

    logger.warning(
        f"Trailing reduction '{descriptor.name}' produced a degenerate result ({result!r}) "
        f"over a non-empty sequence; recomputing with reduce()"
    )
    return running.reduce(descriptor.fn)


def pipe(*steps: Callable, settings: Optional[PipeSettings] = None) -> Callable:
    """
    Compose ``steps`` into a single callable.

    When called with no argument at all and the first step is callable
    with no arguments, that step produces the starting value. An explicit
    ``None`` is an initial value like any other. Conditional
    and routing steps apply elementwise; any other step receives the
    running value as a whole.
    """
    settings = settings or PipeSettings()

    def run(initial: Any = _NOTHING):
        remaining = list(steps)
        value = initial
        if initial is _NOTHING:
            value = None
            if remaining and not isinstance(remaining[0], PipeStep) and callable(remaining[0]):
                source = remaining[0]
                if inspect.isgeneratorfunction(source):
                    value = make_sequence(source)
                    remaining.pop(0)
                elif _accepts_no_args(source):
                    value = source()
                    remaining.pop(0)

        last = len(remaining) - 1
        for index, step in enumerate(remaining):
            if isinstance(step, PipeStep):
                value = step.apply(value)
                continue
            running = value
            value = step(running)
            if index == last:
                value = _check_reduction(step, running, value, settings)
        return value

    return run


def compose(steps: Iterable[Callable], settings: Optional[PipeSettings] = None) -> Callable:
    """``pipe`` taking the steps as a single iterable."""
    return pipe(*steps, settings=settings)
