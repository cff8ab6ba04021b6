"""
lazyset - a lazy, possibly infinite sequence with uniform scalar,
collection and stream semantics.

Registered operations and built-in methods are also available as free
functions on the package::

    from lazyset import add, take, pipe
    add([1, 2, 3], 10).to_array()        # [11, 12, 13]
    pipe(take(5), sq, sum)(naturals)     # 55
"""

from lazyset.cache import ABSENT, MaterializeBuffer, SlidingWindowCache
from lazyset.compose import EMIT_AND_STOP, STOP, compose, iif, pipe, route, unless, when
from lazyset.errors import (
    AccessError,
    IterationLimitError,
    RangeError,
    RegistryError,
    RegistryFrozenError,
    SequenceError,
    safe,
    with_limit,
    with_timeout,
)
from lazyset.lazy import LazySequence, Shape, ShapeKind, make_sequence
from lazyset.models import Arity, OperationKind, PipeSettings, SequenceOptions, WindowEvent
from lazyset.registry import OperationDescriptor, OperationRegistry, build_registry, get_default_registry

__version__ = "1.0.0"


def register_operation(name_or_map, fn=None):
    """Register stateless operation(s) into the default registry."""
    return get_default_registry().register_operation(name_or_map, fn)


def register_method(name_or_map, fn=None):
    """Register sequence-consuming method(s) into the default registry."""
    return get_default_registry().register_method(name_or_map, fn)


def list_operations():
    return get_default_registry().list_operations()


def __getattr__(name):
    # free functions: from lazyset import add, take, sum
    if name.startswith("_"):
        raise AttributeError(name)
    try:
        return get_default_registry().function(name)
    except KeyError:
        raise AttributeError(f"module 'lazyset' has no attribute {name!r}") from None
