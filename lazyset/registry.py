"""Operation registry: classifies plugins and publishes their calling conventions."""

import inspect
import logging
import numbers
import time
import types
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from lazyset.errors import RegistryError, RegistryFrozenError
from lazyset.models import Arity, OperationKind

logger = logging.getLogger(__name__)

_POSITIONAL = (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)


@dataclass
class OperationDescriptor:
    """Registry entry created once per registered function."""
    name: str
    fn: Callable
    kind: OperationKind
    arity: Optional[Arity] = None
    param_count: Optional[int] = None
    registered_at: float = field(default_factory=time.time)

    @property
    def description(self) -> Optional[str]:
        doc = inspect.getdoc(self.fn)
        return doc.splitlines()[0] if doc else None


def required_positional(fn: Callable, skip: int = 0) -> Optional[Tuple[int, bool]]:
    """Count required positional params (after ``skip``) and whether ``*args`` is declared.

    Returns None when the signature cannot be inspected (some builtins).
    """
    try:
        sig = inspect.signature(fn)
    except (TypeError, ValueError):
        return None
    params = list(sig.parameters.values())[skip:]
    required = sum(1 for p in params if p.kind in _POSITIONAL and p.default is p.empty)
    variadic = any(p.kind is inspect.Parameter.VAR_POSITIONAL for p in params)
    return required, variadic


def classify_arity(fn: Callable) -> Tuple[Arity, Optional[int]]:
    """Infer an operation's arity from its declared parameters."""
    counted = required_positional(fn)
    if counted is None:
        return Arity.VARIADIC, None
    required, variadic = counted
    if variadic or required == 0:
        return Arity.VARIADIC, required
    if required == 1:
        return Arity.UNARY, 1
    if required == 2:
        return Arity.BINARY, 2
    return Arity.NARY, required


class OperationRegistry:
    """
    Runtime-extensible operation table consulted for names a sequence does
    not define itself.

    Stateless operations are registered with ``register_operation`` and
    get broadcast/zip/reduce semantics by arity. Sequence-consuming
    methods are registered with ``register_method`` and receive the
    sequence as their first argument.
    """

    def __init__(self, name: str = "default"):
        self.name = name
        self._entries: Dict[str, OperationDescriptor] = {}
        self._functions: Dict[str, Callable] = {}
        self._frozen = False

    # --------- registration ----------
    def register_operation(self, name_or_map: Any, fn: Optional[Callable] = None) -> "OperationRegistry":
        for name, func in self._iter_entries(name_or_map, fn):
            arity, param_count = classify_arity(func)
            self._install(OperationDescriptor(name, func, OperationKind.OPERATION, arity, param_count))
        return self

    def register_method(self, name_or_map: Any, fn: Optional[Callable] = None) -> "OperationRegistry":
        for name, func in self._iter_entries(name_or_map, fn):
            counted = required_positional(func, skip=1)
            param_count = counted[0] if counted else None
            self._install(OperationDescriptor(name, func, OperationKind.METHOD, None, param_count))
        return self

    @staticmethod
    def _iter_entries(name_or_map: Any, fn: Optional[Callable]) -> Iterable[Tuple[str, Any]]:
        if isinstance(name_or_map, str):
            return [(name_or_map, fn)]
        if isinstance(name_or_map, Mapping):
            return list(name_or_map.items())
        if isinstance(name_or_map, types.ModuleType):
            return [
                (name, member) for name, member in vars(name_or_map).items()
                if not name.startswith("_") and callable(member) and not isinstance(member, type)
            ]
        if callable(name_or_map) and fn is None:
            return [(getattr(name_or_map, "__name__", ""), name_or_map)]
        raise RegistryError("register expects a function, a name and a function, or a mapping of functions")

    def _install(self, descriptor: OperationDescriptor):
        from lazyset.lazy import BUILTIN_METHODS

        name = descriptor.name
        if self._frozen:
            raise RegistryFrozenError(name)
        if not isinstance(name, str) or not name.isidentifier() or name.startswith("_"):
            raise RegistryError(f"Invalid plugin name: {name!r}", str(name))
        if not callable(descriptor.fn):
            raise RegistryError(f"Plugin {name!r} is not callable", name)
        if name in BUILTIN_METHODS:
            logger.warning(f"Plugin {name!r} is shadowed by the built-in sequence method of the same name")

        self._entries[name] = descriptor
        self._functions.pop(name, None)
        logger.info(f"Registered {descriptor.kind.value} plugin: {name}")

    def freeze(self) -> "OperationRegistry":
        """Make the registry read-only."""
        self._frozen = True
        logger.info(f"Registry '{self.name}' frozen with {len(self._entries)} entries")
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    # --------- lookup ----------
    def lookup(self, name: str) -> Optional[OperationDescriptor]:
        return self._entries.get(name)

    def describe(self, name: str) -> Optional[OperationDescriptor]:
        return self.lookup(name)

    def entries(self) -> List[OperationDescriptor]:
        return sorted(self._entries.values(), key=lambda d: d.name)

    def list_operations(self) -> List[str]:
        return sorted(n for n, d in self._entries.items() if d.kind is OperationKind.OPERATION)

    def list_methods(self) -> List[str]:
        return sorted(n for n, d in self._entries.items() if d.kind is OperationKind.METHOD)

    def __contains__(self, name: str) -> bool:
        return name in self._entries

    def __len__(self):
        return len(self._entries)

    # --------- free functions ----------
    def function(self, name: str) -> Callable:
        """Free-function form of a registered plugin or built-in method."""
        if name not in self._functions:
            self._functions[name] = self._build_function(name)
        return self._functions[name]

    def __getattr__(self, name):
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self.function(name)
        except KeyError:
            raise AttributeError(f"No operation or method named {name!r}") from None

    def _build_function(self, name: str) -> Callable:
        from lazyset.lazy import BUILTIN_METHODS, LazySequence

        descriptor = self._entries.get(name)
        if descriptor is not None and descriptor.kind is OperationKind.OPERATION:
            free = self._operation_function(descriptor)
        elif descriptor is not None:
            free = self._method_function(name, descriptor.param_count,
                                         lambda seq, *args: seq.bind(descriptor)(*args))
        elif name in BUILTIN_METHODS and callable(getattr(LazySequence, name)):
            counted = required_positional(getattr(LazySequence, name), skip=1)
            free = self._method_function(name, counted[0] if counted else None,
                                         lambda seq, *args: getattr(seq, name)(*args))
        else:
            raise KeyError(name)

        free.__name__ = name
        free.__qualname__ = name
        free.descriptor = descriptor
        return free

    def _operation_function(self, descriptor: OperationDescriptor) -> Callable:
        from lazyset.lazy import make_sequence

        def free(first=None, *rest):
            if first is None:
                return make_sequence(None, registry=self)
            if rest and descriptor.arity is Arity.VARIADIC:
                return descriptor.fn(first, *rest)
            return make_sequence(first, registry=self).bind(descriptor)(*rest)

        free.__doc__ = descriptor.fn.__doc__
        return free

    def _method_function(self, name: str, param_count: Optional[int], call: Callable) -> Callable:
        from lazyset.lazy import make_sequence

        def free(*args):
            if not args:
                return lambda source: call(make_sequence(source, registry=self))
            if param_count == 1 and len(args) == 1 and _curry_argument(args[0]):
                arg = args[0]
                return lambda source: call(make_sequence(source, registry=self), arg)
            source, *rest = args
            return call(make_sequence(source, registry=self), *rest)

        return free


def _curry_argument(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, numbers.Number):
        return True
    return callable(value) and not inspect.isgeneratorfunction(value)


_default_registry: Optional[OperationRegistry] = None


def build_registry(name: str = "default") -> OperationRegistry:
    """Create a registry preloaded with the bundled operations and methods."""
    from lazyset.plugins import install_defaults

    registry = OperationRegistry(name)
    install_defaults(registry)
    return registry


def get_default_registry() -> OperationRegistry:
    """Process-wide registry, built once on first use."""
    global _default_registry
    if _default_registry is None:
        _default_registry = build_registry()
    return _default_registry
