"""
Utility functions for lazyset

Logging setup, performance measurement of lazy operations, and evaluation
of JSON-described step chains against a registry.
"""

import gc
import logging
import sys
import time
import tracemalloc
from typing import Any, Dict, List, Optional

from lazyset.errors import AccessError
from lazyset.lazy import LazySequence, make_sequence
from lazyset.registry import OperationRegistry, get_default_registry

logger = logging.getLogger(__name__)

# Builtins whose first argument is a callback; a string there names a
# registered operation.
CALLBACK_STEPS = {"map", "filter", "take_while", "on", "find", "any", "all", "group_by", "reduce", "sort_by"}


def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """Setup structured logging for lazyset"""
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - [%(funcName)s:%(lineno)d] - %(message)s',
        handlers=[logging.StreamHandler(sys.stdout)]
    )
    return logging.getLogger('lazyset')


# Global performance tracking
_performance_metrics = {
    "operations": [],
    "total_time_ms": 0.0,
    "total_memory_mb": 0.0,
    "operation_count": 0
}


def _record(info: Dict[str, Any]):
    _performance_metrics["operations"].append(info)
    _performance_metrics["total_time_ms"] += info["execution_time_ms"]
    _performance_metrics["total_memory_mb"] += info["memory_usage_mb"]
    _performance_metrics["operation_count"] += 1


def measure_performance(operation_name: str, func, *args, **kwargs) -> Dict[str, Any]:
    """
    Run ``func`` under tracemalloc and record one metrics entry for it.

    The entry is recorded whether the call succeeds or raises; failures are
    logged and re-raised. On success the entry is returned with the call's
    value under ``"result"`` (kept out of the recorded copy).
    """
    entry: Dict[str, Any] = {"operation": operation_name, "success": False, "timestamp": time.time()}
    gc.collect()
    tracemalloc.start()
    started = time.perf_counter()
    try:
        result = func(*args, **kwargs)
        entry["success"] = True
        entry["result_size"] = len(result) if hasattr(result, "__len__") else None
    except Exception as e:
        entry["error"] = str(e)
        logger.error(f"Operation {operation_name} failed after "
                     f"{(time.perf_counter() - started) * 1000:.2f}ms: {e}")
        raise
    finally:
        entry["execution_time_ms"] = (time.perf_counter() - started) * 1000
        entry["memory_usage_mb"] = tracemalloc.get_traced_memory()[1] / 1024 / 1024
        tracemalloc.stop()
        _record(entry)

    return {**entry, "result": result}


def get_performance_summary() -> Dict[str, Any]:
    """Get summary of all performance metrics"""
    count = _performance_metrics["operation_count"]
    if count == 0:
        return {
            "total_operations": 0,
            "total_time_ms": 0.0,
            "total_memory_mb": 0.0,
            "avg_time_ms": 0.0,
            "avg_memory_mb": 0.0
        }

    return {
        "total_operations": count,
        "total_time_ms": _performance_metrics["total_time_ms"],
        "total_memory_mb": _performance_metrics["total_memory_mb"],
        "avg_time_ms": _performance_metrics["total_time_ms"] / count,
        "avg_memory_mb": _performance_metrics["total_memory_mb"] / count
    }


def get_recorded_operations() -> List[Dict[str, Any]]:
    return list(_performance_metrics["operations"])


def clear_performance_metrics():
    """Clear all performance metrics"""
    _performance_metrics["operations"] = []
    _performance_metrics["total_time_ms"] = 0.0
    _performance_metrics["total_memory_mb"] = 0.0
    _performance_metrics["operation_count"] = 0


def build_source(source: Any = None, range_args: Optional[List[int]] = None, memo: bool = False,
                 registry: Optional[OperationRegistry] = None) -> LazySequence:
    """Create the starting sequence of a chain (``range_args`` wins over ``source``)."""
    registry = registry or get_default_registry()
    if range_args:
        source = range(*range_args)
    return make_sequence(source, registry=registry, memo=memo)


def _resolve_args(name: str, args: List[Any], registry: OperationRegistry) -> List[Any]:
    if name in CALLBACK_STEPS and args and isinstance(args[0], str):
        if args[0] not in registry:
            raise AccessError("not a registered operation", args[0], registry)
        return [registry.function(args[0])] + list(args[1:])
    return list(args)


def apply_steps(value: Any, steps: List[Dict[str, Any]],
                registry: Optional[OperationRegistry] = None) -> Any:
    """Apply named steps in order; raw intermediate values are re-wrapped."""
    registry = registry or get_default_registry()

    for step in steps:
        name = step["name"]
        args = _resolve_args(name, step.get("args") or [], registry)

        seq = value if isinstance(value, LazySequence) else make_sequence(value, registry=registry)
        method = getattr(seq, name, None)
        if method is None or name.startswith("_"):
            raise AccessError("unknown step", name, seq)
        if not callable(method):
            raise AccessError("step is not callable", name, seq)
        value = method(*args)
    return value


def evaluate_chain(source: Any = None, steps: Optional[List[Dict[str, Any]]] = None,
                   limit: int = 1000, range_args: Optional[List[int]] = None, memo: bool = False,
                   registry: Optional[OperationRegistry] = None) -> Dict[str, Any]:
    """Build a sequence, apply ``steps`` and materialize at most ``limit`` elements"""
    steps = steps or []
    names = [s["name"] for s in steps]

    def run():
        seq = build_source(source, range_args, memo, registry)
        value = apply_steps(seq, steps, registry)
        if isinstance(value, LazySequence):
            return True, value.take(limit).to_array()
        return False, value

    performance = measure_performance(f"chain[{','.join(names)}]", run)
    is_sequence, result = performance.pop("result")

    return {
        "result": result,
        "is_sequence": is_sequence,
        "count": len(result) if is_sequence else None,
        "steps_applied": names,
        "performance": performance
    }
