"""FastAPI app exposing the operation registry and JSON-described evaluation chains."""

import logging
import time
from datetime import datetime
from typing import Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from lazyset.errors import SequenceError
from lazyset.lazy import BUILTIN_METHODS, LazySequence
from lazyset.models import (
    EvaluateRequest, EvaluateResponse, OperationInfo, OperationListResponse,
    OperationKind, HealthResponse, MetricsResponse, StatusResponse, ErrorResponse
)
from lazyset.registry import build_registry
from lazyset.utils import (
    setup_logging,
    evaluate_chain,
    get_performance_summary,
    get_recorded_operations,
    clear_performance_metrics
)

logger = logging.getLogger(__name__)

setup_logging()

START_TIME = time.time()

# The API serves a private, read-only registry.
registry = build_registry("api").freeze()

app = FastAPI(
    title="Lazy Sequence Evaluation API",
    description="Evaluate lazy sequence chains built from built-in methods and registered operations",
    version="1.0.0"
)


def _operation_info(name: str) -> Optional[OperationInfo]:
    descriptor = registry.describe(name)
    if descriptor is not None:
        return OperationInfo(
            name=descriptor.name,
            kind=descriptor.kind,
            arity=descriptor.arity,
            param_count=descriptor.param_count,
            description=descriptor.description,
            registered_at=datetime.fromtimestamp(descriptor.registered_at)
        )
    if name in BUILTIN_METHODS:
        member = getattr(LazySequence, name)
        doc = (member.__doc__ or "").strip()
        return OperationInfo(
            name=name,
            kind=OperationKind.BUILTIN,
            description=doc.splitlines()[0] if doc else None
        )
    return None


@app.get("/", response_model=StatusResponse)
async def root():
    """Basic service banner."""
    return StatusResponse(
        ok=True,
        message="Lazy Sequence Evaluation API operational - Features: lazy chains, broadcast operations, plugin registry",
        timestamp=datetime.now()
    )


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Return registry + metrics health summary."""
    return HealthResponse(
        healthy=True,
        total_operations=len(registry.list_operations()),
        total_methods=len(registry.list_methods()),
        registry_frozen=registry.frozen,
        performance_metrics=get_performance_summary(),
        uptime_seconds=time.time() - START_TIME,
        timestamp=datetime.now()
    )


@app.get("/operations", response_model=OperationListResponse)
async def list_operations(
    kind: Optional[OperationKind] = Query(None, description="Filter by operation kind")
):
    """List registered operations, methods and built-in methods."""
    names = sorted(set(registry.list_operations()) | set(registry.list_methods()) | set(BUILTIN_METHODS))
    operations = [info for info in (_operation_info(n) for n in names) if info is not None]
    if kind is not None:
        operations = [op for op in operations if op.kind == kind]

    return OperationListResponse(
        ok=True,
        operations=operations,
        total_operations=len(operations),
        frozen=registry.frozen,
        timestamp=datetime.now()
    )


@app.get("/operations/{name}", response_model=OperationInfo)
async def get_operation(name: str):
    """Describe a single operation."""
    info = _operation_info(name)
    if info is None:
        raise HTTPException(status_code=404, detail=f"Operation not found: {name}")
    return info


@app.post("/evaluate", response_model=EvaluateResponse)
async def evaluate(request: EvaluateRequest) -> EvaluateResponse:
    """Build a sequence from the request, apply its steps and return the result."""
    try:
        outcome = evaluate_chain(
            source=request.source,
            steps=[step.model_dump() for step in request.steps],
            limit=request.limit,
            range_args=request.range,
            memo=request.memo,
            registry=registry
        )
    except SequenceError:
        raise
    except Exception as e:
        logger.error(f"Evaluation failed: {e}")
        raise HTTPException(
            status_code=400,
            detail=f"Evaluation failed: {str(e)}"
        )

    return EvaluateResponse(
        ok=True,
        result=outcome["result"],
        is_sequence=outcome["is_sequence"],
        count=outcome["count"],
        steps_applied=outcome["steps_applied"],
        processing_time_ms=outcome["performance"]["execution_time_ms"],
        timestamp=datetime.now()
    )


@app.get("/metrics", response_model=MetricsResponse)
async def get_metrics() -> MetricsResponse:
    """Return aggregated evaluation metrics."""
    return MetricsResponse(
        ok=True,
        summary=get_performance_summary(),
        operations=get_recorded_operations(),
        timestamp=datetime.now()
    )


@app.delete("/metrics", response_model=StatusResponse)
async def clear_metrics() -> StatusResponse:
    """Reset in-memory performance counters."""
    clear_performance_metrics()
    return StatusResponse(
        ok=True,
        message="All performance metrics cleared",
        timestamp=datetime.now()
    )


@app.exception_handler(SequenceError)
async def sequence_error_handler(request: Request, exc: SequenceError):
    logger.warning(f"[{exc.code}] {exc}")
    return JSONResponse(
        status_code=400,
        content=ErrorResponse(
            error=str(exc),
            error_type=type(exc).__name__,
            error_code=exc.code,
            details={k: repr(v) if not isinstance(v, (str, int, float, bool, type(None))) else v
                     for k, v in exc.context.items()},
            timestamp=datetime.now()
        ).model_dump(mode="json")
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
