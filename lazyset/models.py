"""
lazyset - Pydantic Models

Configuration models for lazy sequences and request/response models for
the HTTP surface.
"""

from typing import Any, Callable, Dict, List, Optional, Union
from pydantic import BaseModel, Field, field_validator, model_validator, ConfigDict
from datetime import datetime
from enum import Enum


DEFAULT_CACHE_SIZE = 1000
DEFAULT_WINDOW_SIZE = 100
DEFAULT_MEMO_TARGET = 1000


class OperationKind(str, Enum):
    """How a registered function consumes its receiver"""
    OPERATION = "operation"
    METHOD = "method"
    BUILTIN = "builtin"


class Arity(str, Enum):
    """Operand shape of a stateless operation"""
    UNARY = "unary"
    BINARY = "binary"
    NARY = "nary"
    VARIADIC = "variadic"


class WindowEvent(BaseModel):
    """Payload fired by the sliding window cache"""
    size: int = Field(..., description="Current buffer length", ge=0)
    start: int = Field(..., description="Absolute index of the first buffered element", ge=0)


class SequenceOptions(BaseModel):
    """Cache configuration for a lazy sequence.

    ``memo`` and ``cache`` accept ``True`` or a size. When both are set,
    full materialization wins.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    memo: Union[bool, int] = Field(
        False,
        description="Materialize produced values; an int sets the eager target size"
    )
    cache: Union[bool, int] = Field(
        False,
        description="Sliding window cache; an int sets the buffer size"
    )
    cache_size: Optional[int] = Field(
        None,
        description="Buffer size used when cache=True"
    )
    window_size: int = Field(
        DEFAULT_WINDOW_SIZE,
        description="Listener granularity of the sliding window cache"
    )
    on_window: Optional[Callable[[WindowEvent], Any]] = Field(
        None,
        description="Listener fired on every full window"
    )

    @field_validator('memo', 'cache')
    @classmethod
    def validate_size_flag(cls, v):
        """Non-positive sizes disable the cache"""
        if not isinstance(v, bool) and v <= 0:
            return False
        return v

    @field_validator('cache_size')
    @classmethod
    def validate_cache_size(cls, v):
        if v is not None and v <= 0:
            return None
        return v

    @field_validator('window_size')
    @classmethod
    def validate_window_size(cls, v):
        return max(1, v)

    @model_validator(mode='after')
    def validate_exclusive_modes(self):
        """Materialize and sliding window are mutually exclusive"""
        if self.memo and self.cache:
            self.cache = False
        return self

    @property
    def memo_target(self) -> int:
        if self.memo is False:
            return 0
        if self.memo is True:
            return DEFAULT_MEMO_TARGET
        return int(self.memo)

    @property
    def window_capacity(self) -> int:
        if self.cache is False:
            return 0
        if self.cache is True:
            return self.cache_size or DEFAULT_CACHE_SIZE
        return int(self.cache)


class PipeSettings(BaseModel):
    """Behaviour switches for the composition engine"""
    reduction_fallback: bool = Field(
        False,
        description="Recompute a degenerate trailing reduction with reduce()"
    )


class ChainStep(BaseModel):
    """One named step of an evaluation chain"""
    name: str = Field(..., description="Built-in method or registered operation", examples=["take"])
    args: List[Any] = Field(default_factory=list, description="Positional arguments")

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        """Validate step name is not empty"""
        if not v or not v.strip():
            raise ValueError("Step name cannot be empty")
        return v.strip()


class EvaluateRequest(BaseModel):
    """Request to build and evaluate a sequence chain"""
    source: Any = Field(None, description="List or scalar source")
    range: Optional[List[int]] = Field(
        None,
        description="range() arguments used instead of source",
        min_length=1,
        max_length=3
    )
    steps: List[ChainStep] = Field(default_factory=list, description="Steps applied in order")
    limit: int = Field(1000, description="Maximum number of elements returned", ge=1, le=100_000)
    memo: bool = Field(False, description="Materialize the source sequence")


class EvaluateResponse(BaseModel):
    """Result of an evaluation chain"""
    ok: bool = Field(True, description="Request success status")
    result: Any = Field(..., description="Materialized result or raw value")
    is_sequence: bool = Field(..., description="Whether the chain ended in a sequence")
    count: Optional[int] = Field(None, description="Number of elements returned", ge=0)
    steps_applied: List[str] = Field(default_factory=list, description="Step names applied")
    processing_time_ms: float = Field(..., description="Evaluation time in milliseconds", ge=0)
    timestamp: datetime = Field(..., description="Evaluation timestamp")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "ok": True,
                "result": [11, 12, 13],
                "is_sequence": True,
                "count": 3,
                "steps_applied": ["add"],
                "processing_time_ms": 0.42,
                "timestamp": "2024-01-01T12:00:00Z"
            }
        }
    )


class OperationInfo(BaseModel):
    """Information about a registered operation or method"""
    name: str = Field(..., description="Operation name")
    kind: OperationKind = Field(..., description="Operation, method or built-in")
    arity: Optional[Arity] = Field(None, description="Arity for stateless operations")
    param_count: Optional[int] = Field(None, description="Declared positional parameters", ge=0)
    description: Optional[str] = Field(None, description="First docstring line")
    registered_at: Optional[datetime] = Field(None, description="Registration time")


class OperationListResponse(BaseModel):
    """Registry listing"""
    ok: bool = Field(True, description="Request success status")
    operations: List[OperationInfo] = Field(..., description="Registered entries")
    total_operations: int = Field(..., description="Number of entries", ge=0)
    frozen: bool = Field(..., description="Whether the registry is read-only")
    timestamp: datetime = Field(..., description="Listing timestamp")


class HealthResponse(BaseModel):
    """System health check response"""
    healthy: bool = Field(..., description="Overall health status")
    total_operations: int = Field(..., description="Registered operations", ge=0)
    total_methods: int = Field(..., description="Registered methods", ge=0)
    registry_frozen: bool = Field(..., description="Whether the registry is read-only")
    performance_metrics: Dict[str, Any] = Field(..., description="Performance summary")
    uptime_seconds: float = Field(..., description="Uptime in seconds", ge=0)
    timestamp: datetime = Field(..., description="Health check timestamp")


class MetricsResponse(BaseModel):
    """Performance metrics snapshot"""
    ok: bool = Field(True, description="Request success status")
    summary: Dict[str, Any] = Field(..., description="Aggregated metrics")
    operations: List[Dict[str, Any]] = Field(default_factory=list, description="Recorded operations")
    timestamp: datetime = Field(..., description="Snapshot timestamp")


class StatusResponse(BaseModel):
    """Standard status response"""
    ok: bool = Field(True, description="Request success status")
    message: str = Field(..., description="Status message")
    timestamp: datetime = Field(..., description="Response timestamp")


class ErrorResponse(BaseModel):
    """Standard error response"""
    ok: bool = Field(False, description="Request success status")
    error: str = Field(..., description="Error message")
    error_type: Optional[str] = Field(None, description="Error class name")
    error_code: Optional[str] = Field(None, description="Error code")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error details")
    timestamp: datetime = Field(..., description="Error timestamp")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "ok": False,
                "error": "Unknown step: 'frobnicate'",
                "error_type": "AccessError",
                "error_code": "ACCESS_ERROR",
                "details": {"key": "frobnicate"},
                "timestamp": "2024-01-01T12:00:00Z"
            }
        }
    )
