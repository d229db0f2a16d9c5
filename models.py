"""
Pydantic Models

Engine settings plus the request/response payloads of the inspection service.
"""

import os
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class EngineSettings(BaseModel):
    """Runtime configuration for the engine and the service around it"""
    pool_limit: Optional[int] = Field(
        None,
        description="Refuse combinatorial inputs longer than this (None = unlimited)",
        ge=1
    )
    default_result_limit: int = Field(
        100,
        description="Results returned when a request does not set a limit",
        ge=1
    )
    max_result_limit: int = Field(
        10_000,
        description="Upper bound on results a single request may ask for",
        ge=1
    )
    log_level: str = Field("INFO", description="Logging level name")

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v):
        level = v.strip().upper()
        valid_levels = ["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"]
        if level not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Valid levels: {valid_levels}")
        return level

    @model_validator(mode='after')
    def validate_limits(self):
        if self.default_result_limit > self.max_result_limit:
            raise ValueError("default_result_limit cannot exceed max_result_limit")
        return self

    def resolve_limit(self, requested: Optional[int]) -> int:
        """Clamp a requested result count to the configured bounds"""
        if requested is None:
            return self.default_result_limit
        return min(requested, self.max_result_limit)


_ENV_FIELDS = {
    "LAZYITER_POOL_LIMIT": "pool_limit",
    "LAZYITER_DEFAULT_LIMIT": "default_result_limit",
    "LAZYITER_MAX_LIMIT": "max_result_limit",
    "LAZYITER_LOG_LEVEL": "log_level",
}


def load_settings(environ: Optional[Dict[str, str]] = None) -> EngineSettings:
    """Build settings from LAZYITER_* environment variables"""
    environ = os.environ if environ is None else environ
    values = {field: environ[var] for var, field in _ENV_FIELDS.items() if environ.get(var)}
    return EngineSettings(**values)


class CombinatoricKind(str, Enum):
    """Supported combinatorial generators"""
    PRODUCT = "product"
    PERMUTATIONS = "permutations"
    COMBINATIONS = "combinations"
    COMBINATIONS_WITH_REPLACEMENT = "combinations_with_replacement"


class EnumerationRequest(BaseModel):
    """Parameters for a combinatorial enumeration"""
    kind: CombinatoricKind = Field(..., description="Generator to run")
    pools: List[List[Any]] = Field(
        default_factory=list,
        description="Input pools; product takes any number, the others exactly one",
        examples=[[[1, 2, 3]]]
    )
    r: Optional[int] = Field(None, description="Output width (required for combinations)")
    repeat: int = Field(1, description="Pool repetition for product")
    limit: Optional[int] = Field(None, description="Maximum results to return", ge=1)

    @model_validator(mode='after')
    def validate_pool_count(self):
        if self.kind != CombinatoricKind.PRODUCT and len(self.pools) != 1:
            raise ValueError(f"{self.kind.value} takes exactly one pool, got {len(self.pools)}")
        if self.kind in (CombinatoricKind.COMBINATIONS, CombinatoricKind.COMBINATIONS_WITH_REPLACEMENT) \
                and self.r is None:
            raise ValueError(f"{self.kind.value} requires r")
        return self


class EnumerationResponse(BaseModel):
    """Result of an enumeration request"""
    ok: bool = Field(True, description="Request success status")
    kind: CombinatoricKind = Field(..., description="Generator that ran")
    results: List[List[Any]] = Field(..., description="Enumerated tuples, in generation order")
    returned: int = Field(..., description="Number of results returned", ge=0)
    truncated: Optional[bool] = Field(
        ...,
        description="False when the generator ended within the limit; null when the limit was reached"
    )
    performance: Dict[str, Any] = Field(default_factory=dict, description="Timing and memory metrics")


class SourceKind(str, Enum):
    """Base sources a pipeline may start from"""
    VALUES = "values"
    COUNT = "count"
    CYCLE = "cycle"
    REPEAT = "repeat"


class SourceSpec(BaseModel):
    """Description of a pipeline's base source"""
    kind: SourceKind = Field(SourceKind.VALUES, description="Source type")
    values: List[Any] = Field(default_factory=list, description="Elements for values/cycle sources")
    start: Union[int, float] = Field(0, description="count() start")
    step: Union[int, float] = Field(1, description="count() step")
    value: Any = Field(None, description="repeat() value")
    times: Optional[int] = Field(None, description="repeat() count (None = forever)")


class Comparison(str, Enum):
    LT = "lt"
    LE = "le"
    GT = "gt"
    GE = "ge"
    EQ = "eq"
    NE = "ne"
    TRUTHY = "truthy"


class PredicateSpec(BaseModel):
    """A predicate of the form ``element <op> value``"""
    op: Comparison = Field(..., description="Comparison operator")
    value: Any = Field(None, description="Right-hand operand (ignored for truthy)")


class StepType(str, Enum):
    ISLICE = "islice"
    TAKEWHILE = "takewhile"
    DROPWHILE = "dropwhile"
    FILTER = "filter"
    FILTERFALSE = "filterfalse"
    MAP = "map"
    ACCUMULATE = "accumulate"
    PAIRWISE = "pairwise"
    COMPRESS = "compress"
    CHAIN = "chain"
    GROUPBY = "groupby"


class PipelineStep(BaseModel):
    """One combinator applied to the running pipeline"""
    type: StepType = Field(..., description="Combinator to apply")
    start: Optional[int] = Field(None, description="islice start")
    stop: Optional[int] = Field(None, description="islice stop")
    step: Optional[int] = Field(None, description="islice step")
    predicate: Optional[PredicateSpec] = Field(None, description="Predicate for filtering steps")
    function: Optional[str] = Field(None, description="Named operator for map/accumulate/groupby")
    initial: Any = Field(None, description="accumulate initial value")
    values: List[Any] = Field(default_factory=list, description="Selectors for compress, tail for chain")

    @model_validator(mode='after')
    def validate_arguments(self):
        needs_predicate = (StepType.TAKEWHILE, StepType.DROPWHILE, StepType.FILTER, StepType.FILTERFALSE)
        if self.type in needs_predicate and self.predicate is None:
            raise ValueError(f"{self.type.value} step requires a predicate")
        if self.type == StepType.MAP and not self.function:
            raise ValueError("map step requires a function")
        return self


class PipelineRequest(BaseModel):
    """A source plus an ordered list of combinators"""
    source: SourceSpec = Field(..., description="Base source")
    steps: List[PipelineStep] = Field(default_factory=list, description="Combinators, outermost last")
    limit: Optional[int] = Field(None, description="Maximum results to return", ge=1)


class PipelineResponse(BaseModel):
    """Materialized output of a pipeline request"""
    ok: bool = Field(True, description="Request success status")
    results: List[Any] = Field(..., description="Pulled elements, in pull order")
    returned: int = Field(..., description="Number of results returned", ge=0)
    truncated: Optional[bool] = Field(
        ...,
        description="False when the pipeline ended within the limit; null when the limit was reached"
    )
    steps_applied: List[str] = Field(default_factory=list, description="Combinators applied")
    performance: Dict[str, Any] = Field(default_factory=dict, description="Timing and memory metrics")


class ErrorResponse(BaseModel):
    """Standard error envelope."""
    ok: bool = Field(False, description="Request success status")
    error: str = Field(..., description="Error message")
    error_code: Optional[str] = Field(None, description="Error code")
    details: Optional[Dict[str, Any]] = Field(None, description="Error details")
    timestamp: str = Field(..., description="Error timestamp in ISO format")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "ok": False,
                "error": "combinations() r must be non-negative, got -1",
                "error_code": "INVALID_ARGUMENT",
                "details": {"kind": "combinations"},
                "timestamp": "2024-01-01T12:00:00Z"
            }
        }
    )


class HealthCheckResponse(BaseModel):
    """Health probe result."""
    status: str = Field(..., description="Health status")
    timestamp: datetime = Field(..., description="Health check timestamp")
    checks: Dict[str, bool] = Field(..., description="Individual health check results")
    settings: Dict[str, Any] = Field(default_factory=dict, description="Active engine settings")
    performance: Dict[str, Any] = Field(default_factory=dict, description="Running performance totals")
