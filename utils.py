"""
Utility functions for the lazy iteration engine service.

Logging setup, performance measurement, and the translation of declarative
pipeline/enumeration requests into engine combinators.
"""

import gc
import logging
import operator
import time
import tracemalloc
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

import combinatorics
import infinite
from combinators import chain, compress, dropwhile, filterfalse, islice, pairwise, takewhile
from models import (
    CombinatoricKind,
    Comparison,
    EngineSettings,
    EnumerationRequest,
    PipelineRequest,
    PipelineStep,
    PredicateSpec,
    SourceKind,
    SourceSpec,
    StepType,
)
from sources import InvalidArgumentError, Source, source
from stateful import accumulate, groupby

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


# Global performance tracking (running totals only)
_performance_metrics = {
    "total_time_ms": 0.0,
    "total_memory_mb": 0.0,
    "operation_count": 0,
    "failure_count": 0
}

UNARY_FUNCTIONS: Dict[str, Callable[[Any], Any]] = {
    "identity": lambda x: x,
    "abs": operator.abs,
    "neg": operator.neg,
    "not": operator.not_,
    "square": lambda x: x * x,
    "str": str,
    "len": len,
    "parity": lambda x: x % 2,
}

BINARY_FUNCTIONS: Dict[str, Callable[[Any, Any], Any]] = {
    "add": operator.add,
    "sub": operator.sub,
    "mul": operator.mul,
    "max": max,
    "min": min,
}

_COMPARISONS: Dict[Comparison, Callable[[Any, Any], Any]] = {
    Comparison.LT: operator.lt,
    Comparison.LE: operator.le,
    Comparison.GT: operator.gt,
    Comparison.GE: operator.ge,
    Comparison.EQ: operator.eq,
    Comparison.NE: operator.ne,
}

_COMBINATORICS = {
    CombinatoricKind.PRODUCT: combinatorics.product,
    CombinatoricKind.PERMUTATIONS: combinatorics.permutations,
    CombinatoricKind.COMBINATIONS: combinatorics.combinations,
    CombinatoricKind.COMBINATIONS_WITH_REPLACEMENT: combinatorics.combinations_with_replacement,
}


def configure_logging(settings: EngineSettings) -> None:
    """Apply the configured log level to the root logger"""
    logging.getLogger().setLevel(settings.log_level)


def _record(performance_info: Dict[str, Any]) -> None:
    _performance_metrics["total_time_ms"] += performance_info["execution_time_ms"]
    _performance_metrics["total_memory_mb"] += performance_info["memory_usage_mb"]
    _performance_metrics["operation_count"] += 1
    if not performance_info["success"]:
        _performance_metrics["failure_count"] += 1


def measure_performance(operation_name: str, func, *args, **kwargs) -> Tuple[Any, Dict[str, Any]]:
    """Run ``func`` under timing and tracemalloc; return (result, metrics)"""
    tracemalloc.start()
    gc.collect()
    start_time = time.perf_counter()

    try:
        result = func(*args, **kwargs)
    except Exception as e:
        execution_time_ms = (time.perf_counter() - start_time) * 1000
        _, peak = tracemalloc.get_traced_memory()
        _record({
            "operation": operation_name,
            "execution_time_ms": execution_time_ms,
            "memory_usage_mb": peak / 1024 / 1024,
            "success": False,
            "error": str(e),
            "timestamp": time.time()
        })
        raise
    else:
        execution_time_ms = (time.perf_counter() - start_time) * 1000
        _, peak = tracemalloc.get_traced_memory()
        performance_info = {
            "operation": operation_name,
            "execution_time_ms": execution_time_ms,
            "memory_usage_mb": peak / 1024 / 1024,
            "success": True,
            "result_size": len(result) if hasattr(result, "__len__") else None,
            "timestamp": time.time()
        }
        _record(performance_info)
        return result, performance_info
    finally:
        tracemalloc.stop()


def get_performance_summary() -> Dict[str, Any]:
    """Get summary of all performance metrics"""
    count = _performance_metrics["operation_count"]
    if count == 0:
        return {
            "total_operations": 0,
            "failed_operations": 0,
            "total_time_ms": 0.0,
            "total_memory_mb": 0.0,
            "avg_time_ms": 0.0,
            "avg_memory_mb": 0.0
        }

    return {
        "total_operations": count,
        "failed_operations": _performance_metrics["failure_count"],
        "total_time_ms": _performance_metrics["total_time_ms"],
        "total_memory_mb": _performance_metrics["total_memory_mb"],
        "avg_time_ms": _performance_metrics["total_time_ms"] / count,
        "avg_memory_mb": _performance_metrics["total_memory_mb"] / count
    }


def clear_performance_metrics():
    """Clear all performance metrics"""
    global _performance_metrics
    _performance_metrics = {
        "total_time_ms": 0.0,
        "total_memory_mb": 0.0,
        "operation_count": 0,
        "failure_count": 0
    }


def drain_limited(iterable: Iterable[Any], limit: int) -> Tuple[List[Any], Optional[bool]]:
    """
    Pull at most ``limit`` elements.

    The second value is False when the input ended before the limit, and None
    when the limit was reached: whether more elements exist is unknown, since
    answering would take a pull beyond the limit.
    """
    items = list(islice(iterable, limit))
    if len(items) < limit:
        return items, False
    return items, None


def build_predicate(spec: PredicateSpec) -> Callable[[Any], bool]:
    if spec.op == Comparison.TRUTHY:
        return bool
    compare = _COMPARISONS[spec.op]
    value = spec.value
    return lambda x: compare(x, value)


def lookup_function(name: str, table: Dict[str, Callable]) -> Callable:
    try:
        return table[name]
    except KeyError:
        raise InvalidArgumentError(f"Unknown function '{name}'. Valid functions: {sorted(table)}") from None


def build_source(spec: SourceSpec) -> Source:
    """Create the base source a pipeline starts from"""
    if spec.kind == SourceKind.COUNT:
        return infinite.count(spec.start, spec.step)
    if spec.kind == SourceKind.CYCLE:
        return infinite.cycle(spec.values)
    if spec.kind == SourceKind.REPEAT:
        return infinite.repeat(spec.value, spec.times)
    return source(spec.values)


def apply_step(upstream: Source, step: PipelineStep) -> Source:
    """Wrap ``upstream`` in the combinator a step describes"""
    if step.type == StepType.ISLICE:
        if step.start is None and step.step is None:
            return islice(upstream, step.stop)
        return islice(upstream, step.start, step.stop, step.step)
    if step.type == StepType.TAKEWHILE:
        return takewhile(build_predicate(step.predicate), upstream)
    if step.type == StepType.DROPWHILE:
        return dropwhile(build_predicate(step.predicate), upstream)
    if step.type == StepType.FILTER:
        return source(filter(build_predicate(step.predicate), upstream))
    if step.type == StepType.FILTERFALSE:
        return filterfalse(build_predicate(step.predicate), upstream)
    if step.type == StepType.MAP:
        return source(map(lookup_function(step.function, UNARY_FUNCTIONS), upstream))
    if step.type == StepType.ACCUMULATE:
        fn = lookup_function(step.function, BINARY_FUNCTIONS) if step.function else None
        return accumulate(upstream, fn, step.initial)
    if step.type == StepType.PAIRWISE:
        return pairwise(upstream)
    if step.type == StepType.COMPRESS:
        return compress(upstream, step.values)
    if step.type == StepType.CHAIN:
        return chain(upstream, step.values)
    if step.type == StepType.GROUPBY:
        key = lookup_function(step.function, UNARY_FUNCTIONS) if step.function else None
        return groupby(upstream, key)
    raise ValueError(f"Unknown op: {step.type}")


def run_pipeline(request: PipelineRequest, settings: EngineSettings) -> Dict[str, Any]:
    """Build the requested pipeline and pull a bounded number of results"""
    limit = settings.resolve_limit(request.limit)
    pipeline = build_source(request.source)
    steps_applied = []
    for step in request.steps:
        pipeline = apply_step(pipeline, step)
        steps_applied.append(step.type.value)

    logger.info(f"Running pipeline {request.source.kind.value} -> {steps_applied} (limit={limit})")
    (results, truncated), performance = measure_performance(
        f"pipeline_{request.source.kind.value}", drain_limited, pipeline, limit
    )
    performance["result_size"] = len(results)
    return {
        "results": results,
        "returned": len(results),
        "truncated": truncated,
        "steps_applied": steps_applied,
        "performance": performance,
    }


def run_enumeration(request: EnumerationRequest, settings: EngineSettings) -> Dict[str, Any]:
    """Run one combinatorial generator and pull a bounded number of results"""
    limit = settings.resolve_limit(request.limit)
    generate = _COMBINATORICS[request.kind]
    if request.kind == CombinatoricKind.PRODUCT:
        generator = generate(*request.pools, repeat=request.repeat, pool_limit=settings.pool_limit)
    else:
        generator = generate(request.pools[0], request.r, pool_limit=settings.pool_limit)

    logger.info(f"Enumerating {request.kind.value} over {len(request.pools)} pool(s) (limit={limit})")
    (results, truncated), performance = measure_performance(
        f"enumerate_{request.kind.value}", drain_limited, generator, limit
    )
    performance["result_size"] = len(results)
    return {
        "kind": request.kind,
        "results": [list(item) for item in results],
        "returned": len(results),
        "truncated": truncated,
        "performance": performance,
    }
