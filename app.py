"""
Lazy Iteration Engine Service

A thin HTTP shell for inspecting the engine:
- Combinatorial enumeration (product, permutations, combinations, ...)
- Declarative pipelines over finite or infinite sources
- Results are always bounded by a limit, so infinite sources are safe to request
"""

import datetime
import logging
from contextlib import asynccontextmanager
from functools import lru_cache

from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse

from models import (
    EngineSettings,
    EnumerationRequest,
    EnumerationResponse,
    ErrorResponse,
    HealthCheckResponse,
    PipelineRequest,
    PipelineResponse,
    load_settings,
)
from sources import InvalidArgumentError
from utils import configure_logging, get_performance_summary, run_enumeration, run_pipeline

logger = logging.getLogger(__name__)


@lru_cache
def get_settings() -> EngineSettings:
    return load_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    settings = get_settings()
    configure_logging(settings)
    logger.info(f"Lazy iteration engine ready (pool_limit={settings.pool_limit}, "
                f"max_result_limit={settings.max_result_limit})")
    yield
    logger.info("Lazy iteration engine stopped")


app = FastAPI(
    title="Lazy Iteration Engine",
    description="Pull-based sequence combinators and exact combinatorial enumeration",
    version="1.0.0",
    lifespan=lifespan
)


def _error_response(message: str, error_code: str, details=None, status_code: int = 400) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            error=message,
            error_code=error_code,
            details=details,
            timestamp=datetime.datetime.now(datetime.timezone.utc).isoformat()
        ).model_dump()
    )


@app.get("/health", response_model=HealthCheckResponse)
async def health(settings: EngineSettings = Depends(get_settings)) -> HealthCheckResponse:
    return HealthCheckResponse(
        status="healthy",
        timestamp=datetime.datetime.now(datetime.timezone.utc),
        checks={"engine": True, "settings": True},
        settings=settings.model_dump(),
        performance=get_performance_summary()
    )


@app.post("/combinatorics", response_model=EnumerationResponse)
def enumerate_combinatorics(
    request: EnumerationRequest,
    settings: EngineSettings = Depends(get_settings)
):
    """
    Run one combinatorial generator over the given pools.

    Invalid arguments (negative r, oversized pools) are reported with a 400
    rather than silently producing an empty result.
    """
    try:
        outcome = run_enumeration(request, settings)
    except (InvalidArgumentError, TypeError) as e:
        logger.error(f"Enumeration {request.kind.value} rejected: {e}")
        return _error_response(str(e), "INVALID_ARGUMENT", {"kind": request.kind.value})
    return EnumerationResponse(**outcome)


@app.post("/pipeline", response_model=PipelineResponse)
def run_lazy_pipeline(
    request: PipelineRequest,
    settings: EngineSettings = Depends(get_settings)
):
    """
    Build a pipeline from a base source and a list of combinators, then pull
    at most ``limit`` results from it.

    Runs in FastAPI's threadpool: a pipeline filtering a sparse infinite
    source ties up one worker thread, not the event loop.
    """
    try:
        outcome = run_pipeline(request, settings)
    except (InvalidArgumentError, TypeError) as e:
        logger.error(f"Pipeline rejected: {e}")
        return _error_response(str(e), "INVALID_ARGUMENT", {"source": request.source.kind.value})
    return PipelineResponse(**outcome)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
