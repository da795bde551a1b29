"""
FastAPI application entry point.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from dealbench import __version__
from dealbench.config import get_settings
from dealbench.exceptions import ContributionRejectedError, StorageUnavailableError
from dealbench.models.api import ErrorResponse
from dealbench.services.benchmark_service import BenchmarkService, get_benchmark_service

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    logger.info("application_starting")

    settings = get_settings()
    logger.info(
        "configuration_loaded",
        environment=settings.environment,
        storage_backend=settings.storage_backend,
        k_min=settings.k_min,
    )

    yield

    logger.info("application_shutting_down")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="DealBench API",
        description="Market benchmarks and deal comparison for contract terms",
        version=__version__,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.debug else settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(StorageUnavailableError)
    async def storage_unavailable_handler(
        request: Request,
        exc: StorageUnavailableError,
    ) -> JSONResponse:
        logger.warning("storage_unavailable", path=request.url.path, operation=exc.operation)
        return JSONResponse(
            status_code=503,
            content=ErrorResponse(
                error="Benchmark storage unavailable", detail=str(exc), retryable=True
            ).model_dump(),
        )

    @app.exception_handler(ContributionRejectedError)
    async def contribution_rejected_handler(
        request: Request,
        exc: ContributionRejectedError,
    ) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content=ErrorResponse(error="Contribution rejected", detail=str(exc)).model_dump(),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
        )
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(
                error="Internal server error",
                detail=str(exc) if settings.debug else None,
            ).model_dump(),
        )

    from dealbench.api.routes import benchmarks

    app.include_router(
        benchmarks.router,
        prefix="/api/v1/benchmarks",
        tags=["benchmarks"],
        responses={503: {"model": ErrorResponse}},
    )

    @app.get("/health")
    def health_check(service: BenchmarkService = Depends(get_benchmark_service)) -> dict:
        """Health check endpoint."""
        services = service.health_check()
        return {
            "status": "healthy" if all(services.values()) else "degraded",
            "services": services,
        }

    @app.get("/")
    async def root() -> dict:
        """Root endpoint."""
        return {
            "name": "DealBench API",
            "version": __version__,
            "docs": "/docs",
        }

    return app


app = create_app()
