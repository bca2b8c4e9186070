"""titleflow — FastAPI application factory."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from titleflow.adapters.persistence.database import engine
from titleflow.config import settings
from titleflow.domain.errors import (
    AllocationRejected,
    CoverageError,
    DomainError,
    IntegrityError,
    InvalidReason,
    InvalidTransition,
    NoEligibleFulfiller,
    NotFound,
    OwnershipConflict,
)
from titleflow.infrastructure.api.routes_allocation import router as allocation_router
from titleflow.infrastructure.api.routes_assignments import router as assignments_router
from titleflow.infrastructure.api.routes_fulfillers import router as fulfillers_router
from titleflow.infrastructure.api.routes_health import router as health_router
from titleflow.infrastructure.api.routes_hubs import router as hubs_router
from titleflow.infrastructure.api.routes_ingest import router as ingest_router

logger = logging.getLogger(__name__)

# Most specific first; anything else derived from DomainError is a 400
ERROR_STATUS: list[tuple[type[DomainError], int]] = [
    (NotFound, 404),
    (InvalidTransition, 409),
    (AllocationRejected, 409),
    (NoEligibleFulfiller, 409),
    (IntegrityError, 409),
    (OwnershipConflict, 409),
    (InvalidReason, 422),
    (CoverageError, 422),
]


def status_for(error: DomainError) -> int:
    for error_type, code in ERROR_STATUS:
        if isinstance(error, error_type):
            return code
    return 400


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    body = {"error": type(exc).__name__, "detail": str(exc)}
    reason = getattr(exc, "reason", None)
    if reason is not None:
        body["reason"] = reason.value
    return JSONResponse(status_code=status_for(exc), content=body)


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s | %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    if settings.storage_backend == "sql":
        try:
            async with engine.begin():
                pass  # Connection pool warmed up
            logger.info("Database connection established")
        except Exception as e:
            logger.warning("Database not available on startup: %s", e)
    yield
    await engine.dispose()


def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(
        title="titleflow — title search allocation engine",
        description="Assignment lifecycle, fulfiller allocation and audit trail",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "http://localhost:3000",
            "http://127.0.0.1:3000",
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(DomainError, domain_error_handler)

    # Register routers
    app.include_router(health_router, prefix="/api")
    app.include_router(assignments_router, prefix="/api")
    app.include_router(allocation_router, prefix="/api")
    app.include_router(fulfillers_router, prefix="/api")
    app.include_router(hubs_router, prefix="/api")
    app.include_router(ingest_router, prefix="/api")

    return app


app = create_app()
