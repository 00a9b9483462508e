"""Academic Progression & Ranking Engine API - FastAPI application entry point.

Features:
- Lifespan context manager: probes the DB on startup, disposes it on shutdown
- Structured exception handlers for all domain exceptions
- Request/response logging middleware with request-ID tracing
- /health endpoint reporting DB connectivity
"""

from __future__ import annotations

import datetime
import logging
import time
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

from fastapi import FastAPI, HTTPException, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from progression.config import get_settings
from progression.exceptions import (
    DatabaseConnectionError,
    EmptyRosterError,
    InvalidPercentageError,
    InvalidRankingRequestError,
    MixedScoreGroupError,
    PromotionCriteriaNotFoundError,
    StudentNotFoundError,
    TermNotFoundError,
)

# ---------------------------------------------------------------------------
# Logging setup  (must happen before routers are imported)
# ---------------------------------------------------------------------------

_settings = get_settings()
logging.basicConfig(
    level=getattr(logging, _settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S",
)
logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Router and service imports
# ---------------------------------------------------------------------------

from progression.api import engine as _engine_module  # noqa: E402
from progression.api import grading as _grading_module  # noqa: E402
from progression.api import reports as _reports_module  # noqa: E402
from progression.database import check_db_connection, dispose_engine, init_db  # noqa: E402

# Register all ORM models with the declarative base (required for metadata)
import progression.models  # noqa: F401, E402

# ---------------------------------------------------------------------------
# Lifespan context manager
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application startup and shutdown lifecycle.

    Startup probes DB connectivity and logs the result; the stateless
    ``/engine`` and ``/grading`` routes keep working without a database.
    Shutdown disposes the SQLAlchemy connection pool.
    """
    logger.info("Progression engine API starting up (v%s)", _settings.app_version)

    db_health = await check_db_connection()
    if db_health["status"] == "ok":
        logger.info("Database: OK")
        if _settings.auto_create_tables:
            await init_db()
            logger.info("Database tables created")
    else:
        logger.warning("Database: DEGRADED (%s)", db_health.get("detail", "unknown"))

    logger.info("Startup complete, serving requests")
    yield

    logger.info("Progression engine API shutting down")
    try:
        await dispose_engine()
    except Exception as exc:
        logger.warning("Error during engine disposal: %s", exc)
    logger.info("Shutdown complete")


# ---------------------------------------------------------------------------
# FastAPI application
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Academic Progression & Ranking Engine",
    description=(
        "Turns raw assessment scores into graded subject results, class/level/"
        "school rankings and promotion decisions for school report cards."
    ),
    version=_settings.app_version,
    debug=_settings.debug,
    lifespan=lifespan,
    openapi_tags=[
        {"name": "health", "description": "System health and readiness checks."},
        {
            "name": "grading",
            "description": "Grade lookup and grading-scheme validation.",
        },
        {
            "name": "engine",
            "description": (
                "Stateless computation over a snapshot of records posted with"
                " the request."
            ),
        },
        {
            "name": "reports",
            "description": "Reports and rankings computed from the school database.",
        },
    ],
)

# ---------------------------------------------------------------------------
# CORS middleware
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Request / response logging middleware
# ---------------------------------------------------------------------------


@app.middleware("http")
async def request_logging_middleware(request: Request, call_next: Any) -> Response:
    """Log every HTTP request with method, path, status, and duration.

    A short UUID-derived ``request_id`` is attached to each log line and
    returned as the ``X-Request-ID`` response header.
    """
    request_id = str(uuid.uuid4())[:8]
    t0 = time.monotonic()
    logger.info("[%s] -> %s %s", request_id, request.method, request.url.path)

    try:
        response: Response = await call_next(request)
    except Exception as exc:
        elapsed = (time.monotonic() - t0) * 1000
        logger.error(
            "[%s] %s %s unhandled after %.1f ms: %s",
            request_id,
            request.method,
            request.url.path,
            elapsed,
            exc,
        )
        raise

    elapsed = (time.monotonic() - t0) * 1000
    logger.info(
        "[%s] <- %s %s %d (%.1f ms)",
        request_id,
        request.method,
        request.url.path,
        response.status_code,
        elapsed,
    )
    response.headers["X-Request-ID"] = request_id
    return response


# ---------------------------------------------------------------------------
# Structured exception handlers
# ---------------------------------------------------------------------------


@app.exception_handler(TermNotFoundError)
async def term_not_found_handler(request: Request, exc: TermNotFoundError) -> JSONResponse:
    """404 for unknown terms."""
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"error": "term_not_found", "message": str(exc), "term_id": exc.term_id},
    )


@app.exception_handler(StudentNotFoundError)
async def student_not_found_handler(
    request: Request, exc: StudentNotFoundError
) -> JSONResponse:
    """404 for students missing from the roster."""
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={
            "error": "student_not_found",
            "message": str(exc),
            "student_id": exc.student_id,
            "term_id": exc.term_id,
        },
    )


@app.exception_handler(InvalidPercentageError)
async def invalid_percentage_handler(
    request: Request, exc: InvalidPercentageError
) -> JSONResponse:
    """422 for percentages outside 0-100."""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"error": "invalid_percentage", "message": str(exc), "value": repr(exc.value)},
    )


@app.exception_handler(MixedScoreGroupError)
async def mixed_score_group_handler(
    request: Request, exc: MixedScoreGroupError
) -> JSONResponse:
    """422 for score groups mixing students, subjects or terms."""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"error": "mixed_score_group", "message": str(exc), "field": exc.field},
    )


@app.exception_handler(InvalidRankingRequestError)
async def invalid_ranking_request_handler(
    request: Request, exc: InvalidRankingRequestError
) -> JSONResponse:
    """422 for ranking requests that mix terms or duplicate students."""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"error": "invalid_ranking_request", "message": str(exc)},
    )


@app.exception_handler(EmptyRosterError)
async def empty_roster_handler(request: Request, exc: EmptyRosterError) -> JSONResponse:
    """409 when there is nobody to rank or report on."""
    logger.warning("EmptyRosterError: %s", exc)
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={
            "error": "empty_roster",
            "message": str(exc),
            "scope": exc.scope,
            "group": exc.group,
        },
    )


@app.exception_handler(PromotionCriteriaNotFoundError)
async def criteria_not_found_handler(
    request: Request, exc: PromotionCriteriaNotFoundError
) -> JSONResponse:
    """409 when promotion criteria are not configured for the academic year."""
    logger.error("PromotionCriteriaNotFoundError: %s", exc)
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={
            "error": "promotion_criteria_not_found",
            "message": str(exc),
            "academic_year": exc.academic_year,
            "school_level": exc.school_level,
        },
    )


@app.exception_handler(DatabaseConnectionError)
async def database_connection_error_handler(
    request: Request, exc: DatabaseConnectionError
) -> JSONResponse:
    """503 for database connectivity failures."""
    logger.error("DatabaseConnectionError: %s", exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"error": "database_unavailable", "message": str(exc)},
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Render FastAPI HTTPExceptions as structured JSON."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": "http_error",
            "status_code": exc.status_code,
            "detail": exc.detail,
        },
    )


# ---------------------------------------------------------------------------
# Core routes
# ---------------------------------------------------------------------------


@app.get("/", tags=["health"], summary="API root / service info")
async def root() -> dict[str, str]:
    """Return basic service metadata and navigation links."""
    return {
        "service": "Academic Progression & Ranking Engine",
        "version": _settings.app_version,
        "documentation": "/docs",
        "health": "/health",
        "openapi": "/openapi.json",
    }


@app.get(
    "/health",
    tags=["health"],
    summary="System health check",
    description=(
        "Probes database connectivity. ``status: degraded`` means the API is"
        " responding but the database is unavailable; the stateless routes"
        " still work."
    ),
)
async def health_check() -> dict[str, Any]:
    """Return current system health including DB status."""
    db_health = await check_db_connection()
    return {
        "status": "ok" if db_health["status"] == "ok" else "degraded",
        "timestamp": datetime.datetime.now(datetime.timezone.utc).isoformat(),
        "version": _settings.app_version,
        "database": db_health,
    }


# ---------------------------------------------------------------------------
# Include routers
# ---------------------------------------------------------------------------

app.include_router(_grading_module.router)
app.include_router(_engine_module.router)
app.include_router(_reports_module.router)


# ---------------------------------------------------------------------------
# Development entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "progression.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level=_settings.log_level.lower(),
    )
