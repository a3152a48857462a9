"""Appetite matcher FastAPI application.

Endpoints
---------
POST  /v1/match                             — score supplied appetites for a client
POST  /v1/documents/{document_id}/match     — match a client document against stored guides
GET   /v1/documents/{document_id}/matches   — persisted matches for a client document
GET   /v1/health                            — service health check

Authentication is via the ``X-API-Key`` header.
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import Depends, FastAPI, Header, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from appetite_matcher import __version__
from appetite_matcher.api.schemas import (
    HealthResponse,
    MatchRequest,
    MatchResponse,
    MatchResultResponse,
    StoredMatchesResponse,
)
from appetite_matcher.config import settings
from appetite_matcher.db import engine as db_engine
from appetite_matcher.matching.engine import MatchingEngine
from appetite_matcher.matching.models import ClientProfile, MatchRun
from appetite_matcher.store import AppetiteStore

logger = logging.getLogger("appetite_matcher.api")

# ---------------------------------------------------------------------------
# Application state
# ---------------------------------------------------------------------------

_store: AppetiteStore | None = None
_matching_engine: MatchingEngine | None = None


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle handler.

    On startup: creates the :class:`AppetiteStore` and the shared
    :class:`MatchingEngine` (weights are loaded once here).  On shutdown:
    disposes the connection pool.
    """
    global _store, _matching_engine

    logger.info("Appetite matcher API starting up (version=%s)", __version__)
    _store = AppetiteStore()
    _matching_engine = MatchingEngine(store=_store)

    yield

    logger.info("Appetite matcher API shutting down")
    await db_engine.dispose()
    _matching_engine = None
    _store = None
    logger.info("Database pool disposed")


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Appetite Matcher API",
    description="Rule-based matching of client risk profiles against underwriter appetite.",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Middleware — request logging
# ---------------------------------------------------------------------------


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log every inbound request with timing."""
    start = time.monotonic()
    response = await call_next(request)
    elapsed_ms = (time.monotonic() - start) * 1000
    logger.info(
        "%s %s → %d (%.1fms)",
        request.method,
        request.url.path,
        response.status_code,
        elapsed_ms,
    )
    return response


# ---------------------------------------------------------------------------
# Error handlers
# ---------------------------------------------------------------------------


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 with the validation errors, minus the rejected input values.

    Rejected values can be non-finite floats, which have no JSON encoding.
    """
    errors = [
        {key: value for key, value in error.items() if key != "input"}
        for error in exc.errors()
    ]
    logger.info(
        "%s %s rejected: %d validation error(s)",
        request.method,
        request.url.path,
        len(errors),
    )
    return JSONResponse(
        status_code=422,
        content={"detail": jsonable_encoder(errors)},
    )


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


async def require_api_key(x_api_key: str = Header(..., alias="X-API-Key")) -> str:
    """Validate the ``X-API-Key`` header.

    Raises
    ------
    HTTPException
        403 if the key is invalid.
    """
    if x_api_key != settings.api_key:
        logger.warning("Invalid API key attempt: %s...", x_api_key[:6])
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid API key.",
        )
    return x_api_key


def get_store() -> AppetiteStore:
    """Return the application-level store or raise 503."""
    if _store is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Appetite store not initialised.",
        )
    return _store


def get_matching_engine() -> MatchingEngine:
    """Return the application-level MatchingEngine or raise 503."""
    if _matching_engine is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Matching engine not initialised.",
        )
    return _matching_engine


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run_to_response(run: MatchRun, t0: float) -> MatchResponse:
    return MatchResponse(
        top_matches=[MatchResultResponse.from_result(m) for m in run.top_matches],
        nearest_misses=[MatchResultResponse.from_result(m) for m in run.nearest_misses],
        total_evaluated=run.total_evaluated,
        message=run.message,
        match_time_ms=round((time.monotonic() - t0) * 1000, 1),
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@app.post(
    "/v1/match",
    response_model=MatchResponse,
    summary="Score underwriter appetites for a client",
    tags=["Matching"],
)
async def match_appetites(
    body: MatchRequest,
    engine: MatchingEngine = Depends(get_matching_engine),
    _key: str = Depends(require_api_key),
) -> MatchResponse:
    """Score the supplied appetites for the client profile and return the top
    matches and nearest misses.  Nothing is persisted.
    """
    t0 = time.monotonic()
    run = engine.match(body.client_profile, body.underwriter_appetites)
    return _run_to_response(run, t0)


@app.post(
    "/v1/documents/{document_id}/match",
    response_model=MatchResponse,
    summary="Match a client document against stored appetite guides",
    tags=["Matching"],
)
async def match_document(
    document_id: str,
    body: ClientProfile,
    engine: MatchingEngine = Depends(get_matching_engine),
    _key: str = Depends(require_api_key),
) -> MatchResponse:
    """Match against processed guides for the client's product and persist
    the top matches against *document_id*.
    """
    t0 = time.monotonic()
    try:
        run = await engine.match_document(document_id, body)
    except SQLAlchemyError as exc:
        logger.exception("Appetite matching failed for document=%s", document_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Appetite matching failed: {exc.__class__.__name__}",
        ) from exc
    return _run_to_response(run, t0)


@app.get(
    "/v1/documents/{document_id}/matches",
    response_model=StoredMatchesResponse,
    summary="Persisted matches for a client document",
    tags=["Matching"],
)
async def list_document_matches(
    document_id: str,
    store: AppetiteStore = Depends(get_store),
    _key: str = Depends(require_api_key),
) -> StoredMatchesResponse:
    """Return the stored top matches for *document_id*, highest confidence first."""
    try:
        matches = await store.list_matches(document_id)
    except SQLAlchemyError as exc:
        logger.exception("Loading matches failed for document=%s", document_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Loading matches failed: {exc.__class__.__name__}",
        ) from exc
    return StoredMatchesResponse(client_document_id=document_id, matches=matches)


@app.get(
    "/v1/health",
    response_model=HealthResponse,
    summary="Service health check",
    tags=["System"],
)
async def health_check(
    _key: str = Depends(require_api_key),
) -> HealthResponse:
    """Return service status and version."""
    return HealthResponse(status="ok", version=__version__)
