"""
api/main.py -- FastAPI application entry point for Incident Admin.

Run with:  uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  2. CORSMiddleware        -- adds CORS headers for allowed browser origins
  3. SlowAPIMiddleware     -- enforces per-route rate limits from api.limiter

Lifespan is the composition root: it builds the stores, the token
issuer/verifier, AuthService and NotificationService from Settings and
closes the stores on shutdown.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.admin import router as admin_router
from api.routes.v1.headings import router as headings_router
from api.routes.v1.incidents import router as incidents_router
from api.routes.v1.notify import router as notify_router
from api.routes.v1.users import router as users_router
from auth.service import AuthService
from auth.store import AdminStore
from auth.tokens import TokenIssuer, TokenVerifier
from core.config import Settings, get_settings
from notify.codes import CodeStore
from notify.sender import LogNotifier, Notifier, WebhookNotifier
from notify.service import NotificationService
from tracker.store import TrackerStore

VERSION = "1.0.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("incidentadmin.api")

_settings = get_settings()


# ---------------------------------------------------------------------------
# Service wiring
# ---------------------------------------------------------------------------


def install_services(
    app: FastAPI,
    settings: Settings,
    admin_store: AdminStore,
    tracker: TrackerStore,
    codes: CodeStore,
    notifier: Notifier,
) -> None:
    """Attach stores and services to app.state.

    The signing secret and lifetimes are passed explicitly to the token
    issuer and verifier here; nothing downstream reads settings for them.
    The test suite calls this with in-memory stores.
    """
    issuer = TokenIssuer(
        settings.secret_key,
        access_expire_seconds=settings.access_token_expire_seconds,
        refresh_expire_seconds=settings.refresh_token_expire_seconds,
    )
    verifier = TokenVerifier(settings.secret_key)
    app.state.admin_store = admin_store
    app.state.tracker = tracker
    app.state.codes = codes
    app.state.notifier = notifier
    app.state.auth_service = AuthService(admin_store, issuer, verifier)
    app.state.notifications = NotificationService(notifier, codes, support_email=settings.support_email)


def _build_notifier(settings: Settings) -> Notifier:
    if settings.notify_webhook_url:
        logger.info("Notifications delivered via webhook")
        return WebhookNotifier(settings.notify_webhook_url)
    logger.warning("NOTIFY_WEBHOOK_URL not set -- notifications are only logged")
    return LogNotifier()


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create resources on startup and release them on shutdown."""
    logger.info("Incident Admin API starting up")
    install_services(
        app,
        _settings,
        admin_store=AdminStore(_settings.database_url),
        tracker=TrackerStore(_settings.database_url),
        codes=CodeStore(_settings.secret_key, _settings.otp_expire_seconds, db_url=_settings.database_url),
        notifier=_build_notifier(_settings),
    )
    logger.info("Stores initialized")

    yield

    app.state.admin_store.close()
    app.state.tracker.close()
    app.state.codes.close()
    if isinstance(app.state.notifier, WebhookNotifier):
        app.state.notifier.close()
    logger.info("Incident Admin API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Incident Admin API",
    description="Admin authentication, incident triage and notifications for the incident tracker.",
    version=VERSION,
    lifespan=lifespan,
    # Interactive docs only in development.
    docs_url="/docs" if _settings.debug else None,
    redoc_url="/redoc" if _settings.debug else None,
)

# ---------------------------------------------------------------------------
# Middleware stack
#
# Register in the order you want the request to encounter them:
# TrustedHost -> CORS -> SlowAPI.
# ---------------------------------------------------------------------------

app.add_middleware(TrustedHostMiddleware, allowed_hosts=_settings.allowed_hosts)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_methods=["GET", "POST", "PUT", "PATCH"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)

app.add_middleware(SlowAPIMiddleware)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(admin_router, tags=["Admin Auth"])
app.include_router(incidents_router, tags=["Incidents"])
app.include_router(headings_router, tags=["Table Headings"])
app.include_router(users_router, tags=["Users"])
app.include_router(notify_router, prefix="/auth", tags=["Notifications"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so clients can parse
# errors uniformly.
# ---------------------------------------------------------------------------


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with a structured error when a rate limit is exceeded."""
    retry_after = int(getattr(exc, "retry_after", 60))
    response = JSONResponse(
        status_code=429,
        content=ErrorResponse(
            error=ErrorDetail(
                code="rate_limited",
                message="Too many requests.",
                detail=str(exc),
            )
        ).model_dump(),
    )
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 with structured error when request body or query params fail validation."""
    return JSONResponse(
        status_code=422,
        content=ErrorResponse(
            error=ErrorDetail(
                code="validation_error",
                message="Request validation failed.",
                detail=str(exc.errors()),
            )
        ).model_dump(),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Return a structured error for all FastAPI/Starlette HTTP exceptions.

    Route handlers raise HTTPException with a dict detail ({code, message});
    that dict becomes the error field as-is.
    """
    if isinstance(exc.detail, dict):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=exc.headers,
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=ErrorDetail(
                code=f"http_{exc.status_code}",
                message=str(exc.detail),
            )
        ).model_dump(),
        headers=exc.headers,
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception goes to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error=ErrorDetail(
                code="internal_error",
                message="An unexpected error occurred.",
            )
        ).model_dump(),
    )


# ---------------------------------------------------------------------------
# Health endpoint -- no auth, no rate limit.
# ---------------------------------------------------------------------------


@app.get("/health", tags=["Health"])
async def health() -> HealthResponse:
    """Return API liveness and current version."""
    return HealthResponse(version=VERSION)
