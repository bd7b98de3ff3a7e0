"""
api/main.py -- FastAPI application factory for the HR training API.

Exposes the credential flows and the formations resource over HTTP for the
HR front-end.

Run with:  uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. CORSMiddleware    -- only the configured front-end origin, with credentials
  2. SlowAPIMiddleware -- enforces per-route rate limits from api.limiter

create_app() wires settings, the provider adapter and the services onto
app.state before the first request, so tests can inject their own. Lifespan
only logs startup and closes the provider on shutdown.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.limiter import limiter
from api.models import ErrorResponse, HealthResponse, MessageResponse
from api.routes.auth import router as auth_router
from api.routes.formations import router as formations_router
from auth.service import CredentialService
from core.config import Settings, get_settings
from core.errors import AppError, ServiceUnavailableError
from formations.service import FormationService
from provider import IdentityProvider, ProviderUnavailable, build_provider

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("hrtraining.api")

VERSION = "1.0.0"


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Log startup; close the provider adapter on shutdown."""
    settings: Settings = app.state.settings
    logger.info(
        "HR training API starting up (environment=%s, provider=%s)",
        settings.environment,
        settings.provider_backend,
    )

    yield

    app.state.provider.close()
    logger.info("HR training API shutdown complete")


# ---------------------------------------------------------------------------
# Error envelope
# ---------------------------------------------------------------------------


def _error_response(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(code=code, message=message).model_dump(),
    )


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Return the status, code and message carried by the service error."""
    if exc.status_code >= 500:
        logger.warning("%s %s -> %d %s", request.method, request.url.path, exc.status_code, exc.message)
    return _error_response(exc.status_code, exc.code, exc.message)


async def provider_unavailable_handler(request: Request, exc: ProviderUnavailable) -> JSONResponse:
    """A provider call timed out or could not connect."""
    logger.warning("Provider unavailable on %s %s: %s", request.method, request.url.path, exc)
    err = ServiceUnavailableError("service unavailable")
    return _error_response(err.status_code, err.code, err.message)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed JSON or wrongly typed fields answer 400 like the service-level checks."""
    logger.debug("Request validation failed: %s", exc.errors())
    return _error_response(400, "validation_error", "Request validation failed.")


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Unknown routes, wrong methods and any other framework-raised HTTP error."""
    response = _error_response(exc.status_code, f"http_{exc.status_code}", str(exc.detail))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 when a rate limit is exceeded.

    Retry-After tells clients how many seconds to wait before retrying.
    Must stay synchronous: SlowAPIMiddleware calls it without awaiting.
    """
    retry_after = int(getattr(exc, "retry_after", 60))
    response = _error_response(429, "rate_limited", "Too many requests.")
    response.headers["Retry-After"] = str(retry_after)
    return response


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unexpected server errors.

    The traceback goes to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error_response(500, "internal_error", "An unexpected error occurred.")


# ---------------------------------------------------------------------------
# Request logging middleware
# ---------------------------------------------------------------------------


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
# Service endpoints
#
# Defined here rather than in a router so they stay reachable regardless of
# router registration. No rate limit: health checks must not be throttled.
# ---------------------------------------------------------------------------


async def root() -> MessageResponse:
    return MessageResponse(message=f"HR training API v{VERSION} is running.")


async def health() -> HealthResponse:
    """Return API liveness and the server time."""
    return HealthResponse(timestamp=datetime.now(timezone.utc).isoformat())


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------


def create_app(settings: Settings | None = None, provider: IdentityProvider | None = None) -> FastAPI:
    """Build the application.

    settings defaults to the environment-backed singleton; provider defaults
    to the adapter selected by settings.provider_backend.
    """
    settings = settings or get_settings()
    provider = provider or build_provider(settings)

    app = FastAPI(
        title="HR Training API",
        description="Authentication and training session management for HR teams.",
        version=VERSION,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.provider = provider
    app.state.credential_service = CredentialService(provider, settings)
    app.state.formation_service = FormationService(provider)
    # SlowAPIMiddleware looks for app.state.limiter by convention.
    app.state.limiter = limiter

    # add_middleware() wraps outermost-last, so register innermost first.
    app.add_middleware(SlowAPIMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Content-Type", "Authorization"],
        max_age=3600,
    )
    app.middleware("http")(log_requests)

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(ProviderUnavailable, provider_unavailable_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    app.include_router(auth_router, prefix="/api", tags=["Auth"])
    app.include_router(formations_router, prefix="/api", tags=["Formations"])

    app.add_api_route("/", root, methods=["GET"], response_model=MessageResponse, tags=["Health"])
    app.add_api_route("/api/health", health, methods=["GET"], response_model=HealthResponse, tags=["Health"])

    return app
