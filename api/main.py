"""
api/main.py -- FastAPI application entry point for the user management service.

Run with:      uvicorn asgi:app --reload

Middleware, in registration order (Starlette runs the last one added first):
  1. TrustedHostMiddleware -- Host header must match ALLOWED_HOSTS
  2. CORSMiddleware        -- allows the browser frontend (FRONTEND_URL) with credentials
  3. SlowAPIMiddleware     -- applies the @limiter.limit decorators (login)

Lifespan handles startup (user store, picture store, admin bootstrap) and
shutdown (close DB connections) symmetrically.

Error boundary: route and guard code raise core.errors.AppError subclasses.
app_error_handler below is the only place that maps an ErrorKind to a status
code. Internal causes are logged, never returned.
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
from fastapi.staticfiles import StaticFiles
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.limiter import limiter
from api.models import ErrorResponse, HealthResponse
from api.routes.auth import router as auth_router
from api.routes.users import router as users_router
from auth.bootstrap import ensure_admin
from auth.store import UserStore
from core.config import get_settings
from core.errors import AppError, ErrorKind
from media.store import PUBLIC_PREFIX, PictureStore

APP_VERSION = "1.0.0"

_settings = get_settings()

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=_settings.log_level.upper(),
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("usermgmt.api")


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the stores and bootstrap the admin before serving; close the DB on exit."""
    logger.info("User management API starting up")
    app.state.user_store = UserStore(_settings.database_url)
    app.state.pictures = PictureStore(_settings.upload_dir, _settings.max_upload_bytes)
    logger.info("Stores initialized (uploads in %s)", _settings.upload_dir)
    ensure_admin(app.state.user_store, _settings)

    yield

    app.state.user_store.close()
    logger.info("User management API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="User Management API",
    description="Registration, login, profiles and admin user management.",
    version=APP_VERSION,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
# ---------------------------------------------------------------------------

app.add_middleware(
    TrustedHostMiddleware,
    allowed_hosts=_settings.allowed_hosts,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[_settings.frontend_url],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)

app.add_middleware(SlowAPIMiddleware)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


# ---------------------------------------------------------------------------
# Request logging middleware
# ---------------------------------------------------------------------------


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
# Routers and static files
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api", tags=["Auth"])
app.include_router(users_router, prefix="/api", tags=["Users"])

# check_dir=False: the directory is created by PictureStore in lifespan.
app.mount(PUBLIC_PREFIX, StaticFiles(directory=_settings.upload_dir, check_dir=False), name="uploads")


# ---------------------------------------------------------------------------
# Exception handlers
#
# Every error body is {"error": <message>, "code": <kind>, "detail": ...},
# whatever the status code.
# ---------------------------------------------------------------------------


def _error_response(status_code: int, code: str, message: str, detail: str | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=message, code=code, detail=detail).model_dump(),
    )


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Translate an AppError kind into its status code and envelope.

    Only InternalError carries a hidden cause worth a stack trace; the other
    kinds are expected outcomes and are not logged here.
    """
    if exc.kind is ErrorKind.internal:
        logger.error(
            "%s on %s %s",
            exc.message,
            request.method,
            request.url.path,
            exc_info=exc.__cause__ or exc,
        )
    return _error_response(exc.kind.status_code, exc.kind.value, exc.message)


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with a structured error when a rate limit is exceeded."""
    retry_after = int(getattr(exc, "retry_after", 60))
    response = _error_response(429, "rate_limited", "Too many requests.", str(exc))
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 with structured error when request body or params fail validation."""
    return _error_response(422, "request_validation_error", "Request validation failed.", str(exc.errors()))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Structured envelope for framework HTTP errors (unknown route, static 404, 405)."""
    return _error_response(exc.status_code, f"http_{exc.status_code}", str(exc.detail))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last resort for exceptions no route wrapped. The traceback is logged only."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error_response(500, ErrorKind.internal.value, "An unexpected error occurred.")


# ---------------------------------------------------------------------------
# Health endpoint
#
# No rate limit and no auth -- load balancers and monitors must reach it.
# ---------------------------------------------------------------------------


@app.get("/api/health", tags=["Health"])
async def health(request: Request) -> HealthResponse:
    """Return liveness, version, and database reachability."""
    db_ok = request.app.state.user_store.ping()
    return HealthResponse(
        status="healthy" if db_ok else "degraded",
        version=APP_VERSION,
        components={"app": "ok", "database": "ok" if db_ok else "error"},
    )
