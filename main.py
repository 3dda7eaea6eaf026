"""Roster - User Account Service."""

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from app.config import get_settings
from app.dependencies import resolve_identity
from app.errors import ApiError, ValidationFailed
from app.rate_limit import limiter
from app.routers import auth_router, users_router
from app.schemas.common import validation_messages
from app.services.cleanup import SessionCleanupScheduler
from app.services.images import get_image_store

# Logging
logger = logging.getLogger("roster")
logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

VERSION = "0.1.0"

for warning in get_settings().validate():
    logger.warning(warning)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create the image folder and own the session cleanup task for the lifetime of the application."""
    get_image_store().create_folders()
    scheduler = SessionCleanupScheduler()
    app.state.session_cleanup = scheduler
    await scheduler.start()
    try:
        yield
    finally:
        await scheduler.stop()


# Every routed request resolves its caller before the handler runs
app = FastAPI(title="Roster", version=VERSION, lifespan=lifespan, dependencies=[Depends(resolve_identity)])
app.state.limiter = limiter


# --- Security headers middleware ---
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Cache-Control"] = "no-store"
        return response


# --- Request size limit middleware ---
class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    MAX_BODY_SIZE = 4 * 1024 * 1024  # base64 of a 2MB image plus JSON overhead

    async def dispatch(self, request: Request, call_next) -> Response:
        content_length = request.headers.get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > self.MAX_BODY_SIZE:
            return error_response(request, 413, "Request body too large")
        return await call_next(request)


# --- Audit logging middleware ---
class AuditLogMiddleware(BaseHTTPMiddleware):
    AUDITED_METHODS = {"POST", "PUT", "DELETE"}

    async def dispatch(self, request: Request, call_next) -> Response:
        start = time.time()
        response = await call_next(request)
        duration_ms = (time.time() - start) * 1000

        if request.method in self.AUDITED_METHODS and request.url.path.startswith("/api/"):
            logger.info(
                "AUDIT %s %s -> %d (%.0fms) from %s",
                request.method,
                request.url.path,
                response.status_code,
                duration_ms,
                request.client.host if request.client else "unknown",
            )

        return response


app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestSizeLimitMiddleware)
app.add_middleware(AuditLogMiddleware)

# Profile images; the folder is created at startup
app.mount("/images", StaticFiles(directory=get_image_store().profile_folder, check_dir=False), name="images")

# API routers
app.include_router(auth_router)
app.include_router(users_router)


# --- Error responses ---
def error_response(
    request: Request, status_code: int, message: str, validation_errors: dict[str, str] | None = None
) -> JSONResponse:
    """Build the error body shared by every failure: path, timestamp (ms), message."""
    content: dict = {
        "path": request.url.path,
        "timestamp": int(time.time() * 1000),
        "message": message,
    }
    if validation_errors:
        content["validationErrors"] = validation_errors
    return JSONResponse(status_code=status_code, content=content)


@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    """Map domain errors to their status code and message."""
    validation_errors = exc.validation_errors if isinstance(exc, ValidationFailed) else None
    return error_response(request, exc.status_code, exc.message, validation_errors)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Schema failures use the same body as ValidationFailed."""
    return error_response(request, 400, ValidationFailed.default_message, validation_messages(list(exc.errors())))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Framework errors (unknown route, wrong method) in the common body shape."""
    return error_response(request, exc.status_code, str(exc.detail))


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Handle rate limit exceeded."""
    return error_response(request, 429, "Rate limit exceeded. Try again later.")


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response(request, 500, "Internal server error")


# --- Health check ---
@app.get("/api/health")
def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "ok", "app": "roster", "version": VERSION}
