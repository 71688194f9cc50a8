"""
CoachDesk

FastAPI application entry point.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from coachdesk.api.deps import DbSession
from coachdesk.api.middleware.request_id import RequestIdMiddleware
from coachdesk.api.v1 import router as api_v1_router
from coachdesk.config import get_settings
from coachdesk.database import close_db, init_db
from coachdesk.kernel.errors import (
    AdminNotConfiguredError,
    AuthenticationError,
    PermissionDeniedError,
)
from coachdesk.logging_config import configure_logging, get_logger
from coachdesk.schemas.common import ErrorDetail, HealthResponse

settings = get_settings()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan handler.

    Runs startup and shutdown tasks.
    """
    # Configure logging first
    configure_logging(
        log_level=settings.log_level,
        environment=settings.environment,
        debug=settings.debug,
    )

    # Startup
    logger.info("Starting %s v%s", settings.project_name, settings.version)
    await init_db()
    logger.info("Database initialized")

    yield

    # Shutdown
    logger.info("Shutting down...")
    await close_db()
    logger.info("Database connections closed")


# Create FastAPI application
app = FastAPI(
    title=settings.project_name,
    description="""
    CoachDesk coaching service backend.

    ## Features

    - **Accounts**: registration, login, cookie or bearer sessions, password reset
    - **Sessions**: short-lived access tokens, refresh tokens, immediate revocation
    - **Messaging**: conversations between each user and the administrator
    - **Appointments**: time slots, booking, cancellation and reminders
    """,
    version=settings.version,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)


# Middleware order: LAST added = OUTERMOST. CORS must be outermost so every
# response, errors included, carries CORS headers.
app.add_middleware(RequestIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error_headers(request: Request) -> dict:
    """Headers for error responses (500s bypass the CORS middleware)."""
    headers = {}
    origin = request.headers.get("origin")
    if origin and origin in settings.cors_origins:
        headers["Access-Control-Allow-Origin"] = origin
        headers["Access-Control-Allow-Credentials"] = "true"
    req_id = getattr(request.state, "request_id", None)
    if req_id:
        headers["X-Request-ID"] = req_id
    return headers


def _error_response(
    request: Request,
    status_code: int,
    detail,
    *,
    extra_headers: dict | None = None,
    **fields,
) -> JSONResponse:
    """JSON error body; server errors always echo the request id."""
    content = {"detail": detail, **fields}
    if status_code >= 500:
        content["request_id"] = getattr(request.state, "request_id", None)
    headers = _error_headers(request)
    headers.update(extra_headers or {})
    return JSONResponse(status_code=status_code, content=content, headers=headers)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return _error_response(request, exc.status_code, exc.detail, extra_headers=exc.headers)


@app.exception_handler(AuthenticationError)
async def authentication_error_handler(request: Request, exc: AuthenticationError):
    return _error_response(
        request,
        status.HTTP_401_UNAUTHORIZED,
        ErrorDetail(code=exc.reason.value, message=exc.message).model_dump(),
        extra_headers={"WWW-Authenticate": "Bearer"},
    )


@app.exception_handler(PermissionDeniedError)
async def permission_denied_handler(request: Request, exc: PermissionDeniedError):
    return _error_response(
        request,
        status.HTTP_403_FORBIDDEN,
        ErrorDetail(code="FORBIDDEN", message=str(exc) or "Forbidden").model_dump(),
    )


@app.exception_handler(AdminNotConfiguredError)
async def admin_not_configured_handler(request: Request, exc: AdminNotConfiguredError):
    """Deployment without an admin account: a server error, not a client one."""
    logger.error("Messaging unavailable: %s", exc)
    return _error_response(request, status.HTTP_500_INTERNAL_SERVER_ERROR, "Messaging is not configured")


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {
            "field": ".".join(str(part) for part in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]
    return _error_response(request, status.HTTP_422_UNPROCESSABLE_ENTITY, "Validation error", errors=errors)


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    if settings.debug:
        return _error_response(
            request, status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc), type=type(exc).__name__
        )
    return _error_response(request, status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


# Health check endpoint
@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check(db: DbSession):
    """Check application and database health."""
    try:
        await db.execute(text("SELECT 1"))
        database = "connected"
    except SQLAlchemyError:
        logger.warning("Health check: database unreachable", exc_info=True)
        database = "unavailable"

    return HealthResponse(
        status="ok" if database == "connected" else "degraded",
        version=settings.version,
        database=database,
    )


# Mount API v1 routes
app.include_router(
    api_v1_router,
    prefix=settings.api_v1_prefix,
)


# Main entry point for development
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "coachdesk.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )
