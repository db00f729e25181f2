"""
Main FastAPI Application

Entry point for the lab calendar service.
Configures middleware, routes, error handlers, and startup/shutdown events.

DEPLOYMENT NOTE: The tenant store is a single JSON file guarded by an
in-process lock. Run exactly one worker process.
"""
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager

from labcal import __version__
from labcal.config import get_settings
from labcal.store import get_store
from labcal.demo import seed_demo_tenant
from labcal.middleware.request_logging import RequestLoggingMiddleware
from labcal.api.responses import error_response
from labcal.utils.logging import setup_logging, get_logger
from labcal.core.exceptions import InvalidRequestFormatError

# Import routers
from labcal.api.endpoints import admin, calendar_events, tenants, views

settings = get_settings()

# Setup logging
setup_logging(
    log_level=settings.LOG_LEVEL,
    json_format=(settings.ENVIRONMENT == "production")
)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Loads the tenant store up front so a bad data file is reported at
    startup rather than on the first request.
    """
    logger.info(f"Starting application in {settings.ENVIRONMENT} mode")

    store = get_store()
    logger.info(f"Tenant store: {store.path} ({len(store)} tenants)")

    if settings.SEED_DEMO_TENANT:
        seed_demo_tenant(store)

    logger.info("Application startup complete")

    yield

    logger.info("Application shutdown complete")


# Create FastAPI application
app = FastAPI(
    title="Lab Calendar Service",
    description="Multi-tenant laboratory equipment scheduling with utilization analytics",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)


# ============================================================================
# MIDDLEWARE CONFIGURATION
# ============================================================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.ENVIRONMENT == "development" else settings.CORS_ORIGINS,
    allow_credentials=settings.ENVIRONMENT != "development",
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RequestLoggingMiddleware)


# ============================================================================
# EXCEPTION HANDLERS
# ============================================================================

@app.exception_handler(InvalidRequestFormatError)
async def invalid_format_handler(request: Request, exc: InvalidRequestFormatError):
    """Unrecognised calendar-event payload: tell the caller what is accepted."""
    logger.warning(f"Invalid calendar event payload on {request.url.path}")
    return error_response(exc.status_code, exc.detail, expectedFormats=exc.expected_formats)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """
    Render every HTTPException (domain errors included) in the error envelope.

    404/409/400 are expected traffic and logged at INFO.
    """
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path}: {exc.detail}")
    else:
        logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.detail}")
    return error_response(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies and query parameters are client errors (400)."""
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
    else:
        message = "Invalid request"
    return error_response(status.HTTP_400_BAD_REQUEST, message)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Catch-all exception handler.

    SECURITY: Raw error messages are only returned in debug mode.
    """
    logger.error(
        f"Unhandled exception: {type(exc).__name__}: {str(exc)}",
        exc_info=True,
        extra={
            "path": request.url.path,
            "method": request.method,
        }
    )

    if settings.DEBUG:
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc), type=type(exc).__name__)
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


# ============================================================================
# ROUTES
# ============================================================================

@app.get("/health", tags=["health"])
async def health_check():
    """Health check endpoint for load balancers."""
    return {
        "status": "healthy",
        "environment": settings.ENVIRONMENT,
        "version": __version__
    }


@app.get("/", tags=["root"])
async def root():
    """Root endpoint with API information."""
    return {
        "message": "Lab Calendar Service API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health"
    }


# All API routes live under /api
app.include_router(tenants.router, prefix="/api")
app.include_router(views.router, prefix="/api")
app.include_router(calendar_events.router, prefix="/api")
app.include_router(admin.router, prefix="/api")


if __name__ == "__main__":
    import uvicorn

    logger.info("=" * 80)
    logger.info("Lab Calendar Service")
    logger.info("=" * 80)
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Debug: {settings.DEBUG}")
    logger.info(f"Data file: {settings.data_path}")
    logger.info("=" * 80)

    uvicorn.run(
        "labcal.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
