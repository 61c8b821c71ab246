"""Ghoste credits backend: FastAPI application entry point."""

import signal
import uuid
from contextlib import asynccontextmanager

# configure_structlog must run before the remaining app imports: structlog
# caches the processor chain on first use.
from ghoste.core.logging import configure_structlog
from ghoste.core.config import get_settings as _get_settings_early

_early_settings = _get_settings_early()
configure_structlog(
    log_level="DEBUG" if _early_settings.debug else "INFO",
    json_logs=not _early_settings.debug,
)

import structlog

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ghoste.api.routes import api_router
from ghoste.core.config import get_settings
from ghoste.core.exceptions import ConfigurationError
from ghoste.credits.errors import CreditError, CreditErrorCode
from ghoste.db import close_db, close_redis, init_db, init_redis
from ghoste.db.seed import seed_credit_costs
from ghoste.middleware.correlation import get_correlation_id, setup_correlation_middleware

logger = structlog.get_logger(__name__)

CREDIT_ERROR_STATUS: dict[CreditErrorCode, int] = {
    CreditErrorCode.INSUFFICIENT_CREDITS: 402,
    CreditErrorCode.WALLET_NOT_FOUND: 404,
    CreditErrorCode.COST_NOT_FOUND: 404,
    CreditErrorCode.UNAUTHORIZED: 401,
    CreditErrorCode.UNKNOWN: 500,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    app.state.shutting_down = False

    def handle_sigterm(signum, frame):
        app.state.shutting_down = True
        logger.info("sigterm_received", action="health_check_503_draining_connections")

    signal.signal(signal.SIGTERM, handle_sigterm)

    settings = get_settings()
    logger.info("startup_begin", app_name=settings.app_name, debug=settings.debug)

    if not settings.debug and not settings.supabase_jwt_secret:
        raise ConfigurationError("SUPABASE_JWT_SECRET must be set outside debug mode")

    await init_db()
    logger.info("db_initialized")

    await init_redis()
    logger.info("redis_initialized")

    await seed_credit_costs()
    logger.info("credit_costs_seeded")

    yield

    logger.info("shutdown_begin")
    await close_redis()
    await close_db()
    logger.info("shutdown_complete")


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Log HTTPExceptions with a debug_id and return the sanitized detail."""
    debug_id = str(uuid.uuid4())

    logger.error(
        "http_exception",
        status_code=exc.status_code,
        debug_id=debug_id,
        correlation_id=get_correlation_id(),
        path=request.url.path,
        method=request.method,
        user_id=getattr(request.state, "user_id", None),
        detail=exc.detail,
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "debug_id": debug_id},
        headers=getattr(exc, "headers", None),
    )


async def credit_error_handler(request: Request, exc: CreditError) -> JSONResponse:
    """Render a CreditError as ``{"detail": {code, message, ...}, "debug_id"}``.

    Clients branch on ``detail.code``: INSUFFICIENT_CREDITS (402) opens the
    upgrade prompt, everything else is a generic failure.
    """
    debug_id = str(uuid.uuid4())
    status_code = CREDIT_ERROR_STATUS.get(exc.code, 500)

    log = logger.warning if status_code < 500 else logger.error
    log(
        "credit_error",
        code=str(exc.code),
        status_code=status_code,
        debug_id=debug_id,
        path=request.url.path,
        user_id=getattr(request.state, "user_id", None),
    )

    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.to_dict(), "debug_id": debug_id},
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log unhandled errors with traceback, return a generic 500."""
    debug_id = str(uuid.uuid4())

    logger.error(
        "unhandled_exception",
        debug_id=debug_id,
        correlation_id=get_correlation_id(),
        path=request.url.path,
        method=request.method,
        user_id=getattr(request.state, "user_id", None),
        error=str(exc),
        error_type=type(exc).__name__,
        exc_info=True,
    )

    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "debug_id": debug_id},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.exception_handler(HTTPException)(http_exception_handler)
    app.exception_handler(CreditError)(credit_error_handler)
    app.exception_handler(Exception)(generic_exception_handler)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Credit wallet metering and spend authorization for Ghoste",
        version="0.1.0",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    setup_correlation_middleware(app)
    register_exception_handlers(app)

    app.include_router(api_router, prefix="/api")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "ghoste.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
