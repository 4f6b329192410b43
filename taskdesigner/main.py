"""
Performance Task Designer - Main Application
"""

import traceback
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import sentry_sdk
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from taskdesigner import __version__
from taskdesigner.api import session_router
from taskdesigner.api.dependencies import get_service
from taskdesigner.config import settings
from taskdesigner.exceptions import TaskDesignerError
from taskdesigner.logging_config import get_logger, setup_logging
from taskdesigner.schemas.schemas import HealthResponse
from taskdesigner.services.orchestrator import PerformanceTaskService

# --- Logging ---
setup_logging(
    log_level=settings.log_level,
    debug=settings.debug,
    log_to_file=settings.log_to_file,
)
logger = get_logger(__name__)

# --- Sentry ---
if settings.sentry_dsn:
    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        traces_sample_rate=0.1,
        environment="development" if settings.debug else "production",
    )
    logger.info("sentry_initialized")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info(
        "application_starting",
        debug=settings.debug,
        model=settings.claude_model,
        classifier=settings.classifier_strategy,
    )
    if not settings.anthropic_api_key:
        logger.warning("anthropic_api_key_missing")

    yield

    if get_service.cache_info().currsize:
        await get_service().aclose()
    logger.info("application_shutdown_complete")


app = FastAPI(
    title="Performance Task Designer API",
    description="Step-by-step performance task design chatbot",
    version=__version__,
    lifespan=lifespan,
)


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle all unhandled exceptions with full traceback."""
    tb_str = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))

    logger.error(
        "unhandled_exception",
        traceback=tb_str,
        path=str(request.url.path),
        method=request.method,
        error_type=type(exc).__name__,
        error_message=str(exc),
    )

    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "error_type": type(exc).__name__,
        }
    )


@app.exception_handler(TaskDesignerError)
async def task_designer_exception_handler(request: Request, exc: TaskDesignerError):
    """Handle application-specific exceptions."""
    logger.warning(
        "task_designer_error",
        error_type=type(exc).__name__,
        message=exc.message,
        details=exc.details,
        path=str(request.url.path),
    )

    # Map exception to HTTP status code
    status_code = 400
    if "NotFound" in type(exc).__name__:
        status_code = 404
    elif "Duplicate" in type(exc).__name__:
        status_code = 409

    return JSONResponse(
        status_code=status_code,
        content={
            "detail": exc.message,
            "error_type": type(exc).__name__,
            "details": exc.details,
        }
    )


app.include_router(session_router)


@app.get("/", tags=["root"])
async def root():
    """Root endpoint with API info."""
    return {
        "name": "Performance Task Designer API",
        "version": __version__,
        "status": "running",
        "docs": "/docs",
    }


@app.get("/health", response_model=HealthResponse, tags=["health"])
async def health(service: PerformanceTaskService = Depends(get_service)):
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        version=__version__,
        active_sessions=len(service.store),
        timestamp=datetime.now(timezone.utc),
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "taskdesigner.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
