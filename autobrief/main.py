"""Application entry point and FastAPI app factory."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
import sys
from pathlib import Path

import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from .config.settings import settings
from .controllers import briefs, functions, profile, templates, workflows
from .database import dispose_engine, init_models
from .middleware import StructuredLoggingMiddleware, TelemetryMiddleware
from .pipelines.brief.errors import ErrorKind, WorkflowError, describe_error
from .views.common import HealthResponse

logger = logging.getLogger(__name__)

_LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

_WORKFLOW_ERROR_STATUS = {
    ErrorKind.VALIDATION: 422,
    ErrorKind.QUOTA: 402,
    ErrorKind.NETWORK: 502,
    ErrorKind.CONTENT: 502,
    ErrorKind.PERSISTENCE: 503,
}


def _file_handler(path: str, max_bytes: int, fmt: str) -> RotatingFileHandler:
    log_path = Path(path)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        log_path,
        maxBytes=max_bytes,
        backupCount=5,
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter(fmt))
    return handler


def _configure_logging() -> None:
    """Send application logs to stdout and file, with dedicated pipeline and transcript files."""

    logging.getLogger().handlers.clear()

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(logging.Formatter(_LOG_FORMAT))

    root_logger = logging.getLogger()
    root_logger.addHandler(stdout_handler)
    root_logger.addHandler(_file_handler(settings.log_file, 1_000_000, _LOG_FORMAT))
    root_logger.setLevel(logging.DEBUG if settings.debug else logging.INFO)

    middleware_logger = logging.getLogger("autobrief.middleware.structured")
    middleware_logger.handlers.clear()
    middleware_stdout = logging.StreamHandler(sys.stdout)
    middleware_stdout.setFormatter(logging.Formatter("%(message)s"))
    middleware_logger.addHandler(middleware_stdout)
    middleware_logger.setLevel(logging.INFO)
    middleware_logger.propagate = False

    pipeline_logger = logging.getLogger("autobrief.pipeline")
    pipeline_logger.handlers.clear()
    pipeline_logger.addHandler(
        _file_handler(settings.pipeline_log_file, 500_000, "%(asctime)s | %(levelname)s | %(message)s")
    )
    pipeline_logger.setLevel(logging.INFO)

    # Transcript text stays out of the general log.
    transcript_logger = logging.getLogger("autobrief.logs.transcript")
    transcript_logger.handlers.clear()
    transcript_logger.addHandler(
        _file_handler(settings.transcript_log_file, 500_000, "%(asctime)s | %(levelname)s | %(message)s")
    )
    transcript_logger.setLevel(logging.INFO)
    transcript_logger.propagate = False

    noisy_loggers = [
        "botocore",
        "boto3",
        "urllib3",
        "httpx",
        "sqlalchemy.engine",
    ]
    for name in noisy_loggers:
        logging.getLogger(name).setLevel(logging.WARNING)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    _configure_logging()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        description="AutoBrief.AI backend: audio to transcript to structured brief",
    )

    app.add_middleware(TelemetryMiddleware)
    app.add_middleware(StructuredLoggingMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

    app.include_router(functions.router)
    app.include_router(workflows.router)
    app.include_router(briefs.router)
    app.include_router(templates.router)
    app.include_router(profile.router)

    @app.get("/", include_in_schema=False)
    async def root() -> dict[str, str]:
        """Root endpoint."""

        return {
            "message": f"Welcome to {settings.app_name}",
            "version": settings.app_version,
            "status": "operational",
        }

    @app.get("/health", response_model=HealthResponse, include_in_schema=False)
    async def health_check() -> HealthResponse:
        """Health check endpoint."""

        return HealthResponse(
            status="healthy",
            app=settings.app_name,
            version=settings.app_version,
        )

    @app.get("/metrics", include_in_schema=False)
    async def metrics() -> Response:
        """Expose application metrics for Prometheus scraping."""

        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(WorkflowError)
    async def workflow_exception_handler(request: Request, exc: WorkflowError) -> JSONResponse:
        info = describe_error(exc)
        return JSONResponse(
            status_code=_WORKFLOW_ERROR_STATUS.get(exc.kind, 500),
            content={
                "detail": info.message,
                "code": exc.kind.value,
                "title": info.title,
                "suggestions": info.suggestions,
                "canRetry": info.can_retry,
                "helpUrl": info.help_url,
            },
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )

    @app.on_event("startup")
    async def startup_event() -> None:
        await init_models()

    @app.on_event("shutdown")
    async def shutdown_event() -> None:
        await dispose_engine()

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "autobrief.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
