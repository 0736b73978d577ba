"""FastAPI application for the CheckMatic analysis service.

Run with:
    uvicorn checkmatic.main:app
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from checkmatic.config import Settings, get_settings
from checkmatic.exceptions import GENERIC_ERROR_MESSAGE, CheckmaticError
from checkmatic.middleware.request_logging import RequestLoggingMiddleware
from checkmatic.ratelimit import build_rate_limiter
from checkmatic.routers import analyze, detection
from checkmatic.utils.logging import setup_logging

logger = logging.getLogger(__name__)


async def checkmatic_error_handler(request: Request, exc: CheckmaticError) -> JSONResponse:
    """Render client errors precisely and everything else generically."""
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__}: {exc}", exc_info=exc)
        return JSONResponse(status_code=500, content={"error": GENERIC_ERROR_MESSAGE})
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, "kind": exc.kind.value},
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application.

    Raises:
        ConfigurationError: If required credentials are missing
    """
    settings = settings or get_settings()
    setup_logging(level=settings.log_level, json_format=settings.log_json, log_file=settings.log_file)

    app = FastAPI(
        title=settings.app_title,
        version=settings.app_version,
        description="Credibility, sarcasm and political-bias analysis for articles, text and photos",
        debug=settings.debug,
    )
    app.state.settings = settings
    app.state.rate_limiter = build_rate_limiter(
        settings.rate_limit_requests,
        settings.rate_limit_window_seconds,
        settings.redis_url,
    )

    app.add_middleware(RequestLoggingMiddleware)
    app.add_exception_handler(CheckmaticError, checkmatic_error_handler)

    app.include_router(analyze.router)
    app.include_router(detection.router)

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "healthy", "version": settings.app_version}

    logger.info(f"{settings.app_title} {settings.app_version} ready")
    return app


app = create_app()


def run() -> None:
    import uvicorn

    uvicorn.run("checkmatic.main:app", host="0.0.0.0", port=8000)
