"""Registry Match - person matching and reconciliation against the national registry."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from httpx import HTTPError, HTTPStatusError
from pydantic import ValidationError

from src.clients.registry import close_registry_service
from src.exceptions import ConfigurationError
from src.routers import health, matching_routes
from src.settings import settings

logging.basicConfig(level=settings.log_level)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan management."""
    # Startup
    yield
    # Shutdown
    await close_registry_service()


app = FastAPI(
    title="Registry Match",
    description="Match person demographics to NHS numbers and reconcile local records with the registry",
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(ConfigurationError)
async def handle_configuration_error(
    request: Request, exc: ConfigurationError
) -> JSONResponse:
    """Unknown strategies, unsupported versions and unusable queries are client errors."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": str(exc)},
    )


@app.exception_handler(HTTPStatusError)
async def handle_httpx_status_error(
    request: Request, exc: HTTPStatusError
) -> JSONResponse:
    """Handle HTTP status errors from the registry gateway."""
    content = None
    if exc.response.content:
        try:
            content = exc.response.json()
        except (ValueError, UnicodeDecodeError):
            content = exc.response.text
    return JSONResponse(status_code=exc.response.status_code, content={"detail": content})


@app.exception_handler(HTTPError)
async def handle_httpx_error(request: Request, exc: HTTPError) -> JSONResponse:
    """Handle network/connection errors from httpx clients."""
    logger.warning("Registry gateway unavailable: %s", exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Service temporarily unavailable"},
    )


@app.exception_handler(ValidationError)
async def handle_validation_error(
    request: Request, exc: ValidationError
) -> JSONResponse:
    """Handle Pydantic ValidationError and return 422."""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": exc.errors(include_url=False, include_context=False)},
    )


@app.exception_handler(Exception)
async def handle_unhandled_exceptions(request: Request, exc: Exception) -> JSONResponse:
    """Catch and log all unhandled exceptions."""
    logger.exception("Unhandled error processing %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


# Register routers
app.include_router(health.router)
app.include_router(matching_routes.router)


@app.get("/")
def root() -> dict[str, str]:
    """Root endpoint."""
    return {"service": "registry-match", "version": "0.1.0"}
