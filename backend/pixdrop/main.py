"""
Pixdrop Backend — FastAPI Application Factory
==============================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   uvicorn (`uvicorn pixdrop.main:app`) or the `pixdrop` console script.

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Middleware:  Req ID → Logging → CORS               │
    │                                                     │
    │  Routes:                                            │
    │   GET    /image/{id}                                │
    │   POST   /image/{api_key}                           │
    │   DELETE /image/{api_key}/{delete_token}            │
    │   GET    /health                                    │
    │   GET    /api-doc/openapi.json, /swagger-ui         │
    │                                                     │
    │  Exception Handlers:                                │
    │   Validation→400  Unauthorized→401  NotFound→404    │
    │   Storage/Processing/unexpected→500                 │
    └─────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging → data directories → warn about an empty API key
    Shutdown: nothing to release (no pools, no open handles)
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pixdrop import __version__
from pixdrop.config import settings
from pixdrop.dependencies import get_image_service
from pixdrop.exceptions import (
    FileStorageError,
    ImageProcessingError,
    NotFoundError,
    PixdropError,
    UnauthorizedError,
    ValidationError,
)
from pixdrop.middleware.logging import RequestLoggingMiddleware
from pixdrop.middleware.request_id import RequestIDMiddleware, request_id_var
from pixdrop.routes import health, images

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the entire application.

    Format: 2024-01-15T12:00:00 [INFO] pixdrop.services.image_service: message
    Called once during startup, before anything else logs.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # uvicorn's access log duplicates RequestLoggingMiddleware; PIL logs every chunk at DEBUG
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("PIL").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging()
    logger.info("Pixdrop Backend %s starting up...", __version__)

    service = app.dependency_overrides.get(get_image_service, get_image_service)()
    service.store.ensure_directories()

    if service.authorizer.locked:
        logger.warning(
            "BACKEND_API_KEY is empty: uploads and deletions are disabled "
            "(set ALLOW_EMPTY_API_KEY=true to accept an empty key)"
        )
    elif not settings.backend_api_key:
        logger.warning("BACKEND_API_KEY is empty and ALLOW_EMPTY_API_KEY is set: any caller may upload")

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    yield
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _client_address(request: Request) -> str:
    if request.client:
        return f"{request.client.host}:{request.client.port}"
    return "unknown"


def _error_body(error: str, message: str) -> dict:
    return {"error": error, "message": message, "request_id": request_id_var.get("")}


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map project exceptions to HTTP responses.

        ValidationError / ImageDecodeError   → 400
        RequestValidationError               → 400 (bad JSON body, non-UUID path segment)
        UnauthorizedError                    → 401, logged at INFO with client address
        NotFoundError                        → 404
        FileStorageError                     → 500, logged at ERROR
        ImageProcessingError                 → 500, logged at ERROR
        PixdropError / Exception             → 500, logged at ERROR

    Responses never include `context` (paths, OS errors); it is logged instead.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        rid = request_id_var.get("")
        logger.warning("[%s] Validation error: %s", rid, exc.message)
        return JSONResponse(status_code=400, content=_error_body("bad_request", exc.message))

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        rid = request_id_var.get("")
        logger.warning("[%s] Malformed request: %s", rid, exc.errors())
        return JSONResponse(
            status_code=400,
            content=_error_body("bad_request", "Malformed request parameters or body"),
        )

    @app.exception_handler(UnauthorizedError)
    async def handle_unauthorized(request: Request, exc: UnauthorizedError):
        logger.info("unauthorized request from %s", _client_address(request))
        return JSONResponse(status_code=401, content=_error_body("unauthorized", exc.message))

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content=_error_body("not_found", exc.message))

    @app.exception_handler(FileStorageError)
    async def handle_file_storage_error(request: Request, exc: FileStorageError):
        rid = request_id_var.get("")
        logger.error("[%s] internal server error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(status_code=500, content=_error_body("server_error", exc.message))

    @app.exception_handler(ImageProcessingError)
    async def handle_processing_error(request: Request, exc: ImageProcessingError):
        rid = request_id_var.get("")
        logger.error("[%s] internal server error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(status_code=500, content=_error_body("server_error", exc.message))

    @app.exception_handler(PixdropError)
    async def handle_pixdrop_error(request: Request, exc: PixdropError):
        rid = request_id_var.get("")
        logger.error("[%s] internal server error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(status_code=500, content=_error_body("server_error", exc.message))

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content=_error_body("internal_server_error", "An unexpected error occurred."),
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="Image upload API",
        description=(
            "Anonymous image hosting. Uploads are normalized to JPEG within "
            "1280x720 / 720x1280 and can be deleted with the token returned on upload."
        ),
        version=__version__,
        openapi_url="/api-doc/openapi.json",
        docs_url="/swagger-ui",
        redoc_url=None,
        lifespan=lifespan,
    )

    # Middleware executes in REVERSE order of addition: RequestID → Logging → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    app.include_router(images.router)
    app.include_router(health.router)

    return app


app = create_app()


def run() -> None:
    """Console entry point: serve on BACKEND_HOST:BACKEND_PORT."""
    uvicorn.run(
        "pixdrop.main:app",
        host=settings.backend_host,
        port=settings.backend_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
