from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from .api.endpoints import simulation, system
from .api.endpoints._helpers import error_response
from .core.config import settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("🚀 Starting scalp simulation backend")
    logger.info(f"🌐 Server configured to run on {settings.host}:{settings.port}")
    logger.info(f"🤖 Model: {settings.model_name}, raster backend: {settings.raster_backend}")
    if not settings.gemini_api_key:
        logger.warning("⚠️ GEMINI_API_KEY is not set; requests must supply their own apiKey")
    if not (settings.reference_root_path / "references" / "density").is_dir():
        logger.warning(
            f"⚠️ No density reference catalog under {settings.reference_root_path}; "
            "simulations will run without reference images"
        )
    yield
    logger.info("🛑 Shutdown complete")


def _format_validation_errors(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ()) if item != "body")
        parts.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return "; ".join(parts) or "Invalid request"


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.app_name,
        description=settings.description,
        version=settings.version,
        lifespan=lifespan,
    )

    cors_origins = list(settings.allowed_origins) if settings.allowed_origins else ["*"]
    logger.info(f"🌐 CORS configured for origins: {cors_origins}")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        # Credentials cannot be combined with a wildcard origin
        allow_credentials="*" not in cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
        max_age=3600,
    )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404 and exc.detail == "Not Found":
            return error_response(404, f"API route not found: {request.url.path}")
        return error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        message = _format_validation_errors(exc)
        logger.warning(f"⚠️ Invalid request to {request.url.path}: {message}")
        return error_response(400, message)

    app.include_router(system.router)
    app.include_router(simulation.router)

    logger.info("✅ Routers registered:")
    logger.info("   - System: /api/health")
    logger.info("   - Simulation: /api/v1/validate, /api/v1/simulate")

    return app
