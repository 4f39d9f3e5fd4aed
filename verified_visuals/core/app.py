"""
FastAPI application factory and configuration
"""

import uuid
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from structlog.contextvars import clear_contextvars

from verified_visuals import __version__
from verified_visuals.core.config import TRUSTED_ORIGINS, get_environment, get_provider_name
from verified_visuals.core.error_handlers import (
    general_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from verified_visuals.logging_config import bind_request_context, configure_logging
from verified_visuals.routes import reports_router
from verified_visuals.services.websocket_service import create_websocket_router

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle"""
    logger.info(
        "🚀 Starting Verified Visuals API",
        environment=get_environment(),
        provider=get_provider_name(),
    )
    yield
    logger.info("Verified Visuals API stopped")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application"""
    configure_logging()

    app = FastAPI(
        title="Verified Visuals API",
        version=__version__,
        description="Grounded research rendered as charts and illustrations",
        lifespan=lifespan,
    )

    setup_middleware(app)
    setup_error_handlers(app)
    setup_routes(app)
    return app


def setup_middleware(app: FastAPI):
    """Configure middleware"""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=TRUSTED_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )

    # Request ID middleware
    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        request.state.request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        clear_contextvars()
        bind_request_context(request_id=request.state.request_id)
        response = await call_next(request)
        response.headers["X-Request-ID"] = request.state.request_id
        return response


def setup_error_handlers(app: FastAPI):
    """Configure error handlers"""
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)


def setup_routes(app: FastAPI):
    """Configure application routes"""
    app.include_router(reports_router)
    app.include_router(create_websocket_router())

    @app.get("/health", tags=["system"])
    async def health_check():
        return {"status": "ok", "provider": get_provider_name()}
