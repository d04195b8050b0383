"""
FastAPI Application Factory

Creates and configures the dashboard API application.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import structlog

from src.auth.principal import ApiKeyAuthenticator
from src.config import Settings, get_settings
from src.domain.errors import (
    InvalidFilter,
    InvalidStatusTransition,
    OrderNotFound,
    TransportError,
    Unauthenticated,
)
from src.serving.api.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware
from src.serving.api.routes import health_router, orders_router, overview_router
from src.store import OrderStore, create_order_store

logger = structlog.get_logger(__name__)


def _error_response(status_code: int, error: str, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error, "detail": str(exc)})


def register_exception_handlers(app: FastAPI) -> None:
    """Map dashboard exceptions onto HTTP responses"""

    @app.exception_handler(Unauthenticated)
    async def unauthenticated_handler(request: Request, exc: Unauthenticated) -> JSONResponse:
        return _error_response(401, "unauthenticated", exc)

    @app.exception_handler(InvalidFilter)
    async def invalid_filter_handler(request: Request, exc: InvalidFilter) -> JSONResponse:
        return _error_response(422, "invalid_filter", exc)

    @app.exception_handler(OrderNotFound)
    async def not_found_handler(request: Request, exc: OrderNotFound) -> JSONResponse:
        return _error_response(404, "order_not_found", exc)

    @app.exception_handler(InvalidStatusTransition)
    async def transition_handler(request: Request, exc: InvalidStatusTransition) -> JSONResponse:
        return _error_response(409, "invalid_status_transition", exc)

    @app.exception_handler(TransportError)
    async def transport_handler(request: Request, exc: TransportError) -> JSONResponse:
        logger.error("Order store unavailable", path=request.url.path, error=str(exc))
        return _error_response(503, "store_unavailable", exc)


def create_api_app(
    settings: Optional[Settings] = None,
    store: Optional[OrderStore] = None,
    configure_logs: bool = True,
) -> FastAPI:
    """
    Create and configure FastAPI application.

    Args:
        settings: Application settings (defaults to cached settings)
        store: Order store to serve from; created from settings on startup when omitted
        configure_logs: Configure structlog on startup

    Returns:
        Configured FastAPI app instance
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if configure_logs:
            from src.config.logging import configure_logging
            configure_logging(settings=settings)

        logger.info("Starting Laundry Dashboard API", environment=settings.app_env)

        owns_store = app.state.store is None
        if owns_store:
            app.state.store = create_order_store(settings)

        yield

        logger.info("Shutting down...")
        if owns_store:
            app.state.store.close()
            app.state.store = None

    app = FastAPI(
        title="Laundry Dashboard API",
        description="Live order and sales overview API for laundry operators",
        version=settings.version,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.store = store
    app.state.authenticator = ApiKeyAuthenticator(settings.security.operator_api_keys)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.security.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)

    register_exception_handlers(app)

    app.include_router(health_router, prefix="/api/v1", tags=["Health"])
    app.include_router(orders_router, prefix="/api/v1/orders", tags=["Orders"])
    app.include_router(overview_router, prefix="/api/v1/overview", tags=["Overview"])

    @app.get("/api/v1/info")
    async def api_info():
        """API information endpoint."""
        return {
            "name": "Laundry Dashboard API",
            "version": settings.version,
            "environment": settings.app_env,
            "store": settings.store.backend,
        }

    return app
