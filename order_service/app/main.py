"""FastAPI application factory."""

from __future__ import annotations

from fastapi import FastAPI

from order_service.app.exception_handlers import configure_exception_handlers
from order_service.app.lifespan import lifespan
from order_service.core.settings import get_app_settings
from order_service.features.metrics.router import router as metrics_router
from order_service.features.orders.router import router as orders_router


def create_app() -> FastAPI:
    """Create and configure FastAPI application.

    Settings are loaded once and cached via LRU cache.

    Returns:
        Configured FastAPI application instance.
    """
    app_settings = get_app_settings()

    app = FastAPI(
        title=app_settings.title,
        description=app_settings.description,
        version=app_settings.version,
        docs_url=app_settings.get_docs_url(),
        redoc_url=None,
        openapi_url=app_settings.get_openapi_url(),
        debug=app_settings.debug,
        lifespan=lifespan,
    )

    # Configure exception handlers (must be before routers)
    configure_exception_handlers(app)

    app.include_router(orders_router, prefix=app_settings.api_prefix)
    app.include_router(metrics_router)

    return app


# Application instance for uvicorn
app = create_app()
