# inventory_tracker/main.py

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from inventory_tracker.core.config import Settings, get_settings
from inventory_tracker.core.exceptions import (
    BaseServiceError,
    DuplicateKeyError,
    ProductNotFoundError,
    ValidationError,
)
from inventory_tracker.core.logging_config import configure_logging
from inventory_tracker.core.security import require_auth
from inventory_tracker.database import build_engine, build_sessionmaker, init_models
from inventory_tracker.routes import health, inventory, websockets as websocket_router
from inventory_tracker.services.change_bus import ChangeBus
from inventory_tracker.services.inventory_service import InventoryService
from inventory_tracker.services.product_store import ProductStore
from inventory_tracker.services.websockets.manager import ConnectionManager

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    DuplicateKeyError: 409,
    ProductNotFoundError: 404,
    ValidationError: 422,
}


def _status_for(exc: BaseServiceError) -> int:
    for error_class, status_code in ERROR_STATUS.items():
        if isinstance(exc, error_class):
            return status_code
    return 500


async def service_error_handler(request: Request, exc: BaseServiceError):
    status_code = _status_for(exc)
    if status_code >= 500:
        logger.error(f"Unhandled service error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "error": exc.error_code}
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Create and configure the FastAPI application"""
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings.LOG_LEVEL)

        engine = build_engine(settings)
        if settings.CREATE_TABLES_ON_STARTUP:
            await init_models(engine)

        # Process-scoped kernel state, torn down on shutdown
        app.state.session_factory = build_sessionmaker(engine)
        app.state.bus = ChangeBus(queue_size=settings.SUBSCRIBER_QUEUE_SIZE)
        app.state.store = ProductStore(app.state.session_factory)
        app.state.inventory_service = InventoryService(app.state.store, app.state.bus)
        app.state.connection_manager = ConnectionManager(app.state.bus)
        logger.info(f"Inventory tracker started ({settings.ENVIRONMENT})")
        try:
            yield
        finally:
            app.state.connection_manager.close_all()
            app.state.bus.close()
            await engine.dispose()
            logger.info("Inventory tracker stopped")

    app = FastAPI(
        title="Inventory Tracker",
        description="Product records with live change notifications",
        version="0.1.0",
        debug=settings.DEBUG,
        lifespan=lifespan
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # In production, replace with specific origins
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(BaseServiceError, service_error_handler)

    # Settings for request-time dependencies (auth) follow the app's settings
    app.dependency_overrides[get_settings] = lambda: settings

    app.include_router(inventory.router, prefix="/products", tags=["products"], dependencies=[require_auth()])
    app.include_router(websocket_router.router)  # WebSockets handle auth differently
    app.include_router(health.router)  # Health check should be accessible without auth

    return app


app = create_app()
