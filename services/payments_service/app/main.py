"""FastAPI application for the Payments Service."""

from dotenv import load_dotenv

load_dotenv()

from contextlib import asynccontextmanager

from fastapi import FastAPI
from libs.common.config import get_settings
from libs.common.error_handler import add_exception_handlers
from libs.common.middleware import add_observability_middleware
from libs.common.redis import close_redis, ping_redis
from services.payments_service.routers import (
    admin_router,
    checkout_router,
    gateways_router,
    payments_router,
    webhooks_router,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the Payments Service FastAPI app."""
    app = FastAPI(
        title="Storefront Payments Service",
        version="0.1.0",
        description="Checkout invoices, gateway payments and order settlement.",
        lifespan=lifespan,
    )
    add_observability_middleware(app)
    add_exception_handlers(app)

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint. Reports Redis when it backs the pending-order cache."""
        body = {"status": "ok", "service": "payments"}
        if get_settings().PENDING_ORDER_CACHE_BACKEND == "redis":
            body["redis"] = "ok" if await ping_redis() else "unavailable"
        return body

    app.include_router(gateways_router)
    app.include_router(checkout_router)
    app.include_router(payments_router)
    app.include_router(webhooks_router)
    app.include_router(admin_router)

    return app


app = create_app()
