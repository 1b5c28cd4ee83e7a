import os
import time
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from dotenv import load_dotenv

# Optional local overrides; the settings below always win.
env_test_path = os.path.join(os.path.dirname(__file__), "..", ".env.test")
if os.path.exists(env_test_path):
    load_dotenv(env_test_path)

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./.pytest-storefront.db"
os.environ["ENVIRONMENT"] = "local"
os.environ["JWT_SECRET"] = "test-jwt-secret"
os.environ["PAYSTACK_SECRET_KEY"] = "sk_test_storefront"
os.environ["PENDING_ORDER_CACHE_BACKEND"] = "database"
os.environ.pop("SMTP_USERNAME", None)
os.environ.pop("SMTP_PASSWORD", None)

from httpx import ASGITransport, AsyncClient
from jose import jwt
from libs.common.config import get_settings
from libs.common.notifications import RecordingNotifier
from libs.db.base import Base
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Import all models so metadata includes every table
from services.store_service import models as _store_models  # noqa: F401
from services.payments_service import models as _payments_models  # noqa: F401

get_settings.cache_clear()
settings = get_settings()


@pytest_asyncio.fixture
async def test_engine(tmp_path):
    """
    A throwaway SQLite database per test, created from the model metadata.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'storefront.db'}", future=True
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def pending_cache(session_factory):
    from services.payments_service.pending_orders import DatabasePendingOrderCache

    return DatabasePendingOrderCache(session_factory)


@pytest.fixture
def gateway_registry():
    from services.payments_service.gateways import GatewayRegistry
    from services.payments_service.gateways.manual_transfer import (
        ManualTransferGateway,
    )
    from services.payments_service.models import GatewayType
    from tests.fakes import FakeGateway

    FakeGateway.verify_calls.clear()
    return GatewayRegistry(
        {
            GatewayType.PAYSTACK: FakeGateway,
            GatewayType.MANUAL_TRANSFER: ManualTransferGateway,
        }
    )


def make_token(user_id: str = "user-1", role: str = "authenticated") -> str:
    now = int(time.time())
    payload = {
        "sub": user_id,
        "email": f"{user_id}@example.com",
        "role": role,
        "iat": now,
        "exp": now + 3600,
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


@pytest.fixture
def auth_headers() -> dict:
    """Bearer headers for a regular shopper (``user-1``)."""
    return {"Authorization": f"Bearer {make_token()}"}


@pytest.fixture
def admin_headers() -> dict:
    return {"Authorization": f"Bearer {make_token('admin-1', role='admin')}"}


@pytest.fixture
def other_user_headers() -> dict:
    return {"Authorization": f"Bearer {make_token('user-2')}"}


def _override_common(app, session_factory, notifier):
    from libs.common.notifications import get_notifier
    from libs.db.session import get_async_db, get_session_factory

    async def _get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_async_db] = _get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_notifier] = lambda: notifier


@pytest_asyncio.fixture
async def store_client(session_factory, notifier) -> AsyncGenerator[AsyncClient, None]:
    from services.store_service.app.main import app

    _override_common(app, session_factory, notifier)
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def payments_client(
    session_factory, notifier, gateway_registry
) -> AsyncGenerator[AsyncClient, None]:
    from services.payments_service.app.main import app
    from services.payments_service.gateways import get_gateway_registry

    _override_common(app, session_factory, notifier)
    app.dependency_overrides[get_gateway_registry] = lambda: gateway_registry
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac
    app.dependency_overrides.clear()
