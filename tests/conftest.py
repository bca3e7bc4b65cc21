import os

# Settings are read at import time, point them at an in-memory database first
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["CLERK_SECRET_KEY"] = "sk_test_placeholder"
os.environ["API_KEY_BCRYPT_ROUNDS"] = "4"

from collections.abc import AsyncGenerator, Awaitable, Callable  # noqa: E402
from decimal import Decimal  # noqa: E402
from typing import Any  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker  # noqa: E402
from sqlmodel import SQLModel  # noqa: E402

import src.models  # noqa: E402, F401
from src.api.auth import get_clerk_auth  # noqa: E402
from src.db import build_engine, build_session_factory, get_db  # noqa: E402
from src.main import app  # noqa: E402
from src.models import ApiKey, Transaction, TransactionStatus, User  # noqa: E402
from src.services.api_key_service import ApiKeyService, CreateApiKeyData  # noqa: E402
from tests.helpers import ALL_PERMISSIONS, FakeClerkAuth  # noqa: E402


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    engine = build_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return build_session_factory(engine)


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


async def _create_user(db: AsyncSession, clerk_id: str, email: str, shop_name: str) -> User:
    user = User(
        clerk_id=clerk_id,
        email=email,
        shop_name=shop_name,
        owner_name="Dana Levi",
        merchant_config={"company_number": "515123456", "currency": "ILS", "language": "he"},
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest_asyncio.fixture
async def merchant(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "user_merchant", "merchant@example.com", "Test Shop")


@pytest_asyncio.fixture
async def other_merchant(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "user_other", "other@example.com", "Other Shop")


@pytest.fixture
def api_key_service(db_session: AsyncSession) -> ApiKeyService:
    return ApiKeyService(db_session)


@pytest.fixture
def create_api_key(
    api_key_service: ApiKeyService,
) -> Callable[..., Awaitable[tuple[ApiKey, str]]]:
    async def _create(
        user: User,
        permissions: list[dict[str, Any]] | None = None,
        **kwargs: Any,
    ) -> tuple[ApiKey, str]:
        return await api_key_service.create_api_key(
            CreateApiKeyData(
                user_id=user.id,
                name=kwargs.pop("name", "Test key"),
                permissions=ALL_PERMISSIONS if permissions is None else permissions,
                **kwargs,
            )
        )

    return _create


@pytest.fixture
def create_transaction(db_session: AsyncSession) -> Callable[..., Awaitable[Transaction]]:
    async def _create(user: User, **kwargs: Any) -> Transaction:
        transaction = Transaction(
            user_id=user.id,
            amount=kwargs.pop("amount", Decimal("100.00")),
            currency=kwargs.pop("currency", "ILS"),
            payment_url=kwargs.pop("payment_url", "https://pay.allpay.co.il/checkout/abc123"),
            status=kwargs.pop("status", TransactionStatus.PENDING),
            **kwargs,
        )
        db_session.add(transaction)
        await db_session.commit()
        await db_session.refresh(transaction)
        return transaction

    return _create


@pytest_asyncio.fixture
async def clerk_auth(merchant: User) -> FakeClerkAuth:
    return FakeClerkAuth(merchant.clerk_id)


@pytest_asyncio.fixture
async def async_client(
    session_factory: async_sessionmaker[AsyncSession],
    clerk_auth: FakeClerkAuth,
) -> AsyncGenerator[AsyncClient, None]:
    """Async client on the real app, backed by the per-test database."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clerk_auth] = lambda: clerk_auth
    previous_factory = app.state.session_factory
    app.state.session_factory = session_factory

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
    app.state.session_factory = previous_factory
