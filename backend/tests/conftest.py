"""
Pytest fixtures for testing.
"""
import pytest
import pytest_asyncio
from decimal import Decimal
from typing import AsyncGenerator

from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

# Import database module BEFORE app to allow override
import app.database
from app.database import Base
# Import ALL models so Base.metadata knows about all tables
from app.models.telegram_user import TelegramUser, UserRole
from app.models.order import Order, OrderStatus, OrderType
from app.models.activation_code import ActivationCode
from app.models.admin_group import AdminGroup
from app.models.system_setting import SystemSetting

# Now import app (after we can override database)
from app.main import app as fastapi_app, install_services


# Test database URL (use in-memory SQLite for fast tests)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture(autouse=True)
def fresh_services():
    """
    Give every test its own timezone cache, notifier and stats cache.

    The services live on app.state for the life of the process, so a cached
    timezone would otherwise leak from one test database into the next.
    """
    install_services(fastapi_app)
    yield fastapi_app.state


@pytest_asyncio.fixture
async def db() -> AsyncGenerator[AsyncSession, None]:
    """
    Create a fresh database for each test.
    Ensures cleanup happens even if test fails.
    """
    # StaticPool keeps one connection alive so every session sees the same
    # in-memory database
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Create all tables FIRST
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    # THEN replace the app's engine and sessionmaker
    original_engine = app.database.engine
    original_sessionmaker = app.database.AsyncSessionLocal

    app.database.engine = test_engine
    app.database.AsyncSessionLocal = async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False
    )

    session = app.database.AsyncSessionLocal()

    try:
        yield session
    finally:
        try:
            await session.close()
        except Exception as e:
            print(f"Warning: Failed to close session: {e}")

        try:
            async with test_engine.begin() as conn:
                await conn.run_sync(Base.metadata.drop_all)
        except Exception as e:
            print(f"Warning: Failed to drop tables: {e}")

        try:
            await test_engine.dispose()
        except Exception as e:
            print(f"Warning: Failed to dispose engine: {e}")

        app.database.engine = original_engine
        app.database.AsyncSessionLocal = original_sessionmaker


@pytest_asyncio.fixture
async def other_session(db: AsyncSession) -> AsyncGenerator[AsyncSession, None]:
    """A second, independent session on the same test database (a second admin)."""
    session = app.database.AsyncSessionLocal()
    try:
        yield session
    finally:
        await session.close()


@pytest_asyncio.fixture
async def async_client(db: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """
    Create an async HTTP client for testing endpoints.

    The db fixture already replaced app.database.engine with test engine,
    so all endpoints will automatically use the test database.
    """
    transport = ASGITransport(app=fastapi_app)

    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        follow_redirects=True  # Follow 307 redirects for trailing slashes
    ) as client:
        yield client


@pytest_asyncio.fixture
async def admin_user(db: AsyncSession) -> TelegramUser:
    """Console operator with the admin role."""
    user = TelegramUser(
        telegram_id="9000001",
        username="reviewer",
        first_name="Rita",
        last_name="Reviewer",
        role=UserRole.ADMIN.value,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest_asyncio.fixture
async def employee(db: AsyncSession) -> TelegramUser:
    """Field employee who submits reports through the bot."""
    user = TelegramUser(
        telegram_id="1000001",
        username="alice_w",
        first_name="Alice",
        last_name="Wong",
        role=UserRole.EMPLOYEE.value,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest_asyncio.fixture
async def client(async_client: AsyncClient, admin_user: TelegramUser) -> AsyncClient:
    """
    Authenticated admin client.

    The auth_token cookie carries the operator's TelegramUser id.
    """
    async_client.cookies.set("auth_token", str(admin_user.id))
    return async_client


async def make_order(
    db: AsyncSession,
    submitter: TelegramUser,
    number: str = "#1000",
    order_type: OrderType = OrderType.DEPOSIT,
    amount: str = "100.00",
    content: str = "Deposit 100 for customer A",
    status: OrderStatus = OrderStatus.PENDING,
    created_at=None,
) -> Order:
    """Insert an order row directly, the way the bot intake would."""
    order = Order(
        order_number=number,
        type=order_type.value,
        amount=Decimal(amount),
        telegram_user_id=submitter.id,
        original_content=content,
        status=status.value,
    )
    if created_at is not None:
        order.created_at = created_at
    db.add(order)
    await db.commit()
    await db.refresh(order)
    return order


@pytest_asyncio.fixture
async def pending_order(db: AsyncSession, employee: TelegramUser) -> Order:
    return await make_order(db, employee)
