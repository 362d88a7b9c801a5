import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test_paylink.db")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_fake_key")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test")
os.environ.setdefault("PAYMENT_LINK_BASE_URL", "https://pay.example")
os.environ.setdefault("SETTLEMENT_CURRENCY", "usd")

from datetime import datetime, timedelta, timezone  # noqa: E402
from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

from paylink.billing import BillingInfoExtractor  # noqa: E402
from paylink.catalog import SqlCatalog  # noqa: E402
from paylink.database import Base, get_session  # noqa: E402
from paylink.main import app as fastapi_app  # noqa: E402
from paylink.models import Product, User  # noqa: E402
from paylink.routes import get_gateway  # noqa: E402
from paylink.store import IntentStore  # noqa: E402
from paylink.stripe_service import StripeGateway  # noqa: E402

TEST_DATABASE_URL = "sqlite+aiosqlite:///./test_paylink.db"


@pytest.fixture
async def session_factory():
    engine = create_async_engine(TEST_DATABASE_URL, poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def session(session_factory):
    async with session_factory() as s:
        yield s


@pytest.fixture
async def seeded(session):
    """Two sellers and a handful of products in every eligibility state."""
    now = datetime.now(timezone.utc)
    session.add_all([
        User(id="user_acme", unique_name="acme"),
        User(id="user_globex", unique_name="globex"),
        Product(id="prod_widget", user_id="user_acme", slug="widget", name="Widget Pro!",
                amount=Decimal("19.99"), status="active", expires_at=now + timedelta(days=30)),
        Product(id="prod_gadget", user_id="user_globex", slug="gadget", name="Gadget",
                amount=Decimal("5.00"), status="active"),
        Product(id="prod_old", user_id="user_acme", slug="old-deal", name="Old Deal",
                amount=Decimal("9.99"), status="cancelled", expires_at=now - timedelta(days=1)),
        Product(id="prod_retired", user_id="user_acme", slug="retired", name="Retired",
                amount=Decimal("9.99"), status="cancelled"),
        Product(id="prod_lapsed", user_id="user_acme", slug="lapsed", name="Lapsed",
                amount=Decimal("9.99"), status="expired"),
        Product(id="prod_sticker", user_id="user_acme", slug="sticker", name="Sticker",
                amount=Decimal("0.25"), status="active"),
    ])
    await session.commit()
    return session


@pytest.fixture
def gateway(mocker):
    return mocker.AsyncMock(spec=StripeGateway)


@pytest.fixture
def store(session):
    return IntentStore(session)


@pytest.fixture
def catalog(session):
    return SqlCatalog(session)


@pytest.fixture
def extractor(gateway):
    return BillingInfoExtractor(gateway)


@pytest.fixture
async def client(session_factory, gateway):
    async def override_session():
        async with session_factory() as s:
            yield s

    fastapi_app.dependency_overrides[get_session] = override_session
    fastapi_app.dependency_overrides[get_gateway] = lambda: gateway

    async with AsyncClient(transport=ASGITransport(app=fastapi_app), base_url="http://test") as c:
        yield c

    fastapi_app.dependency_overrides.clear()
