"""Global test configuration and fixtures for the ExplorNatura API."""

from collections.abc import AsyncGenerator, Awaitable, Callable
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from asgi_lifespan import LifespanManager
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from src.database.models import Account, ApiKey, Base, Domain, DomainKind, PlanTier
from src.modules.accounts.tokens import create_dashboard_token
from src.modules.billing.stripe import CheckoutSession, StripeGateway

from tests.factories import AccountFactory, DomainFactory
from tests.utils.stripe_events import STRIPE_PERIOD_END

TEST_BASE_URL = "http://test-explornatura-api"


@pytest.fixture(autouse=True)
def development_environment(monkeypatch):
    """Run every test as a DEV deployment unless a test says otherwise."""
    monkeypatch.setenv("ENVIRONMENT", "DEV")


@pytest.fixture
def production_environment(monkeypatch):
    monkeypatch.setenv("ENVIRONMENT", "PROD")


@pytest_asyncio.fixture
async def async_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """File backed SQLite database per test, so app sessions and test sessions share it."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'explornatura_test.db'}", echo=False
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=async_engine, class_=AsyncSession, expire_on_commit=False
    )


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Session for arranging and inspecting state. Commit before calling the app."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def app(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[FastAPI, None]:
    """Create FastAPI application with lifespan manager for testing."""
    from src.main import app

    app.state.session_factory = session_factory
    try:
        async with LifespanManager(app):
            yield app
    finally:
        del app.state.session_factory


# Test Data Fixtures
@pytest.fixture
def create_account(
    db_session: AsyncSession,
) -> Callable[..., Awaitable[Account]]:
    """Factory for committed accounts that already own a base domain."""

    async def _create(
        plan_tier: PlanTier = PlanTier.STARTER,
        base_host: str | None = None,
        **kwargs,
    ) -> Account:
        account = await AccountFactory.create_async(
            db_session, plan_tier=plan_tier.value, **kwargs
        )
        base_kwargs = {"host": base_host} if base_host else {}
        await DomainFactory.create_async(
            db_session,
            account_id=account.id,
            kind=DomainKind.BASE.value,
            **base_kwargs,
        )
        await db_session.commit()
        return account

    return _create


@pytest.fixture
def create_extra_domain(
    db_session: AsyncSession,
) -> Callable[..., Awaitable[Domain]]:
    """Factory for committed extra domains, bypassing the purchase flow."""

    async def _create(account: Account, host: str, **kwargs) -> Domain:
        domain = await DomainFactory.create_async(
            db_session,
            account_id=account.id,
            host=host,
            kind=DomainKind.EXTRA.value,
            monthly_price_cents=1000,
            **kwargs,
        )
        await db_session.commit()
        return domain

    return _create


@pytest.fixture
def issue_key(
    db_session: AsyncSession,
) -> Callable[..., Awaitable[tuple[ApiKey, str]]]:
    """Factory for committed active keys; returns the row and its plain secret."""

    async def _issue(domain: Domain, description: str | None = None):
        api_key, plain_key = ApiKey.create_key(domain.id, description)
        db_session.add(api_key)
        await db_session.commit()
        return api_key, plain_key

    return _issue


@pytest_asyncio.fixture
async def starter_account(create_account) -> Account:
    return await create_account(PlanTier.STARTER, base_host="starter-site.com")


@pytest_asyncio.fixture
async def business_account(create_account) -> Account:
    return await create_account(PlanTier.BUSINESS, base_host="popeye.com")


@pytest_asyncio.fixture
async def enterprise_account(create_account) -> Account:
    return await create_account(PlanTier.ENTERPRISE, base_host="enterprise-site.com")


# Stripe
@pytest.fixture
def fake_stripe(monkeypatch) -> SimpleNamespace:
    """Replace every outbound StripeGateway call with a mock.

    Webhook signature verification is left real; tests sign payloads with the
    default webhook secret.
    """

    def _checkout_session(**kwargs) -> CheckoutSession:
        return CheckoutSession(
            id=f"cs_test_{kwargs['host']}",
            url=f"https://checkout.stripe.com/c/pay/cs_test_{kwargs['host']}",
            payment_status="unpaid",
            subscription_id=None,
        )

    stripe_mocks = SimpleNamespace(
        get_or_create_customer=AsyncMock(return_value="cus_test_123"),
        create_domain_checkout_session=MagicMock(side_effect=_checkout_session),
        retrieve_checkout_session=MagicMock(
            return_value=CheckoutSession(
                id="cs_test_unpaid",
                url=None,
                payment_status="unpaid",
                subscription_id=None,
            )
        ),
        get_subscription_period_end=MagicMock(return_value=STRIPE_PERIOD_END),
        cancel_subscription=MagicMock(return_value=None),
    )
    # Class attributes that are plain mocks are not bound, so calls omit self
    for name, mock in vars(stripe_mocks).items():
        monkeypatch.setattr(StripeGateway, name, mock)
    return stripe_mocks


# HTTP Client Fixtures
@pytest.fixture
def client_factory(app: FastAPI):
    """Factory for creating HTTP clients authenticated as a given account."""

    def create_client_for_account(account: Account) -> AsyncClient:
        token = create_dashboard_token(account.id)
        return AsyncClient(
            transport=ASGITransport(app=app),
            base_url=TEST_BASE_URL,
            headers={"Authorization": f"Bearer {token}"},
        )

    return create_client_for_account


@pytest_asyncio.fixture
async def public_client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create HTTP client for testing public endpoints."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url=TEST_BASE_URL,
    ) as ac:
        yield ac


@pytest_asyncio.fixture
async def authorized_client(
    client_factory, business_account: Account
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client authenticated as the business account (base domain popeye.com)."""
    async with client_factory(business_account) as ac:
        yield ac


@pytest_asyncio.fixture
async def starter_client(
    client_factory, starter_account: Account
) -> AsyncGenerator[AsyncClient, None]:
    async with client_factory(starter_account) as ac:
        yield ac
