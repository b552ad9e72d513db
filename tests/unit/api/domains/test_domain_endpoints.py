"""Dashboard domain and purchase endpoint tests."""

from uuid import uuid4

import pytest
from fastapi import status
from httpx import AsyncClient

from src.api.core.messages import MessageCode
from src.database.models import PlanTier
from tests.factories import DomainPurchaseFactory
from tests.utils.assertions import assert_error_response, assert_success_response
from tests.utils.stripe_events import paid_session


@pytest.fixture
def pending_purchase(db_session, business_account):
    async def _create(host: str = "olive.com", session_id: str = "cs_test_olive"):
        purchase = await DomainPurchaseFactory.create_async(
            db_session,
            account_id=business_account.id,
            host=host,
            stripe_session_id=session_id,
        )
        await db_session.commit()
        return purchase

    return _create


@pytest.mark.asyncio
async def test_list_domains(
    authorized_client: AsyncClient, business_account, create_extra_domain
):
    await create_extra_domain(business_account, "olive.com")
    await create_extra_domain(business_account, "brutus.com", is_active=False)

    response = await authorized_client.get("/api/domains/all")

    data = assert_success_response(
        response,
        data_assertions={
            "base_domain.host": "popeye.com",
            "base_domain.kind": "base",
            "limits.plan_tier": "business",
            "limits.domains_used": 2,
            "limits.max_domains": 3,
            "limits.keys_allowed": 2,
            "limits.can_add_domain": True,
            "limits.allows_subdomains": True,
        },
    )
    extras = {domain["host"]: domain for domain in data["extra_domains"]}
    assert extras["olive.com"]["is_active"] is True
    assert extras["brutus.com"]["is_active"] is False


@pytest.mark.asyncio
async def test_list_additional_domains(
    authorized_client: AsyncClient, business_account, create_extra_domain
):
    await create_extra_domain(business_account, "olive.com")
    await create_extra_domain(business_account, "brutus.com", is_active=False)

    response = await authorized_client.get("/api/domains/additional")

    data = assert_success_response(response, data_assertions={"total": 1})
    assert [domain["host"] for domain in data["domains"]] == ["olive.com"]
    assert data["domains"][0]["kind"] == "extra"


@pytest.mark.asyncio
async def test_list_additional_domains_without_any(authorized_client: AsyncClient):
    response = await authorized_client.get("/api/domains/additional")

    assert_success_response(response, data_assertions={"total": 0, "domains": []})


@pytest.mark.asyncio
async def test_starter_limits(starter_client: AsyncClient):
    response = await starter_client.get("/api/domains/limits")

    assert_success_response(
        response,
        data_assertions={
            "plan_tier": "starter",
            "max_domains": 1,
            "max_extra_domains": 0,
            "can_add_domain": False,
            "price_per_extra_domain_cents": None,
        },
    )


@pytest.mark.asyncio
async def test_purchase_opens_a_checkout(
    authorized_client: AsyncClient, fake_stripe
):
    response = await authorized_client.post(
        "/api/domains/purchase", json={"domain": "https://Olive.com/"}
    )

    data = assert_success_response(
        response,
        MessageCode.PURCHASE_CREATED,
        status.HTTP_201_CREATED,
        {"domain": "olive.com", "price_cents": 1000, "session_id": "cs_test_olive.com"},
    )
    assert data["checkout_url"].startswith("https://checkout.stripe.com/")

    domains = assert_success_response(await authorized_client.get("/api/domains/all"))
    assert domains["extra_domains"] == []


@pytest.mark.asyncio
async def test_starter_cannot_purchase(starter_client: AsyncClient, fake_stripe):
    response = await starter_client.post(
        "/api/domains/purchase", json={"domain": "olive.com"}
    )

    assert_error_response(
        response, MessageCode.EXTRA_DOMAINS_NOT_AVAILABLE, status.HTTP_403_FORBIDDEN
    )
    fake_stripe.create_domain_checkout_session.assert_not_called()


@pytest.mark.asyncio
async def test_purchase_of_a_taken_host(
    authorized_client: AsyncClient, create_account, fake_stripe
):
    await create_account(PlanTier.STARTER, base_host="olive.com")

    response = await authorized_client.post(
        "/api/domains/purchase", json={"domain": "olive.com"}
    )

    assert_error_response(
        response, MessageCode.DOMAIN_ALREADY_REGISTERED, status.HTTP_409_CONFLICT
    )


@pytest.mark.asyncio
async def test_purchase_with_invalid_domain(authorized_client: AsyncClient, fake_stripe):
    response = await authorized_client.post(
        "/api/domains/purchase", json={"domain": "localhost"}
    )

    assert_error_response(
        response, MessageCode.INVALID_INPUT, status.HTTP_422_UNPROCESSABLE_ENTITY
    )


@pytest.mark.asyncio
async def test_verify_unpaid_purchase(
    authorized_client: AsyncClient, fake_stripe, pending_purchase
):
    await pending_purchase()

    response = await authorized_client.get("/api/domains/verify-purchase/cs_test_olive")

    assert_success_response(
        response,
        MessageCode.PURCHASE_PENDING,
        status.HTTP_202_ACCEPTED,
        {"status": "pending", "domain": "olive.com", "added_domain": None},
    )


@pytest.mark.asyncio
async def test_verify_paid_purchase(
    authorized_client: AsyncClient, fake_stripe, pending_purchase
):
    await pending_purchase()
    fake_stripe.retrieve_checkout_session.return_value = paid_session(
        "cs_test_olive", "sub_olive"
    )

    first = await authorized_client.get("/api/domains/verify-purchase/cs_test_olive")
    second = await authorized_client.get("/api/domains/verify-purchase/cs_test_olive")

    for response in (first, second):
        data = assert_success_response(
            response,
            MessageCode.PURCHASE_COMPLETED,
            data_assertions={
                "status": "completed",
                "session_id": "cs_test_olive",
                "added_domain.host": "olive.com",
                "added_domain.kind": "extra",
                "added_domain.is_active": True,
            },
        )
    assert data["completed_at"] is not None

    domains = assert_success_response(await authorized_client.get("/api/domains/all"))
    assert [domain["host"] for domain in domains["extra_domains"]] == ["olive.com"]


@pytest.mark.asyncio
async def test_verify_purchase_that_no_longer_fits_the_plan(
    authorized_client: AsyncClient,
    business_account,
    create_extra_domain,
    fake_stripe,
    pending_purchase,
):
    await pending_purchase()
    await create_extra_domain(business_account, "brutus.com")
    await create_extra_domain(business_account, "wimpy.com")
    fake_stripe.retrieve_checkout_session.return_value = paid_session(
        "cs_test_olive", "sub_olive"
    )

    first = await authorized_client.get("/api/domains/verify-purchase/cs_test_olive")
    second = await authorized_client.get("/api/domains/verify-purchase/cs_test_olive")

    assert_error_response(
        first, MessageCode.DOMAIN_LIMIT_EXCEEDED, status.HTTP_403_FORBIDDEN
    )
    assert_error_response(second, MessageCode.PURCHASE_FAILED, status.HTTP_409_CONFLICT)
    fake_stripe.cancel_subscription.assert_called_once_with("sub_olive")


@pytest.mark.asyncio
async def test_verify_unknown_purchase(authorized_client: AsyncClient, fake_stripe):
    response = await authorized_client.get("/api/domains/verify-purchase/cs_missing")

    assert_error_response(
        response, MessageCode.PURCHASE_NOT_FOUND, status.HTTP_404_NOT_FOUND
    )


@pytest.mark.asyncio
async def test_cancel_extra_domain(
    authorized_client: AsyncClient,
    business_account,
    create_extra_domain,
    issue_key,
    fake_stripe,
):
    extra = await create_extra_domain(
        business_account, "olive.com", stripe_subscription_id="sub_olive"
    )
    await issue_key(extra)

    response = await authorized_client.post(f"/api/domains/cancel/{extra.id}")

    data = assert_success_response(
        response,
        MessageCode.DOMAIN_CANCELLED,
        data_assertions={"host": "olive.com", "is_active": False},
    )
    assert data["cancelled_at"] is not None
    fake_stripe.cancel_subscription.assert_called_once_with("sub_olive")

    keys = assert_success_response(await authorized_client.get("/api/keys/my-keys"))
    assert all(not key["is_active"] for key in keys["keys"])


@pytest.mark.asyncio
async def test_cancel_base_domain(authorized_client: AsyncClient, fake_stripe):
    domains = assert_success_response(await authorized_client.get("/api/domains/all"))

    response = await authorized_client.post(
        f"/api/domains/cancel/{domains['base_domain']['id']}"
    )

    assert_error_response(
        response, MessageCode.DOMAIN_NOT_CANCELABLE, status.HTTP_409_CONFLICT
    )


@pytest.mark.asyncio
async def test_cancel_unknown_domain(authorized_client: AsyncClient, fake_stripe):
    response = await authorized_client.post(f"/api/domains/cancel/{uuid4()}")

    assert_error_response(response, MessageCode.DOMAIN_NOT_FOUND, status.HTTP_404_NOT_FOUND)


@pytest.mark.asyncio
async def test_cancelled_domain_can_be_bought_back(
    authorized_client: AsyncClient, business_account, create_extra_domain, fake_stripe
):
    extra = await create_extra_domain(business_account, "olive.com")
    await authorized_client.post(f"/api/domains/cancel/{extra.id}")

    response = await authorized_client.post(
        "/api/domains/purchase", json={"domain": "olive.com"}
    )

    assert_success_response(
        response, MessageCode.PURCHASE_CREATED, status.HTTP_201_CREATED
    )
