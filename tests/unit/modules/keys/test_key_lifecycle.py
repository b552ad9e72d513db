"""Tests for generating, regenerating and revoking widget keys."""

import asyncio

import pytest
import pytest_asyncio
from sqlalchemy import select

from src.api.core.exceptions.base import (
    ConflictError,
    LimitExceededError,
    NotFoundError,
)
from src.api.core.messages import MessageCode
from src.database.models import Account, ApiKey, Domain, PlanTier
from src.modules.keys.lifecycle import KeyLifecycleManager
from src.modules.keys.store import KeyStore
from tests.utils.assertions import assert_explornatura_exception


@pytest_asyncio.fixture
async def lifecycle(session_factory):
    """Manager on its own session, the way a request handler gets one."""
    async with session_factory() as session:
        yield KeyLifecycleManager(session)


async def _active_keys(session_factory, domain_id) -> list[ApiKey]:
    async with session_factory() as session:
        result = await session.execute(
            select(ApiKey).where(ApiKey.domain_id == domain_id, ApiKey.is_active.is_(True))
        )
        return list(result.scalars().all())


async def _base_domain(session_factory, account_id) -> Domain:
    async with session_factory() as session:
        result = await session.execute(
            select(Domain).where(Domain.account_id == account_id, Domain.kind == "base")
        )
        return result.scalar_one()


@pytest.mark.asyncio
async def test_generate_defaults_to_the_base_domain(
    lifecycle, session_factory, business_account
):
    api_key, plain_key = await lifecycle.generate(business_account, description="Main")

    assert api_key.domain.host == "popeye.com"
    assert api_key.description == "Main"
    async with session_factory() as session:
        resolved = await KeyStore(session).find_account_by_key(plain_key)
    assert resolved is not None
    assert resolved[1].id == business_account.id


@pytest.mark.asyncio
async def test_generate_for_an_extra_domain(
    lifecycle, business_account, create_extra_domain
):
    extra = await create_extra_domain(business_account, "olive.com")

    api_key, _ = await lifecycle.generate(business_account, domain="https://Olive.com")

    assert api_key.domain_id == extra.id


@pytest.mark.asyncio
async def test_generate_refuses_a_second_active_key(
    lifecycle, session_factory, business_account
):
    first, _ = await lifecycle.generate(business_account)
    first_id, domain_id = first.id, first.domain_id

    with pytest.raises(ConflictError) as exc_info:
        await lifecycle.generate(business_account)

    assert_explornatura_exception(
        exc_info.value, MessageCode.API_KEY_ALREADY_ACTIVE, 409
    )
    active = await _active_keys(session_factory, domain_id)
    assert [key.id for key in active] == [first_id]


@pytest.mark.asyncio
async def test_generate_for_a_domain_of_another_account(
    lifecycle, business_account, create_account
):
    await create_account(PlanTier.BUSINESS, base_host="brutus.com")

    with pytest.raises(NotFoundError) as exc_info:
        await lifecycle.generate(business_account, domain="brutus.com")

    assert_explornatura_exception(exc_info.value, MessageCode.DOMAIN_NOT_FOUND, 404)


@pytest.mark.asyncio
async def test_generate_for_a_cancelled_domain(
    lifecycle, business_account, create_extra_domain
):
    await create_extra_domain(business_account, "olive.com", is_active=False)

    with pytest.raises(ConflictError) as exc_info:
        await lifecycle.generate(business_account, domain="olive.com")

    assert_explornatura_exception(exc_info.value, MessageCode.DOMAIN_INACTIVE, 409)


@pytest.mark.asyncio
async def test_extra_domain_keys_need_a_tier_with_extra_domains(
    lifecycle, db_session, business_account, create_extra_domain
):
    await create_extra_domain(business_account, "olive.com")
    business_account.plan_tier = PlanTier.STARTER.value
    await db_session.commit()

    with pytest.raises(LimitExceededError) as exc_info:
        await lifecycle.generate(business_account, domain="olive.com")

    assert_explornatura_exception(
        exc_info.value, MessageCode.EXTRA_DOMAINS_NOT_AVAILABLE, 403
    )


@pytest.mark.asyncio
async def test_regenerate_replaces_the_active_key(
    lifecycle, session_factory, business_account
):
    old_key, old_plain = await lifecycle.generate(business_account, description="Site")

    new_key, new_plain = await lifecycle.regenerate(business_account)

    assert new_key.id != old_key.id
    assert new_plain != old_plain
    assert new_key.description == "Site"
    active = await _active_keys(session_factory, new_key.domain_id)
    assert [key.id for key in active] == [new_key.id]

    async with session_factory() as session:
        store = KeyStore(session)
        assert await store.find_account_by_key(old_plain) is None
        assert await store.find_account_by_key(new_plain) is not None
        previous = await session.get(ApiKey, old_key.id)
        assert previous.is_active is False
        assert previous.revoked_at is not None


@pytest.mark.asyncio
async def test_regenerate_without_an_active_key_issues_one(
    lifecycle, session_factory, business_account
):
    api_key, _ = await lifecycle.regenerate(business_account, description="Fresh")

    base = await _base_domain(session_factory, business_account.id)
    assert api_key.domain_id == base.id
    assert len(await _active_keys(session_factory, base.id)) == 1


@pytest.mark.asyncio
async def test_revoke_is_idempotent(lifecycle, session_factory, business_account):
    api_key, plain_key = await lifecycle.generate(business_account)

    revoked = await lifecycle.revoke(business_account, api_key.id)
    again = await lifecycle.revoke(business_account, api_key.id)

    assert revoked.is_active is False
    assert again.is_active is False
    assert again.revoked_at == revoked.revoked_at
    async with session_factory() as session:
        assert await KeyStore(session).find_account_by_key(plain_key) is None


@pytest.mark.asyncio
async def test_revoke_a_key_of_another_account(
    lifecycle, session_factory, business_account, create_account
):
    other = await create_account(PlanTier.BUSINESS, base_host="brutus.com")
    async with session_factory() as session:
        other_key, _ = await KeyLifecycleManager(session).generate(
            await session.get(Account, other.id)
        )

    with pytest.raises(NotFoundError) as exc_info:
        await lifecycle.revoke(business_account, other_key.id)

    assert_explornatura_exception(exc_info.value, MessageCode.API_KEY_NOT_FOUND, 404)
    assert len(await _active_keys(session_factory, other_key.domain_id)) == 1


@pytest.mark.asyncio
async def test_generate_after_revoke(lifecycle, business_account):
    api_key, _ = await lifecycle.generate(business_account)
    await lifecycle.revoke(business_account, api_key.id)

    replacement, _ = await lifecycle.generate(business_account)

    assert replacement.id != api_key.id
    assert replacement.is_active is True


async def _race(session_factory, operation):
    """Run the same lifecycle operation from two sessions at once."""
    async with session_factory() as first, session_factory() as second:
        return await asyncio.gather(
            operation(KeyLifecycleManager(first)),
            operation(KeyLifecycleManager(second)),
            return_exceptions=True,
        )


@pytest.mark.asyncio
async def test_concurrent_regenerate_leaves_one_active_key(
    session_factory, business_account, issue_key
):
    base = await _base_domain(session_factory, business_account.id)
    original, _ = await issue_key(base)
    original_id = original.id

    results = await _race(
        session_factory, lambda manager: manager.regenerate(business_account)
    )

    issued = [result for result in results if isinstance(result, tuple)]
    failures = [result for result in results if isinstance(result, BaseException)]
    assert issued
    for failure in failures:
        assert isinstance(failure, ConflictError)
        assert_explornatura_exception(failure, MessageCode.API_KEY_ALREADY_ACTIVE, 409)

    active = await _active_keys(session_factory, base.id)
    assert len(active) == 1
    assert active[0].id != original_id
    assert active[0].id in {api_key.id for api_key, _ in issued}


@pytest.mark.asyncio
async def test_concurrent_generate_issues_a_single_key(
    session_factory, business_account
):
    base = await _base_domain(session_factory, business_account.id)

    results = await _race(
        session_factory, lambda manager: manager.generate(business_account)
    )

    issued = [result for result in results if isinstance(result, tuple)]
    failures = [result for result in results if isinstance(result, BaseException)]
    assert len(issued) == 1
    assert len(failures) == 1
    assert isinstance(failures[0], ConflictError)

    active = await _active_keys(session_factory, base.id)
    assert [key.id for key in active] == [issued[0][0].id]
