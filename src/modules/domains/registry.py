"""Durable registry of each account's base and extra domains."""

from datetime import datetime, timezone
from uuid import UUID

from fastapi import status
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError

from src.api.core.exceptions.base import (
    ConflictError,
    ExplorNaturaException,
    LimitExceededError,
    NotFoundError,
)
from src.api.core.messages import MessageCode
from src.core.base import BaseService
from src.database.models import Account, Domain, DomainKind
from src.modules.keys.store import KeyStore
from src.modules.plans.limits import PlanLimits, evaluate_plan_limits
from src.utils.domains import normalize_host


class DomainRegistry(BaseService):
    """Reads and writes domain rows. Callers own the transaction boundary."""

    async def get_base_domain(self, account_id: UUID) -> Domain:
        stmt = select(Domain).where(
            Domain.account_id == account_id, Domain.kind == DomainKind.BASE
        )
        result = await self.db.execute(stmt)
        domain = result.scalar_one_or_none()
        if not domain:
            raise NotFoundError(
                MessageCode.DOMAIN_NOT_FOUND,
                {"description": f"Account {account_id} has no base domain"},
            )
        return domain

    async def list_extra_domains(
        self, account_id: UUID, active_only: bool = False
    ) -> list[Domain]:
        """List extra domains of an account, newest first, cancelled ones included."""
        stmt = (
            select(Domain)
            .where(Domain.account_id == account_id, Domain.kind == DomainKind.EXTRA)
            .order_by(Domain.created_at.desc())
        )
        if active_only:
            stmt = stmt.where(Domain.is_active.is_(True))
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def list_authorized_hosts(self, account_id: UUID) -> list[str]:
        """Hosts a widget of this account may be embedded on: base + active extras."""
        stmt = (
            select(Domain.host)
            .where(
                Domain.account_id == account_id,
                or_(Domain.kind == DomainKind.BASE, Domain.is_active.is_(True)),
            )
            .order_by(Domain.kind, Domain.host)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def count_active_extra(self, account_id: UUID) -> int:
        stmt = select(func.count(Domain.id)).where(
            Domain.account_id == account_id,
            Domain.kind == DomainKind.EXTRA,
            Domain.is_active.is_(True),
        )
        result = await self.db.execute(stmt)
        return result.scalar_one()

    async def evaluate_limits(self, account: Account) -> PlanLimits:
        """Evaluate the account's plan limits against the current domain count."""
        active_extra = await self.count_active_extra(account.id)
        return evaluate_plan_limits(account.plan_tier, active_extra)

    async def ensure_can_add_domain(self, account: Account) -> PlanLimits:
        """Evaluate fresh limits and raise if another domain is not allowed now.

        Raises:
            LimitExceededError: the tier has no extra domains or its ceiling is reached
        """
        limits = await self.evaluate_limits(account)
        if not limits.can_add_domain:
            raise self._limit_error(limits)
        return limits

    def is_host_available(self, existing: Domain | None, account_id: UUID) -> bool:
        """A host is available if unregistered or cancelled earlier by the same account."""
        return existing is None or self._is_reactivatable(existing, account_id)

    async def get_account_domain(
        self,
        account_id: UUID,
        domain_id: UUID | None = None,
        host: str | None = None,
        for_update: bool = False,
    ) -> Domain:
        """Fetch a domain by id or host, scoped to its owning account.

        ``for_update`` takes a row lock, the mutual-exclusion scope for key
        and cancellation operations on that domain.

        Raises:
            NotFoundError: if the domain does not exist or belongs to another account
        """
        stmt = select(Domain).where(Domain.account_id == account_id)
        if domain_id is not None:
            stmt = stmt.where(Domain.id == domain_id)
        elif host is not None:
            try:
                stmt = stmt.where(Domain.host == normalize_host(host))
            except ValueError:
                raise NotFoundError(
                    MessageCode.DOMAIN_NOT_FOUND, {"domain": host}
                )
        else:
            raise ValueError("domain_id or host is required")

        if for_update:
            stmt = stmt.with_for_update()

        result = await self.db.execute(stmt)
        domain = result.scalar_one_or_none()
        if not domain:
            raise NotFoundError(
                MessageCode.DOMAIN_NOT_FOUND,
                {"domain": host or str(domain_id)},
            )
        return domain

    async def lock_domain(self, domain_id: UUID) -> Domain | None:
        """Take the row lock that serializes key and cancel operations on a domain."""
        result = await self.db.execute(
            select(Domain).where(Domain.id == domain_id).with_for_update()
        )
        return result.scalar_one_or_none()

    async def find_by_host(self, host: str) -> Domain | None:
        result = await self.db.execute(select(Domain).where(Domain.host == host))
        return result.scalar_one_or_none()

    async def find_by_stripe_subscription(
        self, stripe_subscription_id: str
    ) -> Domain | None:
        stmt = select(Domain).where(
            Domain.stripe_subscription_id == stripe_subscription_id
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def create_base_domain(self, account_id: UUID, host: str) -> Domain:
        """Register the base domain of a newly signed-up account."""
        host = self.normalize(host)
        if await self.find_by_host(host):
            raise ConflictError(MessageCode.DOMAIN_ALREADY_REGISTERED, {"domain": host})

        domain = Domain(
            account_id=account_id, host=host, kind=DomainKind.BASE, is_active=True
        )
        self.db.add(domain)
        await self._flush_or_conflict(host)
        return domain

    async def add_extra_domain(
        self,
        account: Account,
        host: str,
        monthly_price_cents: int | None = None,
        next_billing_date: datetime | None = None,
        stripe_subscription_id: str | None = None,
    ) -> Domain:
        """Add (or reactivate) an extra domain for an account.

        The account row is locked so concurrent additions for the same account
        see each other's count. A host previously cancelled by the same account
        is reactivated in place; its old keys stay revoked.

        Raises:
            LimitExceededError: if the plan does not allow another domain now
            ConflictError: if the host is registered to any account
        """
        host = self.normalize(host)

        await self.db.execute(
            select(Account.id).where(Account.id == account.id).with_for_update()
        )
        await self.ensure_can_add_domain(account)

        existing = await self.find_by_host(host)
        if not self.is_host_available(existing, account.id):
            raise ConflictError(MessageCode.DOMAIN_ALREADY_REGISTERED, {"domain": host})

        if existing:
            domain = existing
            domain.is_active = True
            domain.cancelled_at = None
        else:
            domain = Domain(
                account_id=account.id,
                host=host,
                kind=DomainKind.EXTRA,
                is_active=True,
            )
            self.db.add(domain)

        domain.monthly_price_cents = monthly_price_cents
        domain.next_billing_date = next_billing_date
        domain.stripe_subscription_id = stripe_subscription_id
        await self._flush_or_conflict(host)

        self.logger.info(
            "Extra domain added",
            account_id=str(account.id),
            domain_id=str(domain.id),
            host=host,
            reactivated=existing is not None,
        )
        return domain

    async def cancel_extra_domain(self, domain_id: UUID) -> Domain:
        """Deactivate an extra domain and revoke its active key in the same unit.

        Raises:
            NotFoundError: if the domain does not exist
            ConflictError: if the domain is a base domain
        """
        domain = await self.lock_domain(domain_id)
        if not domain:
            raise NotFoundError(MessageCode.DOMAIN_NOT_FOUND, {"domain_id": str(domain_id)})
        if domain.is_base:
            raise ConflictError(
                MessageCode.DOMAIN_NOT_CANCELABLE, {"domain_id": str(domain_id)}
            )

        if domain.is_active:
            domain.is_active = False
            domain.cancelled_at = datetime.now(timezone.utc)

        # Always sweep keys so a cancelled domain can never hold a live key
        await KeyStore(self.db).revoke_active_for_domain(domain.id)
        await self.db.flush()

        self.logger.info(
            "Extra domain cancelled",
            account_id=str(domain.account_id),
            domain_id=str(domain.id),
            host=domain.host,
        )
        return domain

    @staticmethod
    def _is_reactivatable(domain: Domain, account_id: UUID) -> bool:
        return (
            domain.account_id == account_id
            and domain.kind == DomainKind.EXTRA
            and not domain.is_active
        )

    @staticmethod
    def _limit_error(limits: PlanLimits) -> LimitExceededError:
        details = {
            "plan_tier": limits.plan_tier.value,
            "domains_used": limits.domains_used,
            "max_domains": limits.max_domains,
        }
        if limits.max_extra_domains == 0:
            return LimitExceededError(MessageCode.EXTRA_DOMAINS_NOT_AVAILABLE, details)
        return LimitExceededError(
            MessageCode.DOMAIN_LIMIT_EXCEEDED,
            details,
            message=(
                f"Your plan allows {limits.max_domains} domain(s) and "
                f"{limits.domains_used} are in use"
            ),
        )

    @staticmethod
    def normalize(host: str) -> str:
        try:
            return normalize_host(host)
        except ValueError as e:
            raise ExplorNaturaException(
                MessageCode.INVALID_INPUT,
                status.HTTP_422_UNPROCESSABLE_ENTITY,
                {"domain": host, "description": str(e)},
            )

    async def _flush_or_conflict(self, host: str) -> None:
        try:
            await self.db.flush()
        except IntegrityError:
            # Lost a race on the host unique index
            await self.db.rollback()
            raise ConflictError(MessageCode.DOMAIN_ALREADY_REGISTERED, {"domain": host})
