"""Two-phase purchase and cancellation of extra domains.

A purchase is initiated against Stripe Checkout and recorded as a pending
``DomainPurchase``. The domain only exists once payment is verified, either by
the dashboard polling ``verify_purchase`` or by the checkout webhook; both
paths converge on ``complete_purchase``, which is idempotent.
"""

from datetime import datetime, timedelta, timezone
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from src.api.core.constants import (
    EXTRA_DOMAIN_FALLBACK_BILLING_DAYS,
    EXTRA_DOMAIN_PURCHASE_TYPE,
)
from src.api.core.exceptions.base import (
    ConflictError,
    ExplorNaturaException,
    LimitExceededError,
    NotFoundError,
)
from src.api.core.messages import MessageCode
from src.core.base import BaseService
from src.database.models import Account, Domain, DomainPurchase, PurchaseStatus
from src.modules.billing.stripe import CheckoutSession, StripeGateway
from src.modules.domains.registry import DomainRegistry


class DomainPurchaseCoordinator(BaseService):
    def __init__(self, db, gateway: StripeGateway | None = None):
        super().__init__(db)
        self.registry = DomainRegistry(db)
        self.gateway = gateway or StripeGateway(db)

    async def initiate_purchase(
        self,
        account: Account,
        host: str,
        success_url: str | None = None,
        cancel_url: str | None = None,
    ) -> tuple[DomainPurchase, CheckoutSession]:
        """Open a checkout for an extra domain. No domain is granted yet.

        Raises:
            LimitExceededError: the plan does not allow another domain
            ConflictError: the host is already registered
        """
        host = self.registry.normalize(host)
        try:
            limits = await self.registry.ensure_can_add_domain(account)
            existing = await self.registry.find_by_host(host)
            if not self.registry.is_host_available(existing, account.id):
                raise ConflictError(
                    MessageCode.DOMAIN_ALREADY_REGISTERED, {"domain": host}
                )

            price_cents = limits.price_per_extra_domain_cents
            customer_id = await self.gateway.get_or_create_customer(account)
            session = self.gateway.create_domain_checkout_session(
                customer_id=customer_id,
                account=account,
                host=host,
                price_cents=price_cents,
                success_url=success_url,
                cancel_url=cancel_url,
            )

            purchase = DomainPurchase(
                account_id=account.id,
                host=host,
                stripe_session_id=session.id,
                status=PurchaseStatus.PENDING,
                price_cents=price_cents,
            )
            self.db.add(purchase)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        self.logger.info(
            "Domain purchase initiated",
            account_id=str(account.id),
            purchase_id=str(purchase.id),
            host=host,
            stripe_session_id=session.id,
        )
        return purchase, session

    async def verify_purchase(
        self, account: Account, session_id: str
    ) -> DomainPurchase:
        """Check a checkout's payment state and complete the purchase if paid.

        Safe to call repeatedly: a completed purchase is returned as is.

        Raises:
            NotFoundError: no purchase with this session belongs to the account
        """
        purchase = await self._get_purchase(session_id, account_id=account.id)
        if not purchase:
            raise NotFoundError(
                MessageCode.PURCHASE_NOT_FOUND, {"session_id": session_id}
            )
        if purchase.status != PurchaseStatus.PENDING:
            return purchase

        session = self.gateway.retrieve_checkout_session(session_id)
        if not session.is_paid:
            self.logger.info(
                "Domain purchase not paid yet",
                purchase_id=str(purchase.id),
                payment_status=session.payment_status,
            )
            return purchase

        return await self.complete_purchase(purchase, session.subscription_id)

    async def complete_purchase(
        self, purchase: DomainPurchase, stripe_subscription_id: str | None
    ) -> DomainPurchase:
        """Turn a paid purchase into an active extra domain.

        Limits and host availability are re-checked. If they no longer hold the
        purchase is marked failed and the subscription cancelled.
        """
        locked = await self._get_purchase(
            purchase.stripe_session_id, for_update=True
        )
        if locked.status != PurchaseStatus.PENDING:
            return locked

        account = await self.db.get(Account, locked.account_id)
        next_billing_date = None
        if stripe_subscription_id:
            next_billing_date = self.gateway.get_subscription_period_end(
                stripe_subscription_id
            )
        if next_billing_date is None:
            next_billing_date = datetime.now(timezone.utc) + timedelta(
                days=EXTRA_DOMAIN_FALLBACK_BILLING_DAYS
            )

        try:
            domain = await self.registry.add_extra_domain(
                account,
                locked.host,
                monthly_price_cents=locked.price_cents,
                next_billing_date=next_billing_date,
                stripe_subscription_id=stripe_subscription_id,
            )
        except (LimitExceededError, ConflictError) as e:
            await self.db.rollback()
            await self._mark_failed(locked, stripe_subscription_id, e)
            raise

        locked.status = PurchaseStatus.COMPLETED
        locked.domain_id = domain.id
        locked.completed_at = datetime.now(timezone.utc)
        await self.db.commit()
        await self.db.refresh(locked, attribute_names=["domain"])

        self.logger.info(
            "Domain purchase completed",
            account_id=str(locked.account_id),
            purchase_id=str(locked.id),
            domain_id=str(domain.id),
            host=locked.host,
        )
        return locked

    async def cancel_domain(self, account: Account, domain_id: UUID) -> Domain:
        """Cancel an extra domain and revoke its key, then stop its billing.

        The cancellation is committed before the Stripe call; a payment
        provider failure is logged and leaves the domain cancelled.

        Raises:
            NotFoundError: the domain does not belong to the account
            ConflictError: the domain is the base domain
        """
        try:
            domain = await self.registry.get_account_domain(
                account.id, domain_id=domain_id, for_update=True
            )
            domain = await self.registry.cancel_extra_domain(domain.id)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        if domain.stripe_subscription_id:
            try:
                self.gateway.cancel_subscription(domain.stripe_subscription_id)
            except ExplorNaturaException as e:
                self.logger.error(
                    "Failed to cancel Stripe subscription for cancelled domain",
                    domain_id=str(domain.id),
                    stripe_subscription_id=domain.stripe_subscription_id,
                    error=e.details,
                )
        return domain

    async def handle_webhook_event(self, event: dict) -> bool:
        """Apply a verified Stripe event. Returns False for ignored or failed events."""
        event_type = event["type"]
        data = event["data"]["object"]

        webhook_handlers = {
            "checkout.session.completed": self._handle_checkout_completed,
            "customer.subscription.deleted": self._handle_subscription_deleted,
            "invoice.payment_succeeded": self._handle_invoice_payment_succeeded,
        }

        handler = webhook_handlers.get(event_type)
        if not handler:
            return False

        try:
            return await handler(data)
        except Exception as e:
            await self.db.rollback()
            self.logger.error(
                "Error handling webhook", event_type=event_type, error=str(e)
            )
            return False

    async def _handle_checkout_completed(self, session_data: dict) -> bool:
        metadata = session_data.get("metadata") or {}
        if metadata.get("purchase_type") != EXTRA_DOMAIN_PURCHASE_TYPE:
            return False
        if session_data.get("payment_status") != "paid":
            self.logger.info(
                "Checkout completed without payment", stripe_session_id=session_data["id"]
            )
            return False

        purchase = await self._get_purchase(session_data["id"])
        if not purchase:
            purchase = await self._record_purchase_from_metadata(
                session_data["id"], metadata
            )

        subscription = session_data.get("subscription")
        if isinstance(subscription, dict):
            subscription = subscription.get("id")
        await self.complete_purchase(purchase, subscription)
        return True

    async def _handle_subscription_deleted(self, subscription_data: dict) -> bool:
        domain = await self.registry.find_by_stripe_subscription(subscription_data["id"])
        if not domain:
            return False

        await self.registry.cancel_extra_domain(domain.id)
        await self.db.commit()
        return True

    async def _handle_invoice_payment_succeeded(self, invoice_data: dict) -> bool:
        subscription_id = _invoice_subscription_id(invoice_data)
        if not subscription_id:
            return False

        domain = await self.registry.find_by_stripe_subscription(subscription_id)
        if not domain or not domain.is_active:
            return False

        next_billing_date = self.gateway.get_subscription_period_end(subscription_id)
        if next_billing_date is None:
            return False

        domain.next_billing_date = next_billing_date
        await self.db.commit()
        self.logger.info(
            "Extra domain billing renewed",
            domain_id=str(domain.id),
            next_billing_date=next_billing_date.isoformat(),
        )
        return True

    async def _get_purchase(
        self,
        session_id: str,
        account_id: UUID | None = None,
        for_update: bool = False,
    ) -> DomainPurchase | None:
        stmt = (
            select(DomainPurchase)
            .options(selectinload(DomainPurchase.domain))
            .where(DomainPurchase.stripe_session_id == session_id)
        )
        if account_id is not None:
            stmt = stmt.where(DomainPurchase.account_id == account_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def _record_purchase_from_metadata(
        self, session_id: str, metadata: dict
    ) -> DomainPurchase:
        """Ledger row for a checkout that reached us only through the webhook."""
        purchase = DomainPurchase(
            account_id=UUID(metadata["account_id"]),
            host=self.registry.normalize(metadata["domain"]),
            stripe_session_id=session_id,
            status=PurchaseStatus.PENDING,
            price_cents=int(metadata["domain_price"]),
        )
        self.db.add(purchase)
        await self.db.commit()
        return purchase

    async def _mark_failed(
        self,
        purchase: DomainPurchase,
        stripe_subscription_id: str | None,
        error: ExplorNaturaException,
    ) -> None:
        await self.db.refresh(purchase)
        purchase.status = PurchaseStatus.FAILED
        await self.db.commit()
        self.logger.error(
            "Paid domain purchase could not be completed",
            purchase_id=str(purchase.id),
            host=purchase.host,
            message_code=error.message_code.value,
        )

        if stripe_subscription_id:
            try:
                self.gateway.cancel_subscription(stripe_subscription_id)
            except ExplorNaturaException as e:
                self.logger.error(
                    "Failed to cancel subscription of failed purchase",
                    purchase_id=str(purchase.id),
                    stripe_subscription_id=stripe_subscription_id,
                    error=e.details,
                )


def _invoice_subscription_id(invoice_data: dict) -> str | None:
    subscription = invoice_data.get("subscription")
    if not subscription:
        # Newer API versions nest it under the invoice parent
        parent = invoice_data.get("parent") or {}
        subscription = (parent.get("subscription_details") or {}).get("subscription")
    if isinstance(subscription, dict):
        return subscription.get("id")
    return subscription
