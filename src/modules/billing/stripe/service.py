"""Stripe gateway for extra-domain subscriptions."""

import json
from dataclasses import dataclass
from datetime import datetime, timezone

import stripe  # type: ignore
from fastapi import status
from stripe import StripeError  # type: ignore

from src.api.core.constants import (
    EXTRA_DOMAIN_BILLING_INTERVAL,
    EXTRA_DOMAIN_PURCHASE_TYPE,
)
from src.api.core.exceptions.base import ExplorNaturaException
from src.api.core.messages import MessageCode
from src.core.base import BaseService
from src.database.models import Account
from src.modules.plans.limits import coerce_plan_tier
from src.utils.settings.app import AppSettings
from src.utils.settings.stripe import StripeSettings


@dataclass(frozen=True)
class CheckoutSession:
    """The parts of a Stripe Checkout Session the purchase flow relies on."""

    id: str
    url: str | None
    payment_status: str
    subscription_id: str | None

    @property
    def is_paid(self) -> bool:
        return self.payment_status == "paid"


def _stripe_error(action: str, error: StripeError) -> ExplorNaturaException:
    return ExplorNaturaException(
        MessageCode.EXTERNAL_SERVICE_ERROR,
        status.HTTP_502_BAD_GATEWAY,
        {"description": f"Failed to {action}", "provider_error": str(error)},
    )


def _object_id(value) -> str | None:
    """Stripe returns either an id or an expanded object for references."""
    if value is None or isinstance(value, str):
        return value
    return value["id"]


class StripeGateway(BaseService):
    def __init__(self, db):
        super().__init__(db)
        self.settings = StripeSettings()
        stripe.api_key = self.settings.STRIPE_SECRET_KEY.get_secret_value()

    async def get_or_create_customer(self, account: Account) -> str:
        """Return the account's Stripe customer, creating it on first purchase."""
        if account.stripe_customer_id:
            return account.stripe_customer_id

        try:
            customer = stripe.Customer.create(
                email=account.email,
                metadata={"account_id": str(account.id)},
            )
        except StripeError as e:
            raise _stripe_error("create Stripe customer", e)

        account.stripe_customer_id = customer["id"]
        await self.db.flush()
        self.logger.info(
            "Created Stripe customer",
            account_id=str(account.id),
            stripe_customer_id=customer["id"],
        )
        return customer["id"]

    def create_domain_checkout_session(
        self,
        customer_id: str,
        account: Account,
        host: str,
        price_cents: int,
        success_url: str | None = None,
        cancel_url: str | None = None,
    ) -> CheckoutSession:
        """Open a monthly subscription checkout for one extra domain."""
        frontend_url = AppSettings().FRONTEND_URL.rstrip("/")
        plan_tier = coerce_plan_tier(account.plan_tier).value
        try:
            session = stripe.checkout.Session.create(
                customer=customer_id,
                payment_method_types=["card"],
                mode="subscription",
                line_items=[
                    {
                        "price_data": {
                            "currency": self.settings.STRIPE_CURRENCY,
                            "product_data": {
                                "name": f"Additional Domain - {host}",
                                "description": (
                                    "API access for additional domain "
                                    f"({plan_tier.capitalize()} Plan)"
                                ),
                                "metadata": {
                                    "type": EXTRA_DOMAIN_PURCHASE_TYPE,
                                    "domain": host,
                                },
                            },
                            "recurring": {"interval": EXTRA_DOMAIN_BILLING_INTERVAL},
                            "unit_amount": price_cents,
                        },
                        "quantity": 1,
                    }
                ],
                metadata={
                    "account_id": str(account.id),
                    "purchase_type": EXTRA_DOMAIN_PURCHASE_TYPE,
                    "domain": host,
                    "plan_tier": plan_tier,
                    "domain_price": str(price_cents),
                },
                subscription_data={
                    "metadata": {
                        "account_id": str(account.id),
                        "purchase_type": EXTRA_DOMAIN_PURCHASE_TYPE,
                        "domain": host,
                    }
                },
                success_url=success_url
                or (
                    f"{frontend_url}/dashboard/domains"
                    "?purchase=success&session_id={CHECKOUT_SESSION_ID}"
                ),
                cancel_url=cancel_url
                or f"{frontend_url}/dashboard/domains?purchase=canceled",
            )
        except StripeError as e:
            raise _stripe_error("create checkout session", e)

        return self._to_checkout_session(session)

    def retrieve_checkout_session(self, session_id: str) -> CheckoutSession:
        try:
            session = stripe.checkout.Session.retrieve(session_id)
        except StripeError as e:
            raise _stripe_error("retrieve checkout session", e)
        return self._to_checkout_session(session)

    def get_subscription_period_end(self, subscription_id: str) -> datetime | None:
        """Current period end of a subscription, or None if it cannot be read."""
        try:
            subscription = stripe.Subscription.retrieve(subscription_id)
        except StripeError as e:
            self.logger.warning(
                "Could not retrieve Stripe subscription",
                stripe_subscription_id=subscription_id,
                error=str(e),
            )
            return None

        period_end = None
        try:
            period_end = subscription["current_period_end"]
        except KeyError:
            # Newer API versions report the period on the subscription items
            try:
                period_end = subscription["items"]["data"][0]["current_period_end"]
            except (KeyError, IndexError, TypeError):
                pass

        if not period_end:
            return None
        return datetime.fromtimestamp(int(period_end), tz=timezone.utc)

    def cancel_subscription(self, subscription_id: str) -> None:
        try:
            stripe.Subscription.cancel(subscription_id)
        except StripeError as e:
            raise _stripe_error("cancel subscription", e)
        self.logger.info(
            "Cancelled Stripe subscription", stripe_subscription_id=subscription_id
        )

    def construct_event(self, payload: bytes, signature: str) -> dict:
        """Verify a webhook signature and decode the event.

        Raises:
            ExplorNaturaException: 400 if the signature or payload is invalid
        """
        try:
            stripe.WebhookSignature.verify_header(
                payload.decode("utf-8"),
                signature,
                self.settings.STRIPE_WEBHOOK_SECRET,
                self.settings.STRIPE_WEBHOOK_TOLERANCE_SECONDS,
            )
            return json.loads(payload)
        except (stripe.SignatureVerificationError, ValueError) as e:
            raise ExplorNaturaException(
                MessageCode.BAD_REQUEST,
                status.HTTP_400_BAD_REQUEST,
                {"description": "Invalid webhook data"},
                message=str(e),
            )

    @staticmethod
    def _to_checkout_session(session) -> CheckoutSession:
        return CheckoutSession(
            id=session["id"],
            url=session["url"],
            payment_status=session["payment_status"],
            subscription_id=_object_id(session["subscription"]),
        )
