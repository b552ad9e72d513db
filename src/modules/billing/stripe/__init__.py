"""Stripe payment services."""

from .service import CheckoutSession, StripeGateway

__all__ = ["CheckoutSession", "StripeGateway"]
