"""Database models for the ExplorNatura API."""

from .accounts import Account, PlanTier
from .api_keys import ApiKey
from .base import Base
from .domain_purchases import DomainPurchase, PurchaseStatus
from .domains import Domain, DomainKind

__all__ = [
    # Base
    "Base",
    # Enums
    "PlanTier",
    "DomainKind",
    "PurchaseStatus",
    # Models
    "Account",
    "Domain",
    "ApiKey",
    "DomainPurchase",
]
