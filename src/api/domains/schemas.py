"""Domains API schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from src.api.core.messages import APIResponse
from src.database.models import DomainKind, DomainPurchase, PlanTier, PurchaseStatus
from src.utils.domains import normalize_host


class DomainModel(BaseModel):
    id: UUID
    host: str
    kind: DomainKind
    is_active: bool
    monthly_price_cents: int | None = None
    next_billing_date: datetime | None = None
    created_at: datetime
    cancelled_at: datetime | None = None

    model_config = {"from_attributes": True}


class PlanLimitsModel(BaseModel):
    plan_tier: PlanTier
    domains_allowed: int
    domains_extra: int
    domains_used: int
    max_extra_domains: int
    max_domains: int
    keys_allowed: int
    can_add_domain: bool
    allows_subdomains: bool
    price_per_extra_domain_cents: int | None = None

    model_config = {"from_attributes": True}


class DomainListModel(BaseModel):
    base_domain: DomainModel
    extra_domains: list[DomainModel]
    limits: PlanLimitsModel


class ExtraDomainListModel(BaseModel):
    domains: list[DomainModel]
    total: int


class DomainPurchaseRequest(BaseModel):
    domain: str = Field(..., min_length=1, max_length=253)

    @field_validator("domain")
    @classmethod
    def validate_domain(cls, value: str) -> str:
        return normalize_host(value)


class CheckoutModel(BaseModel):
    checkout_url: str | None
    session_id: str
    domain: str
    price_cents: int


class PurchaseModel(BaseModel):
    session_id: str
    domain: str
    status: PurchaseStatus
    price_cents: int
    completed_at: datetime | None = None
    added_domain: DomainModel | None = None

    @classmethod
    def from_purchase(cls, purchase: DomainPurchase) -> "PurchaseModel":
        return cls(
            session_id=purchase.stripe_session_id,
            domain=purchase.host,
            status=purchase.status,
            price_cents=purchase.price_cents,
            completed_at=purchase.completed_at,
            added_domain=(
                DomainModel.model_validate(purchase.domain) if purchase.domain else None
            ),
        )


DomainListResponse = APIResponse[DomainListModel]
ExtraDomainListResponse = APIResponse[ExtraDomainListModel]
PlanLimitsResponse = APIResponse[PlanLimitsModel]
CheckoutResponse = APIResponse[CheckoutModel]
PurchaseResponse = APIResponse[PurchaseModel]
DomainResponse = APIResponse[DomainModel]
