"""Account model and plan tiers."""

import uuid
from datetime import datetime, timezone
from enum import Enum
from uuid import UUID

from sqlalchemy import DateTime, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base


class PlanTier(str, Enum):
    STARTER = "starter"
    BUSINESS = "business"
    ENTERPRISE = "enterprise"


class Account(Base):
    __tablename__ = "accounts"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    plan_tier: Mapped[PlanTier] = mapped_column(
        String, default=PlanTier.STARTER, nullable=False
    )
    stripe_customer_id: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    # Base domain is created with the account and never deleted
    domains = relationship(
        "Domain", back_populates="account", cascade="all, delete-orphan"
    )
    purchases = relationship(
        "DomainPurchase", back_populates="account", cascade="all, delete-orphan"
    )
