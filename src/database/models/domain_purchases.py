"""Ledger of extra-domain checkouts awaiting or past payment verification."""

import uuid
from datetime import datetime, timezone
from enum import Enum
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base


class PurchaseStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class DomainPurchase(Base):
    __tablename__ = "domain_purchases"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    account_id: Mapped[UUID] = mapped_column(
        ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    host: Mapped[str] = mapped_column(String(253), nullable=False)
    stripe_session_id: Mapped[str] = mapped_column(
        String, unique=True, nullable=False
    )
    status: Mapped[PurchaseStatus] = mapped_column(
        String, default=PurchaseStatus.PENDING, nullable=False
    )
    price_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    domain_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("domains.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    account = relationship("Account", back_populates="purchases")
    domain = relationship("Domain")
