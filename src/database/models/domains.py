"""Domain model: an account's base domain and purchased extra domains."""

import uuid
from datetime import datetime, timezone
from enum import Enum
from uuid import UUID

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base


class DomainKind(str, Enum):
    BASE = "base"
    EXTRA = "extra"


class Domain(Base):
    __tablename__ = "domains"
    __table_args__ = (
        # One base domain per account
        Index(
            "uq_domains_base_per_account",
            "account_id",
            unique=True,
            postgresql_where=text("kind = 'base'"),
            sqlite_where=text("kind = 'base'"),
        ),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    account_id: Mapped[UUID] = mapped_column(
        ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # Hosts stay reserved after cancellation, across every account
    host: Mapped[str] = mapped_column(String(253), unique=True, nullable=False)
    kind: Mapped[DomainKind] = mapped_column(String, nullable=False)
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)

    monthly_price_cents: Mapped[int | None] = mapped_column(Integer, nullable=True)
    next_billing_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    stripe_subscription_id: Mapped[str | None] = mapped_column(
        String, unique=True, nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
    cancelled_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    account = relationship("Account", back_populates="domains")
    api_keys = relationship(
        "ApiKey", back_populates="domain", cascade="all, delete-orphan"
    )

    @property
    def is_base(self) -> bool:
        return self.kind == DomainKind.BASE
