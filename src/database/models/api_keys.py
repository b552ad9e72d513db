"""API Key model."""

import uuid
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Index, String, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.utils.hashing import HashingService
from .base import Base


class ApiKey(Base):
    __tablename__ = "api_keys"
    __table_args__ = (
        # At most one active key per domain; revoked keys are kept as history
        Index(
            "uq_api_keys_active_domain",
            "domain_id",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active = 1"),
        ),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    domain_id: Mapped[UUID] = mapped_column(
        ForeignKey("domains.id", ondelete="CASCADE"), nullable=False, index=True
    )
    key_hash: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    masked_key: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    revoked_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    domain = relationship("Domain", back_populates="api_keys")

    @property
    def domain_host(self) -> str:
        return self.domain.host

    @classmethod
    def create_key(
        cls, domain_id: UUID, description: str | None = None
    ) -> tuple["ApiKey", str]:
        """Create a new API key and return the model instance and plain key."""
        plain_key = HashingService.generate_api_key()

        api_key = cls(
            domain_id=domain_id,
            key_hash=HashingService.hash_api_key(plain_key),
            masked_key=HashingService.mask_api_key(plain_key),
            description=description,
            is_active=True,
        )

        return api_key, plain_key
