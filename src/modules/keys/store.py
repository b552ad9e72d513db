"""Durable store of widget API keys."""

from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from src.api.core.constants import WIDGET_API_KEY_PREFIX
from src.api.core.exceptions.base import ConflictError
from src.api.core.messages import MessageCode
from src.core.base import BaseService
from src.database.models import Account, ApiKey, Domain
from src.utils.hashing import HashingService

# Prefix plus 64 hex characters
WIDGET_API_KEY_LENGTH = len(WIDGET_API_KEY_PREFIX) + 64


class KeyStore(BaseService):
    """Reads and writes API key rows. Callers own the transaction boundary."""

    async def find_active_key(self, domain_id: UUID) -> ApiKey | None:
        stmt = (
            select(ApiKey)
            .options(selectinload(ApiKey.domain))
            .where(ApiKey.domain_id == domain_id, ApiKey.is_active.is_(True))
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def find_account_by_key(
        self, plain_key: str
    ) -> tuple[ApiKey, Account] | None:
        """Resolve a presented secret to its active key and owning account.

        Returns None for malformed, unknown or revoked keys, and for keys whose
        domain is no longer active.
        """
        if (
            not plain_key
            or not plain_key.startswith(WIDGET_API_KEY_PREFIX)
            or len(plain_key) != WIDGET_API_KEY_LENGTH
        ):
            return None

        key_hash = HashingService.hash_api_key(plain_key)
        stmt = (
            select(ApiKey, Account)
            .join(Domain, ApiKey.domain_id == Domain.id)
            .join(Account, Domain.account_id == Account.id)
            .options(selectinload(ApiKey.domain))
            .where(
                ApiKey.key_hash == key_hash,
                ApiKey.is_active.is_(True),
                Domain.is_active.is_(True),
            )
        )
        result = await self.db.execute(stmt)
        row = result.first()
        if not row:
            return None

        api_key, account = row
        return api_key, account

    async def create(
        self, domain_id: UUID, description: str | None = None
    ) -> tuple[ApiKey, str]:
        """Insert a new active key for a domain.

        Raises:
            ConflictError: if the domain already has an active key
        """
        if await self.find_active_key(domain_id):
            raise ConflictError(
                MessageCode.API_KEY_ALREADY_ACTIVE,
                {"domain_id": str(domain_id)},
            )

        api_key, plain_key = ApiKey.create_key(domain_id, description)
        self.db.add(api_key)
        try:
            await self.db.flush()
        except IntegrityError:
            # A concurrent insert won the partial unique index
            await self.db.rollback()
            raise ConflictError(
                MessageCode.API_KEY_ALREADY_ACTIVE,
                {"domain_id": str(domain_id)},
            )

        self.logger.info(
            "API key created", api_key_id=str(api_key.id), domain_id=str(domain_id)
        )
        return api_key, plain_key

    async def revoke(self, api_key_id: UUID) -> bool:
        """Revoke a key. Revoking an already revoked key is a no-op.

        Returns:
            True if the key was active and is now revoked
        """
        stmt = (
            update(ApiKey)
            .where(ApiKey.id == api_key_id, ApiKey.is_active.is_(True))
            .values(is_active=False, revoked_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session="fetch")
        )
        result = await self.db.execute(stmt)
        revoked = result.rowcount > 0
        if revoked:
            self.logger.info("API key revoked", api_key_id=str(api_key_id))
        return revoked

    async def revoke_active_for_domain(self, domain_id: UUID) -> int:
        stmt = (
            update(ApiKey)
            .where(ApiKey.domain_id == domain_id, ApiKey.is_active.is_(True))
            .values(is_active=False, revoked_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session="fetch")
        )
        result = await self.db.execute(stmt)
        if result.rowcount:
            self.logger.info(
                "Revoked active keys for domain",
                domain_id=str(domain_id),
                count=result.rowcount,
            )
        return result.rowcount

    async def get_for_account(
        self, api_key_id: UUID, account_id: UUID
    ) -> ApiKey | None:
        stmt = (
            select(ApiKey)
            .join(Domain, ApiKey.domain_id == Domain.id)
            .options(selectinload(ApiKey.domain))
            .where(ApiKey.id == api_key_id, Domain.account_id == account_id)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def list_by_account(self, account_id: UUID) -> list[ApiKey]:
        """List every key (active and revoked) of an account, newest first."""
        stmt = (
            select(ApiKey)
            .join(Domain, ApiKey.domain_id == Domain.id)
            .options(selectinload(ApiKey.domain))
            .where(Domain.account_id == account_id)
            .order_by(ApiKey.created_at.desc(), ApiKey.id)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())
