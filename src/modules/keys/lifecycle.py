"""Generate, regenerate and revoke widget API keys.

Every operation runs as one transaction: it takes the domain row lock first,
re-checks state under the lock, and commits or rolls back as a unit.
"""

from uuid import UUID

from src.api.core.exceptions.base import (
    ConflictError,
    LimitExceededError,
    NotFoundError,
)
from src.api.core.messages import MessageCode
from src.core.base import BaseService
from src.database.models import Account, ApiKey, Domain
from src.modules.domains.registry import DomainRegistry
from src.modules.keys.store import KeyStore
from src.modules.plans.limits import get_plan_config


class KeyLifecycleManager(BaseService):
    def __init__(self, db):
        super().__init__(db)
        self.store = KeyStore(db)
        self.registry = DomainRegistry(db)

    async def generate(
        self,
        account: Account,
        domain: str | None = None,
        description: str | None = None,
    ) -> tuple[ApiKey, str]:
        """Create the first active key of a domain.

        Args:
            account: Calling account
            domain: Host of one of the account's domains; the base domain if omitted
            description: Optional label shown in the dashboard

        Returns:
            The stored key and its plain secret. The secret is never retrievable again.

        Raises:
            NotFoundError: the domain is not owned by the account
            ConflictError: the domain is cancelled or already holds an active key
            LimitExceededError: extra domain on a tier without extra domains
        """
        try:
            target = await self._lock_usable_domain(account, domain)
            api_key, plain_key = await self.store.create(target.id, description)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        await self.db.refresh(api_key, attribute_names=["domain"])
        self.logger.info(
            "API key generated",
            account_id=str(account.id),
            domain_id=str(target.id),
            api_key_id=str(api_key.id),
        )
        return api_key, plain_key

    async def regenerate(
        self,
        account: Account,
        domain: str | None = None,
        description: str | None = None,
    ) -> tuple[ApiKey, str]:
        """Atomically revoke the domain's active key (if any) and issue a new one."""
        try:
            target = await self._lock_usable_domain(account, domain)
            previous = await self.store.find_active_key(target.id)
            if previous:
                await self.store.revoke(previous.id)
                # The revoke must reach the partial unique index before the insert
                await self.db.flush()
                if description is None:
                    description = previous.description
            api_key, plain_key = await self.store.create(target.id, description)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        await self.db.refresh(api_key, attribute_names=["domain"])
        self.logger.info(
            "API key regenerated",
            account_id=str(account.id),
            domain_id=str(target.id),
            api_key_id=str(api_key.id),
            previous_api_key_id=str(previous.id) if previous else None,
        )
        return api_key, plain_key

    async def revoke(self, account: Account, api_key_id: UUID) -> ApiKey:
        """Revoke one of the account's keys. Revoking a revoked key is a no-op."""
        try:
            api_key = await self.store.get_for_account(api_key_id, account.id)
            if not api_key:
                raise NotFoundError(
                    MessageCode.API_KEY_NOT_FOUND,
                    {"description": f"API key {api_key_id} not found or access denied"},
                )
            await self.registry.lock_domain(api_key.domain_id)
            await self.store.revoke(api_key.id)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        await self.db.refresh(api_key, attribute_names=["is_active", "revoked_at"])
        return api_key

    async def _lock_usable_domain(
        self, account: Account, domain: str | None
    ) -> Domain:
        if domain:
            target = await self.registry.get_account_domain(
                account.id, host=domain, for_update=True
            )
        else:
            base = await self.registry.get_base_domain(account.id)
            target = await self.registry.lock_domain(base.id)

        if not target.is_active:
            raise ConflictError(MessageCode.DOMAIN_INACTIVE, {"domain": target.host})

        if not target.is_base and not get_plan_config(account.plan_tier).allows_extra_domains:
            raise LimitExceededError(
                MessageCode.EXTRA_DOMAINS_NOT_AVAILABLE,
                {"domain": target.host, "plan_tier": account.plan_tier},
            )
        return target
