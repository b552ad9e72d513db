"""Account records as handed over by the signup flow."""

from uuid import UUID

from sqlalchemy import select

from src.api.core.exceptions.base import ConflictError
from src.api.core.messages import MessageCode
from src.core.base import BaseService
from src.database.models import Account, PlanTier
from src.modules.domains.registry import DomainRegistry


class AccountService(BaseService):
    async def get_account(self, account_id: UUID) -> Account | None:
        return await self.db.get(Account, account_id)

    async def register_account(
        self,
        email: str,
        base_domain: str,
        plan_tier: PlanTier = PlanTier.STARTER,
    ) -> Account:
        """Create an account together with its base domain, in one commit.

        Raises:
            ConflictError: the email or the base domain is already registered
        """
        email = email.strip().lower()
        existing = await self.db.execute(select(Account.id).where(Account.email == email))
        if existing.scalar_one_or_none():
            raise ConflictError(MessageCode.CONFLICT, {"email": email})

        try:
            account = Account(email=email, plan_tier=plan_tier.value)
            self.db.add(account)
            await self.db.flush()
            await DomainRegistry(self.db).create_base_domain(account.id, base_domain)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        self.logger.info(
            "Account registered", account_id=str(account.id), plan_tier=plan_tier.value
        )
        return account
