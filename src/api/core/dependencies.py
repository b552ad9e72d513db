from typing import Annotated, AsyncGenerator

from fastapi import Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.core.exceptions.base import ExplorNaturaException
from src.api.core.messages import MessageCode
from src.core.context import AuthenticatedAccountContext
from src.modules.accounts.service import AccountService
from src.modules.domains.purchase import DomainPurchaseCoordinator
from src.modules.domains.registry import DomainRegistry
from src.modules.keys.lifecycle import KeyLifecycleManager
from src.modules.keys.store import KeyStore


async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Get database session from app state."""
    session_factory = request.app.state.session_factory
    async with session_factory() as session:
        yield session


async def get_key_store(
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> KeyStore:
    return KeyStore(db)


async def get_domain_registry(
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> DomainRegistry:
    return DomainRegistry(db)


async def get_key_lifecycle_manager(
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> KeyLifecycleManager:
    return KeyLifecycleManager(db)


async def get_domain_purchase_coordinator(
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> DomainPurchaseCoordinator:
    return DomainPurchaseCoordinator(db)


async def get_current_account_authenticated(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> AuthenticatedAccountContext:
    """Load the account behind the bearer token into the request's session.

    The auth middleware has already validated the token and set
    ``request.state.account_id``.
    """
    account_id = getattr(request.state, "account_id", None)
    if not account_id:
        raise ExplorNaturaException(MessageCode.AUTH_REQUIRED, status.HTTP_401_UNAUTHORIZED)

    account = await AccountService(db).get_account(account_id)
    if not account:
        raise ExplorNaturaException(
            MessageCode.ACCOUNT_NOT_FOUND,
            status.HTTP_401_UNAUTHORIZED,
            {"description": "The account for this token no longer exists"},
        )

    return AuthenticatedAccountContext(account=account)


AsyncSessionDep = Annotated[AsyncSession, Depends(get_db_session)]
KeyStoreDep = Annotated[KeyStore, Depends(get_key_store)]
DomainRegistryDep = Annotated[DomainRegistry, Depends(get_domain_registry)]
KeyLifecycleManagerDep = Annotated[
    KeyLifecycleManager, Depends(get_key_lifecycle_manager)
]
DomainPurchaseCoordinatorDep = Annotated[
    DomainPurchaseCoordinator, Depends(get_domain_purchase_coordinator)
]

CurrentAccountAuthDep = Annotated[
    AuthenticatedAccountContext, Depends(get_current_account_authenticated)
]
