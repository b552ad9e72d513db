from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Header, Query, status

from src.api.core.constants import API_KEY_HEADER
from src.api.core.dependencies import (
    CurrentAccountAuthDep,
    DomainRegistryDep,
    KeyLifecycleManagerDep,
    KeyStoreDep,
)
from src.api.core.exceptions.base import ExplorNaturaException
from src.api.core.messages import APIResponse, MessageCode
from src.api.keys.schemas import (
    CurrentKeyModel,
    CurrentKeyResponse,
    KeyCreateResponse,
    KeyGenerateRequest,
    KeyListModel,
    KeyListResponse,
    KeyModel,
    KeyRevokeResponse,
    KeyVerifyModel,
    KeyVerifyResponse,
    KeyWithSecret,
)

router = APIRouter(prefix="/keys", tags=["keys"])


@router.get("/my-keys", response_model=KeyListResponse)
async def list_my_keys(
    store: KeyStoreDep,
    current: CurrentAccountAuthDep,
) -> KeyListResponse:
    """List every key of the account, active and revoked, newest first."""
    keys = await store.list_by_account(current.account.id)
    key_list = [KeyModel.model_validate(key) for key in keys]
    return APIResponse.success(data=KeyListModel(keys=key_list, total=len(key_list)))


@router.get("/current", response_model=CurrentKeyResponse)
async def get_current_key(
    store: KeyStoreDep,
    registry: DomainRegistryDep,
    current: CurrentAccountAuthDep,
    domain: str | None = Query(
        default=None, description="Host of one of your domains; the base domain if omitted"
    ),
) -> CurrentKeyResponse:
    """The domain's active key, or no key if it has none."""
    if domain:
        target = await registry.get_account_domain(current.account.id, host=domain)
    else:
        target = await registry.get_base_domain(current.account.id)

    api_key = await store.find_active_key(target.id)
    return APIResponse.success(
        data=CurrentKeyModel(
            domain_host=target.host,
            current_key=KeyModel.model_validate(api_key) if api_key else None,
        )
    )


@router.get("/verify", response_model=KeyVerifyResponse)
async def verify_key(
    store: KeyStoreDep,
    api_key: Annotated[str | None, Header(alias=API_KEY_HEADER)] = None,
) -> KeyVerifyResponse:
    """Check a widget key presented in the X-API-Key header. No bearer token needed."""
    resolved = await store.find_account_by_key(api_key or "")
    if not resolved:
        raise ExplorNaturaException(
            MessageCode.INVALID_API_KEY, status.HTTP_401_UNAUTHORIZED
        )

    key, _ = resolved
    return APIResponse.success(
        data=KeyVerifyModel(
            valid=True, id=key.id, domain_host=key.domain_host, created_at=key.created_at
        )
    )


@router.post(
    "/generate",
    response_model=KeyCreateResponse,
    status_code=status.HTTP_201_CREATED,
)
async def generate_key(
    key_data: KeyGenerateRequest,
    lifecycle: KeyLifecycleManagerDep,
    current: CurrentAccountAuthDep,
) -> KeyCreateResponse:
    """Generate the first key of a domain. The secret is shown only once."""
    api_key, plain_key = await lifecycle.generate(
        current.account, domain=key_data.domain, description=key_data.description
    )
    key_with_secret = KeyWithSecret(
        **KeyModel.model_validate(api_key).model_dump(), key=plain_key
    )
    return APIResponse.success(
        message_code=MessageCode.API_KEY_CREATED, data=key_with_secret
    )


@router.post(
    "/regenerate",
    response_model=KeyCreateResponse,
    status_code=status.HTTP_201_CREATED,
)
async def regenerate_key(
    key_data: KeyGenerateRequest,
    lifecycle: KeyLifecycleManagerDep,
    current: CurrentAccountAuthDep,
) -> KeyCreateResponse:
    """Replace the domain's active key. The previous key stops working immediately."""
    api_key, plain_key = await lifecycle.regenerate(
        current.account, domain=key_data.domain, description=key_data.description
    )
    key_with_secret = KeyWithSecret(
        **KeyModel.model_validate(api_key).model_dump(), key=plain_key
    )
    return APIResponse.success(
        message_code=MessageCode.API_KEY_REGENERATED, data=key_with_secret
    )


@router.post("/revoke/{key_id}", response_model=KeyRevokeResponse)
async def revoke_key(
    key_id: UUID,
    lifecycle: KeyLifecycleManagerDep,
    current: CurrentAccountAuthDep,
) -> KeyRevokeResponse:
    api_key = await lifecycle.revoke(current.account, key_id)
    return APIResponse.success(
        message_code=MessageCode.API_KEY_REVOKED,
        data=KeyModel.model_validate(api_key),
    )
