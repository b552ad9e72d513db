"""Keys API schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from src.api.core.messages import APIResponse
from src.utils.domains import normalize_host

class KeyModel(BaseModel):
    """An API key as listed in the dashboard. Only the masked form is exposed."""

    id: UUID
    domain_id: UUID
    domain_host: str
    masked_key: str
    description: str | None = None
    is_active: bool
    created_at: datetime
    revoked_at: datetime | None = None

    model_config = {"from_attributes": True}

class KeyWithSecret(KeyModel):
    # Returned once, on generate or regenerate
    key: str

class KeyListModel(BaseModel):
    keys: list[KeyModel]
    total: int

class CurrentKeyModel(BaseModel):
    domain_host: str
    current_key: KeyModel | None = None

class KeyVerifyModel(BaseModel):
    valid: bool
    id: UUID
    domain_host: str
    created_at: datetime

class KeyGenerateRequest(BaseModel):
    domain: str | None = Field(
        default=None, description="Host of one of your domains; the base domain if omitted"
    )
    description: str | None = Field(default=None, max_length=255)

    @field_validator("domain")
    @classmethod
    def validate_domain(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        return normalize_host(value)

KeyCreateResponse = APIResponse[KeyWithSecret]
KeyListResponse = APIResponse[KeyListModel]
KeyRevokeResponse = APIResponse[KeyModel]
CurrentKeyResponse = APIResponse[CurrentKeyModel]
KeyVerifyResponse = APIResponse[KeyVerifyModel]
