"""Widget request authorization: API key plus requesting origin.

``authorize_widget_request`` is the whole decision. It never raises for an
unauthorized request; it returns ``Allowed`` or ``Denied`` and leaves the HTTP
shape of a denial to the caller. Any store failure is a denial.
"""

from dataclasses import dataclass
from enum import Enum

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.models import Account, ApiKey, Domain
from src.modules.domains.registry import DomainRegistry
from src.modules.keys.store import KeyStore
from src.modules.plans.limits import get_plan_config
from src.utils.domains import extract_origin_host, match_registered_host
from src.utils.logger import get_logger

logger = get_logger(__name__)


class DenialReason(str, Enum):
    INVALID_KEY = "InvalidKey"
    MISSING_ORIGIN = "MissingOrigin"
    DOMAIN_NOT_AUTHORIZED = "DomainNotAuthorized"
    STORE_UNAVAILABLE = "StoreUnavailable"


@dataclass(frozen=True)
class WidgetAuthorization:
    """What an authorized widget request resolved to."""

    account: Account
    api_key: ApiKey
    domain: Domain
    origin_host: str | None
    matched_host: str | None


@dataclass(frozen=True)
class Allowed:
    authorization: WidgetAuthorization


@dataclass(frozen=True)
class Denied:
    reason: DenialReason
    origin_host: str | None = None


AuthorizationResult = Allowed | Denied


async def authorize_widget_request(
    db: AsyncSession,
    api_key: str | None,
    origin: str | None,
    referer: str | None,
    is_development: bool,
) -> AuthorizationResult:
    """Decide whether a widget may be served for this key and origin.

    Args:
        db: Session used for the two reads on this path
        api_key: Secret presented by the embedding page
        origin: ``Origin`` header value
        referer: ``Referer`` header value, used when ``Origin`` is absent
        is_development: Allow requests that carry no origin at all

    Returns:
        Allowed with the resolved account, key and domain, or Denied with a reason
    """
    try:
        resolved = await KeyStore(db).find_account_by_key(api_key or "")
        if not resolved:
            return Denied(DenialReason.INVALID_KEY)
        key, account = resolved

        origin_host = extract_origin_host(origin, referer)
        if origin_host is None:
            if not is_development:
                return Denied(DenialReason.MISSING_ORIGIN)
            return Allowed(
                WidgetAuthorization(
                    account=account,
                    api_key=key,
                    domain=key.domain,
                    origin_host=None,
                    matched_host=None,
                )
            )

        registered_hosts = await DomainRegistry(db).list_authorized_hosts(account.id)
    except SQLAlchemyError as e:
        logger.error(
            "Widget authorization store failure",
            exception_type=type(e).__name__,
        )
        return Denied(DenialReason.STORE_UNAVAILABLE)

    allow_subdomains = get_plan_config(account.plan_tier).allows_subdomains
    matched_host = match_registered_host(origin_host, registered_hosts, allow_subdomains)
    if matched_host is None:
        return Denied(DenialReason.DOMAIN_NOT_AUTHORIZED, origin_host=origin_host)

    return Allowed(
        WidgetAuthorization(
            account=account,
            api_key=key,
            domain=key.domain,
            origin_host=origin_host,
            matched_host=matched_host,
        )
    )
