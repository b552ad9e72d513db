"""Dashboard bearer tokens (HS256 JWT, ``sub`` = account id)."""

from datetime import datetime, timedelta, timezone
from uuid import UUID

from fastapi import status
from jose import JWTError, jwt

from src.api.core.constants import JWT_ALGORITHM
from src.api.core.exceptions.base import ExplorNaturaException
from src.api.core.messages import MessageCode
from src.utils.logger import get_logger
from src.utils.settings.auth import AuthSettings

logger = get_logger(__name__)


def create_dashboard_token(
    account_id: UUID, expires_in: timedelta | None = None
) -> str:
    """Sign a dashboard token the way the login service does."""
    settings = AuthSettings()
    now = datetime.now(timezone.utc)
    expires_in = expires_in or timedelta(minutes=settings.DASHBOARD_JWT_EXPIRES_MINUTES)
    claims = {
        "sub": str(account_id),
        "aud": settings.DASHBOARD_JWT_AUDIENCE,
        "iat": int(now.timestamp()),
        "exp": int((now + expires_in).timestamp()),
    }
    return jwt.encode(claims, settings.DASHBOARD_JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_dashboard_token(token: str) -> UUID:
    """Validate a dashboard token and return the account id it was issued for.

    Raises:
        ExplorNaturaException: 401 INVALID_TOKEN for bad signatures, expired
            tokens and tokens without a usable subject
    """
    settings = AuthSettings()
    try:
        payload = jwt.decode(
            token,
            settings.DASHBOARD_JWT_SECRET,
            algorithms=[JWT_ALGORITHM],
            audience=settings.DASHBOARD_JWT_AUDIENCE,
        )
        return UUID(payload["sub"])
    except (JWTError, KeyError, ValueError, TypeError) as e:
        logger.warning("Dashboard token rejected", error=str(e))
        raise ExplorNaturaException(
            MessageCode.INVALID_TOKEN,
            status.HTTP_401_UNAUTHORIZED,
            {"description": "Invalid or expired authentication token"},
        )
