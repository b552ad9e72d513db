from fastapi import Request, status
from fastapi.responses import JSONResponse

from src.api.core.constants import API_KEY_AUTH_PATHS, DASHBOARD_PATH_PREFIX
from src.api.core.exceptions.base import ExplorNaturaException
from src.api.core.messages import MessageCode
from src.modules.accounts.tokens import decode_dashboard_token
from src.utils.logger import get_logger

logger = get_logger(__name__)


def _error_response(exc: ExplorNaturaException) -> JSONResponse:
    # Exceptions raised from middleware bypass the registered handlers
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_response_dict(),
        headers={"WWW-Authenticate": "Bearer"},
    )


async def auth_middleware(request: Request, call_next):
    """Validate the dashboard bearer token on ``/api/`` routes.

    Sets ``request.state.account_id``; the account itself is loaded by the
    ``CurrentAccountAuthDep`` dependency in the request's own session.
    """
    request.state.account_id = None

    path = request.url.path
    if (
        request.method == "OPTIONS"
        or not path.startswith(DASHBOARD_PATH_PREFIX)
        or path in API_KEY_AUTH_PATHS
    ):
        return await call_next(request)

    authorization = request.headers.get("Authorization", "")
    if not authorization:
        logger.debug("No authentication provided - rejecting request")
        return _error_response(
            ExplorNaturaException(
                MessageCode.AUTH_REQUIRED,
                status.HTTP_401_UNAUTHORIZED,
                {"description": "Provide a 'Bearer' token in the Authorization header"},
            )
        )

    auth_parts = authorization.split(" ")
    if len(auth_parts) != 2 or auth_parts[0].lower() != "bearer":
        return _error_response(
            ExplorNaturaException(
                MessageCode.INVALID_TOKEN,
                status.HTTP_401_UNAUTHORIZED,
                {"description": "Invalid authorization header format"},
            )
        )

    try:
        request.state.account_id = decode_dashboard_token(auth_parts[1])
    except ExplorNaturaException as e:
        return _error_response(e)

    return await call_next(request)
