from fastapi import Request, Response, status
from fastapi.responses import JSONResponse

from src.api.core.constants import (
    API_KEY_HEADER,
    API_KEY_QUERY_PARAM,
    WIDGET_DENIED_CODE,
    WIDGET_DENIED_ERROR,
    WIDGET_DENIED_MESSAGE,
    WIDGET_PATHS,
    WIDGET_PREFLIGHT_MAX_AGE,
)
from src.modules.authorization.decision import (
    Allowed,
    DenialReason,
    Denied,
    authorize_widget_request,
)
from src.utils.domains import extract_origin_host
from src.utils.logger import get_logger
from src.utils.settings.app import AppSettings

logger = get_logger(__name__)


def _denied_response() -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_403_FORBIDDEN,
        content={
            "error": WIDGET_DENIED_ERROR,
            "message": WIDGET_DENIED_MESSAGE,
            "code": WIDGET_DENIED_CODE,
        },
        headers={"Vary": "Origin"},
    )


def _apply_cors_headers(response: Response, origin: str | None) -> None:
    response.headers["Vary"] = "Origin"
    if origin:
        response.headers["Access-Control-Allow-Origin"] = origin


async def widget_auth_middleware(request: Request, call_next):
    """Authorize widget page loads by API key and requesting origin.

    Every denial gets the same 403 body; the reason is only logged. Preflight
    requests are answered here, echoing the matched origin.
    """
    if request.url.path not in WIDGET_PATHS:
        return await call_next(request)

    api_key = request.query_params.get(API_KEY_QUERY_PARAM) or request.headers.get(
        API_KEY_HEADER
    )
    origin = request.headers.get("Origin")

    try:
        async with request.app.state.session_factory() as db:
            decision = await authorize_widget_request(
                db,
                api_key=api_key,
                origin=origin,
                referer=request.headers.get("Referer"),
                is_development=AppSettings().is_development,
            )
    except Exception as e:
        # Fail closed when the store cannot even be reached
        logger.error(
            "Widget authorization unavailable", exception_type=type(e).__name__
        )
        decision = Denied(DenialReason.STORE_UNAVAILABLE)

    if not isinstance(decision, Allowed):
        logger.warning(
            "Widget request denied",
            reason=decision.reason.value,
            origin_host=decision.origin_host,
        )
        return _denied_response()

    authorization = decision.authorization
    request.state.widget = authorization
    logger.debug(
        "Widget request authorized",
        account_id=str(authorization.account.id),
        api_key_id=str(authorization.api_key.id),
        matched_host=authorization.matched_host,
    )

    # Only echo an Origin that was actually matched against a registered host
    allowed_origin = (
        origin
        if authorization.origin_host and extract_origin_host(origin, None)
        else None
    )

    if request.method == "OPTIONS":
        response = Response(status_code=status.HTTP_204_NO_CONTENT)
        _apply_cors_headers(response, allowed_origin)
        response.headers["Access-Control-Allow-Methods"] = "GET, OPTIONS"
        response.headers["Access-Control-Allow-Headers"] = API_KEY_HEADER
        response.headers["Access-Control-Max-Age"] = str(WIDGET_PREFLIGHT_MAX_AGE)
        return response

    response = await call_next(request)
    _apply_cors_headers(response, allowed_origin)
    return response
