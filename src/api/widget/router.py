"""Widget pages served to customer sites.

Authorization happens in ``widget_auth_middleware`` before these handlers
run; a request that reaches them without a widget authorization is refused.
"""

from fastapi import APIRouter, Query, Request, status
from fastapi.responses import HTMLResponse, JSONResponse

from src.api.core.constants import (
    API_KEY_HEADER,
    API_KEY_QUERY_PARAM,
    WIDGET_CACHE_CONTROL,
    WIDGET_DEFAULT_DISPLAY_NAME,
    WIDGET_DENIED_CODE,
    WIDGET_DENIED_ERROR,
    WIDGET_DENIED_MESSAGE,
    WIDGET_PATHS,
)
from src.widget.render import WidgetRenderConfig, render_widget

router = APIRouter(tags=["widget"])


def _render(request: Request, display_name: str | None, place: str | None = None):
    if getattr(request.state, "widget", None) is None:
        return JSONResponse(
            status_code=status.HTTP_403_FORBIDDEN,
            content={
                "error": WIDGET_DENIED_ERROR,
                "message": WIDGET_DENIED_MESSAGE,
                "code": WIDGET_DENIED_CODE,
            },
        )

    config = WidgetRenderConfig(
        api_key=request.query_params.get(API_KEY_QUERY_PARAM)
        or request.headers.get(API_KEY_HEADER, ""),
        display_name=display_name or WIDGET_DEFAULT_DISPLAY_NAME,
        place=place,
    )
    html = render_widget(WIDGET_PATHS[request.url.path], config)
    return HTMLResponse(content=html, headers={"Cache-Control": WIDGET_CACHE_CONTROL})


@router.get("/widget.html", response_class=HTMLResponse)
async def widget_page(
    request: Request,
    name: str | None = Query(default=None, max_length=100),
):
    return _render(request, name)


@router.get("/widget-country.html", response_class=HTMLResponse)
async def widget_country_page(
    request: Request,
    name: str | None = Query(default=None, max_length=100),
):
    return _render(request, name)


@router.get("/widget-eachPlace.html", response_class=HTMLResponse)
async def widget_place_page(
    request: Request,
    name: str | None = Query(default=None, max_length=100),
    place: str | None = Query(default=None, max_length=200),
):
    """Single place view, opened from a slide of the main widget."""
    return _render(request, name, place)
