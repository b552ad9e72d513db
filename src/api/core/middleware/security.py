from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from src.api.core.constants import API_VERSION_HEADER, WIDGET_PATHS
from src.api.core.messages import MessageCode, get_default_message
from src.utils.logger import get_logger
from src.utils.settings.app import AppSettings

logger = get_logger(__name__)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    def __init__(self, app, is_production: bool = False):
        super().__init__(app)
        self.is_production = is_production
        self.app_settings = AppSettings()

    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)

        headers = {
            "X-Content-Type-Options": "nosniff",
            "Referrer-Policy": "strict-origin-when-cross-origin",
            "Permissions-Policy": "geolocation=(), microphone=(), camera=(), payment=()",
            API_VERSION_HEADER: self.app_settings.API_VERSION,
            "X-Permitted-Cross-Domain-Policies": "none",
        }

        if request.url.path in WIDGET_PATHS:
            # Widgets are framed by customer sites; only the authorized origin may embed
            widget = getattr(request.state, "widget", None)
            origin = request.headers.get("Origin")
            if widget and widget.origin_host and origin:
                headers["Content-Security-Policy"] = f"frame-ancestors {origin}"
        else:
            headers["X-Frame-Options"] = "DENY"
            if self.is_production:
                headers["Content-Security-Policy"] = self._get_csp()

        if self.is_production and request.url.scheme == "https":
            headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        # Never override CORS headers set by CORSMiddleware or the widget check
        for key, value in headers.items():
            if key not in response.headers and not key.startswith("Access-Control-"):
                response.headers[key] = value

        return response

    def _get_csp(self) -> str:
        """Generate Content Security Policy."""
        csp = {
            "default-src": ["'self'"],
            "script-src": ["'self'", "https://js.stripe.com"],
            "style-src": ["'self'", "'unsafe-inline'", "https://fonts.googleapis.com"],
            "font-src": ["'self'", "https://fonts.gstatic.com"],
            "img-src": ["'self'", "data:", "https:"],
            "connect-src": [
                "'self'",
                "https://api.stripe.com",
                "https://explornatura.com",
                "https://app.explornatura.com",
            ],
            "frame-src": ["https://js.stripe.com", "https://hooks.stripe.com"],
            "object-src": ["'none'"],
            "base-uri": ["'self'"],
            "form-action": ["'self'"],
            "frame-ancestors": ["'none'"],
        }

        return "; ".join(
            f"{directive} {' '.join(sources)}" for directive, sources in csp.items()
        )


class PayloadSizeMiddleware(BaseHTTPMiddleware):
    """Reject request bodies above the configured size."""

    def __init__(self, app, max_request_size: int | None = None):
        super().__init__(app)
        self.max_request_size = max_request_size or AppSettings().MAX_REQUEST_SIZE

    async def dispatch(self, request: Request, call_next) -> Response:
        content_length = request.headers.get("Content-Length")
        if content_length and content_length.isdigit() and int(content_length) > self.max_request_size:
            logger.warning(
                "Request too large",
                content_length=int(content_length),
                max_request_size=self.max_request_size,
            )
            return JSONResponse(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                content={
                    "message_code": MessageCode.BAD_REQUEST,
                    "message": get_default_message(MessageCode.BAD_REQUEST),
                    "details": {
                        "description": (
                            f"Request size ({content_length} bytes) exceeds maximum "
                            f"allowed ({self.max_request_size} bytes)"
                        )
                    },
                },
            )

        return await call_next(request)
