API_VERSION_HEADER = "X-ExplorNatura-Version"

# Widget API key configuration
WIDGET_API_KEY_PREFIX = "enk_"
API_KEY_HEADER = "X-API-Key"
API_KEY_QUERY_PARAM = "apikey"
API_KEY_VISIBLE_PREFIX = 8
API_KEY_VISIBLE_SUFFIX = 4
API_KEY_MASK_CHAR = "•"

# JWT Configuration
JWT_ALGORITHM = "HS256"

# Widget endpoints guarded by the key + origin check
WIDGET_PATHS = {
    "/widget.html": "widget.html",
    "/widget-country.html": "widget-country.html",
    "/widget-eachPlace.html": "widget-eachPlace.html",
}
WIDGET_DEFAULT_DISPLAY_NAME = "ExplorNatura"
WIDGET_CACHE_CONTROL = "private, max-age=300"
WIDGET_PREFLIGHT_MAX_AGE = 600

# Single body for every widget denial so callers cannot tell which check failed
WIDGET_DENIED_CODE = "CORS_BLOCKED"
WIDGET_DENIED_ERROR = "Forbidden"
WIDGET_DENIED_MESSAGE = "This widget is not authorized for the requesting site"

# Dashboard endpoints authenticated with a bearer token
DASHBOARD_PATH_PREFIX = "/api/"
# Dashboard-prefixed endpoints authenticated by widget key instead of a bearer token
API_KEY_AUTH_PATHS = {"/api/keys/verify"}


# Extra domain billing
EXTRA_DOMAIN_PURCHASE_TYPE = "additional_domain"
EXTRA_DOMAIN_BILLING_INTERVAL = "month"
EXTRA_DOMAIN_FALLBACK_BILLING_DAYS = 30
