from fastapi import APIRouter

from src.api.domains.router import router as domains_router
from src.api.health.router import router as health_router, root_router
from src.api.keys.router import router as keys_router
from src.api.stripe.router import router as stripe_router
from src.api.widget.router import router as widget_router

# Dashboard router, bearer token authenticated
dashboard_router = APIRouter(prefix="/api")
dashboard_router.include_router(domains_router)
dashboard_router.include_router(keys_router)

# Main API router
api_router = APIRouter()
api_router.include_router(root_router)
api_router.include_router(health_router)
api_router.include_router(stripe_router)
api_router.include_router(widget_router)
api_router.include_router(dashboard_router)
