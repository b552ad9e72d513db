"""Health check endpoints."""

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from src.api.core.dependencies import AsyncSessionDep
from src.utils.logger import get_logger
from src.utils.settings.app import AppSettings

logger = get_logger(__name__)

root_router = APIRouter()
router = APIRouter(prefix="/health", tags=["health"])


@root_router.get("/")
async def root():
    return {"service": "explornatura-api", "version": AppSettings().API_VERSION}


@router.get("")
async def health_check(db: AsyncSessionDep):
    """Readiness: the service is up and the database answers."""
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error("Database health check failed", exception_type=type(e).__name__)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unhealthy", "database": "unavailable"},
        )
    return {"status": "healthy", "database": "ok"}


@router.get("/liveness")
async def liveness_check():
    """Simple liveness check - indicates if service is running."""
    return {"status": "alive", "service": "explornatura-api"}
