import uvicorn
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api.core.exceptions.base import register_exception_handlers
from src.api.core.middleware.auth import auth_middleware
from src.api.core.middleware.logging import logging_middleware
from src.api.core.middleware.security import (
    PayloadSizeMiddleware,
    SecurityHeadersMiddleware,
)
from src.api.core.middleware.widget import widget_auth_middleware
from src.api.router import api_router
from src.database.connection import AsyncSessionLocal
from src.utils.logger import setup_logging
from src.utils.settings.app import AppSettings

app_settings = AppSettings()
app_settings.validate_prod()
is_production = app_settings.is_production


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger = setup_logging(is_production)
    logger.info("Starting ExplorNatura API...")

    # Tests install their own factory before startup
    if not hasattr(app.state, "session_factory"):
        app.state.session_factory = AsyncSessionLocal
    logger.info("Database session factory added to app state")

    yield

    logger.info("Shutting down ExplorNatura API...")


app = FastAPI(
    title="ExplorNatura API",
    description="API key and domain authorization for the ExplorNatura widget",
    version=app_settings.API_VERSION,
    lifespan=lifespan,
    docs_url=None if is_production else "/docs",
    redoc_url=None if is_production else "/redoc",
    openapi_url=None if is_production else "/openapi.json",
)

register_exception_handlers(app)

# Dashboard CORS; widget paths answer their own preflights in widget_auth_middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=app_settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["*"],
)

app.add_middleware(SecurityHeadersMiddleware, is_production=is_production)
app.add_middleware(
    PayloadSizeMiddleware, max_request_size=app_settings.MAX_REQUEST_SIZE
)
app.middleware("http")(auth_middleware)
# Added after CORS so it runs first and owns widget preflights
app.middleware("http")(widget_auth_middleware)
app.middleware("http")(logging_middleware)

app.include_router(api_router)


def run_dev_server():
    """Run development server with auto-reload."""
    uvicorn.run(
        "src.main:app", host="0.0.0.0", port=8010, reload=True, access_log=False
    )


def run_prod_server():
    """Run production server."""
    uvicorn.run(
        "src.main:app", host="0.0.0.0", port=8010, reload=False, access_log=False
    )
