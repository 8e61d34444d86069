"""
API Application Entry Point

Builds the FastAPI application for the analysis service.

Design Considerations:
- Logging is configured once here; modules only create named loggers
- Missing tables are created when the application starts
- Interactive docs are served outside production only
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.config import APISettings, EnvironmentType, get_settings
from api.routes import accounts, emails
from api.utils.error_handlers import add_exception_handlers
from ideabox.storage.database import init_db

logger = logging.getLogger("api")


def configure_logging() -> None:
    level_name = os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Analysis API starting up")
    init_db()
    yield
    logger.info("Analysis API shutting down")


def create_application(settings: Optional[APISettings] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Settings to build with; loaded from the environment when None

    Returns:
        Application with CORS, exception handlers and all routers installed
    """
    settings = settings or get_settings()
    show_docs = settings.ENVIRONMENT != EnvironmentType.PRODUCTION

    app = FastAPI(
        title=settings.API_TITLE,
        description=settings.API_DESCRIPTION,
        version=settings.API_VERSION,
        docs_url="/docs" if show_docs else None,
        redoc_url="/redoc" if show_docs else None,
        debug=settings.DEBUG,
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=settings.cors_methods,
        allow_headers=["*"],
    )
    add_exception_handlers(app)

    for module in (emails, accounts):
        app.include_router(module.router)

    @app.get("/health", tags=["Monitoring"])
    async def health_check():
        return {"status": "healthy", "version": settings.API_VERSION}

    logger.info(f"Application initialized in {settings.ENVIRONMENT.value} environment")
    return app


configure_logging()
app = create_application()
