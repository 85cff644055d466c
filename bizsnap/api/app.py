"""FastAPI application for bizsnap."""

import dataclasses
import logging
import os
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from bizsnap import __version__
from bizsnap.backup import BackupService
from bizsnap.config import BizSnapConfig
from .config import settings
from .routers import backup

# App-managed logging: attach our own stdout handler and don't propagate,
# so INFO logs show up regardless of the server's root logger configuration
bizsnap_logger = logging.getLogger("bizsnap")
bizsnap_logger.setLevel(logging.INFO)
bizsnap_logger.propagate = False
bizsnap_logger.handlers.clear()

console_handler = logging.StreamHandler(sys.stdout)
console_handler.setLevel(logging.INFO)
formatter = logging.Formatter(
    '%(asctime)s - [%(name)s] - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
console_handler.setFormatter(formatter)
bizsnap_logger.addHandler(console_handler)

if os.getenv("DISABLE_APP_LOGGING", "false").lower() == "true":
    bizsnap_logger.handlers.clear()
    bizsnap_logger.propagate = True

logger = logging.getLogger(__name__)


def build_config() -> BizSnapConfig:
    """Environment config with the API settings layered on top."""
    config = BizSnapConfig.from_env()

    storage_overrides = {}
    if settings.storage_backend:
        storage_overrides["backend"] = settings.storage_backend
    if settings.storage_namespace:
        storage_overrides["namespace"] = settings.storage_namespace
    if settings.working_dir:
        storage_overrides["working_dir"] = settings.working_dir
    if settings.redis_url:
        storage_overrides["redis_url"] = settings.redis_url
        storage_overrides["redis_password"] = settings.redis_password

    backup_overrides = {}
    if settings.export_dir:
        backup_overrides["export_dir"] = settings.export_dir

    return dataclasses.replace(
        config,
        storage=dataclasses.replace(config.storage, **storage_overrides),
        backup=dataclasses.replace(config.backup, **backup_overrides),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage BackupService lifecycle."""
    logger.info("Initializing backup service...")

    try:
        app.state.backup_service = BackupService.from_config(build_config())
        await app.state.backup_service.start()
        logger.info("Backup service initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize backup service: {e}")
        raise

    yield

    logger.info("Shutting down backup service...")
    await app.state.backup_service.shutdown()


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        lifespan=lifespan,
        docs_url=f"{settings.api_prefix}/docs",
        openapi_url=f"{settings.api_prefix}/openapi.json",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(backup.router, prefix=settings.api_prefix)

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "name": settings.api_title,
            "version": settings.api_version,
            "package_version": __version__,
            "docs": f"{settings.api_prefix}/docs"
        }

    return app


# Create default app instance
app = create_app()
