"""RADAR Gateway — FastAPI application entry point.

Run locally:
    uvicorn src.main:app --reload --port 8090
"""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.auth.token_validator import ManagementPortalTokenValidator
from src.config import Settings, get_settings
from src.exceptions import (
    DirectoryIOError,
    HttpApplicationError,
    directory_io_error_handler,
    http_application_error_handler,
)
from src.garmin.user.firestore import FirestoreUserRepository, UserDirectory
from src.kafka.admin_service import KafkaAdminService, create_admin_client
from src.kafka.sender import KafkaRecordSender, create_producer
from src.middleware.mp_auth import ManagementPortalAuthMiddleware
from src.routers import garmin, health, topics

# ---------- Logging ----------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    stream=sys.stdout,
)
logger = logging.getLogger("gateway")


# ---------- Lifespan ----------

def _start_garmin(app: FastAPI, settings: Settings) -> None:
    directory = UserDirectory.from_settings(settings)
    directory.start()
    http_client = httpx.Client(timeout=settings.garmin_http_timeout_seconds)
    app.state.user_directory = directory
    app.state.garmin_http_client = http_client
    app.state.user_repository = FirestoreUserRepository(
        directory,
        http_client,
        settings.garmin_consumer_key,
        settings.garmin_consumer_secret,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup / shutdown hooks."""
    settings: Settings = app.state.settings
    logger.info(
        "Starting %s v%s [%s]",
        settings.app_name,
        settings.app_version,
        settings.environment,
    )
    app.state.kafka_admin_service = KafkaAdminService(create_admin_client(settings))
    app.state.record_sender = KafkaRecordSender(
        create_producer(settings), settings.kafka_flush_timeout_seconds
    )
    if settings.garmin_enabled:
        _start_garmin(app, settings)

    yield

    if getattr(app.state, "user_directory", None) is not None:
        app.state.user_directory.close()
        app.state.garmin_http_client.close()
        app.state.user_repository = None
        app.state.user_directory = None
    app.state.record_sender.close()
    app.state.kafka_admin_service.close()
    app.state.token_validator.close()
    logger.info("%s shut down", settings.app_name)


# ---------- App factory ----------

def create_app(
    settings: Settings | None = None,
    token_validator: ManagementPortalTokenValidator | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    logging.getLogger("gateway").setLevel(settings.log_level.upper())
    validator = token_validator or ManagementPortalTokenValidator.from_settings(settings)

    app = FastAPI(
        title=settings.app_name,
        description=(
            "Kafka topic metadata and Garmin Health API push integration "
            "for the RADAR platform."
        ),
        version=settings.app_version,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.token_validator = validator

    app.add_exception_handler(HttpApplicationError, http_application_error_handler)
    app.add_exception_handler(DirectoryIOError, directory_io_error_handler)

    # ---------- Middleware (last added is outermost) ----------

    # Management Portal JWT authentication
    app.add_middleware(ManagementPortalAuthMiddleware, validator=validator)

    # CORS: outermost, so preflight never reaches auth
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ---------- Routes ----------
    app.include_router(health.router)
    app.include_router(topics.router)
    app.include_router(garmin.router)

    return app


app = create_app()
