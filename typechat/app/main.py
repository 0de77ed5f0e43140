from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncIterator

from fastapi import FastAPI

from typechat.app.calendar.actions import CalendarActions
from typechat.app.logging_config import configure_logging
from typechat.app.routes.health import router as health_router
from typechat.app.routes.translations import router as translations_router
from typechat.app.settings import build_settings
from typechat.app.translation.service import TranslationService
from typechat.app.translation.transport.base import CompletionTransport


def _project_root() -> Path:
    return Path(__file__).resolve().parents[2]


def _service_logger() -> logging.Logger:
    return logging.getLogger("typechat.service")


def create_app(transport_override: CompletionTransport | None = None) -> FastAPI:
    settings = build_settings(_project_root())
    configure_logging(settings.log_level)
    logger = _service_logger()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        app.state.settings = settings
        app.state.started_at = datetime.now(timezone.utc)
        app.state.translation_service = TranslationService(
            settings=settings,
            target=CalendarActions,
            logger=logger,
            transport_override=transport_override,
        )

        logger.info(
            "service_startup",
            extra={
                "event": "startup",
                "service_name": settings.service_name,
                "service_version": settings.service_version,
            },
        )
        logger.info(
            "service_config_loaded",
            extra={
                "event": "config_loaded",
                "service_name": settings.service_name,
                "service_version": settings.service_version,
                "config": settings.redacted(),
            },
        )
        yield
        await app.state.translation_service.aclose()
        logger.info(
            "service_shutdown",
            extra={
                "event": "shutdown",
                "service_name": settings.service_name,
                "service_version": settings.service_version,
            },
        )

    app = FastAPI(
        title=settings.service_name,
        version=settings.service_version,
        lifespan=lifespan,
    )

    @app.get("/")
    def root() -> dict[str, str]:
        return {"message": "TypeChat translation service is running."}

    app.include_router(health_router)
    app.include_router(translations_router)
    return app


app = create_app()
