import logging
from typing import Optional

import structlog
from fastapi import FastAPI

from accesslog.config import LoggerConfig, Settings, settings as default_settings
from accesslog.middleware.asgi import RequestLogMiddleware


def configure_logging(settings: Settings) -> None:
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    renderer = structlog.processors.JSONRenderer() if settings.log_json else structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or default_settings

    app = FastAPI(title=settings.service_name)

    access_log = structlog.get_logger("access")
    app.add_middleware(RequestLogMiddleware, config=LoggerConfig.from_settings(access_log, settings))

    @app.get("/health")
    async def health():
        return {"status": "healthy"}

    return app


configure_logging(default_settings)

app = create_app()
