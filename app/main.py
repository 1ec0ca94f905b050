from __future__ import annotations
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.api import router
from logging_config import configure_logging
from services.integration import build_default_integration
from services.poller import build_default_poller
from settings import get_settings


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    if not get_settings().sync_on_startup:
        yield
        return

    poller = build_default_poller()
    poller.start()
    try:
        yield
    finally:
        poller.stop(timeout=5.0)
        poller.service.close()
        build_default_poller.cache_clear()
        build_default_integration.cache_clear()


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Acoem Integration",
        description="Republishes Acoem air quality telemetry as NGSI-LD entities or LwM2M objects.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(router)
    return app

app = create_app()
