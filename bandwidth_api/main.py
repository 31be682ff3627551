from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from common.config import get_settings
from .endpoints import bandwidth_router, health_router
from .liveness import ensure_schema


def _configure_logging() -> None:
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    if settings.db_auto_create_schema:
        from common.db import get_engine
        ensure_schema(get_engine())
    yield


_configure_logging()

app = FastAPI(title="Site Bandwidth Ingest Service", version="0.1.0", lifespan=lifespan)

app.include_router(health_router)
app.include_router(bandwidth_router)
