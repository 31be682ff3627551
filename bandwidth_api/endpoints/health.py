"""Health and readiness endpoints."""

import logging

from fastapi import APIRouter, HTTPException
from sqlalchemy import text

router = APIRouter(tags=["health"])


@router.get("/health")
def health():
    """Liveness probe: always returns ok if process is running."""
    return {"status": "ok"}


@router.get("/ready")
def ready():
    """Readiness probe: checks that the site store is reachable."""
    try:
        from common.db import get_engine
        with get_engine().connect() as conn:
            conn.execute(text("SELECT 1"))
        return {"status": "ready"}
    except Exception:
        # No exponer detalles del error al cliente
        logging.getLogger(__name__).exception("Readiness check failed")
        raise HTTPException(status_code=503, detail="not ready")
