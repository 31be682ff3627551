from __future__ import annotations

from typing import Iterator, Optional
import logging

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker

from .config import Settings, get_settings


logger = logging.getLogger(__name__)

_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None


def build_engine(settings: Settings) -> Engine:
    url = make_url(settings.db_url)

    # Log básico de parámetros de conexión (sin contraseña)
    logger.info(
        "[DB] Create engine backend=%s host=%s db=%s user=%s",
        url.get_backend_name(),
        url.host,
        url.database,
        url.username,
    )

    engine = create_engine(
        url,
        pool_pre_ping=True,
        echo=settings.db_echo,
        future=True,
    )

    # Connection probe: makes it visible in logs whether the store is reachable
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        logger.info("[DB] Connection test OK")
    except Exception:
        logger.exception("[DB] Connection test FAILED")

    return engine


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        _engine = build_engine(get_settings())
    return _engine


def get_session_factory() -> sessionmaker:
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(
            bind=get_engine(), autocommit=False, autoflush=False, future=True
        )
    return _session_factory


def get_db() -> Iterator[Session]:
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.close()
