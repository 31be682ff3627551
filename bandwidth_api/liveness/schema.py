"""Esquema de la tabla sites y de autorización de exit nodes.

Los sitios se registran fuera de este servicio; aquí solo se garantiza que
las tablas existan. Seguro de llamar varias veces.
"""

from __future__ import annotations

import logging

from sqlalchemy import text
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)


_DDL = (
    """
    CREATE TABLE IF NOT EXISTS sites (
        site_id INTEGER PRIMARY KEY,
        org_id VARCHAR(64) NOT NULL,
        pub_key VARCHAR(128) UNIQUE,
        name VARCHAR(255),
        type VARCHAR(32),
        online BOOLEAN NOT NULL DEFAULT FALSE,
        last_bandwidth_update VARCHAR(64),
        megabytes_in BIGINT NOT NULL DEFAULT 0,
        megabytes_out BIGINT NOT NULL DEFAULT 0
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS exit_node_orgs (
        exit_node_id INTEGER NOT NULL,
        org_id VARCHAR(64) NOT NULL,
        PRIMARY KEY (exit_node_id, org_id)
    )
    """,
)


def ensure_schema(engine: Engine) -> None:
    logger.info("[DB] Ensuring sites schema exists")
    with engine.begin() as conn:
        for statement in _DDL:
            conn.execute(text(statement))
