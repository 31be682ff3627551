"""Autorización de exit nodes por organización.

Un exit node solo puede reportar ancho de banda para sitios de las
organizaciones asignadas en exit_node_orgs. La consulta se hace en la misma
sesión del lote, de modo que una denegación revierte todo el lote.
"""

from __future__ import annotations

import logging
from typing import Dict, Tuple

from sqlalchemy import text
from sqlalchemy.engine import Connection
from sqlalchemy.orm import Session


logger = logging.getLogger(__name__)


class ExitNodeAuthorizer:
    """Verifica exit_node -> org con memo por lote."""

    def __init__(self, db: Session | Connection):
        self._db = db
        self._memo: Dict[Tuple[int, str], bool] = {}

    def is_allowed(self, exit_node_id: int, org_id: str) -> bool:
        key = (int(exit_node_id), str(org_id))
        if key in self._memo:
            return self._memo[key]

        row = self._db.execute(
            text("""
                SELECT 1 FROM exit_node_orgs
                WHERE exit_node_id = :exit_node_id AND org_id = :org_id
            """),
            {"exit_node_id": key[0], "org_id": key[1]},
        ).fetchone()

        allowed = row is not None
        if not allowed:
            logger.warning(
                "EXIT_NODE_NOT_ALLOWED exit_node_id=%s org_id=%s", key[0], key[1]
            )
        self._memo[key] = allowed
        return allowed
