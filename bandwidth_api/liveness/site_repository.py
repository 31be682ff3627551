"""Repositorio de sitios - acceso a BD."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional, Sequence

from sqlalchemy import bindparam, text
from sqlalchemy.engine import Connection
from sqlalchemy.orm import Session

from .models import SiteRecord


_SITE_COLUMNS = """
    site_id, org_id, pub_key, name, type, online,
    last_bandwidth_update, megabytes_in, megabytes_out
"""


def _parse_timestamp(value) -> Optional[datetime]:
    """last_bandwidth_update se guarda como ISO-8601 en UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _format_timestamp(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat()


def _row_to_site(row) -> SiteRecord:
    return SiteRecord(
        site_id=int(row.site_id),
        org_id=str(row.org_id),
        pub_key=row.pub_key,
        online=bool(row.online),
        last_bandwidth_update=_parse_timestamp(row.last_bandwidth_update),
        megabytes_in=int(row.megabytes_in or 0),
        megabytes_out=int(row.megabytes_out or 0),
        type=row.type,
        name=row.name,
    )


class SiteRepository:
    """Lecturas y escrituras de sites dentro de la sesión del lote."""

    def __init__(self, db: Session | Connection):
        self._db = db

    def get_by_pub_key(self, pub_key: str) -> Optional[SiteRecord]:
        row = self._db.execute(
            text(f"SELECT {_SITE_COLUMNS} FROM sites WHERE pub_key = :pub_key"),
            {"pub_key": pub_key},
        ).fetchone()
        return _row_to_site(row) if row else None

    def get_by_pub_keys(self, pub_keys: Sequence[str]) -> List[SiteRecord]:
        """Una sola consulta para todos los peers de un lote."""
        if not pub_keys:
            return []
        stmt = text(
            f"SELECT {_SITE_COLUMNS} FROM sites WHERE pub_key IN :pub_keys"
        ).bindparams(bindparam("pub_keys", expanding=True))
        rows = self._db.execute(stmt, {"pub_keys": list(pub_keys)}).fetchall()
        return [_row_to_site(row) for row in rows]

    def apply_bandwidth(
        self,
        site_id: int,
        *,
        bytes_in: int,
        bytes_out: int,
        now: datetime,
    ) -> int:
        """Suma un reporte activo y marca el sitio online. Retorna rows affected.

        La nomenclatura es desde el punto de vista del peer: los bytes que el
        peer recibió van a megabytes_out y los que envió a megabytes_in.
        """
        result = self._db.execute(
            text("""
                UPDATE sites
                SET megabytes_out = megabytes_out + :bytes_in,
                    megabytes_in = megabytes_in + :bytes_out,
                    last_bandwidth_update = :now,
                    online = :online
                WHERE site_id = :site_id
            """),
            {
                "site_id": site_id,
                "bytes_in": int(bytes_in),
                "bytes_out": int(bytes_out),
                "now": _format_timestamp(now),
                "online": True,
            },
        )
        return result.rowcount

    def mark_offline(self, site_id: int, *, stale_before: datetime) -> int:
        """Pasa el sitio a offline solo si sigue sin reporte activo desde stale_before.

        Retorna rows affected: 0 si otro lote refrescó el sitio después de
        nuestra lectura.
        """
        result = self._db.execute(
            text("""
                UPDATE sites
                SET online = :online
                WHERE site_id = :site_id
                  AND (last_bandwidth_update IS NULL OR last_bandwidth_update < :cutoff)
            """),
            {
                "site_id": site_id,
                "online": False,
                "cutoff": _format_timestamp(stale_before),
            },
        )
        return result.rowcount
