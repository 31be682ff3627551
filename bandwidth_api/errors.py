"""Errores de ingesta de ancho de banda.

Jerarquía única para que el endpoint pueda mapear cada fallo a un código HTTP
sin inspeccionar excepciones de SQLAlchemy o de pydantic.
"""

from __future__ import annotations

from typing import Optional


class BandwidthIngestError(Exception):
    """Base de todos los errores de ingesta."""


class InvalidInput(BandwidthIngestError):
    """El lote recibido no tiene la forma esperada."""


class SiteNotFound(BandwidthIngestError):
    """Ningún sitio tiene la public key reportada.

    Nunca sale del motor: el peer se omite y el lote continúa.
    """

    def __init__(self, public_key: str):
        self.public_key = public_key
        super().__init__(f"No site registered for public key {public_key!r}")


class Unauthorized(BandwidthIngestError):
    """El exit node que reporta no está autorizado para la organización del sitio."""

    def __init__(self, exit_node_id: int, org_id: str, site_id: Optional[int] = None):
        self.exit_node_id = exit_node_id
        self.org_id = org_id
        self.site_id = site_id
        super().__init__(
            f"Exit node {exit_node_id} is not allowed for org {org_id}"
        )


class StorageError(BandwidthIngestError):
    """La transacción del lote no pudo ejecutarse o confirmarse."""


class InternalError(BandwidthIngestError):
    """Fallo del motor visto desde el intake (sin reintento)."""
