"""Módulo de endpoints HTTP.

Contiene los endpoints del servicio de ingesta de ancho de banda.
"""

from .health import router as health_router
from .bandwidth import router as bandwidth_router

__all__ = [
    "health_router",
    "bandwidth_router",
]
