"""Autenticación y autorización del endpoint de ancho de banda.

- API Key compartida (X-API-Key)
- Autorización exit node -> organización
"""

from .api_key import require_api_key
from .exit_node import ExitNodeAuthorizer

__all__ = [
    "require_api_key",
    "ExitNodeAuthorizer",
]
