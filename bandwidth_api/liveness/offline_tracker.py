"""Tracker en memoria de peers que se sabe que están offline.

Es una caché, no una fuente de verdad: el flag ``online`` de la tabla sites
manda. Solo sirve para no volver a consultar la BD por peers que siguen
mandando keep-alives sin tráfico.
"""

from __future__ import annotations

import threading
from typing import FrozenSet, Iterable, Optional, Set


class OfflineTracker:
    """Conjunto de public keys offline, seguro entre lotes concurrentes.

    Una key sale del conjunto solo cuando llega un reporte activo con ella.
    Las keys de sitios borrados o con key rotada mientras estaban offline
    quedan hasta reiniciar el proceso: una entrada por peer retirado, y el
    único efecto es omitir la lectura de un sitio que ya no existe.
    """

    _instance: Optional["OfflineTracker"] = None
    _instance_lock = threading.Lock()

    def __init__(self) -> None:
        self._keys: Set[str] = set()
        self._lock = threading.Lock()

    @classmethod
    def get_instance(cls) -> "OfflineTracker":
        """Instancia compartida por el proceso."""
        if cls._instance is None:
            with cls._instance_lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Reset singleton (for testing)."""
        with cls._instance_lock:
            cls._instance = None

    def __contains__(self, public_key: str) -> bool:
        with self._lock:
            return public_key in self._keys

    def __len__(self) -> int:
        with self._lock:
            return len(self._keys)

    def add(self, public_key: str) -> None:
        with self._lock:
            self._keys.add(public_key)

    def discard(self, public_key: str) -> None:
        with self._lock:
            self._keys.discard(public_key)

    def apply(self, *, reactivated: Iterable[str], went_offline: Iterable[str]) -> None:
        """Aplica los cambios de un lote confirmado bajo un único lock."""
        with self._lock:
            for key in reactivated:
                self._keys.discard(key)
            for key in went_offline:
                self._keys.add(key)

    def snapshot(self) -> FrozenSet[str]:
        with self._lock:
            return frozenset(self._keys)

    def clear(self) -> None:
        with self._lock:
            self._keys.clear()


def get_offline_tracker() -> OfflineTracker:
    return OfflineTracker.get_instance()
