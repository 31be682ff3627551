"""Modelos del motor de liveness y agregación de ancho de banda."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Dict, List, Optional

from ..errors import BandwidthIngestError


@dataclass(frozen=True)
class PeerReport:
    """Muestra de un peer en un lote: bytes observados desde el reporte anterior."""

    public_key: str
    bytes_in: int
    bytes_out: int

    @property
    def is_active(self) -> bool:
        # bytes_out siempre trae algo por los keep-alives; solo bytes_in indica tráfico real
        return self.bytes_in > 0


@dataclass
class SiteRecord:
    """Fila de la tabla sites."""

    site_id: int
    org_id: str
    pub_key: Optional[str]
    online: bool
    last_bandwidth_update: Optional[datetime]
    megabytes_in: int = 0
    megabytes_out: int = 0
    type: Optional[str] = None
    name: Optional[str] = None

    @property
    def transport(self) -> str:
        return self.type or "unknown"

    def is_stale(self, now: datetime, window: timedelta) -> bool:
        """True si no hubo reporte activo dentro de la ventana (o nunca lo hubo)."""
        if self.last_bandwidth_update is None:
            return True
        return now - self.last_bandwidth_update > window


@dataclass(frozen=True)
class LivenessPolicy:
    """Constantes de política del intervalo de reporte del agente."""

    staleness_seconds: float = 60.0
    uptime_quantum_seconds: float = 10.0

    @classmethod
    def from_settings(cls, settings) -> "LivenessPolicy":
        return cls(
            staleness_seconds=settings.site_staleness_seconds,
            uptime_quantum_seconds=settings.uptime_quantum_seconds,
        )

    @property
    def staleness_window(self) -> timedelta:
        return timedelta(seconds=self.staleness_seconds)

    @property
    def uptime_minutes(self) -> float:
        return self.uptime_quantum_seconds / 60


@dataclass
class OrgAggregate:
    """Acumuladores por organización para un solo lote."""

    bandwidth: Dict[str, int] = field(default_factory=dict)
    uptime_minutes: Dict[str, float] = field(default_factory=dict)

    def add(self, org_id: str, total_bytes: int, minutes: float) -> None:
        self.bandwidth[org_id] = self.bandwidth.get(org_id, 0) + total_bytes
        self.uptime_minutes[org_id] = self.uptime_minutes.get(org_id, 0.0) + minutes

    @property
    def org_ids(self) -> List[str]:
        return sorted(self.bandwidth)

    def to_dict(self) -> dict:
        return {
            org_id: {
                "bandwidth_bytes": self.bandwidth[org_id],
                "uptime_minutes": self.uptime_minutes.get(org_id, 0.0),
            }
            for org_id in self.org_ids
        }


@dataclass(frozen=True)
class BandwidthObservation:
    """Observación de telemetría pendiente hasta el commit."""

    site_id: int
    direction: str  # "in" | "out"
    transport: str
    bytes: int


class StepStatus(str, Enum):
    """Resultado de aplicar un reporte dentro de la transacción."""

    APPLIED = "applied"      # Escritura durable emitida
    UNCHANGED = "unchanged"  # Sitio leído, sin escritura
    SKIPPED = "skipped"      # Sitio inexistente
    ABORTED = "aborted"      # El lote completo debe revertirse


@dataclass(frozen=True)
class StepResult:
    status: StepStatus
    public_key: str
    error: Optional[BandwidthIngestError] = None

    @property
    def aborted(self) -> bool:
        return self.status == StepStatus.ABORTED

    @classmethod
    def applied(cls, public_key: str) -> "StepResult":
        return cls(StepStatus.APPLIED, public_key)

    @classmethod
    def unchanged(cls, public_key: str) -> "StepResult":
        return cls(StepStatus.UNCHANGED, public_key)

    @classmethod
    def skipped(cls, public_key: str, error: BandwidthIngestError) -> "StepResult":
        return cls(StepStatus.SKIPPED, public_key, error)

    @classmethod
    def abort(cls, public_key: str, error: BandwidthIngestError) -> "StepResult":
        return cls(StepStatus.ABORTED, public_key, error)


@dataclass
class BatchResult:
    """Salida de un lote confirmado."""

    processed_at: datetime
    org_usage: OrgAggregate = field(default_factory=OrgAggregate)
    active_sites: int = 0
    offline_transitions: int = 0
    unknown_peers: List[str] = field(default_factory=list)
    observations: List[BandwidthObservation] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "processed_at": self.processed_at.isoformat(),
            "active_sites": self.active_sites,
            "offline_transitions": self.offline_transitions,
            "unknown_peers": list(self.unknown_peers),
            "orgs": self.org_usage.to_dict(),
        }


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
