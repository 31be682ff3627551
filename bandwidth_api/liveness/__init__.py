"""Liveness de sitios y agregación de ancho de banda por organización.

- models: PeerReport, SiteRecord, OrgAggregate, StepResult, BatchResult
- offline_tracker: caché en memoria de peers offline
- site_repository: acceso a la tabla sites
- unit_of_work: transacción explícita por lote
- engine: máquina de estados online/offline
"""

from .engine import LivenessEngine
from .models import (
    BandwidthObservation,
    BatchResult,
    LivenessPolicy,
    OrgAggregate,
    PeerReport,
    SiteRecord,
    StepResult,
    StepStatus,
)
from .offline_tracker import OfflineTracker, get_offline_tracker
from .schema import ensure_schema
from .site_repository import SiteRepository
from .unit_of_work import BatchUnitOfWork

__all__ = [
    "LivenessEngine",
    "BandwidthObservation",
    "BatchResult",
    "LivenessPolicy",
    "OrgAggregate",
    "PeerReport",
    "SiteRecord",
    "StepResult",
    "StepStatus",
    "OfflineTracker",
    "get_offline_tracker",
    "ensure_schema",
    "SiteRepository",
    "BatchUnitOfWork",
]
