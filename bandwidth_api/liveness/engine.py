"""Motor de liveness y agregación de ancho de banda.

Aplica un lote de reportes de peers contra la tabla sites en UNA transacción:

1. Reportes activos (bytes_in > 0): suma contadores, marca online, refresca
   last_bandwidth_update y acumula uso por organización.
2. Reportes sin tráfico de peers que no están ya en el OfflineTracker: si el
   último reporte activo es más viejo que la ventana de staleness, el sitio
   pasa a offline.

Los cambios del tracker y la telemetría se aplican solo después del commit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional, Sequence, Set

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..auth.exit_node import ExitNodeAuthorizer
from ..errors import SiteNotFound, StorageError, Unauthorized
from ..telemetry import SiteTelemetry, safe_emit
from .models import (
    BandwidthObservation,
    BatchResult,
    LivenessPolicy,
    PeerReport,
    SiteRecord,
    StepResult,
    utcnow,
)
from .offline_tracker import OfflineTracker, get_offline_tracker
from .site_repository import SiteRepository
from .unit_of_work import BatchUnitOfWork


logger = logging.getLogger(__name__)


@dataclass
class _PendingEffects:
    """Efectos fuera de la BD, diferidos hasta el commit."""

    reactivated: Set[str] = field(default_factory=set)
    went_offline: Set[str] = field(default_factory=set)
    uptime_sites: List[int] = field(default_factory=list)


class LivenessEngine:
    """Procesa lotes de PeerReport de forma atómica."""

    def __init__(
        self,
        tracker: Optional[OfflineTracker] = None,
        telemetry: Optional[SiteTelemetry] = None,
        policy: Optional[LivenessPolicy] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._tracker = tracker if tracker is not None else get_offline_tracker()
        self._telemetry = telemetry
        self._policy = policy or LivenessPolicy()
        self._clock = clock or utcnow

    @property
    def tracker(self) -> OfflineTracker:
        return self._tracker

    @property
    def policy(self) -> LivenessPolicy:
        return self._policy

    def process_batch(
        self,
        db: Session,
        reports: Sequence[PeerReport],
        exit_node_id: Optional[int] = None,
    ) -> BatchResult:
        """Aplica un lote completo o nada.

        Raises:
            Unauthorized: el exit node no puede reportar para la org de algún sitio.
            StorageError: la transacción no pudo ejecutarse o confirmarse.
        """
        now = self._clock()
        result = BatchResult(processed_at=now)
        effects = _PendingEffects()

        with BatchUnitOfWork(db) as uow:
            try:
                failed = self._apply(uow.session, reports, exit_node_id, now, result, effects)
            except SQLAlchemyError as e:
                uow.rollback()
                raise StorageError(f"Batch update failed: {type(e).__name__}") from e

            if failed is not None:
                uow.rollback()
                logger.warning(
                    "BATCH_ABORTED reason=%s public_key=%s reports=%d",
                    failed.status.value,
                    failed.public_key,
                    len(reports),
                )
                raise failed.error

            uow.commit()

        self._publish(result, effects)

        logger.debug(
            "BATCH_APPLIED reports=%d active=%d offline=%d unknown=%d orgs=%d",
            len(reports),
            result.active_sites,
            result.offline_transitions,
            len(result.unknown_peers),
            len(result.org_usage.bandwidth),
        )
        return result

    def _apply(
        self,
        db: Session,
        reports: Sequence[PeerReport],
        exit_node_id: Optional[int],
        now: datetime,
        result: BatchResult,
        effects: _PendingEffects,
    ) -> Optional[StepResult]:
        """Ejecuta todos los pasos; retorna el primer paso abortado o None."""
        sites = SiteRepository(db)
        authorizer = ExitNodeAuthorizer(db) if exit_node_id is not None else None

        for report in reports:
            if not report.is_active:
                continue
            step = self._apply_active(sites, authorizer, exit_node_id, report, now, result, effects)
            if step.aborted:
                return step

        # Peers ya conocidos como offline no necesitan otra consulta
        idle_keys: List[str] = []
        for report in reports:
            if report.bytes_in == 0 and report.public_key not in self._tracker:
                if report.public_key not in idle_keys:
                    idle_keys.append(report.public_key)

        if not idle_keys:
            return None

        by_key = {site.pub_key: site for site in sites.get_by_pub_keys(idle_keys)}
        for key in idle_keys:
            step = self._apply_idle(sites, authorizer, exit_node_id, key, by_key.get(key), now, result, effects)
            if step.aborted:
                return step
        return None

    def _apply_active(
        self,
        sites: SiteRepository,
        authorizer: Optional[ExitNodeAuthorizer],
        exit_node_id: Optional[int],
        report: PeerReport,
        now: datetime,
        result: BatchResult,
        effects: _PendingEffects,
    ) -> StepResult:
        key = report.public_key
        effects.reactivated.add(key)

        site = sites.get_by_pub_key(key)
        if site is None:
            logger.debug("UNKNOWN_PEER public_key=%s bytes_in=%d", key, report.bytes_in)
            result.unknown_peers.append(key)
            return StepResult.skipped(key, SiteNotFound(key))

        if authorizer is not None and not authorizer.is_allowed(exit_node_id, site.org_id):
            return StepResult.abort(key, Unauthorized(exit_node_id, site.org_id, site.site_id))

        sites.apply_bandwidth(
            site.site_id,
            bytes_in=report.bytes_in,
            bytes_out=report.bytes_out,
            now=now,
        )

        result.active_sites += 1
        result.org_usage.add(
            site.org_id,
            report.bytes_in + report.bytes_out,
            self._policy.uptime_minutes,
        )
        if report.bytes_in > 0:
            result.observations.append(
                BandwidthObservation(site.site_id, "in", site.transport, report.bytes_in)
            )
        if report.bytes_out > 0:
            result.observations.append(
                BandwidthObservation(site.site_id, "out", site.transport, report.bytes_out)
            )
        effects.uptime_sites.append(site.site_id)

        if not site.online:
            logger.info("SITE_ONLINE site_id=%s org_id=%s", site.site_id, site.org_id)
        return StepResult.applied(key)

    def _apply_idle(
        self,
        sites: SiteRepository,
        authorizer: Optional[ExitNodeAuthorizer],
        exit_node_id: Optional[int],
        key: str,
        site: Optional[SiteRecord],
        now: datetime,
        result: BatchResult,
        effects: _PendingEffects,
    ) -> StepResult:
        if site is None:
            logger.debug("UNKNOWN_PEER public_key=%s bytes_in=0", key)
            result.unknown_peers.append(key)
            return StepResult.skipped(key, SiteNotFound(key))

        # Solo un reporte activo refresca la liveness; los keep-alives no cuentan
        if not site.is_stale(now, self._policy.staleness_window):
            return StepResult.unchanged(key)

        if not site.online:
            effects.went_offline.add(key)
            return StepResult.unchanged(key)

        if authorizer is not None and not authorizer.is_allowed(exit_node_id, site.org_id):
            return StepResult.abort(key, Unauthorized(exit_node_id, site.org_id, site.site_id))

        cutoff = now - self._policy.staleness_window
        if sites.mark_offline(site.site_id, stale_before=cutoff) == 0:
            # Otro lote registró tráfico entre la lectura y la escritura
            logger.debug("SITE_REFRESHED site_id=%s public_key=%s", site.site_id, key)
            return StepResult.unchanged(key)

        effects.went_offline.add(key)
        result.offline_transitions += 1
        logger.info(
            "SITE_OFFLINE site_id=%s org_id=%s last_bandwidth_update=%s",
            site.site_id,
            site.org_id,
            site.last_bandwidth_update.isoformat() if site.last_bandwidth_update else None,
        )
        return StepResult.applied(key)

    def _publish(self, result: BatchResult, effects: _PendingEffects) -> None:
        self._tracker.apply(
            reactivated=effects.reactivated,
            went_offline=effects.went_offline,
        )

        if self._telemetry is None:
            return
        for obs in result.observations:
            safe_emit(
                self._telemetry.add_site_bandwidth,
                obs.site_id,
                obs.direction,
                obs.transport,
                obs.bytes,
            )
        for site_id in effects.uptime_sites:
            safe_emit(
                self._telemetry.add_site_uptime,
                site_id,
                self._policy.uptime_quantum_seconds,
            )
