"""Intake de reportes de ancho de banda.

Única validación local del lote: debe ser una lista. Los elementos mal formados
se omiten uno a uno y el resto del lote se procesa.
Los fallos del motor se reportan como InternalError sin reintento; el exit
node vuelve a reportar en el siguiente intervalo.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, List, Optional

from pydantic import ValidationError
from sqlalchemy.orm import Session

from common.config import get_settings
from .errors import InternalError, InvalidInput
from .liveness import LivenessEngine, LivenessPolicy, PeerReport, get_offline_tracker
from .liveness.models import BatchResult
from .schemas import PeerBandwidthIn
from .telemetry import SiteTelemetry, get_site_telemetry, safe_emit


logger = logging.getLogger(__name__)


def parse_batch(payload: Any) -> List[PeerReport]:
    """Convierte el JSON recibido en PeerReports.

    Un reporte que no valida contra PeerBandwidthIn se descarta sin afectar
    a los demás peers del lote.

    Raises:
        InvalidInput: si el payload no es una lista.
    """
    if not isinstance(payload, list):
        raise InvalidInput("Invalid bandwidth data")

    reports: List[PeerReport] = []
    for index, item in enumerate(payload):
        try:
            reports.append(PeerBandwidthIn.model_validate(item).to_report())
        except ValidationError as e:
            logger.debug("INVALID_REPORT index=%d errors=%d", index, e.error_count())
    return reports


class BandwidthIntake:
    """Valida un lote y lo entrega al motor de liveness."""

    def __init__(
        self,
        engine: LivenessEngine,
        telemetry: Optional[SiteTelemetry] = None,
    ) -> None:
        self._engine = engine
        self._telemetry = telemetry

    @property
    def engine(self) -> LivenessEngine:
        return self._engine

    def receive(
        self,
        db: Session,
        payload: Any,
        exit_node_id: Optional[int] = None,
    ) -> BatchResult:
        try:
            reports = parse_batch(payload)
        except InvalidInput:
            self._record("invalid")
            raise

        start = time.perf_counter()
        try:
            result = self._engine.process_batch(db, reports, exit_node_id=exit_node_id)
        except Exception as e:
            self._record("failed", time.perf_counter() - start)
            logger.exception(
                "Error updating bandwidth data reports=%d exit_node_id=%s err=%s",
                len(reports),
                exit_node_id,
                type(e).__name__,
            )
            raise InternalError(f"{type(e).__name__}: {e}") from e

        self._record("success", time.perf_counter() - start)
        return result

    def _record(self, status: str, duration_seconds: Optional[float] = None) -> None:
        if self._telemetry is not None:
            safe_emit(self._telemetry.record_batch, status, duration_seconds)


_intake: Optional[BandwidthIntake] = None
_intake_lock = threading.Lock()


def get_intake() -> BandwidthIntake:
    """Intake del proceso: tracker y telemetría compartidos entre requests."""
    global _intake
    if _intake is None:
        with _intake_lock:
            if _intake is None:
                telemetry = get_site_telemetry()
                engine = LivenessEngine(
                    tracker=get_offline_tracker(),
                    telemetry=telemetry,
                    policy=LivenessPolicy.from_settings(get_settings()),
                )
                _intake = BandwidthIntake(engine, telemetry)
    return _intake
