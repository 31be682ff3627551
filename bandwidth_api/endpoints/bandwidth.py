"""Endpoint de recepción de ancho de banda de los exit nodes."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, Header, HTTPException
from sqlalchemy.orm import Session

from common.config import get_settings
from common.db import get_db
from ..auth import require_api_key
from ..errors import InternalError, InvalidInput
from ..intake import BandwidthIntake, get_intake
from ..schemas import BandwidthIngestResponse

router = APIRouter(tags=["bandwidth"])
logger = logging.getLogger(__name__)


@router.post(
    "/gerbil/receive-bandwidth",
    response_model=BandwidthIngestResponse,
    dependencies=[Depends(require_api_key)],
)
def receive_bandwidth(
    payload: Any = Body(...),
    db: Session = Depends(get_db),
    intake: BandwidthIntake = Depends(get_intake),
    x_exit_node_id: int | None = Header(default=None, alias="X-Exit-Node-Id"),
):
    """Recibe un lote [{publicKey, bytesIn, bytesOut}, ...] y lo aplica atómicamente."""
    try:
        result = intake.receive(db, payload, exit_node_id=x_exit_node_id)
    except InvalidInput as e:
        raise HTTPException(status_code=400, detail=str(e))
    except InternalError as e:
        detail = "An error occurred..."
        if get_settings().debug_errors:
            detail = f"{detail} {e}"
        raise HTTPException(status_code=500, detail=detail)

    return BandwidthIngestResponse(data=result.to_dict())
