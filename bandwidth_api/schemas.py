from __future__ import annotations

from datetime import datetime
from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field

from .liveness.models import PeerReport


class PeerBandwidthIn(BaseModel):
    # Formato del exit node: camelCase
    model_config = ConfigDict(populate_by_name=True)

    public_key: str = Field(..., alias="publicKey", min_length=1)
    bytes_in: int = Field(..., alias="bytesIn", ge=0)
    bytes_out: int = Field(..., alias="bytesOut", ge=0)

    def to_report(self) -> PeerReport:
        return PeerReport(
            public_key=self.public_key,
            bytes_in=self.bytes_in,
            bytes_out=self.bytes_out,
        )


class OrgUsageOut(BaseModel):
    bandwidth_bytes: int
    uptime_minutes: float


class BandwidthBatchSummary(BaseModel):
    processed_at: datetime
    active_sites: int
    offline_transitions: int
    unknown_peers: List[str] = Field(default_factory=list)
    orgs: Dict[str, OrgUsageOut] = Field(default_factory=dict)


class BandwidthIngestResponse(BaseModel):
    data: BandwidthBatchSummary
    success: bool = True
    error: bool = False
    message: str = "Bandwidth data updated successfully"
    status: int = 200
