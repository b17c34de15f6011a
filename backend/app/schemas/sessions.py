# backend/app/schemas/sessions.py
from typing import Any, Dict, List, Optional
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class DeviceInfo(BaseModel):
    """Capture-agent metadata attached to every session of a batch."""
    model_config = ConfigDict(extra="allow")

    device_id: str = "Unknown"
    hostname: str = "Unknown"
    ip_address: str = "Unknown"
    os: str = "Unknown"
    agent_version: str = "Unknown"


class NormalizedFlow(BaseModel):
    """
    Canonical flow record. Produced only by the flow normalizer;
    nothing downstream should see the raw, loosely-typed session dict.
    """
    source_ip: str = "Unknown"
    destination_ip: str = "Unknown"
    protocol: str = "Unknown"
    source_port: int = Field(0, ge=0)
    destination_port: int = Field(0, ge=0)
    packets: int = Field(0, ge=0)
    bytes_transferred: str = "0.0M"
    flags: List[str] = Field(default_factory=list)
    duration: float = Field(0.0, ge=0)
    classification_hint: str = "Unknown"
    device_info: DeviceInfo = Field(default_factory=DeviceInfo)
    received_at: datetime


class SessionBatchRequest(BaseModel):
    """
    Payload POSTed by the capture agent.

    {
      "device_info": {...},
      "timestamp": "2025-03-20T12:34:56",
      "sessions": [ {..session1..}, {..session2..} ]
    }
    """
    device_info: Dict[str, Any] = Field(default_factory=dict)
    timestamp: Optional[str] = None
    sessions: List[Dict[str, Any]]


class SessionBatchResponse(BaseModel):
    success: bool = True
    message: str = "Sessions received"
    published: int = 0
