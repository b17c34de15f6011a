# backend/app/schemas/graph.py
import re
from typing import List, Optional
from enum import Enum

from pydantic import BaseModel, Field


_LEADING_LEVEL_RE = re.compile(r"[\W_]*(malicious|suspicious|benign)\b", re.IGNORECASE)


class NodeRole(str, Enum):
    SOURCE = "Source"
    DESTINATION = "Destination"


class ThreatLevel(str, Enum):
    UNKNOWN = "Unknown"
    BENIGN = "Benign"
    SUSPICIOUS = "Suspicious"
    MALICIOUS = "Malicious"
    # Terminal marker: already classified, never re-query the oracle.
    KNOWN = "known"

    @classmethod
    def from_label(cls, label: Optional[str]) -> "ThreatLevel":
        """
        Map a free-text verdict label ("**Malicious** (C2 beacon)") onto a level
        by its leading word. "Benign (no malicious indicators)" is BENIGN;
        anything else, including "Not suspicious", is UNKNOWN.
        """
        if not label:
            return cls.UNKNOWN

        text = label.strip().lower()
        if text == cls.KNOWN.value:
            return cls.KNOWN
        match = _LEADING_LEVEL_RE.match(text)
        if not match:
            return cls.UNKNOWN
        return cls(match.group(1).capitalize())


class GraphNode(BaseModel):
    ip: str
    role: NodeRole
    threat_level: ThreatLevel = ThreatLevel.UNKNOWN
    description: Optional[str] = None


class GraphEdge(BaseModel):
    """SENDS_TO relation, attributes fixed at creation time."""
    source_ip: str
    destination_ip: str
    packets: int = 0
    bytes_transferred: str = "0.0M"


class GraphSnapshotNode(BaseModel):
    id: str
    role: NodeRole
    threat_level: Optional[ThreatLevel] = None


class GraphSnapshotLink(BaseModel):
    source: str
    target: str
    packets: int = 0
    bytes: str = "0.0M"


class GraphSnapshot(BaseModel):
    nodes: List[GraphSnapshotNode] = Field(default_factory=list)
    links: List[GraphSnapshotLink] = Field(default_factory=list)
