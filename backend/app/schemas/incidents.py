# backend/app/schemas/incidents.py
from typing import List, Optional, Tuple
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_ACTIONS = ["Monitor traffic"]


class ClassificationResult(BaseModel):
    """Outcome of classifying one flow (oracle verdict or dedup short-circuit)."""
    classification: str
    description: str
    recommended_actions: List[str] = Field(
        default_factory=lambda: list(DEFAULT_ACTIONS), min_length=1
    )
    oracle_consulted: bool = False


class EnrichedRecord(BaseModel):
    """
    Message published by the threat classifier to the incident queue.
    Flow metrics ride along so the correlator can score without a graph lookup.
    """
    source_ip: str
    destination_ip: str
    protocol: str = "Unknown"
    classification: str = "unknown"
    recommended_actions: List[str] = Field(
        default_factory=lambda: list(DEFAULT_ACTIONS), min_length=1
    )

    source_port: int = 0
    destination_port: int = 0
    packets: int = 0
    bytes_transferred: str = "0.0M"
    duration: float = 0.0
    received_at: Optional[datetime] = None


class FlowRiskFactor(BaseModel):
    name: str
    weight: int
    triggered: bool


class FlowRiskScore(BaseModel):
    score: int
    level: str  # low/medium/high/critical
    factors: List[FlowRiskFactor]


class CriticalNode(BaseModel):
    model_config = ConfigDict(frozen=True)

    ip: str
    score: float


class AttackPath(BaseModel):
    model_config = ConfigDict(frozen=True)

    source: str
    destination: str
    hops: int


class GraphInsights(BaseModel):
    model_config = ConfigDict(frozen=True)

    critical_nodes: Tuple[CriticalNode, ...] = ()
    attack_paths: Tuple[AttackPath, ...] = ()


class SecurityAnalysis(BaseModel):
    model_config = ConfigDict(frozen=True)

    source_ip: str = ""
    destination_ip: str = ""
    protocol: str = ""
    classification: str = "Unknown"
    recommended_actions: Tuple[str, ...] = Field(tuple(DEFAULT_ACTIONS), min_length=1)
    oracle_recommended_actions: Tuple[str, ...] = ()
    risk_score: int = 0
    risk_level: str = "low"


class AggregatedView(BaseModel):
    """
    Latest enrichment joined with graph analytics.
    Immutable all the way down (frozen models, tuples): the latest-view
    store swaps whole instances, never edits one.
    """
    model_config = ConfigDict(frozen=True)

    analysis: SecurityAnalysis
    graph_insights: GraphInsights = Field(default_factory=GraphInsights)
    updated_at: Optional[datetime] = None

    @classmethod
    def placeholder(cls) -> "AggregatedView":
        return cls(
            analysis=SecurityAnalysis(
                classification="No data yet",
                recommended_actions=("Waiting for data",),
            ),
        )
