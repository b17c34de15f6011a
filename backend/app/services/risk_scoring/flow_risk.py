# backend/app/services/risk_scoring/flow_risk.py
import math
from typing import Any, Iterable, List, Mapping, Optional

from pydantic import BaseModel

from app.core.config import settings
from app.schemas.incidents import FlowRiskFactor, FlowRiskScore
from app.services.normalization.flow_normalizer import parse_megabytes
from app.services.risk_scoring.risk_utils import severity_from_score


# --------------------------------------------------------
# Signal tables
# --------------------------------------------------------

# Common attack targets: SSH, RDP, SMB, alt-HTTP, DNS, MySQL
HIGH_RISK_PORTS = {22, 3389, 445, 8080, 53, 3306}
# RDP & SMB are the most commonly exploited
CRITICAL_RISK_PORTS = {3389, 445}

# HTTPS source port: possible tunnelled C2
C2_SOURCE_PORT = 443

HIGH_PACKET_THRESHOLD = 5000
VERY_HIGH_PACKET_THRESHOLD = 10000
HIGH_VOLUME_MEGABYTES = 10.0
LONG_DURATION_SECONDS = 300        # 5 minutes
BEACONING_DURATION_SECONDS = 1800  # 30 minutes

WEIGHTS = {
    "high_risk_destination_port": 2,
    "critical_destination_port": 3,
    "https_source_port": 1,
    "known_malicious_source": 5,
    "known_malicious_destination": 5,
    "high_packet_volume": 2,
    "very_high_packet_volume": 3,
    "high_byte_volume": 2,
    "long_duration": 2,
    "beaconing_duration": 3,
}

ESCALATED_ACTIONS = [
    "Block suspicious traffic",
    "Inspect logs for anomalies",
    "Enable deep packet inspection",
]
MONITOR_ACTIONS = ["Monitor traffic"]


def _as_number(value: Any) -> float:
    """Numeric view of a loosely-typed field; anything unusable is 0."""
    if isinstance(value, bool) or value is None:
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return 0.0
    if not math.isfinite(number):
        return 0.0
    return number


def _as_mapping(flow: Mapping[str, Any] | BaseModel) -> Mapping[str, Any]:
    if isinstance(flow, BaseModel):
        return flow.model_dump()
    if isinstance(flow, Mapping):
        return flow
    return {}


# --------------------------------------------------------
# Main flow risk engine
# --------------------------------------------------------

def compute_flow_risk(
    flow: Mapping[str, Any] | BaseModel,
    known_malicious_ips: Optional[Iterable[str]] = None,
) -> FlowRiskScore:
    """
    Deterministic weighted sum over port / reputation / volume / duration
    signals. Pure: same flow and same IP set always give the same score.
    """
    data = _as_mapping(flow)
    malicious = set(
        settings.KNOWN_MALICIOUS_IPS if known_malicious_ips is None else known_malicious_ips
    )

    dst_port = int(_as_number(data.get("destination_port")))
    src_port = int(_as_number(data.get("source_port")))
    packets = _as_number(data.get("packets"))
    megabytes = parse_megabytes(data.get("bytes_transferred"))
    duration = _as_number(data.get("duration"))

    signals = {
        "high_risk_destination_port": dst_port in HIGH_RISK_PORTS,
        "critical_destination_port": dst_port in CRITICAL_RISK_PORTS,
        "https_source_port": src_port == C2_SOURCE_PORT,
        "known_malicious_source": str(data.get("source_ip") or "") in malicious,
        "known_malicious_destination": str(data.get("destination_ip") or "") in malicious,
        "high_packet_volume": packets > HIGH_PACKET_THRESHOLD,
        "very_high_packet_volume": packets > VERY_HIGH_PACKET_THRESHOLD,
        "high_byte_volume": megabytes > HIGH_VOLUME_MEGABYTES,
        "long_duration": duration > LONG_DURATION_SECONDS,
        "beaconing_duration": duration > BEACONING_DURATION_SECONDS,
    }

    factors: List[FlowRiskFactor] = [
        FlowRiskFactor(name=name, weight=WEIGHTS[name], triggered=bool(hit))
        for name, hit in signals.items()
    ]
    total = sum(f.weight for f in factors if f.triggered)

    return FlowRiskScore(score=total, level=severity_from_score(total), factors=factors)


def risk_score(flow: Mapping[str, Any] | BaseModel, known_malicious_ips: Optional[Iterable[str]] = None) -> int:
    return compute_flow_risk(flow, known_malicious_ips).score


def recommended_actions(score: int, threshold: Optional[int] = None) -> List[str]:
    threshold = settings.RISK_ACTION_THRESHOLD if threshold is None else threshold
    if score > threshold:
        return list(ESCALATED_ACTIONS)
    return list(MONITOR_ACTIONS)
