from app.schemas.graph import ThreatLevel

SEVERITY_RANK = {
    ThreatLevel.UNKNOWN: 0,
    ThreatLevel.BENIGN: 1,
    ThreatLevel.SUSPICIOUS: 2,
    ThreatLevel.MALICIOUS: 3,
}


def severity_from_score(score: int) -> str:
    if score >= 12:
        return "critical"
    if score >= 8:
        return "high"
    if score >= 4:
        return "medium"
    return "low"


def escalate_threat_level(existing: ThreatLevel | None, new: ThreatLevel) -> ThreatLevel:
    """
    Severity-monotonic merge of a node's stored level with a fresh verdict.

    Malicious already recorded stays; a new Malicious always wins;
    otherwise keep whichever of the two is more severe.
    """
    if existing is None or existing == ThreatLevel.KNOWN:
        return new
    if new == ThreatLevel.KNOWN:
        return existing
    if existing == ThreatLevel.MALICIOUS or new == ThreatLevel.MALICIOUS:
        return ThreatLevel.MALICIOUS
    if SEVERITY_RANK[new] >= SEVERITY_RANK[existing]:
        return new
    return existing
