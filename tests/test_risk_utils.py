import pytest

from app.schemas.graph import ThreatLevel
from app.services.risk_scoring.risk_utils import escalate_threat_level, severity_from_score

U, B, S, M = (
    ThreatLevel.UNKNOWN,
    ThreatLevel.BENIGN,
    ThreatLevel.SUSPICIOUS,
    ThreatLevel.MALICIOUS,
)


@pytest.mark.parametrize("new", [U, B, S, M])
def test_malicious_is_never_downgraded(new):
    assert escalate_threat_level(M, new) == M


@pytest.mark.parametrize("existing", [U, B, S])
def test_new_malicious_always_wins(existing):
    assert escalate_threat_level(existing, M) == M


def test_more_severe_verdict_replaces():
    assert escalate_threat_level(U, B) == B
    assert escalate_threat_level(B, S) == S


def test_less_severe_verdict_is_ignored():
    assert escalate_threat_level(S, B) == S
    assert escalate_threat_level(B, U) == B


def test_first_observation_takes_the_verdict():
    assert escalate_threat_level(None, S) == S


def test_labels_map_onto_levels():
    assert ThreatLevel.from_label("**Malicious** (C2 beacon)") == M
    assert ThreatLevel.from_label("suspicious") == S
    assert ThreatLevel.from_label("Benign") == B
    assert ThreatLevel.from_label("unknown") == U
    assert ThreatLevel.from_label("known") == ThreatLevel.KNOWN
    assert ThreatLevel.from_label(None) == U


def test_labels_are_read_by_their_leading_word():
    assert ThreatLevel.from_label("Benign (no malicious indicators)") == B
    assert ThreatLevel.from_label("`Suspicious`, possibly malicious") == S
    assert ThreatLevel.from_label("Not suspicious") == U
    assert ThreatLevel.from_label("Likely malicious") == U
    assert ThreatLevel.from_label("Benignware") == U


def test_severity_from_score_bands():
    assert severity_from_score(0) == "low"
    assert severity_from_score(4) == "medium"
    assert severity_from_score(8) == "high"
    assert severity_from_score(15) == "critical"
