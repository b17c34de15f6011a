from app.services.oracle.verdict_parser import (
    ParsedVerdict,
    UnparseableVerdict,
    parse_verdict,
)

from conftest import BENIGN_VERDICT, MALICIOUS_VERDICT


def test_full_verdict_is_parsed():
    verdict = parse_verdict(MALICIOUS_VERDICT)

    assert isinstance(verdict, ParsedVerdict)
    assert verdict.classification == "Malicious"
    assert verdict.actions == [
        "Block the source IP at the perimeter firewall",
        "Isolate the destination host for forensic review",
    ]


def test_dash_bullets_are_stripped():
    verdict = parse_verdict(BENIGN_VERDICT)
    assert verdict.classification == "Benign"
    assert verdict.actions == ["Continue routine monitoring"]


def test_recommended_actions_heading_is_accepted():
    text = "### Classification: Suspicious\n### Recommended Actions:\n* Rate-limit the host\n* Alert on-call\n"
    verdict = parse_verdict(text)

    assert isinstance(verdict, ParsedVerdict)
    assert verdict.actions == ["Rate-limit the host", "Alert on-call"]


def test_classification_without_actions_gets_monitor_default():
    verdict = parse_verdict("### Classification: Benign\nNothing else to add.")

    assert isinstance(verdict, ParsedVerdict)
    assert verdict.classification == "Benign"
    assert verdict.actions == ["Monitor traffic"]


def test_missing_classification_marker_is_unparseable():
    verdict = parse_verdict("I think this traffic looks fine.\nrecommended security measures:\n- none")

    assert isinstance(verdict, UnparseableVerdict)
    assert verdict.classification == "unknown"
    assert verdict.actions == ["Monitor traffic"]


def test_empty_classification_line_does_not_borrow_the_next_line():
    verdict = parse_verdict("### Classification:\n\nThe session looks like normal browsing.\n")

    assert isinstance(verdict, UnparseableVerdict)
    assert verdict.classification == "unknown"


def test_empty_and_missing_output_is_unparseable():
    for text in (None, "", "   \n"):
        verdict = parse_verdict(text)
        assert isinstance(verdict, UnparseableVerdict)
        assert verdict.actions == ["Monitor traffic"]


def test_garbage_never_raises():
    for text in ("###", "### Classification:", "\x00\x01", "recommended security measures:"):
        verdict = parse_verdict(text)
        assert verdict.actions
