import pytest
from pydantic import ValidationError

from app.schemas.incidents import AggregatedView, SecurityAnalysis
from app.services.correlation.latest_view import LatestViewStore


def test_starts_with_placeholder():
    store = LatestViewStore()
    view = store.get()

    assert view.analysis.classification == "No data yet"
    assert view.analysis.recommended_actions == ("Waiting for data",)
    assert store.version == 0


def test_replace_swaps_whole_view():
    store = LatestViewStore()
    placeholder = store.get()
    new = AggregatedView(analysis=SecurityAnalysis(source_ip="10.0.0.5", classification="Malicious"))

    previous = store.replace(new)

    assert previous is placeholder
    assert store.get() is new
    assert store.version == 1


def test_published_view_cannot_be_edited_in_place():
    view = AggregatedView(
        analysis=SecurityAnalysis(source_ip="10.0.0.5", recommended_actions=["Monitor traffic"]),
    )

    with pytest.raises(ValidationError):
        view.analysis.risk_level = "critical"
    with pytest.raises(ValidationError):
        view.graph_insights.critical_nodes = ()
    with pytest.raises(AttributeError):
        view.analysis.recommended_actions.append("Block everything")

    assert view.analysis.recommended_actions == ("Monitor traffic",)
