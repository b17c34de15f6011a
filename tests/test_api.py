import asyncio
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from app.main import create_app
from app.schemas.graph import ThreatLevel
from app.schemas.sessions import NormalizedFlow
from app.services.runtime import ServiceContainer

from conftest import FailingGraphStore, FakeOracle


@pytest.fixture
def container(test_settings, graph_store, bus) -> ServiceContainer:
    return ServiceContainer(test_settings, bus, graph_store, FakeOracle())


@pytest.fixture
def client(container) -> TestClient:
    return TestClient(create_app(container))


def test_health(client, test_settings):
    resp = client.get("/api/v1/health")

    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "ok"
    assert body["service"] == test_settings.APP_NAME


def test_security_analysis_placeholder_is_well_formed(client):
    resp = client.get("/api/v1/security-analysis")

    assert resp.status_code == 200
    body = resp.json()
    assert body["analysis"]["classification"] == "No data yet"
    assert body["analysis"]["recommended_actions"] == ["Waiting for data"]
    assert body["graph_insights"] == {"critical_nodes": [], "attack_paths": []}


def test_sessions_are_published_and_listed(client, container, test_settings):
    resp = client.post(
        "/api/v1/sessions",
        json={
            "device_info": {"hostname": "ws-01"},
            "timestamp": "2025-03-20T12:34:56",
            "sessions": [
                {"Source IP": "10.0.0.5", "Destination IP": "10.0.0.9"},
                {"Source IP": "10.0.0.6", "Destination IP": "10.0.0.9"},
            ],
        },
    )

    assert resp.status_code == 200
    assert resp.json() == {"success": True, "message": "Sessions received", "published": 2}

    published = container.bus.messages(test_settings.RAW_LOG_QUEUE)
    assert [m["Source IP"] for m in published] == ["10.0.0.5", "10.0.0.6"]
    assert all(m["device_info"] == {"hostname": "ws-01"} for m in published)
    assert all("received_at" in m for m in published)

    logs = client.get("/api/v1/logs", params={"limit": 1}).json()["logs"]
    assert [entry["Source IP"] for entry in logs] == ["10.0.0.6"]


def test_batch_without_sessions_is_rejected(client):
    resp = client.post("/api/v1/sessions", json={"device_info": {}})
    assert resp.status_code == 422


def test_graph_snapshot(client, graph_store):
    asyncio.run(
        graph_store.record_classification(
            NormalizedFlow(
                source_ip="10.0.0.5",
                destination_ip="10.0.0.9",
                packets=42,
                bytes_transferred="2.1M",
                received_at=datetime.now(timezone.utc),
            ),
            ThreatLevel.SUSPICIOUS,
            "seed",
        )
    )

    body = client.get("/api/v1/graph").json()

    assert body["nodes"] == [
        {"id": "10.0.0.5", "role": "Source", "threat_level": "Suspicious"},
        {"id": "10.0.0.9", "role": "Destination", "threat_level": "Suspicious"},
    ]
    assert body["links"] == [
        {"source": "10.0.0.5", "target": "10.0.0.9", "packets": 42, "bytes": "2.1M"}
    ]


def test_graph_unavailable_returns_503(test_settings, bus):
    container = ServiceContainer(test_settings, bus, FailingGraphStore(), FakeOracle())
    client = TestClient(create_app(container))

    resp = client.get("/api/v1/graph")
    assert resp.status_code == 503
