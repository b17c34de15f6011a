# tests/conftest.py
import asyncio
import json
from typing import List, Optional

import pytest

from app.core.config import Settings
from app.core.errors import GraphStoreError
from app.db.init_db import init_db
from app.db.session import create_db_engine, create_session_factory
from app.services.correlation.latest_view import LatestViewStore
from app.services.graph.graph_store import GraphStore
from app.services.messaging.bus import InMemoryMessageBus

MALICIOUS_VERDICT = """\
Analysis of the provided network session:

### Classification: **Malicious**

The flow shows sustained high-volume traffic consistent with data exfiltration.

Based on the analysis, here are the recommended security measures:
1. Block the source IP at the perimeter firewall
2. Isolate the destination host for forensic review

### Confidence
High
"""

BENIGN_VERDICT = """\
### Classification: Benign
Recommended security measures:
- Continue routine monitoring
"""

SUSPICIOUS_VERDICT = """\
### Classification: Suspicious
Recommended security measures:
- Review firewall logs
"""


class FakeOracle:
    """Stands in for the HTTP oracle; records every prompt it receives."""

    def __init__(self, response: Optional[str] = MALICIOUS_VERDICT, delay: float = 0.0) -> None:
        self.response = response
        self.delay = delay
        self.calls: List[str] = []

    async def classify(self, prompt: str) -> Optional[str]:
        self.calls.append(prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.response


class FailingGraphStore:
    """Every query/write fails like an unreachable database."""

    def _fail(self, op: str):
        raise GraphStoreError(f"Graph store {op} failed: connection refused", context={"operation": op})

    async def source_exists(self, ip):
        self._fail("source_exists")

    async def record_classification(self, flow, threat_level, description):
        self._fail("record_classification")

    async def critical_nodes(self, limit=3):
        self._fail("critical_nodes")

    async def shortest_path(self, source_ip, destination_ip, max_hops=5):
        self._fail("shortest_path")

    async def snapshot(self):
        self._fail("snapshot")


def raw_session(**overrides) -> dict:
    session = {
        "Source IP": "10.0.0.5",
        "Destination IP": "10.0.0.9",
        "Protocol": "TCP",
        "Source Port": "51515",
        "Destination Port": "80",
        "Packets": "12000",
        "Bytes": "5.0 M",
        "Duration": "400",
    }
    session.update(overrides)
    return session


def encode(payload) -> bytes:
    return json.dumps(payload).encode("utf-8")


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        MESSAGE_BUS="memory",
        GRAPH_DATABASE_URL="sqlite://",
        DEAD_LETTER_QUEUE=None,
        ORACLE_URL="http://oracle.test/generate",
        ORACLE_TIMEOUT_SECONDS=2.0,
    )


@pytest.fixture
def graph_store():
    engine = create_db_engine("sqlite://")
    init_db(engine)
    yield GraphStore(create_session_factory(engine))
    engine.dispose()


@pytest.fixture
def bus() -> InMemoryMessageBus:
    return InMemoryMessageBus()


@pytest.fixture
def view_store() -> LatestViewStore:
    return LatestViewStore()


@pytest.fixture
def oracle() -> FakeOracle:
    return FakeOracle()
