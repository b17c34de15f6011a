# backend/app/services/graph/graph_store.py

import asyncio
import logging
from typing import Callable, Dict, List, Optional, Tuple, TypeVar

import networkx as nx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from app.core.errors import GraphStoreError
from app.models.graph_edge import GraphEdgeRecord
from app.models.graph_node import GraphNodeRecord
from app.schemas.graph import (
    GraphEdge,
    GraphNode,
    GraphSnapshot,
    GraphSnapshotLink,
    GraphSnapshotNode,
    NodeRole,
    ThreatLevel,
)
from app.schemas.incidents import AttackPath, CriticalNode
from app.schemas.sessions import NormalizedFlow
from app.services.risk_scoring.risk_utils import escalate_threat_level

logger = logging.getLogger(__name__)

T = TypeVar("T")


class GraphStore:
    """
    Endpoint / flow graph backed by SQLAlchemy.

    Nodes are (ip, role) rows, edges are SENDS_TO rows. Centrality and path
    queries run on a networkx projection of the edge table, keyed by IP.

    All public methods are coroutines: the synchronous session work runs in
    a worker thread, and calls are serialized through one lock so the shared
    engine never sees two writers from this process at once.
    """

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory
        self._lock = asyncio.Lock()

    def _get_db(self) -> Session:
        return self._session_factory()

    async def _run(self, op: str, fn: Callable[[Session], T]) -> T:
        def work() -> T:
            db = self._get_db()
            try:
                return fn(db)
            except Exception:
                db.rollback()
                raise
            finally:
                db.close()

        async with self._lock:
            try:
                return await asyncio.to_thread(work)
            except (SQLAlchemyError, nx.NetworkXException) as exc:
                raise GraphStoreError(
                    f"Graph store {op} failed: {type(exc).__name__}: {exc}",
                    context={"operation": op},
                ) from exc

    # --------------------------------------------------------
    # Reads
    # --------------------------------------------------------
    async def source_exists(self, ip: str) -> bool:
        """True once `ip` has been recorded as a Source node."""
        def fn(db: Session) -> bool:
            return db.get(GraphNodeRecord, (ip, NodeRole.SOURCE.value)) is not None

        return await self._run("source_exists", fn)

    async def get_node(self, ip: str, role: NodeRole) -> Optional[GraphNode]:
        def fn(db: Session) -> Optional[GraphNode]:
            record = db.get(GraphNodeRecord, (ip, role.value))
            return _node_from_record(record) if record else None

        return await self._run("get_node", fn)

    async def get_edge(self, source_ip: str, destination_ip: str) -> Optional[GraphEdge]:
        def fn(db: Session) -> Optional[GraphEdge]:
            record = db.get(GraphEdgeRecord, (source_ip, destination_ip))
            if record is None:
                return None
            return GraphEdge(
                source_ip=record.source_ip,
                destination_ip=record.destination_ip,
                packets=record.packets or 0,
                bytes_transferred=record.bytes_transferred or "0.0M",
            )

        return await self._run("get_edge", fn)

    async def snapshot(self) -> GraphSnapshot:
        """Every SENDS_TO edge with its endpoint attributes; each IP listed once."""
        def fn(db: Session) -> GraphSnapshot:
            nodes: Dict[Tuple[str, str], GraphNodeRecord] = {
                (n.ip, n.role): n for n in db.query(GraphNodeRecord).all()
            }
            edges = (
                db.query(GraphEdgeRecord)
                .order_by(GraphEdgeRecord.created_at, GraphEdgeRecord.source_ip)
                .all()
            )

            out = GraphSnapshot()
            seen: set = set()

            def add_node(ip: str, role: NodeRole) -> None:
                if ip in seen:
                    return
                seen.add(ip)
                record = nodes.get((ip, role.value))
                out.nodes.append(
                    GraphSnapshotNode(
                        id=ip,
                        role=role,
                        threat_level=ThreatLevel(record.threat_level) if record else None,
                    )
                )

            for edge in edges:
                add_node(edge.source_ip, NodeRole.SOURCE)
                add_node(edge.destination_ip, NodeRole.DESTINATION)
                out.links.append(
                    GraphSnapshotLink(
                        source=edge.source_ip,
                        target=edge.destination_ip,
                        packets=edge.packets or 0,
                        bytes=edge.bytes_transferred or "0.0M",
                    )
                )
            return out

        return await self._run("snapshot", fn)

    # --------------------------------------------------------
    # Writes
    # --------------------------------------------------------
    async def record_classification(
        self,
        flow: NormalizedFlow,
        threat_level: ThreatLevel,
        description: str,
    ) -> None:
        """
        Merge one classified flow in a single transaction:
          - Source / Destination nodes created, or escalated (never downgraded)
          - SENDS_TO edge created with this flow's counters if missing;
            an existing edge keeps its original counters
        """
        def fn(db: Session) -> None:
            for ip, role in (
                (flow.source_ip, NodeRole.SOURCE),
                (flow.destination_ip, NodeRole.DESTINATION),
            ):
                record = db.get(GraphNodeRecord, (ip, role.value))
                if record is None:
                    db.add(
                        GraphNodeRecord(
                            ip=ip,
                            role=role.value,
                            threat_level=threat_level.value,
                            description=description,
                        )
                    )
                    continue

                merged = escalate_threat_level(ThreatLevel(record.threat_level), threat_level)
                if merged.value != record.threat_level:
                    logger.info(
                        "Threat level for %s %s: %s -> %s",
                        role.value, ip, record.threat_level, merged.value,
                    )
                record.threat_level = merged.value

            edge = db.get(GraphEdgeRecord, (flow.source_ip, flow.destination_ip))
            if edge is None:
                db.add(
                    GraphEdgeRecord(
                        source_ip=flow.source_ip,
                        destination_ip=flow.destination_ip,
                        packets=flow.packets,
                        bytes_transferred=flow.bytes_transferred,
                    )
                )

            db.commit()

        await self._run("record_classification", fn)

    # --------------------------------------------------------
    # Analytics
    # --------------------------------------------------------
    def _load_graph(self, db: Session) -> nx.DiGraph:
        graph = nx.DiGraph()
        for edge in db.query(GraphEdgeRecord).all():
            graph.add_edge(edge.source_ip, edge.destination_ip)
        return graph

    async def critical_nodes(self, limit: int = 3) -> List[CriticalNode]:
        """Top `limit` endpoints by PageRank over SENDS_TO."""
        def fn(db: Session) -> List[CriticalNode]:
            graph = self._load_graph(db)
            if graph.number_of_nodes() == 0:
                return []
            ranks = nx.pagerank(graph)
            ranked = sorted(ranks.items(), key=lambda kv: (-kv[1], kv[0]))
            return [CriticalNode(ip=ip, score=float(score)) for ip, score in ranked[:limit]]

        return await self._run("critical_nodes", fn)

    async def shortest_path(
        self,
        source_ip: str,
        destination_ip: str,
        max_hops: int = 5,
    ) -> Optional[AttackPath]:
        """Shortest path between the two endpoints, ignoring direction, if within max_hops."""
        def fn(db: Session) -> Optional[AttackPath]:
            graph = self._load_graph(db).to_undirected()
            if source_ip not in graph or destination_ip not in graph:
                return None
            try:
                hops = nx.shortest_path_length(graph, source_ip, destination_ip)
            except nx.NetworkXNoPath:
                return None
            if hops > max_hops:
                return None
            return AttackPath(source=source_ip, destination=destination_ip, hops=hops)

        return await self._run("shortest_path", fn)


def _node_from_record(record: GraphNodeRecord) -> GraphNode:
    return GraphNode(
        ip=record.ip,
        role=NodeRole(record.role),
        threat_level=ThreatLevel(record.threat_level),
        description=record.description,
    )
