# backend/app/services/correlation/incident_correlator.py
import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional

from pydantic import ValidationError

from app.core.config import settings
from app.core.errors import GraphStoreError, MalformedMessageError
from app.schemas.incidents import (
    AggregatedView,
    AttackPath,
    CriticalNode,
    EnrichedRecord,
    GraphInsights,
    SecurityAnalysis,
)
from app.services.alerting.alert_dispatcher import dispatch_alerts
from app.services.correlation.latest_view import LatestViewStore
from app.services.graph.graph_store import GraphStore
from app.services.messaging.bus import MessageBus, decode_message
from app.services.risk_scoring.flow_risk import compute_flow_risk, recommended_actions

logger = logging.getLogger(__name__)


class IncidentCorrelator:
    """
    Enriched record -> aggregated security posture.

      1. Risk score from the record's port / volume / duration signals
      2. Graph insights: PageRank critical nodes + shortest attack path
      3. Recommended actions from the score
      4. Swap the new AggregatedView into the latest-view store
      5. Publish it to the response queue, then evaluate alerting

    Graph analytics are best-effort: a failing query leaves its field empty
    and the view is still produced.
    """

    def __init__(
        self,
        graph_store: GraphStore,
        bus: MessageBus,
        view_store: LatestViewStore,
        response_queue: Optional[str] = None,
        critical_nodes_limit: Optional[int] = None,
        max_hops: Optional[int] = None,
        action_threshold: Optional[int] = None,
        known_malicious_ips: Optional[Iterable[str]] = None,
        alert_dispatcher: Callable[[AggregatedView], None] = dispatch_alerts,
    ) -> None:
        self.graph_store = graph_store
        self.bus = bus
        self.view_store = view_store
        self.response_queue = response_queue or settings.RESPONSE_QUEUE
        self.critical_nodes_limit = (
            settings.CRITICAL_NODES_LIMIT if critical_nodes_limit is None else critical_nodes_limit
        )
        self.max_hops = settings.ATTACK_PATH_MAX_HOPS if max_hops is None else max_hops
        self.action_threshold = (
            settings.RISK_ACTION_THRESHOLD if action_threshold is None else action_threshold
        )
        self.known_malicious_ips = set(
            settings.KNOWN_MALICIOUS_IPS if known_malicious_ips is None else known_malicious_ips
        )
        self.alert_dispatcher = alert_dispatcher

    # -------------------------------------------------------------------------
    # Graph insights
    # -------------------------------------------------------------------------
    async def graph_insights(self, source_ip: str, destination_ip: str) -> GraphInsights:
        critical: List[CriticalNode] = []
        paths: List[AttackPath] = []

        try:
            critical = await self.graph_store.critical_nodes(limit=self.critical_nodes_limit)
        except GraphStoreError as exc:
            logger.warning("Critical node query failed (%s); returning none", exc)

        try:
            path = await self.graph_store.shortest_path(
                source_ip, destination_ip, max_hops=self.max_hops
            )
            if path is not None:
                paths.append(path)
        except GraphStoreError as exc:
            logger.warning(
                "Attack path query %s -> %s failed (%s); returning none",
                source_ip, destination_ip, exc,
            )

        return GraphInsights(critical_nodes=critical, attack_paths=paths)

    # -------------------------------------------------------------------------
    # Public entry point
    # -------------------------------------------------------------------------
    async def correlate(self, record: EnrichedRecord) -> AggregatedView:
        risk = compute_flow_risk(record, self.known_malicious_ips)
        insights = await self.graph_insights(record.source_ip, record.destination_ip)

        view = AggregatedView(
            analysis=SecurityAnalysis(
                source_ip=record.source_ip,
                destination_ip=record.destination_ip,
                protocol=record.protocol,
                classification=record.classification or "Unknown",
                recommended_actions=recommended_actions(risk.score, self.action_threshold),
                oracle_recommended_actions=list(record.recommended_actions),
                risk_score=risk.score,
                risk_level=risk.level,
            ),
            graph_insights=insights,
            updated_at=datetime.now(timezone.utc),
        )

        self.view_store.replace(view)

        await self.bus.publish(self.response_queue, view)
        logger.info(
            "Sent aggregated view to %s: %s -> %s risk=%d (%s)",
            self.response_queue, record.source_ip, record.destination_ip, risk.score, risk.level,
        )

        # alert channels are blocking HTTP; keep them off the event loop
        await asyncio.to_thread(self.alert_dispatcher, view)
        return view

    # -------------------------------------------------------------------------
    # Queue handler
    # -------------------------------------------------------------------------
    async def handle_message(self, body: bytes) -> AggregatedView:
        data = decode_message(body)
        try:
            record = EnrichedRecord.model_validate(data)
        except ValidationError as exc:
            raise MalformedMessageError(
                f"Invalid enriched record: {exc.error_count()} validation error(s)",
                context={
                    "source_ip": data.get("source_ip"),
                    "destination_ip": data.get("destination_ip"),
                },
            ) from exc

        return await self.correlate(record)
