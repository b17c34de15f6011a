# backend/app/services/classifier/threat_classifier.py

import asyncio
import logging
from typing import Optional, Protocol

from app.core.config import settings
from app.core.errors import PipelineError
from app.schemas.graph import ThreatLevel
from app.schemas.incidents import DEFAULT_ACTIONS, ClassificationResult, EnrichedRecord
from app.schemas.sessions import NormalizedFlow
from app.services.graph.graph_store import GraphStore
from app.services.messaging.bus import MessageBus, decode_message
from app.services.normalization.flow_normalizer import normalize_flow
from app.services.oracle.prompt import render_flow_prompt
from app.services.oracle.verdict_parser import UnparseableVerdict, parse_verdict

logger = logging.getLogger(__name__)


class Oracle(Protocol):
    async def classify(self, prompt: str) -> Optional[str]:
        ...


class ThreatClassifier:
    """
    Raw session -> graph fact + enriched record, one message at a time:

      1. Decode + normalize the raw session
      2. Dedup: a source IP already in the graph is "known", no oracle call
      3. Unseen source: render prompt, ask the oracle, parse the verdict
      4. Merge nodes/edge into the graph (severity never goes down)
      5. Publish the EnrichedRecord to the incident queue

    Steps 2-4 run under a semaphore sized by CLASSIFIER_CONCURRENCY (1 by
    default). With more than one slot two messages for the same new source
    can both miss the existence check and both reach the oracle.
    """

    def __init__(
        self,
        graph_store: GraphStore,
        oracle: Oracle,
        bus: MessageBus,
        incident_queue: Optional[str] = None,
        concurrency: Optional[int] = None,
    ) -> None:
        self.graph_store = graph_store
        self.oracle = oracle
        self.bus = bus
        self.incident_queue = incident_queue or settings.INCIDENT_QUEUE

        self.concurrency = max(1, settings.CLASSIFIER_CONCURRENCY if concurrency is None else concurrency)
        if self.concurrency > 1:
            logger.warning(
                "Threat classifier concurrency is %d; duplicate oracle calls "
                "for the same new source IP become possible",
                self.concurrency,
            )
        self._slots = asyncio.Semaphore(self.concurrency)

    # -------------------------------------------------------------------------
    # Classification
    # -------------------------------------------------------------------------
    async def classify(self, flow: NormalizedFlow) -> ClassificationResult:
        if await self.graph_store.source_exists(flow.source_ip):
            logger.info("Existing threat found in graph: %s", flow.source_ip)
            return ClassificationResult(
                classification=ThreatLevel.KNOWN.value,
                description="Previously identified threat.",
                recommended_actions=list(DEFAULT_ACTIONS),
            )

        logger.info("New source %s: consulting classification oracle", flow.source_ip)
        raw_output = await self.oracle.classify(render_flow_prompt(flow))
        verdict = parse_verdict(raw_output)

        if isinstance(verdict, UnparseableVerdict):
            logger.warning(
                "Oracle verdict for %s unusable (%s); falling back to %r",
                flow.source_ip, verdict.reason, verdict.classification,
            )
            description = f"Oracle verdict unavailable: {verdict.reason}"
        else:
            description = f"Analyzed by classification oracle: {verdict.classification}"

        result = ClassificationResult(
            classification=verdict.classification,
            description=description,
            recommended_actions=list(verdict.actions),
            oracle_consulted=True,
        )

        threat_level = ThreatLevel.from_label(result.classification)
        await self.graph_store.record_classification(flow, threat_level, result.description)
        logger.info(
            "Stored %s -> %s in graph (classification=%s, threat_level=%s)",
            flow.source_ip, flow.destination_ip, result.classification, threat_level.value,
        )
        return result

    # -------------------------------------------------------------------------
    # Queue handler
    # -------------------------------------------------------------------------
    async def handle_message(self, body: bytes) -> EnrichedRecord:
        flow = normalize_flow(decode_message(body))
        context = {"source_ip": flow.source_ip, "destination_ip": flow.destination_ip}

        try:
            async with self._slots:
                result = await self.classify(flow)
        except PipelineError as exc:
            exc.context.update(context)
            raise

        record = EnrichedRecord(
            source_ip=flow.source_ip,
            destination_ip=flow.destination_ip,
            protocol=flow.protocol,
            classification=result.classification,
            recommended_actions=result.recommended_actions,
            source_port=flow.source_port,
            destination_port=flow.destination_port,
            packets=flow.packets,
            bytes_transferred=flow.bytes_transferred,
            duration=flow.duration,
            received_at=flow.received_at,
        )

        # only after the graph write above has committed
        await self.bus.publish(self.incident_queue, record)
        logger.info(
            "Sent enriched record to %s: %s -> %s (%s)",
            self.incident_queue, record.source_ip, record.destination_ip, record.classification,
        )
        return record
