# backend/app/services/runtime.py
import logging
from typing import List, Optional

from app.core.config import Settings, settings as default_settings
from app.db.init_db import init_db
from app.db.session import create_db_engine, create_session_factory
from app.services.classifier.threat_classifier import Oracle, ThreatClassifier
from app.services.correlation.incident_correlator import IncidentCorrelator
from app.services.correlation.latest_view import LatestViewStore
from app.services.graph.graph_store import GraphStore
from app.services.ingest.ingest_service import SessionIngestService
from app.services.ingest.session_log_store import SessionLogStore
from app.services.messaging.bus import InMemoryMessageBus, MessageBus
from app.services.messaging.consumer import QueueConsumer
from app.services.messaging.rabbitmq_bus import RabbitMQMessageBus
from app.services.oracle.oracle_client import ClassificationOracle

logger = logging.getLogger(__name__)


def build_message_bus(cfg: Settings) -> MessageBus:
    kind = cfg.MESSAGE_BUS.lower()
    if kind == "memory":
        return InMemoryMessageBus()
    if kind == "rabbitmq":
        return RabbitMQMessageBus(cfg.RABBITMQ_URL)
    raise ValueError(f"Unsupported MESSAGE_BUS {cfg.MESSAGE_BUS!r} (expected rabbitmq or memory)")


class ServiceContainer:
    """
    Owns every long-lived handle of one process: bus, graph store,
    latest-view store and the pipeline services built on top of them.
    """

    def __init__(
        self,
        cfg: Settings,
        bus: MessageBus,
        graph_store: GraphStore,
        oracle: Oracle,
        view_store: Optional[LatestViewStore] = None,
        log_store: Optional[SessionLogStore] = None,
    ) -> None:
        self.settings = cfg
        self.bus = bus
        self.graph_store = graph_store
        self.view_store = view_store or LatestViewStore()
        self.log_store = log_store or SessionLogStore(cfg.RECENT_LOG_LIMIT)

        self.classifier = ThreatClassifier(
            graph_store=graph_store,
            oracle=oracle,
            bus=bus,
            incident_queue=cfg.INCIDENT_QUEUE,
            concurrency=cfg.CLASSIFIER_CONCURRENCY,
        )
        self.correlator = IncidentCorrelator(
            graph_store=graph_store,
            bus=bus,
            view_store=self.view_store,
            response_queue=cfg.RESPONSE_QUEUE,
            critical_nodes_limit=cfg.CRITICAL_NODES_LIMIT,
            max_hops=cfg.ATTACK_PATH_MAX_HOPS,
            action_threshold=cfg.RISK_ACTION_THRESHOLD,
            known_malicious_ips=cfg.KNOWN_MALICIOUS_IPS,
        )
        self.ingest = SessionIngestService(bus, self.log_store, cfg.RAW_LOG_QUEUE)
        self.consumers: List[QueueConsumer] = []

    @classmethod
    def from_settings(cls, cfg: Optional[Settings] = None) -> "ServiceContainer":
        cfg = cfg or default_settings
        engine = create_db_engine(cfg.DATABASE_URL)
        init_db(engine)

        return cls(
            cfg=cfg,
            bus=build_message_bus(cfg),
            graph_store=GraphStore(create_session_factory(engine)),
            oracle=ClassificationOracle(
                url=cfg.ORACLE_URL,
                timeout=cfg.ORACLE_TIMEOUT_SECONDS,
                retry_attempts=cfg.ORACLE_RETRY_ATTEMPTS,
            ),
        )

    async def start(self) -> None:
        await self.bus.connect()

        if self.settings.ENABLE_CLASSIFIER:
            self.consumers.append(
                QueueConsumer(
                    self.bus,
                    self.settings.RAW_LOG_QUEUE,
                    self.classifier.handle_message,
                    dead_letter_queue=self.settings.DEAD_LETTER_QUEUE,
                    prefetch=self.classifier.concurrency,
                )
            )
        if self.settings.ENABLE_CORRELATOR:
            self.consumers.append(
                QueueConsumer(
                    self.bus,
                    self.settings.INCIDENT_QUEUE,
                    self.correlator.handle_message,
                    dead_letter_queue=self.settings.DEAD_LETTER_QUEUE,
                    prefetch=1,
                )
            )

        for consumer in self.consumers:
            await consumer.start()
            logger.info("Consumer started on %s", consumer.queue)

    async def stop(self) -> None:
        self.consumers.clear()
        await self.bus.close()
