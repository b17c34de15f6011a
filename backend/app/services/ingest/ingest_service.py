# backend/app/services/ingest/ingest_service.py
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from app.core.config import settings
from app.schemas.sessions import SessionBatchRequest, SessionBatchResponse
from app.services.ingest.session_log_store import SessionLogStore
from app.services.messaging.bus import MessageBus

logger = logging.getLogger(__name__)


class SessionIngestService:
    """
    Capture-agent batch -> one raw-log message per session.

    Each session is flattened with the batch's device_info and a
    received_at timestamp; no other validation happens here, the threat
    classifier owns normalization.
    """

    def __init__(
        self,
        bus: MessageBus,
        log_store: SessionLogStore,
        raw_log_queue: Optional[str] = None,
    ) -> None:
        self.bus = bus
        self.log_store = log_store
        self.raw_log_queue = raw_log_queue or settings.RAW_LOG_QUEUE

    async def ingest_batch(self, batch: SessionBatchRequest) -> SessionBatchResponse:
        received_at = datetime.now(timezone.utc).isoformat()
        published = 0

        for session in batch.sessions:
            enriched: Dict[str, Any] = {
                **session,
                "device_info": batch.device_info,
                "received_at": received_at,
            }
            self.log_store.add(enriched)

            await self.bus.publish(self.raw_log_queue, enriched)
            published += 1

        logger.info(
            "Published %d session(s) to %s from device %s",
            published,
            self.raw_log_queue,
            batch.device_info.get("hostname", "Unknown"),
        )
        return SessionBatchResponse(published=published)
