# backend/app/services/alerting/webhook_alert_service.py
import logging
import requests

from app.schemas.incidents import AggregatedView
from app.core.config import settings

logger = logging.getLogger(__name__)


def send_generic_webhook_alert(view: AggregatedView) -> None:
    """
    Generic JSON webhook for n8n, SOAR playbooks, custom dashboards, etc.
    The body is the aggregated view itself.

    Configure env:
      GENERIC_ALERT_WEBHOOK_URL=https://your-endpoint/ingest
    """
    webhook_url = settings.GENERIC_ALERT_WEBHOOK_URL
    if not webhook_url:
        logger.info("Generic webhook URL not configured; skipping generic alert.")
        return

    # JSON-safe: datetimes -> isoformat, enums -> values
    json_payload = view.model_dump(mode="json")

    try:
        resp = requests.post(webhook_url, json=json_payload, timeout=5)
        resp.raise_for_status()
    except requests.RequestException as exc:
        logger.error("Failed to send generic webhook alert: %s", exc)
