# backend/app/services/alerting/alert_dispatcher.py
import logging

from app.schemas.incidents import AggregatedView
from app.services.alerting.slack_alert_service import send_slack_alert
from app.services.alerting.webhook_alert_service import send_generic_webhook_alert

logger = logging.getLogger(__name__)

ALERT_LEVELS = ("high", "critical")


def dispatch_alerts(view: AggregatedView) -> None:
    """
    Central place to decide *when* to alert and which channels to use.
    Only HIGH / CRITICAL incidents trigger alerts.
    """
    analysis = view.analysis
    if analysis.risk_level not in ALERT_LEVELS:
        logger.info(
            "Risk level %s below alert threshold; no alerts sent.", analysis.risk_level
        )
        return

    logger.info(
        "Dispatching alerts for %s -> %s (risk_level=%s)",
        analysis.source_ip,
        analysis.destination_ip,
        analysis.risk_level,
    )

    # Fan-out to individual channels; failures shouldn't break the pipeline.
    try:
        send_slack_alert(view)
    except Exception:
        logger.exception("Slack alert failed.")

    try:
        send_generic_webhook_alert(view)
    except Exception:
        logger.exception("Generic webhook alert failed.")
