# backend/app/services/alerting/slack_alert_service.py
import logging
import requests

from app.schemas.incidents import AggregatedView
from app.core.config import settings

logger = logging.getLogger(__name__)


def build_slack_text(view: AggregatedView) -> str:
    analysis = view.analysis
    text_lines = [
        ":rotating_light: *High-risk network flow detected*",
        f"*Flow*: `{analysis.source_ip}` -> `{analysis.destination_ip}` ({analysis.protocol})",
        f"*Classification*: `{analysis.classification}`",
        f"*Risk level*: `{analysis.risk_level}` (score {analysis.risk_score})",
    ]

    insights = view.graph_insights
    if insights.critical_nodes:
        nodes = ", ".join(f"`{n.ip}` ({n.score:.3f})" for n in insights.critical_nodes)
        text_lines.append(f"*Critical nodes*: {nodes}")

    for path in insights.attack_paths:
        text_lines.append(f"*Attack path*: `{path.source}` -> `{path.destination}` in {path.hops} hop(s)")

    if analysis.recommended_actions:
        text_lines.append("")
        text_lines.append("*Recommended actions:*")
        for action in analysis.recommended_actions[:5]:
            text_lines.append(f"• {action}")

    return "\n".join(text_lines)


def send_slack_alert(view: AggregatedView) -> None:
    """
    Simple Slack alert sender using Incoming Webhook URL.

    Configure env:
      SLACK_ALERT_WEBHOOK_URL=https://hooks.slack.com/services/...
    """
    webhook_url = settings.SLACK_ALERT_WEBHOOK_URL
    if not webhook_url:
        logger.info("Slack webhook URL not configured; skipping Slack alert.")
        return

    payload = {"text": build_slack_text(view)}

    try:
        resp = requests.post(webhook_url, json=payload, timeout=5)
        resp.raise_for_status()
    except requests.RequestException as exc:
        logger.error("Failed to send Slack alert: %s", exc)
