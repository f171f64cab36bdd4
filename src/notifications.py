"""Deploy run notifications via Slack and ntfy.sh."""

from __future__ import annotations

import json
import logging
import urllib.request
from urllib.error import URLError

from inkpress.config import NotificationConfig
from inkpress.errors import PipelineReport

logger = logging.getLogger(__name__)


def send_notification(
    config: NotificationConfig, report: PipelineReport, *, site_title: str = ""
) -> None:
    """Send the deploy report to configured channels.

    Delivery problems are logged and never change the outcome of the run.

    Args:
        config: Notification configuration (Slack webhook, ntfy URL/topic).
        report: The pipeline report to summarize.
        site_title: Prefixed to messages so several sites can share a channel.
    """
    if not config.is_configured:
        return

    heading = _heading(report, site_title)

    if config.slack_webhook:
        _send_slack(config.slack_webhook, heading, report)

    if config.ntfy_url:
        _send_ntfy(config.ntfy_url, config.ntfy_topic, heading, report)


def _heading(report: PipelineReport, site_title: str) -> str:
    status = "deployed" if report.published else "not deployed"
    if not report.success:
        status = "deploy failed"
    return f"{site_title}: {status}" if site_title else f"inkpress: {status}"


def _send_slack(webhook_url: str, heading: str, report: PipelineReport) -> None:
    """POST a message to a Slack webhook."""
    text = f"*{heading}*\n{report.summary_text()}"
    payload = json.dumps({"text": text}).encode("utf-8")
    req = urllib.request.Request(
        webhook_url,
        data=payload,
        headers={"Content-Type": "application/json"},
        method="POST",
    )
    try:
        with urllib.request.urlopen(req, timeout=10) as resp:
            if resp.status != 200:
                logger.warning("Slack webhook returned status %d", resp.status)
    except (URLError, OSError) as exc:
        logger.warning("Failed to send Slack notification: %s", exc)


def _send_ntfy(base_url: str, topic: str, heading: str, report: PipelineReport) -> None:
    """POST a message to ntfy.sh."""
    url = f"{base_url.rstrip('/')}/{topic}"
    req = urllib.request.Request(
        url,
        data=report.summary_text().encode("utf-8"),
        headers={
            "Title": heading,
            "Priority": "default" if report.success else "high",
            "Tags": "rocket" if report.published else ("warning" if not report.success else "zzz"),
        },
        method="POST",
    )
    try:
        with urllib.request.urlopen(req, timeout=10) as resp:
            if resp.status != 200:
                logger.warning("ntfy returned status %d", resp.status)
    except (URLError, OSError) as exc:
        logger.warning("Failed to send ntfy notification: %s", exc)
