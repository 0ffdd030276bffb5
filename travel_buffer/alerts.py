"""Operator alerts derived from a finished reconciliation."""

from __future__ import annotations

import logging
from typing import List, Sequence

from .models import Alert, GapEstimate, ScheduleEvent

logger = logging.getLogger(__name__)

CRITICAL_BUFFER = 60
WARNING_BUFFER = 30
LOW_CONFIDENCE = 60
FALLBACK_MARKER = "[DEGRADED DATA]"


def _critical_recommendation(gap: GapEstimate) -> str:
    route = gap.faster_route
    if route is None:
        return "Consider rescheduling or choosing an alternate route"
    via = f" via {route.description}" if route.description else ""
    return (
        f"Consider rescheduling or taking the alternate route{via} "
        f"({route.duration:.0f} min, {route.distance:.0f} mi)"
    )


def _make_alert(gap: GapEstimate, tier: str, message: str, recommendation: str) -> Alert:
    prefix = f"{FALLBACK_MARKER} " if gap.fallback else ""
    return Alert(
        event_id=gap.event_id,
        tier=tier,
        message=prefix + message,
        recommendation=recommendation,
        confidence=gap.estimate.confidence,
        fallback=gap.fallback,
    )


def generate_alerts(events: Sequence[ScheduleEvent], estimates: Sequence[GapEstimate]) -> List[Alert]:
    """Build alerts per travel gap; one gap may yield a buffer and a confidence alert."""
    known_ids = {event.id for event in events}
    alerts: List[Alert] = []

    for gap in estimates:
        if gap.event_id not in known_ids:
            continue
        buffer = gap.estimate.total_buffer
        confidence = gap.estimate.confidence
        if buffer > CRITICAL_BUFFER:
            alerts.append(
                _make_alert(
                    gap,
                    "critical",
                    f"Severe travel delay expected: {buffer} minutes from {gap.origin} to {gap.destination}",
                    _critical_recommendation(gap),
                )
            )
        elif buffer > WARNING_BUFFER:
            alerts.append(
                _make_alert(
                    gap,
                    "warning",
                    f"Extended travel time: {buffer} minutes from {gap.origin} to {gap.destination}",
                    "Monitor traffic and weather conditions",
                )
            )

        if confidence < LOW_CONFIDENCE:
            alerts.append(
                _make_alert(
                    gap,
                    "warning",
                    f"Travel prediction uncertain ({confidence}% confidence)",
                    "Add extra buffer time and re-check conditions closer to the event",
                )
            )

    return alerts


class LoggingNotificationSink:
    """Notification sink that writes alerts to the log at a tier-matched level."""

    LEVELS = {"info": logging.INFO, "warning": logging.WARNING, "critical": logging.CRITICAL}

    def __init__(self, name: str = "travel_buffer.notifications"):
        self.logger = logging.getLogger(name)

    def publish(self, alerts: List[Alert]) -> None:
        for alert in alerts:
            self.logger.log(
                self.LEVELS[alert.tier],
                "[%s] %s -> %s (confidence %d%%)",
                alert.event_id,
                alert.message,
                alert.recommendation,
                alert.confidence,
            )
