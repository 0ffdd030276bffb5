"""Minimal live smoke test against the real traffic and weather providers."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from travel_buffer.alerts import generate_alerts
from travel_buffer.config import EngineSettings
from travel_buffer.models import Coordinates, LocationDescriptor, ScheduleEvent
from travel_buffer.providers import build_gateways, missing_api_keys
from travel_buffer.reconciler import TimelineReconciler


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    settings = EngineSettings.from_env()
    missing = missing_api_keys(settings)
    if missing:
        raise SystemExit(f"{', '.join(missing)} is not set.")

    locations = {
        "hotel": LocationDescriptor(
            address="The Plaza, New York", coordinates=Coordinates(lat=40.7646, lng=-73.9743), category="hotel"
        ),
        "chapel": LocationDescriptor(
            address="St. Patrick's Cathedral, New York",
            coordinates=Coordinates(lat=40.7585, lng=-73.9760),
            category="ceremony_site",
        ),
        "park": LocationDescriptor(
            address="Brooklyn Bridge Park", coordinates=Coordinates(lat=40.7003, lng=-73.9967), category="photo_location"
        ),
    }
    start = (datetime.now() + timedelta(days=1)).replace(hour=11, minute=0, second=0, microsecond=0)
    events = [
        ScheduleEvent(id="prep", title="Getting ready", kind="preparation",
                      start=start, end=start + timedelta(hours=2), location="hotel"),
        ScheduleEvent(id="ceremony", title="Ceremony", kind="ceremony",
                      start=start + timedelta(hours=2, minutes=15), end=start + timedelta(hours=3), location="chapel"),
        ScheduleEvent(id="photos", title="Portraits", kind="photo_session",
                      start=start + timedelta(hours=3, minutes=20), end=start + timedelta(hours=4), location="park"),
    ]

    traffic, weather = build_gateways(settings)
    result = TimelineReconciler(traffic, weather, settings=settings).run(events, locations)
    alerts = generate_alerts(result.events, result.estimates)

    for gap in result.estimates:
        print(
            f"{gap.origin} -> {gap.destination}: {gap.estimate.total_buffer} min "
            f"({gap.estimate.confidence}% confidence, fallback={gap.fallback})"
        )
    print(f"Shifted {sum(1 for gap in result.estimates if gap.shift_minutes)} events, {len(alerts)} alerts.")


if __name__ == "__main__":
    main()
