from __future__ import annotations

import threading
from datetime import datetime
from typing import Dict, List, Optional, Tuple, Union

import pytest

from travel_buffer.config import EngineSettings
from travel_buffer.models import (
    Coordinates,
    LocationDescriptor,
    ScheduleEvent,
    TrafficSnapshot,
    WeatherSnapshot,
)

DAY = datetime(2026, 6, 20)

Outcome = Union[TrafficSnapshot, WeatherSnapshot, Exception]


def at(clock: str) -> datetime:
    hour, minute = (int(part) for part in clock.split(":"))
    return DAY.replace(hour=hour, minute=minute)


def make_event(
    event_id: str,
    start: str,
    end: str,
    location: str,
    kind: str = "reception",
    **extra,
) -> ScheduleEvent:
    return ScheduleEvent(
        id=event_id,
        title=f"Event {event_id}",
        kind=kind,
        start=at(start),
        end=at(end),
        location=location,
        **extra,
    )


def traffic(current: float, typical: float, congestion: str = "light", **extra) -> TrafficSnapshot:
    return TrafficSnapshot(current_duration=current, typical_duration=typical, congestion=congestion, **extra)


class ScriptedTraffic:
    """Returns snapshots by (origin address, destination address); lists are consumed in order."""

    def __init__(self, routes: Optional[Dict[Tuple[str, str], object]] = None, default: Optional[Outcome] = None):
        self.routes = routes or {}
        self.default = default
        self.calls: List[Tuple[str, str, datetime]] = []
        self._lock = threading.Lock()

    def get_traffic(self, origin, destination, departure_time):
        with self._lock:
            self.calls.append((origin.address, destination.address, departure_time))
            outcome = self.routes.get((origin.address, destination.address), self.default)
            if isinstance(outcome, list):
                outcome = outcome.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class ScriptedWeather:
    def __init__(self, default: Outcome = WeatherSnapshot()):
        self.default = default
        self.calls: List[Tuple[str, Tuple[datetime, datetime]]] = []
        self._lock = threading.Lock()

    def get_weather(self, location, window):
        with self._lock:
            self.calls.append((location.address, window))
        if isinstance(self.default, Exception):
            raise self.default
        return self.default


@pytest.fixture
def locations() -> Dict[str, LocationDescriptor]:
    return {
        "X": LocationDescriptor(address="X", coordinates=Coordinates(lat=40.0, lng=-74.0), category="hotel"),
        "Y": LocationDescriptor(
            address="Y", coordinates=Coordinates(lat=40.2, lng=-74.2), category="ceremony_site"
        ),
        "Z": LocationDescriptor(
            address="Z", coordinates=Coordinates(lat=40.4, lng=-74.1), category="reception_site"
        ),
    }


@pytest.fixture
def settings() -> EngineSettings:
    return EngineSettings(gateway_timeout=1.0, max_retries=2, backoff=0.0, max_workers=4)
