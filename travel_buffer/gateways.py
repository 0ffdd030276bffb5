"""Collaborator interfaces and the retry wrapper used around gateway calls."""

from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import Callable, List, Protocol, Tuple, TypeVar

from .errors import GatewayError
from .models import Alert, LocationDescriptor, ScheduleEvent, TrafficSnapshot, WeatherSnapshot

logger = logging.getLogger(__name__)

T = TypeVar("T")

TimeWindow = Tuple[datetime, datetime]


class TrafficGateway(Protocol):
    def get_traffic(
        self,
        origin: LocationDescriptor,
        destination: LocationDescriptor,
        departure_time: datetime,
    ) -> TrafficSnapshot: ...


class WeatherGateway(Protocol):
    def get_weather(self, location: LocationDescriptor, window: TimeWindow) -> WeatherSnapshot: ...


class LocationDirectory(Protocol):
    def resolve(self, location_ref: str) -> LocationDescriptor: ...


class TimelineStore(Protocol):
    def load_timeline(self, session_id: str) -> List[ScheduleEvent]: ...

    def save_timeline(self, session_id: str, events: List[ScheduleEvent]) -> None: ...


class NotificationSink(Protocol):
    def publish(self, alerts: List[Alert]) -> None: ...


def call_with_retries(
    call: Callable[[], T],
    retries: int = 2,
    backoff: float = 0.5,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Run a gateway call, retrying GatewayError with exponential backoff.

    The last GatewayError is re-raised once retries are exhausted; any other
    exception propagates immediately.
    """
    for attempt in range(retries + 1):
        try:
            return call()
        except GatewayError as exc:
            if attempt == retries:
                raise
            delay = backoff * (2**attempt)
            logger.debug("Gateway call failed (%s), retrying in %.2fs", exc, delay)
            sleep(delay)
    raise AssertionError("unreachable")
