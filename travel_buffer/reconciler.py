"""Timeline reconciliation: fetch travel conditions per gap and cascade shifts."""

from __future__ import annotations

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from . import calculator
from .config import EngineSettings
from .errors import GatewayError, GatewayTimeout, MalformedLocation, TimelineValidationError
from .gateways import LocationDirectory, TrafficGateway, WeatherGateway, call_with_retries
from .models import (
    AlternateRoute,
    Diagnostic,
    GapEstimate,
    LocationDescriptor,
    ReconciliationResult,
    ScheduleEvent,
    TrafficSnapshot,
    TravelEstimate,
    WeatherSnapshot,
    midpoint,
)

logger = logging.getLogger(__name__)

WEATHER_WINDOW = timedelta(minutes=60)

CacheKey = Tuple[str, str, datetime]
FetchPair = Tuple[Future, Future]


def _append_note(notes: str, note: str) -> str:
    if note in notes:
        return notes
    return f"{notes} | {note}".strip(" |")


def _validate(events: Sequence[ScheduleEvent]) -> None:
    if not events:
        raise TimelineValidationError("Timeline is empty")
    seen = set()
    for index, event in enumerate(events):
        if event.id in seen:
            raise TimelineValidationError(f"Duplicate event id: {event.id}")
        seen.add(event.id)
        if index and event.start < events[index - 1].start:
            raise TimelineValidationError(
                f"Event {event.id} starts before {events[index - 1].id}; timeline must be ordered by start"
            )


def _faster_route(traffic: TrafficSnapshot) -> Optional[AlternateRoute]:
    candidates = [route for route in traffic.alternate_routes if route.duration < traffic.current_duration]
    if not candidates:
        return None
    return min(candidates, key=lambda route: route.duration)


class TimelineReconciler:
    """Reconciles an ordered day timeline against live travel conditions.

    Gateway lookups for every location-changing gap are prefetched on a
    bounded worker pool. Shifts are then applied strictly in gap order, each
    gap measured from the already-finalized end of the event before it.
    """

    def __init__(
        self,
        traffic: TrafficGateway,
        weather: WeatherGateway,
        settings: Optional[EngineSettings] = None,
        directory: Optional[LocationDirectory] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.traffic = traffic
        self.weather = weather
        self.settings = settings or EngineSettings()
        self.directory = directory
        self.sleep = sleep

    def reconcile(
        self,
        events: Sequence[ScheduleEvent],
        locations: Mapping[str, LocationDescriptor],
    ) -> List[ScheduleEvent]:
        return self.run(events, locations).events

    def run(
        self,
        events: Sequence[ScheduleEvent],
        locations: Mapping[str, LocationDescriptor],
    ) -> ReconciliationResult:
        events = list(events)
        _validate(events)
        resolved = self._resolve_locations(events, locations)
        result = ReconciliationResult()

        pool = ThreadPoolExecutor(max_workers=self.settings.max_workers, thread_name_prefix="travel-gateway")
        try:
            cache: Dict[CacheKey, FetchPair] = {}
            for prev, nxt in zip(events, events[1:]):
                if prev.location != nxt.location:
                    self._fetch(pool, cache, resolved, prev.location, nxt.location, prev.end, nxt.start)

            adjusted = [events[0].model_copy(deep=True)]
            for index in range(1, len(events)):
                prev = adjusted[-1]
                nxt = events[index].model_copy(deep=True)
                if prev.location == nxt.location:
                    nxt = self._follow_same_location(prev, nxt, events[index - 1])
                else:
                    gap, nxt = self._reconcile_gap(pool, cache, resolved, prev, nxt, result)
                    result.estimates.append(gap)
                adjusted.append(nxt)
        finally:
            pool.shutdown(wait=False, cancel_futures=True)

        result.events = adjusted
        shifted = sum(1 for gap in result.estimates if gap.shift_minutes)
        logger.info(
            "Reconciled %d events: %d travel gaps, %d shifted, %d fallbacks",
            len(adjusted),
            len(result.estimates),
            shifted,
            len(result.diagnostics),
        )
        return result

    def _resolve_locations(
        self,
        events: Sequence[ScheduleEvent],
        locations: Mapping[str, LocationDescriptor],
    ) -> Dict[str, LocationDescriptor]:
        needed = set()
        for prev, nxt in zip(events, events[1:]):
            if prev.location != nxt.location:
                needed.update((prev.location, nxt.location))

        resolved: Dict[str, LocationDescriptor] = {}
        for ref in sorted(needed):
            if ref in locations:
                resolved[ref] = locations[ref]
                continue
            if self.directory is None:
                raise TimelineValidationError(f"No location descriptor for {ref!r}")
            try:
                resolved[ref] = self.directory.resolve(ref)
            except (MalformedLocation, KeyError) as exc:
                raise TimelineValidationError(f"Location {ref!r} could not be resolved") from exc
        return resolved

    def _cache_key(self, origin: str, destination: str, departure: datetime) -> CacheKey:
        bucket = self.settings.cache_bucket_minutes
        rounded = departure.replace(second=0, microsecond=0)
        rounded -= timedelta(minutes=rounded.minute % bucket)
        return origin, destination, rounded

    def _fetch(
        self,
        pool: ThreadPoolExecutor,
        cache: Dict[CacheKey, FetchPair],
        resolved: Mapping[str, LocationDescriptor],
        origin_ref: str,
        destination_ref: str,
        departure: datetime,
        arrival: datetime,
    ) -> Optional[FetchPair]:
        key = self._cache_key(origin_ref, destination_ref, departure)
        if key in cache:
            logger.debug("Reusing lookup for %s -> %s at %s", *key)
            return cache[key]

        origin = resolved[origin_ref]
        destination = resolved[destination_ref]
        if origin.coordinates is None or destination.coordinates is None:
            return None

        window = (departure, max(arrival, departure + WEATHER_WINDOW))
        retries, backoff = self.settings.max_retries, self.settings.backoff
        pair = (
            pool.submit(
                call_with_retries,
                lambda: self.traffic.get_traffic(origin, destination, departure),
                retries,
                backoff,
                self.sleep,
            ),
            pool.submit(
                call_with_retries,
                lambda: self.weather.get_weather(midpoint(origin, destination), window),
                retries,
                backoff,
                self.sleep,
            ),
        )
        cache[key] = pair
        return pair

    def _await(self, future: Future):
        try:
            return future.result(timeout=self.settings.wait_budget)
        except FutureTimeout as exc:
            raise GatewayTimeout(f"No gateway response within {self.settings.wait_budget:.1f}s") from exc

    def _lookup(
        self,
        pool: ThreadPoolExecutor,
        cache: Dict[CacheKey, FetchPair],
        resolved: Mapping[str, LocationDescriptor],
        prev: ScheduleEvent,
        nxt: ScheduleEvent,
    ) -> Tuple[TrafficSnapshot, WeatherSnapshot]:
        pair = self._fetch(pool, cache, resolved, prev.location, nxt.location, prev.end, nxt.start)
        if pair is None:
            raise MalformedLocation(f"Missing coordinates for {prev.location!r} or {nxt.location!r}")
        traffic_future, weather_future = pair
        return self._await(traffic_future), self._await(weather_future)

    def _reconcile_gap(
        self,
        pool: ThreadPoolExecutor,
        cache: Dict[CacheKey, FetchPair],
        resolved: Mapping[str, LocationDescriptor],
        prev: ScheduleEvent,
        nxt: ScheduleEvent,
        result: ReconciliationResult,
    ) -> Tuple[GapEstimate, ScheduleEvent]:
        fallback_reason = None
        faster_route = None
        try:
            traffic, weather = self._lookup(pool, cache, resolved, prev, nxt)
        except (GatewayError, MalformedLocation) as exc:
            code = type(exc).__name__
            fallback_reason = f"{code}: {exc}"
            estimate: TravelEstimate = calculator.FALLBACK_ESTIMATE
            logger.warning(
                "Travel lookup %s -> %s failed (%s); using conservative fallback",
                prev.location,
                nxt.location,
                fallback_reason,
            )
            result.diagnostics.append(Diagnostic(event_id=nxt.id, code=code, message=str(exc)))
            nxt.notes = _append_note(
                nxt.notes,
                f"[FALLBACK: {estimate.total_buffer}min conservative travel estimate ({code})]",
            )
        else:
            estimate = calculator.estimate(traffic, weather, nxt.kind)
            faster_route = _faster_route(traffic)

        nxt.travel_buffer = estimate.total_buffer
        required_start = prev.end + timedelta(minutes=estimate.total_buffer)
        shift = self._shift(nxt, required_start, "for traffic/weather")

        gap = GapEstimate(
            origin_event_id=prev.id,
            event_id=nxt.id,
            origin=prev.location,
            destination=nxt.location,
            departure=prev.end,
            estimate=estimate,
            fallback=fallback_reason is not None,
            fallback_reason=fallback_reason,
            shift_minutes=shift,
            faster_route=faster_route,
        )
        return gap, nxt

    def _follow_same_location(
        self,
        prev: ScheduleEvent,
        nxt: ScheduleEvent,
        original_prev: ScheduleEvent,
    ) -> ScheduleEvent:
        # Back-to-back events stay back-to-back; overlapping ones only keep start order.
        sequential = nxt.start >= original_prev.end
        required_start = prev.end if sequential else prev.start
        self._shift(nxt, required_start, "to follow upstream shift")
        return nxt

    def _shift(self, event: ScheduleEvent, required_start: datetime, reason: str) -> int:
        if required_start <= event.start:
            return 0
        delay = required_start - event.start
        minutes = calculator.round_half_up(delay.total_seconds() / 60)
        event.start = required_start
        event.end = event.end + delay
        event.provenance = "auto-adjusted"
        event.notes = _append_note(event.notes, f"[AUTO-ADJUSTED: +{minutes}min {reason}]")
        logger.info("Shifted %s (%s) by %d minutes %s", event.id, event.title, minutes, reason)
        return minutes
