"""Pure travel-buffer arithmetic: traffic + weather + event kind -> estimate."""

from __future__ import annotations

import math
from typing import Dict

from .models import TrafficSnapshot, TravelEstimate, WeatherSnapshot

MAX_TRAFFIC_MULTIPLIER = 3.0
MIN_CONFIDENCE = 20
MALFORMED_CONFIDENCE_CAP = 50

INCIDENT_PENALTIES: Dict[str, float] = {"minor": 0.1, "major": 0.3, "severe": 0.5}

WEATHER_DELAYS: Dict[str, Dict[str, float]] = {
    "clear": {"light": 0, "moderate": 0, "heavy": 0},
    "rain": {"light": 5, "moderate": 15, "heavy": 30},
    "snow": {"light": 15, "moderate": 30, "heavy": 60},
    "storm": {"light": 45, "moderate": 45, "heavy": 45},
    "fog": {"light": 10, "moderate": 20, "heavy": 40},
}

# Kinds where lateness is costly get more weather slack; "buffer" blocks are flexible.
KIND_WEATHER_MULTIPLIERS: Dict[str, float] = {
    "ceremony": 1.5,
    "photo_session": 1.2,
    "reception": 1.0,
    "preparation": 1.0,
    "travel": 1.0,
    "buffer": 0.8,
}

KIND_BUFFERS: Dict[str, int] = {
    "ceremony": 20,
    "preparation": 15,
    "photo_session": 10,
    "reception": 10,
    "travel": 10,
    "buffer": 5,
}

CONGESTION_PENALTIES: Dict[str, int] = {"severe": 30, "heavy": 20, "moderate": 10}

FALLBACK_ESTIMATE = TravelEstimate(
    base_time=30,
    traffic_multiplier=1.5,
    weather_delay=15,
    total_buffer=60,
    confidence=50,
)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def classify_congestion(ratio: float) -> str:
    """Map a current/typical duration ratio to a congestion level."""
    if ratio < 1.1:
        return "light"
    if ratio < 1.3:
        return "moderate"
    if ratio < 1.6:
        return "heavy"
    return "severe"


def traffic_multiplier(traffic: TrafficSnapshot, typical: float) -> float:
    current = traffic.current_duration
    if not math.isfinite(current) or current < 0:
        current = typical
    penalty = sum(INCIDENT_PENALTIES.get(incident.severity, 0.0) for incident in traffic.incidents)
    return min(current / typical + penalty, MAX_TRAFFIC_MULTIPLIER)


def weather_delay(weather: WeatherSnapshot, event_kind: str) -> int:
    base = WEATHER_DELAYS.get(weather.condition, {}).get(weather.severity, 0)
    return round_half_up(base * KIND_WEATHER_MULTIPLIERS.get(event_kind, 1.0))


def event_buffer(event_kind: str) -> int:
    return KIND_BUFFERS.get(event_kind, 10)


def confidence_score(traffic: TrafficSnapshot, weather: WeatherSnapshot) -> int:
    confidence = 100 - CONGESTION_PENALTIES.get(traffic.congestion, 0)

    if weather.condition == "storm":
        confidence -= 40
    elif weather.severity == "heavy":
        confidence -= 25
    elif weather.severity == "moderate":
        confidence -= 15

    if weather.visibility < 1:
        confidence -= 30
    elif weather.visibility < 3:
        confidence -= 20

    return max(confidence, MIN_CONFIDENCE)


def estimate(traffic: TrafficSnapshot, weather: WeatherSnapshot, event_kind: str) -> TravelEstimate:
    """Combine one traffic and one weather snapshot into a travel estimate.

    Never raises on well-formed models. A non-positive or non-finite typical duration is
    replaced by one minute and caps confidence at 50 instead of failing.
    """
    typical = traffic.typical_duration
    malformed = not math.isfinite(typical) or typical <= 0
    if malformed:
        typical = 1.0

    multiplier = traffic_multiplier(traffic, typical)
    delay = weather_delay(weather, event_kind)
    total = round_half_up(typical * multiplier + delay + event_buffer(event_kind))

    confidence = confidence_score(traffic, weather)
    if malformed:
        confidence = min(confidence, MALFORMED_CONFIDENCE_CAP)

    return TravelEstimate(
        base_time=typical,
        traffic_multiplier=round(multiplier, 2),
        weather_delay=delay,
        total_buffer=max(total, 0),
        confidence=confidence,
    )
