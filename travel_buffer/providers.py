"""HTTP traffic and weather gateways backed by Google Directions and OpenWeatherMap."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

import requests

from .calculator import classify_congestion
from .config import EngineSettings
from .errors import GatewayTimeout, GatewayUnavailable, MalformedLocation, MalformedSnapshot
from .gateways import TimeWindow
from .models import AlternateRoute, LocationDescriptor, TrafficSnapshot, WeatherSnapshot

logger = logging.getLogger(__name__)

DIRECTIONS_URL = "https://maps.googleapis.com/maps/api/directions/json"
FORECAST_URL = "https://api.openweathermap.org/data/2.5/forecast"
METERS_PER_MILE = 1609.34
FORECAST_MATCH_SECONDS = 3 * 60 * 60
USER_AGENT = "travel-buffer/0.1"


def _request_json(
    method: str,
    url: str,
    timeout: float,
    session: Optional[requests.Session] = None,
    **kwargs,
) -> Dict[str, Any]:
    """Single HTTP attempt mapped onto the gateway error taxonomy."""
    kwargs.setdefault("headers", {"User-Agent": USER_AGENT})
    requester = session.request if session is not None else requests.request
    try:
        response = requester(method, url, timeout=timeout, **kwargs)
        response.raise_for_status()
    except requests.Timeout as exc:
        raise GatewayTimeout(f"{url} timed out after {timeout}s") from exc
    except requests.RequestException as exc:
        raise GatewayUnavailable(f"{url} request failed: {exc}") from exc
    try:
        data = response.json()
    except ValueError as exc:
        raise MalformedSnapshot(f"{url} returned a non-JSON body") from exc
    if not isinstance(data, dict):
        raise MalformedSnapshot(f"{url} returned {type(data).__name__} instead of an object")
    return data


def _coordinates(location: LocationDescriptor) -> str:
    if location.coordinates is None:
        raise MalformedLocation(f"No coordinates for {location.address!r}")
    return f"{location.coordinates.lat},{location.coordinates.lng}"


def _minutes(leg: Dict[str, Any], key: str) -> Optional[int]:
    value = (leg.get(key) or {}).get("value")
    if value is None:
        return None
    return round(value / 60)


class GoogleDirectionsGateway:
    def __init__(self, api_key: str, timeout: float = 10.0, session: Optional[requests.Session] = None):
        self.api_key = api_key
        self.timeout = timeout
        self.session = session

    def get_traffic(
        self,
        origin: LocationDescriptor,
        destination: LocationDescriptor,
        departure_time: datetime,
    ) -> TrafficSnapshot:
        logger.debug("Directions lookup %s -> %s at %s", origin.address, destination.address, departure_time)
        data = _request_json(
            "GET",
            DIRECTIONS_URL,
            timeout=self.timeout,
            session=self.session,
            params={
                "origin": _coordinates(origin),
                "destination": _coordinates(destination),
                "departure_time": int(departure_time.timestamp()),
                "traffic_model": "best_guess",
                "alternatives": "true",
                "key": self.api_key,
            },
        )
        status = data.get("status")
        if status != "OK":
            raise GatewayUnavailable(f"Google Maps API error: {status}")
        return parse_directions(data)


def parse_directions(data: Dict[str, Any]) -> TrafficSnapshot:
    try:
        return _parse_directions(data)
    except (AttributeError, TypeError, ValueError) as exc:
        raise MalformedSnapshot(f"Directions response has unexpected shape: {exc}") from exc


def _parse_directions(data: Dict[str, Any]) -> TrafficSnapshot:
    try:
        routes = data["routes"]
        leg = routes[0]["legs"][0]
    except (KeyError, IndexError, TypeError) as exc:
        raise MalformedSnapshot("Directions response has no route legs") from exc

    typical = _minutes(leg, "duration")
    if typical is None:
        raise MalformedSnapshot("Directions leg has no duration")
    current = _minutes(leg, "duration_in_traffic") or typical

    alternates: List[AlternateRoute] = []
    for route in routes[1:3]:
        alt_leg = (route.get("legs") or [{}])[0]
        alt_typical = _minutes(alt_leg, "duration")
        if alt_typical is None:
            continue
        alt_current = _minutes(alt_leg, "duration_in_traffic") or alt_typical
        distance = (alt_leg.get("distance") or {}).get("value", 0)
        alternates.append(
            AlternateRoute(
                duration=alt_current,
                distance=round(distance / METERS_PER_MILE),
                congestion=classify_congestion(alt_current / alt_typical if alt_typical else 1.0),
                description=route.get("summary", ""),
            )
        )

    ratio = current / typical if typical else 1.0
    return TrafficSnapshot(
        current_duration=current,
        typical_duration=typical,
        congestion=classify_congestion(ratio),
        alternate_routes=alternates,
    )


class OpenWeatherGateway:
    def __init__(self, api_key: str, timeout: float = 10.0, session: Optional[requests.Session] = None):
        self.api_key = api_key
        self.timeout = timeout
        self.session = session

    def get_weather(self, location: LocationDescriptor, window: TimeWindow) -> WeatherSnapshot:
        if location.coordinates is None:
            raise MalformedLocation(f"No coordinates for {location.address!r}")
        logger.debug("Forecast lookup for %s", location.address)
        data = _request_json(
            "GET",
            FORECAST_URL,
            timeout=self.timeout,
            session=self.session,
            params={
                "lat": location.coordinates.lat,
                "lon": location.coordinates.lng,
                "appid": self.api_key,
                "units": "imperial",
            },
        )
        if str(data.get("cod")) != "200":
            raise GatewayUnavailable(f"Weather API error: {data.get('message')}")
        return parse_forecast(data, window[0])


def _pick_forecast(entries: List[Dict[str, Any]], target: datetime) -> Dict[str, Any]:
    target_ts = target.timestamp()
    for entry in entries:
        if abs(entry.get("dt", 0) - target_ts) < FORECAST_MATCH_SECONDS:
            return entry
    return entries[0]


def parse_forecast(data: Dict[str, Any], target: datetime) -> WeatherSnapshot:
    try:
        return _parse_forecast(data, target)
    except (AttributeError, TypeError, ValueError) as exc:
        raise MalformedSnapshot(f"Forecast response has unexpected shape: {exc}") from exc


def _parse_forecast(data: Dict[str, Any], target: datetime) -> WeatherSnapshot:
    entries = data.get("list") or []
    if not entries:
        raise MalformedSnapshot("Forecast response has no entries")
    forecast = _pick_forecast(entries, target)

    try:
        weather = forecast["weather"][0]
    except (KeyError, IndexError, TypeError) as exc:
        raise MalformedSnapshot("Forecast entry has no weather block") from exc
    main = forecast.get("main") or {}
    wind = forecast.get("wind") or {}
    rain = (forecast.get("rain") or {}).get("3h", 0) or 0
    snow = (forecast.get("snow") or {}).get("3h", 0) or 0
    # Visibility may sit on the entry itself (current API) or under "main".
    visibility_m = forecast.get("visibility", main.get("visibility"))

    group = weather.get("main")
    if group == "Rain":
        condition = "rain"
        severity = "heavy" if rain > 0.5 else "moderate" if rain > 0.1 else "light"
    elif group == "Snow":
        condition = "snow"
        severity = "heavy" if snow > 2 else "moderate" if snow > 0.5 else "light"
    elif group == "Thunderstorm":
        condition, severity = "storm", "heavy"
    elif group in {"Fog", "Mist"}:
        condition = "fog"
        meters = visibility_m if visibility_m is not None else 10000
        severity = "heavy" if meters < 1000 else "moderate" if meters < 5000 else "light"
    else:
        condition, severity = "clear", "light"

    return WeatherSnapshot(
        condition=condition,
        severity=severity,
        visibility=visibility_m / METERS_PER_MILE if visibility_m is not None else 10.0,
        wind_speed=wind.get("speed") or 0.0,
        precipitation=rain or snow,
    )


def build_gateways(settings: EngineSettings) -> Tuple[GoogleDirectionsGateway, OpenWeatherGateway]:
    """HTTP gateways configured from EngineSettings; keys must already be checked."""
    session = requests.Session()
    return (
        GoogleDirectionsGateway(settings.google_maps_api_key, timeout=settings.gateway_timeout, session=session),
        OpenWeatherGateway(settings.weather_api_key, timeout=settings.gateway_timeout, session=session),
    )


def missing_api_keys(settings: EngineSettings) -> List[str]:
    missing = []
    if not settings.google_maps_api_key:
        missing.append("GOOGLE_MAPS_API_KEY")
    if not settings.weather_api_key:
        missing.append("WEATHER_API_KEY")
    return missing
