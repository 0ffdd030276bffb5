from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

EventKind = Literal["preparation", "ceremony", "reception", "photo_session", "travel", "buffer"]
Congestion = Literal["light", "moderate", "heavy", "severe"]
Severity = Literal["light", "moderate", "heavy"]


class ScheduleEvent(BaseModel):
    id: str = Field(..., description="Stable event identifier")
    title: str = Field(..., description="Short headline")
    kind: EventKind = Field(..., description="Type of activity")
    start: datetime = Field(..., description="Scheduled start")
    end: datetime = Field(..., description="Scheduled end")
    location: str = Field(..., description="Location reference")
    participants: List[str] = Field(default_factory=list)
    equipment: Optional[List[str]] = Field(None, description="Equipment to bring")
    priority: Literal["critical", "important", "optional"] = "important"
    weather_sensitive: bool = False
    notes: str = ""
    provenance: Literal["manual", "auto-adjusted"] = "manual"
    travel_buffer: Optional[int] = Field(
        None, description="Minutes reserved before this event by the last reconciliation"
    )

    @model_validator(mode="after")
    def _check_interval(self) -> "ScheduleEvent":
        if self.start >= self.end:
            raise ValueError(f"Event {self.id} must start before it ends")
        return self


class Coordinates(BaseModel):
    model_config = ConfigDict(frozen=True)

    lat: float
    lng: float


class LocationDescriptor(BaseModel):
    model_config = ConfigDict(frozen=True)

    address: str = Field(..., description="Human-readable address")
    coordinates: Optional[Coordinates] = None
    category: Literal["venue", "hotel", "ceremony_site", "reception_site", "photo_location"] = "venue"


def midpoint(origin: LocationDescriptor, destination: LocationDescriptor) -> LocationDescriptor:
    """Location halfway between two resolved descriptors, used for route weather."""
    if origin.coordinates is None or destination.coordinates is None:
        return destination
    return LocationDescriptor(
        address=f"between {origin.address} and {destination.address}",
        coordinates=Coordinates(
            lat=(origin.coordinates.lat + destination.coordinates.lat) / 2,
            lng=(origin.coordinates.lng + destination.coordinates.lng) / 2,
        ),
        category=destination.category,
    )


class TrafficIncident(BaseModel):
    type: Literal["accident", "construction", "closure", "event"] = "accident"
    severity: Literal["minor", "major", "severe"]
    delay: float = Field(0, description="Delay minutes")
    description: str = ""


class AlternateRoute(BaseModel):
    duration: float = Field(..., description="Minutes")
    distance: float = Field(..., description="Miles")
    congestion: Congestion = "light"
    description: str = ""


class TrafficSnapshot(BaseModel):
    current_duration: float = Field(..., description="Minutes with current traffic")
    typical_duration: float = Field(..., description="Minutes without congestion")
    congestion: Congestion = "light"
    incidents: List[TrafficIncident] = Field(default_factory=list)
    alternate_routes: List[AlternateRoute] = Field(default_factory=list)


class WeatherSnapshot(BaseModel):
    condition: Literal["clear", "rain", "snow", "storm", "fog"] = "clear"
    severity: Severity = "light"
    visibility: float = Field(10.0, description="Miles")
    wind_speed: float = Field(0.0, description="mph")
    precipitation: float = Field(0.0, description="Inches per hour")


class TravelEstimate(BaseModel):
    base_time: float = Field(..., description="Typical travel minutes")
    traffic_multiplier: float
    weather_delay: float = Field(..., description="Extra minutes for weather")
    total_buffer: int = Field(..., description="Minutes to reserve in the gap")
    confidence: int = Field(..., ge=20, le=100, description="Confidence percentage")


class GapEstimate(BaseModel):
    origin_event_id: str
    event_id: str = Field(..., description="Event reached at the end of the gap")
    origin: str
    destination: str
    departure: datetime
    estimate: TravelEstimate
    fallback: bool = False
    fallback_reason: Optional[str] = None
    shift_minutes: int = 0
    faster_route: Optional[AlternateRoute] = None


class Alert(BaseModel):
    event_id: str
    tier: Literal["info", "warning", "critical"]
    message: str
    recommendation: str
    confidence: int
    fallback: bool = False


class Diagnostic(BaseModel):
    event_id: str
    code: str = Field(..., description="Error class that triggered the fallback")
    message: str


class ReconciliationResult(BaseModel):
    events: List[ScheduleEvent] = Field(default_factory=list)
    estimates: List[GapEstimate] = Field(default_factory=list)
    diagnostics: List[Diagnostic] = Field(default_factory=list)
