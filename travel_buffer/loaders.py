"""File loaders for day timelines and location directories."""

from __future__ import annotations

import json
from datetime import date, datetime
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd

from .errors import MalformedLocation, TimelineValidationError
from .models import LocationDescriptor, ScheduleEvent


def _normalize_columns(columns: List[str]) -> List[str]:
    normalized = []
    for col in columns:
        value = str(col).strip().lower()
        value = value.replace(" / ", "_").replace(" ", "_")
        value = value.replace("-", "_").replace("#", "")
        normalized.append(value)
    return normalized


def _apply_column_mapping(columns: List[str]) -> List[str]:
    aliases = {
        "event_id": "id",
        "activity": "title",
        "name": "title",
        "type": "kind",
        "event_type": "kind",
        "start": "start_time",
        "starttime": "start_time",
        "begin": "start_time",
        "from": "start_time",
        "end": "end_time",
        "endtime": "end_time",
        "finish": "end_time",
        "to": "end_time",
        "venue": "location",
        "place": "location",
        "location_area": "location",
        "people": "participants",
        "who": "participants",
        "gear": "equipment",
        "weather": "weather_sensitive",
        "weather_dependent": "weather_sensitive",
        "outdoor": "weather_sensitive",
    }
    return [aliases.get(col, col) for col in columns]


KIND_ALIASES = {
    "prep": "preparation",
    "getting_ready": "preparation",
    "photos": "photo_session",
    "photo": "photo_session",
    "portraits": "photo_session",
    "first_look": "photo_session",
    "family_photos": "photo_session",
    "wedding_ceremony": "ceremony",
    "drive": "travel",
    "transfer": "travel",
    "break": "buffer",
}

REQUIRED_COLUMNS = {"title", "start_time", "end_time", "location"}


def _validate_columns(columns: List[str]) -> None:
    missing = REQUIRED_COLUMNS.difference(columns)
    if missing:
        raise ValueError(f"Timeline is missing required columns: {', '.join(sorted(missing))}")


def _parse_kind(value: str) -> str:
    key = value.strip().lower().replace(" ", "_").replace("-", "_")
    return KIND_ALIASES.get(key, key or "buffer")


def _split_list(value: str) -> List[str]:
    return [part.strip() for part in value.replace(",", ";").split(";") if part.strip()]


def _parse_flag(value: str) -> bool:
    return value.strip().lower() in {"y", "yes", "true", "1", "x", "outdoor"}


def _parse_time(value: str, day: Optional[date]) -> datetime:
    value = value.strip()
    for fmt in ("%Y-%m-%d %H:%M:%S", "%Y-%m-%d %H:%M", "%Y-%m-%dT%H:%M:%S", "%Y-%m-%dT%H:%M"):
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    if day is None:
        raise ValueError(f"Time {value!r} has no date; pass a day or add a date column")
    for fmt in ("%H:%M:%S", "%H:%M", "%I:%M %p", "%I:%M%p"):
        try:
            return datetime.combine(day, datetime.strptime(value.upper(), fmt).time())
        except ValueError:
            continue
    raise ValueError(f"Unrecognized time: {value!r}")


def _parse_date(value: str) -> Optional[date]:
    if not value:
        return None
    for fmt in ("%Y-%m-%d", "%Y/%m/%d", "%m/%d/%Y", "%d/%m/%Y"):
        try:
            return datetime.strptime(value.strip(), fmt).date()
        except ValueError:
            continue
    return None


def _read_frame(file_path: Path) -> pd.DataFrame:
    if file_path.suffix.lower() == ".csv":
        return pd.read_csv(file_path, dtype=str)
    return pd.read_excel(file_path, dtype=str)


def rows_to_events(records: List[Dict[str, str]], day: Optional[date] = None) -> List[ScheduleEvent]:
    events = []
    for idx, record in enumerate(records, start=1):
        if not record.get("title", "").strip():
            continue
        row_day = _parse_date(record.get("date", "")) or day
        try:
            data = {
                "id": record.get("id", "").strip() or f"evt_{idx}",
                "title": record["title"].strip(),
                "kind": _parse_kind(record.get("kind", "")),
                "start": _parse_time(record["start_time"], row_day),
                "end": _parse_time(record["end_time"], row_day),
                "location": record["location"].strip(),
                "participants": _split_list(record.get("participants", "")),
                "equipment": _split_list(record.get("equipment", "")) or None,
                "weather_sensitive": _parse_flag(record.get("weather_sensitive", "")),
                "notes": record.get("notes", "").strip(),
            }
            if record.get("priority", "").strip():
                data["priority"] = record["priority"].strip().lower()
            events.append(ScheduleEvent(**data))
        except ValueError as exc:
            raise TimelineValidationError(f"Row {idx} is not a valid event: {exc}") from exc
    return events


def load_timeline_file(path: str, day: Optional[date] = None) -> List[ScheduleEvent]:
    """Load a day timeline from .xlsx or .csv, sorted by start time."""
    file_path = Path(path)
    if not file_path.exists():
        raise FileNotFoundError(f"Timeline file not found: {path}")

    df = _read_frame(file_path)
    normalized = _apply_column_mapping(_normalize_columns(df.columns.tolist()))
    _validate_columns(normalized)
    df = df.copy()
    df.columns = normalized
    records = df.fillna("").astype(str).to_dict(orient="records")
    events = rows_to_events(records, day=day)
    return sorted(events, key=lambda event: event.start)


def write_timeline_file(events: List[ScheduleEvent], output_path: str) -> None:
    rows = []
    for event in events:
        rows.append(
            {
                "id": event.id,
                "title": event.title,
                "kind": event.kind,
                "start_time": event.start.isoformat(sep=" "),
                "end_time": event.end.isoformat(sep=" "),
                "location": event.location,
                "participants": "; ".join(event.participants),
                "equipment": "; ".join(event.equipment or []),
                "priority": event.priority,
                "weather_sensitive": "yes" if event.weather_sensitive else "no",
                "travel_buffer": "" if event.travel_buffer is None else event.travel_buffer,
                "provenance": event.provenance,
                "notes": event.notes,
            }
        )
    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)
    df = pd.DataFrame(rows)
    if output.suffix.lower() == ".csv":
        df.to_csv(output, index=False)
    else:
        df.to_excel(output, index=False)


def load_locations(path: str) -> Dict[str, LocationDescriptor]:
    file_path = Path(path)
    if not file_path.exists():
        raise FileNotFoundError(f"Locations file not found: {path}")
    raw = json.loads(file_path.read_text(encoding="utf-8"))
    return {ref: LocationDescriptor(**value) for ref, value in raw.items()}


class JsonLocationDirectory:
    """Location directory backed by a JSON map of reference -> descriptor."""

    def __init__(self, path: str):
        self.locations = load_locations(path)

    def resolve(self, location_ref: str) -> LocationDescriptor:
        try:
            return self.locations[location_ref]
        except KeyError:
            raise MalformedLocation(f"Unknown location: {location_ref!r}") from None
