import json
from datetime import date, datetime
from pathlib import Path

import pandas as pd
import pytest

from conftest import make_event
from travel_buffer.errors import MalformedLocation, TimelineValidationError
from travel_buffer.loaders import (
    JsonLocationDirectory,
    load_locations,
    load_timeline_file,
    write_timeline_file,
)


def test_load_timeline_table(tmp_path: Path) -> None:
    df = pd.DataFrame(
        [
            {
                "Activity": "Ceremony",
                "Type": "Wedding Ceremony",
                "Start": "15:00",
                "End": "15:45",
                "Venue": "chapel",
                "People": "couple; officiant",
                "Outdoor": "yes",
            },
            {
                "Activity": "Getting ready",
                "Type": "prep",
                "Start": "11:00",
                "End": "13:30",
                "Venue": "hotel",
                "People": "",
                "Outdoor": "",
            },
        ]
    )
    file_path = tmp_path / "timeline.xlsx"
    df.to_excel(file_path, index=False)

    events = load_timeline_file(str(file_path), day=date(2026, 6, 20))

    assert [event.kind for event in events] == ["preparation", "ceremony"]
    ceremony = events[1]
    assert ceremony.id == "evt_1"
    assert ceremony.start == datetime(2026, 6, 20, 15, 0)
    assert ceremony.participants == ["couple", "officiant"]
    assert ceremony.weather_sensitive is True
    assert ceremony.location == "chapel"


def test_load_timeline_requires_columns(tmp_path: Path) -> None:
    file_path = tmp_path / "timeline.csv"
    pd.DataFrame([{"Activity": "Ceremony", "Start": "15:00"}]).to_csv(file_path, index=False)

    with pytest.raises(ValueError, match="end_time, location"):
        load_timeline_file(str(file_path), day=date(2026, 6, 20))


def test_time_only_rows_need_a_day(tmp_path: Path) -> None:
    file_path = tmp_path / "timeline.csv"
    pd.DataFrame([{"Title": "Ceremony", "Start": "15:00", "End": "16:00", "Location": "chapel"}]).to_csv(
        file_path, index=False
    )

    with pytest.raises(TimelineValidationError):
        load_timeline_file(str(file_path))


def test_write_then_load_timeline_csv(tmp_path: Path) -> None:
    events = [
        make_event("a", "10:00", "11:00", "hotel", kind="preparation", notes="hair and makeup"),
        make_event("b", "12:00", "13:00", "chapel", kind="ceremony", equipment=["drone"]),
    ]
    file_path = tmp_path / "out" / "timeline.csv"

    write_timeline_file(events, str(file_path))
    loaded = load_timeline_file(str(file_path))

    assert [event.id for event in loaded] == ["a", "b"]
    assert loaded[0].notes == "hair and makeup"
    assert loaded[1].equipment == ["drone"]
    assert loaded[1].start == events[1].start


def test_location_directory(tmp_path: Path) -> None:
    file_path = tmp_path / "locations.json"
    file_path.write_text(
        json.dumps(
            {
                "hotel": {"address": "1 Main St", "coordinates": {"lat": 40.0, "lng": -74.0}, "category": "hotel"},
                "chapel": {"address": "2 Church Rd", "category": "ceremony_site"},
            }
        ),
        encoding="utf-8",
    )

    assert load_locations(str(file_path))["chapel"].coordinates is None
    directory = JsonLocationDirectory(str(file_path))
    assert directory.resolve("hotel").coordinates.lat == 40.0
    with pytest.raises(MalformedLocation):
        directory.resolve("beach")
