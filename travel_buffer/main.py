from __future__ import annotations

import argparse
import json
import logging
from datetime import datetime
from pathlib import Path

from .alerts import LoggingNotificationSink, generate_alerts
from .config import EngineSettings
from .errors import TimelineValidationError
from .loaders import JsonLocationDirectory, load_timeline_file, write_timeline_file
from .providers import build_gateways, missing_api_keys
from .reconciler import TimelineReconciler
from .store import FileTimelineStore


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Travel buffer timeline reconciliation")
    parser.add_argument(
        "--timeline",
        default=None,
        help="Path to day timeline (.xlsx or .csv)",
    )
    parser.add_argument(
        "--session",
        default=None,
        help="Load and save the timeline from the session store instead of a file",
    )
    parser.add_argument(
        "--locations",
        required=True,
        help="Path to JSON map of location reference -> descriptor",
    )
    parser.add_argument(
        "--date",
        default=None,
        help="Event day (YYYY-MM-DD) for timelines with time-only columns",
    )
    parser.add_argument(
        "--output",
        default="outputs/timeline_adjusted.xlsx",
        help="Output path for the adjusted timeline",
    )
    parser.add_argument(
        "--json-output",
        default="outputs/travel_report.json",
        help="Output path for estimates, alerts and diagnostics",
    )
    parser.add_argument(
        "--state",
        default=None,
        help="Path to session store (defaults to TIMELINE_STATE)",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log gateway and shift details",
    )
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    settings = EngineSettings.from_env()

    missing = missing_api_keys(settings)
    if missing:
        print(f"{', '.join(missing)} is not set. Set them in the environment.")
        return 1
    if bool(args.timeline) == bool(args.session):
        print("Pass exactly one of --timeline or --session.")
        return 1

    directory = JsonLocationDirectory(args.locations)
    store = FileTimelineStore(args.state or settings.timeline_state)
    if args.session:
        try:
            events = store.load_timeline(args.session)
        except KeyError:
            print(f"Unknown session: {args.session}")
            return 2
    else:
        day = datetime.strptime(args.date, "%Y-%m-%d").date() if args.date else None
        events = load_timeline_file(args.timeline, day=day)

    traffic, weather = build_gateways(settings)
    reconciler = TimelineReconciler(traffic, weather, settings=settings, directory=directory)
    try:
        result = reconciler.run(events, directory.locations)
    except TimelineValidationError as exc:
        print(f"Timeline rejected: {exc}")
        return 2

    alerts = generate_alerts(result.events, result.estimates)
    LoggingNotificationSink().publish(alerts)

    for event in result.events:
        print("\n" + "=" * 60)
        print(f"{event.kind.upper()}: {event.title}")
        print(f"When/Where: {event.start:%H:%M}-{event.end:%H:%M} | {event.location}")
        if event.travel_buffer is not None:
            print(f"Travel buffer: {event.travel_buffer} min")
        if event.notes:
            print(f"Notes: {event.notes}")

    if alerts:
        print("\nALERTS")
        for alert in alerts:
            print(f"- [{alert.tier.upper()}] {alert.event_id}: {alert.message} -> {alert.recommendation}")

    write_timeline_file(result.events, args.output)
    report = {
        "estimates": [gap.model_dump(mode="json") for gap in result.estimates],
        "alerts": [alert.model_dump(mode="json") for alert in alerts],
        "diagnostics": [item.model_dump(mode="json") for item in result.diagnostics],
    }
    json_output = Path(args.json_output)
    json_output.parent.mkdir(parents=True, exist_ok=True)
    json_output.write_text(json.dumps(report, indent=2), encoding="utf-8")

    if args.session:
        store.save_timeline(args.session, result.events)
        print(f"\nSaved session {args.session} to {store.path}")
    print(f"\nSaved adjusted timeline to {args.output}")
    print(f"Saved travel report to {json_output}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
