"""JSON-file timeline store keyed by planning session."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List

from .models import ScheduleEvent

logger = logging.getLogger(__name__)


class FileTimelineStore:
    def __init__(self, path: str):
        self.path = Path(path)
        self.state: Dict[str, Any] = {"sessions": {}}
        self.load()

    def load(self) -> None:
        if self.path.exists():
            self.state = json.loads(self.path.read_text(encoding="utf-8"))

    def save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(self.state, indent=2), encoding="utf-8")

    def load_timeline(self, session_id: str) -> List[ScheduleEvent]:
        sessions = self.state.get("sessions", {})
        if session_id not in sessions:
            raise KeyError(f"Unknown session: {session_id}")
        return [ScheduleEvent.model_validate(item) for item in sessions[session_id]]

    def save_timeline(self, session_id: str, events: List[ScheduleEvent]) -> None:
        self.state.setdefault("sessions", {})[session_id] = [
            event.model_dump(mode="json") for event in events
        ]
        self.save()
        logger.debug("Saved timeline %s to %s", session_id, self.path)

