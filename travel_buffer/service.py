"""FastAPI service exposing timeline reconciliation."""

from __future__ import annotations

import logging
from typing import Dict, List

from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel, Field

from .alerts import generate_alerts
from .config import EngineSettings
from .errors import TimelineValidationError
from .gateways import TimelineStore
from .loaders import JsonLocationDirectory
from .models import Alert, Diagnostic, GapEstimate, LocationDescriptor, ScheduleEvent
from .providers import build_gateways, missing_api_keys
from .reconciler import TimelineReconciler
from .store import FileTimelineStore

logger = logging.getLogger(__name__)


class ReconcileRequest(BaseModel):
    events: List[ScheduleEvent]
    locations: Dict[str, LocationDescriptor] = Field(default_factory=dict)


class SessionReconcileRequest(BaseModel):
    locations: Dict[str, LocationDescriptor] = Field(default_factory=dict)


class ReconcileResponse(BaseModel):
    events: List[ScheduleEvent]
    estimates: List[GapEstimate]
    alerts: List[Alert]
    diagnostics: List[Diagnostic]


app = FastAPI(title="Travel Buffer Engine")


def get_settings() -> EngineSettings:
    return EngineSettings.from_env()


def get_reconciler(settings: EngineSettings = Depends(get_settings)) -> TimelineReconciler:
    missing = missing_api_keys(settings)
    if missing:
        raise HTTPException(status_code=400, detail=f"{', '.join(missing)} is not set.")
    traffic, weather = build_gateways(settings)
    directory = JsonLocationDirectory(settings.locations_file) if settings.locations_file else None
    return TimelineReconciler(traffic, weather, settings=settings, directory=directory)


def get_store(settings: EngineSettings = Depends(get_settings)) -> FileTimelineStore:
    return FileTimelineStore(settings.timeline_state)


def _run(
    reconciler: TimelineReconciler,
    events: List[ScheduleEvent],
    locations: Dict[str, LocationDescriptor],
) -> ReconcileResponse:
    try:
        result = reconciler.run(events, locations)
    except TimelineValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return ReconcileResponse(
        events=result.events,
        estimates=result.estimates,
        alerts=generate_alerts(result.events, result.estimates),
        diagnostics=result.diagnostics,
    )


@app.post("/reconcile")
def reconcile_endpoint(
    request: ReconcileRequest,
    reconciler: TimelineReconciler = Depends(get_reconciler),
) -> ReconcileResponse:
    return _run(reconciler, request.events, request.locations)


@app.post("/sessions/{session_id}/reconcile")
def reconcile_session_endpoint(
    session_id: str,
    request: SessionReconcileRequest,
    reconciler: TimelineReconciler = Depends(get_reconciler),
    store: TimelineStore = Depends(get_store),
) -> ReconcileResponse:
    try:
        events = store.load_timeline(session_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Unknown session: {session_id}")

    response = _run(reconciler, events, request.locations)
    store.save_timeline(session_id, response.events)
    logger.info("Session %s reconciled with %d alerts", session_id, len(response.alerts))
    return response


@app.get("/sessions/{session_id}/timeline")
def timeline_endpoint(session_id: str, store: TimelineStore = Depends(get_store)) -> dict:
    try:
        events = store.load_timeline(session_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Unknown session: {session_id}")
    return {"session_id": session_id, "events": [event.model_dump(mode="json") for event in events]}


@app.put("/sessions/{session_id}/timeline")
def save_timeline_endpoint(
    session_id: str,
    request: ReconcileRequest,
    store: TimelineStore = Depends(get_store),
) -> dict:
    store.save_timeline(session_id, request.events)
    return {"status": "ok", "session_id": session_id, "events": len(request.events)}
