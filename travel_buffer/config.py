"""Runtime settings read from the environment."""

from __future__ import annotations

import os

from pydantic import BaseModel, Field


class EngineSettings(BaseModel):
    gateway_timeout: float = Field(10.0, gt=0, description="Seconds per HTTP attempt")
    max_retries: int = Field(2, ge=0, le=5)
    backoff: float = Field(0.5, ge=0, description="Base backoff seconds")
    max_workers: int = Field(4, ge=1)
    cache_bucket_minutes: int = Field(15, ge=1)
    google_maps_api_key: str = ""
    weather_api_key: str = ""
    timeline_state: str = "outputs/timelines.json"
    locations_file: str = ""

    @property
    def wait_budget(self) -> float:
        """Upper bound on how long one retried gateway call may take."""
        attempts = self.max_retries + 1
        backoff_total = sum(self.backoff * (2**attempt) for attempt in range(self.max_retries))
        return self.gateway_timeout * attempts + backoff_total

    @classmethod
    def from_env(cls) -> "EngineSettings":
        return cls(
            gateway_timeout=float(os.environ.get("GATEWAY_TIMEOUT", "10")),
            max_retries=int(os.environ.get("GATEWAY_RETRIES", "2")),
            backoff=float(os.environ.get("GATEWAY_BACKOFF", "0.5")),
            max_workers=int(os.environ.get("GATEWAY_MAX_WORKERS", "4")),
            cache_bucket_minutes=int(os.environ.get("CACHE_BUCKET_MINUTES", "15")),
            google_maps_api_key=os.environ.get("GOOGLE_MAPS_API_KEY", ""),
            weather_api_key=os.environ.get("WEATHER_API_KEY", ""),
            timeline_state=os.environ.get("TIMELINE_STATE", "outputs/timelines.json"),
            locations_file=os.environ.get("LOCATIONS_FILE", ""),
        )
