"""
Tracker configuration.
"""
from typing import Optional
from urllib.parse import urlsplit

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class TrackerSettings(BaseSettings):
    """Client tracker settings, overridable with WOOL_TRACKER_* variables."""

    model_config = SettingsConfigDict(
        env_prefix="WOOL_TRACKER_",
        case_sensitive=False,
        extra="ignore",
    )

    # Collector location; endpoint_url may also be absolute on its own
    base_url: str = "http://localhost:8000"
    endpoint_url: str = "/api/analytics"
    # Sent as the Origin header; must be one of the collector's ALLOWED_ORIGINS
    origin: Optional[str] = "http://localhost:5173"
    respect_dnt: bool = True
    debug: bool = False
    session_key: str = "ovk_analytics_session_id"
    admin_prefix: str = "/admin"

    heartbeat_interval: float = Field(default=15.0, gt=0)
    scroll_debounce: float = Field(default=0.3, ge=0)
    visibility_threshold: float = Field(default=0.5, gt=0, le=1)

    request_timeout: float = Field(default=5.0, gt=0)
    drain_timeout: float = Field(default=2.0, ge=0)

    @model_validator(mode="after")
    def check_endpoint_reachable(self) -> "TrackerSettings":
        for url in (self.base_url, self.endpoint_url):
            if urlsplit(url).scheme in ("http", "https"):
                return self
        raise ValueError("base_url or endpoint_url must be an absolute http(s) URL")
