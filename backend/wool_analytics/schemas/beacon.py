"""
Beacon wire format shared by the tracker and the collection endpoint.
"""
import math
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

MAX_SESSION_ID_LENGTH = 255
MAX_USER_AGENT_LENGTH = 500
MAX_LANGUAGE_LENGTH = 35
MAX_TIMEZONE_LENGTH = 64
MAX_PATH_LENGTH = 1024
MAX_TITLE_LENGTH = 512
MAX_REFERRER_LENGTH = 2048
MAX_UTM_LENGTH = 255
# Largest value an INTEGER column holds
MAX_INT_VALUE = 2_147_483_647


class EventType(str, Enum):
    """Closed set of event types accepted by the collector."""

    PAGEVIEW = "pageview"
    HEARTBEAT = "heartbeat"
    CLICK = "click"
    DOWNLOAD = "download"
    CUSTOM = "custom"
    SECTION_VIEW = "section_view"
    SCROLL_DEPTH = "scroll_depth"
    PWA_INSTALL = "pwa_install"
    PWA_PROMPT_SHOWN = "pwa_prompt_shown"
    PWA_PROMPT_RESULT = "pwa_prompt_result"
    APP_LAUNCH = "app_launch"
    JS_ERROR = "js_error"
    WEB_VITAL = "web_vital"
    VIEW_REPORT = "view_report"
    DOWNLOAD_REPORT = "download_report"
    BID_CLICK = "bid_click"


class Channel(str, Enum):
    """Coarse traffic-source classification."""

    DIRECT = "Direct"
    ORGANIC = "Organic"
    PAID = "Paid"
    SOCIAL = "Social"
    EMAIL = "Email"
    REFERRAL = "Referral"


def _clip(value: Any, limit: int) -> Optional[str]:
    if value is None:
        return None
    return str(value)[:limit]


class UtmParams(BaseModel):
    """Campaign attribution parameters, each optional."""

    source: Optional[str] = None
    medium: Optional[str] = None
    campaign: Optional[str] = None
    term: Optional[str] = None
    content: Optional[str] = None

    model_config = ConfigDict(extra="ignore")

    @field_validator("source", "medium", "campaign", "term", "content", mode="before")
    @classmethod
    def clip_value(cls, value: Any) -> Optional[str]:
        return _clip(value, MAX_UTM_LENGTH) or None

    def is_empty(self) -> bool:
        return not any(self.model_dump().values())


class BeaconPayload(BaseModel):
    """One analytics event as posted by the tracker."""

    session_id: str = Field(..., min_length=1, max_length=MAX_SESSION_ID_LENGTH)
    type: EventType = EventType.PAGEVIEW
    path: str = "/"
    page_title: Optional[str] = None
    referrer: Optional[str] = None
    ua: str = ""
    lang: Optional[str] = None
    tz: Optional[str] = None
    utm: Optional[UtmParams] = None
    screen_w: Optional[int] = Field(None, ge=0, le=MAX_INT_VALUE)
    screen_h: Optional[int] = Field(None, ge=0, le=MAX_INT_VALUE)
    duration_ms: Optional[int] = Field(None, ge=0, le=MAX_INT_VALUE)
    meta: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="ignore", use_enum_values=False)

    @field_validator("path", mode="before")
    @classmethod
    def clip_path(cls, value: Any) -> str:
        return _clip(value, MAX_PATH_LENGTH) or "/"

    @field_validator("page_title", mode="before")
    @classmethod
    def clip_title(cls, value: Any) -> Optional[str]:
        return _clip(value, MAX_TITLE_LENGTH)

    @field_validator("referrer", mode="before")
    @classmethod
    def clip_referrer(cls, value: Any) -> Optional[str]:
        return _clip(value, MAX_REFERRER_LENGTH) or None

    @field_validator("ua", mode="before")
    @classmethod
    def clip_user_agent(cls, value: Any) -> str:
        return _clip(value, MAX_USER_AGENT_LENGTH) or ""

    @field_validator("lang", mode="before")
    @classmethod
    def clip_language(cls, value: Any) -> Optional[str]:
        return _clip(value, MAX_LANGUAGE_LENGTH)

    @field_validator("tz", mode="before")
    @classmethod
    def clip_timezone(cls, value: Any) -> Optional[str]:
        return _clip(value, MAX_TIMEZONE_LENGTH)

    @field_validator("type", mode="before")
    @classmethod
    def default_type(cls, value: Any) -> Any:
        return EventType.PAGEVIEW if value is None else value

    @field_validator("screen_w", "screen_h", "duration_ms", mode="before")
    @classmethod
    def round_number(cls, value: Any) -> Any:
        if isinstance(value, float):
            if not math.isfinite(value):
                raise ValueError("must be a finite number")
            return round(value)
        return value

    @field_validator("meta", mode="before")
    @classmethod
    def default_meta(cls, value: Any) -> Any:
        return {} if value is None else value

    def to_wire(self) -> dict[str, Any]:
        """JSON-ready body as sent over the network."""
        return self.model_dump(mode="json", exclude_none=True)
