"""
Beacon collection endpoint.

Accepts one tracker beacon per request, filters bots, rate limits by
client IP, enriches and stores it. Responses are plain text so the
tracker never has to parse them.
"""
import json
import math
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import APIRouter, Depends, Request, Response, status
from pydantic import ValidationError

from wool_analytics.core.config import Settings, get_settings
from wool_analytics.core.database import DbSession
from wool_analytics.core.logging import get_logger
from wool_analytics.core.rate_limit import RateLimiter
from wool_analytics.schemas.beacon import MAX_SESSION_ID_LENGTH, BeaconPayload
from wool_analytics.services.bot_filter import is_bot
from wool_analytics.services.enrichment import enrich, extract_client_ip
from wool_analytics.services.ingestion import PersistenceError, record_beacon

logger = get_logger(__name__)

router = APIRouter(tags=["analytics"])

COLLECT_PATH = "/analytics"
ALLOW_METHODS = "POST, OPTIONS"
ALLOW_HEADERS = "content-type, authorization"
PREFLIGHT_MAX_AGE = "86400"


def get_rate_limiter(request: Request) -> RateLimiter:
    """Dependency returning the process-wide limiter created with the app."""
    return request.app.state.rate_limiter


def origin_allowed(origin: str, settings: Settings) -> bool:
    if settings.allow_any_origin:
        return True
    return origin in settings.allowed_origins


def _reject_constant(name: str) -> float:
    raise ValueError(f"{name} is not valid JSON")


def _finite_float(literal: str) -> float:
    value = float(literal)
    if not math.isfinite(value):
        raise ValueError(f"number out of range: {literal[:32]}")
    return value


def _text(body: str, status_code: int, headers: Optional[dict[str, str]] = None) -> Response:
    return Response(content=body, status_code=status_code, media_type="text/plain", headers=headers)


def _accepted_headers(origin: str) -> dict[str, str]:
    return {
        "cache-control": "no-store",
        "access-control-allow-origin": origin or "*",
        "vary": "Origin",
    }


@router.options(COLLECT_PATH)
async def collect_preflight(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> Response:
    """CORS preflight. Never touches storage."""
    origin = request.headers.get("origin", "")
    return Response(
        status_code=status.HTTP_200_OK,
        headers={
            "access-control-allow-origin": origin if origin and origin_allowed(origin, settings) else "*",
            "access-control-allow-methods": ALLOW_METHODS,
            "access-control-allow-headers": ALLOW_HEADERS,
            "access-control-max-age": PREFLIGHT_MAX_AGE,
        },
    )


@router.api_route(COLLECT_PATH, methods=["GET", "PUT", "PATCH", "DELETE"], include_in_schema=False)
async def collect_wrong_method() -> Response:
    return _text("Method Not Allowed", status.HTTP_405_METHOD_NOT_ALLOWED, {"allow": ALLOW_METHODS})


@router.post(COLLECT_PATH)
async def collect(
    request: Request,
    db: DbSession,
    settings: Settings = Depends(get_settings),
    limiter: RateLimiter = Depends(get_rate_limiter),
) -> Response:
    """
    Ingest one beacon.

    200 stored, 204 ignored (bot), 400 bad body, 403 origin not allowed,
    429 rate limited, 500 storage failure.
    """
    origin = request.headers.get("origin", "")
    if not origin_allowed(origin, settings):
        logger.info("beacon_rejected", reason="origin", origin=origin or None)
        return _text("Forbidden", status.HTTP_403_FORBIDDEN)

    raw = await request.body()
    try:
        body: Any = json.loads(raw, parse_constant=_reject_constant, parse_float=_finite_float)
    except (ValueError, UnicodeDecodeError):
        return _text("Invalid JSON", status.HTTP_400_BAD_REQUEST)
    if not isinstance(body, dict):
        return _text("Invalid request body", status.HTTP_400_BAD_REQUEST)

    raw_ua = body.get("ua")
    if raw_ua is not None and not isinstance(raw_ua, str):
        return _text("Invalid request body", status.HTTP_400_BAD_REQUEST)
    user_agent = (raw_ua or "")[: settings.max_user_agent_length]
    if is_bot(user_agent):
        logger.debug("beacon_ignored", reason="bot")
        return Response(status_code=status.HTTP_204_NO_CONTENT, headers=_accepted_headers(origin))

    peer = request.client.host if request.client else None
    client_ip = extract_client_ip(request.headers, peer)
    decision = limiter.hit(client_ip or "unknown")
    if not decision.allowed:
        logger.info("beacon_rejected", reason="rate_limited")
        return _text(
            "Rate Limited",
            status.HTTP_429_TOO_MANY_REQUESTS,
            {"retry-after": str(decision.retry_after)},
        )

    session_id = body.get("session_id")
    if not isinstance(session_id, str) or not session_id or len(session_id) > MAX_SESSION_ID_LENGTH:
        return _text("Missing session_id", status.HTTP_400_BAD_REQUEST)

    try:
        beacon = BeaconPayload.model_validate({**body, "ua": user_agent})
    except ValidationError as e:
        logger.info(
            "beacon_rejected",
            reason="validation",
            fields=[".".join(str(part) for part in err["loc"]) for err in e.errors()],
        )
        return _text("Invalid request body", status.HTTP_400_BAD_REQUEST)

    enrichment = enrich(
        request.headers,
        peer,
        path=beacon.path,
        utm_source=beacon.utm.source if beacon.utm else None,
        salt=settings.ip_salt,
        admin_prefix=settings.admin_path_prefix,
        internal_source=settings.internal_utm_source,
    )

    if db is None:
        logger.error("beacon_dropped", reason="database_unavailable")
        return _text("Server configuration error", status.HTTP_500_INTERNAL_SERVER_ERROR)

    try:
        await record_beacon(db, beacon, enrichment, datetime.now(timezone.utc))
    except PersistenceError as e:
        logger.error("beacon_persist_failed", stage=e.stage, session_id=beacon.session_id)
        return _text("Database error", status.HTTP_500_INTERNAL_SERVER_ERROR)

    return _text("ok", status.HTTP_200_OK, _accepted_headers(origin))
