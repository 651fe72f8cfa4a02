"""
Request enrichment: client IP, CDN geo hints, privacy-preserving IP hash
and internal-traffic classification.
"""
import base64
import binascii
import hashlib
import json
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime, timezone
from ipaddress import ip_address, ip_network
from typing import Any, Optional
from urllib.parse import unquote

import structlog

logger = structlog.get_logger()

# Checked in order, first non-empty wins
CLIENT_IP_HEADERS = ("x-forwarded-for", "cf-connecting-ip", "x-real-ip")

PRIVATE_NETWORKS = tuple(
    ip_network(cidr)
    for cidr in (
        "10.0.0.0/8",
        "172.16.0.0/12",
        "192.168.0.0/16",
        "127.0.0.0/8",
        "fc00::/7",
        "::1/128",
    )
)

# Cloudflare reports these when the country is unknown or Tor
_UNKNOWN_COUNTRIES = frozenset({"XX", "T1"})


@dataclass(frozen=True)
class GeoHints:
    country: Optional[str] = None
    region: Optional[str] = None
    city: Optional[str] = None


@dataclass(frozen=True)
class Enrichment:
    """Server-side facts attached to a beacon."""

    client_ip: str
    ip_hash: Optional[str]
    geo: GeoHints
    is_internal: bool


def extract_client_ip(headers: Mapping[str, str], peer: Optional[str] = None) -> str:
    """Resolve the client IP from proxy headers, falling back to the socket peer."""
    for header in CLIENT_IP_HEADERS:
        raw = headers.get(header)
        if not raw:
            continue
        candidate = raw.split(",")[0].strip()
        if candidate:
            return candidate
    return (peer or "").strip()


def _netlify_geo(raw: Optional[str]) -> dict[str, Any]:
    if not raw:
        return {}
    for decode in (lambda v: v, lambda v: base64.b64decode(v).decode("utf-8")):
        try:
            data = json.loads(decode(raw))
        except (ValueError, binascii.Error, UnicodeDecodeError):
            continue
        if isinstance(data, dict):
            return data
    logger.debug("netlify_geo_header_unreadable")
    return {}


def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = unquote(str(value)).strip()
    return text or None


def extract_geo(headers: Mapping[str, str]) -> GeoHints:
    """
    Best-effort geo from CDN headers.

    Cloudflare, Vercel and Netlify conventions are checked per field in
    that order.
    """
    netlify = _netlify_geo(headers.get("x-nf-geo"))
    netlify_country = netlify.get("country") or {}
    netlify_subdivision = netlify.get("subdivision") or {}

    country_candidates = (
        headers.get("cf-ipcountry"),
        headers.get("x-vercel-ip-country"),
        netlify_country.get("code") if isinstance(netlify_country, dict) else None,
    )
    region_candidates = (
        headers.get("cf-region"),
        headers.get("x-vercel-ip-country-region"),
        netlify_subdivision.get("code") if isinstance(netlify_subdivision, dict) else None,
    )
    city_candidates = (
        headers.get("cf-ipcity"),
        headers.get("x-vercel-ip-city"),
        netlify.get("city"),
    )

    country = next(
        (
            value.upper()
            for value in map(_clean, country_candidates)
            if value and value.upper() not in _UNKNOWN_COUNTRIES
        ),
        None,
    )
    region = next((value for value in map(_clean, region_candidates) if value), None)
    city = next((value for value in map(_clean, city_candidates) if value), None)
    return GeoHints(country=country, region=region, city=city)


def daily_ip_hash(ip: str, salt: str, day: Optional[date] = None) -> Optional[str]:
    """
    SHA-256 of ip + salt + UTC date (YYYY-MM-DD), hex encoded.

    The same visitor hashes differently every calendar day. Rotating the
    salt orphans every stored hash.
    """
    if not ip:
        return None
    day = day or datetime.now(timezone.utc).date()
    combined = f"{ip}{salt}{day.isoformat()}"
    return hashlib.sha256(combined.encode("utf-8")).hexdigest()


def is_private_ip(ip: str) -> bool:
    try:
        address = ip_address(ip)
    except ValueError:
        return False
    return any(address in network for network in PRIVATE_NETWORKS if network.version == address.version)


def is_under_prefix(path: str, prefix: str) -> bool:
    """
    True for ``prefix`` itself and anything below it, ignoring the query.

    ``/admin`` matches ``/admin`` and ``/admin/users`` but not ``/administration``.
    """
    route = path.split("?", 1)[0].split("#", 1)[0]
    base = prefix.rstrip("/")
    return route == base or route.startswith(f"{base}/")


def is_internal_traffic(
    path: Optional[str],
    ip: str,
    utm_source: Optional[str],
    *,
    admin_prefix: str = "/admin",
    internal_source: str = "internal",
) -> bool:
    """Admin pages, private networks and explicitly tagged visits are internal."""
    if path and is_under_prefix(path, admin_prefix):
        return True
    if is_private_ip(ip):
        return True
    return bool(utm_source) and utm_source.strip().lower() == internal_source.lower()


def enrich(
    headers: Mapping[str, str],
    peer: Optional[str],
    *,
    path: Optional[str],
    utm_source: Optional[str],
    salt: str,
    admin_prefix: str = "/admin",
    internal_source: str = "internal",
    day: Optional[date] = None,
) -> Enrichment:
    """Collect every server-side enrichment for one request."""
    client_ip = extract_client_ip(headers, peer)
    return Enrichment(
        client_ip=client_ip,
        ip_hash=daily_ip_hash(client_ip, salt, day),
        geo=extract_geo(headers),
        is_internal=is_internal_traffic(
            path,
            client_ip,
            utm_source,
            admin_prefix=admin_prefix,
            internal_source=internal_source,
        ),
    )
