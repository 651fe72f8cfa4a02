"""
Traffic channel derivation from referrer and UTM parameters.
"""
import re
from collections.abc import Mapping
from typing import Any, Optional, Union
from urllib.parse import urlparse

from wool_analytics.schemas.beacon import Channel, UtmParams

PAID_MEDIUMS = frozenset({"cpc", "ppc", "ads", "paid"})
EMAIL_MARKER = "email"

SOCIAL_DOMAINS = (
    "facebook.com",
    "fb.com",
    "instagram.com",
    "twitter.com",
    "x.com",
    "t.co",
    "linkedin.com",
    "lnkd.in",
    "youtube.com",
    "youtu.be",
    "tiktok.com",
)

# google.com, google.co.za, search.yahoo.com, ...
_SEARCH_ENGINE_RE = re.compile(r"(^|\.)(google|bing|yahoo|duckduckgo|baidu|yandex)\.")


def referrer_host(referrer: str) -> str:
    """Lower-cased host of a referrer URL, tolerating scheme-less values."""
    value = referrer.strip().lower()
    host = urlparse(value).hostname
    if host is None:
        host = urlparse(f"//{value}").hostname or ""
    return host.removeprefix("www.")


def _utm_value(utm: Union[UtmParams, Mapping[str, Any], None], key: str) -> str:
    if utm is None:
        return ""
    value = getattr(utm, key, None) if isinstance(utm, UtmParams) else utm.get(key)
    return str(value).strip().lower() if value else ""


def _matches_domain(host: str, domains: tuple[str, ...]) -> bool:
    return any(host == domain or host.endswith(f".{domain}") for domain in domains)


def derive_channel(
    referrer: Optional[str],
    utm: Union[UtmParams, Mapping[str, Any], None] = None,
) -> Channel:
    """
    Classify a hit into a traffic channel.

    Order matters: campaign tagging wins over the referrer, and an empty
    referrer is Direct before any host matching happens.
    """
    medium = _utm_value(utm, "medium")
    source = _utm_value(utm, "source")

    if medium in PAID_MEDIUMS:
        return Channel.PAID
    if EMAIL_MARKER in (source, medium):
        return Channel.EMAIL
    if not referrer or not referrer.strip():
        return Channel.DIRECT

    host = referrer_host(referrer)
    if _matches_domain(host, SOCIAL_DOMAINS):
        return Channel.SOCIAL
    if _SEARCH_ENGINE_RE.search(host):
        return Channel.ORGANIC
    return Channel.REFERRAL
