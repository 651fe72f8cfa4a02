"""
Auction report business events.

Thin wrappers over ``Tracker.track`` that keep event names and meta keys
consistent across the report viewer. Each takes an explicit tracker or
falls back to the active one; with neither they do nothing.
"""
from __future__ import annotations

import json
import re
from typing import Any, Optional

from wool_analytics.schemas.beacon import EventType
from wool_analytics.tracker.client import Tracker, epoch_ms
from wool_analytics.tracker.context import current_tracker

# Auction reports live at /<six-digit catalogue id>, e.g. /202501
REPORT_PATH_RE = re.compile(r"^/(\d{6})$")

MAX_QUERY_LENGTH = 100
MAX_DETAIL_LENGTH = 500


def _resolve(tracker: Optional[Tracker]) -> Optional[Tracker]:
    return tracker if tracker is not None else current_tracker()


def _custom(tracker: Optional[Tracker], event_name: str, **fields: Any) -> None:
    active = _resolve(tracker)
    if active is None:
        return
    active.track(
        EventType.CUSTOM,
        {"event_name": event_name, **fields, "timestamp": epoch_ms()},
    )


def _truncated_json(value: Any, limit: int = MAX_DETAIL_LENGTH) -> str:
    return json.dumps(value, default=str)[:limit]


def report_id_from_path(path: str) -> Optional[str]:
    match = REPORT_PATH_RE.match(path)
    return match.group(1) if match else None


def track_route_change(path: Optional[str] = None, tracker: Optional[Tracker] = None) -> None:
    """Page view for a route change; report routes also count as report views."""
    active = _resolve(tracker)
    if active is None:
        return
    active.track_page_view()
    report_id = report_id_from_path(path if path is not None else active.page.path)
    if report_id:
        active.track_report_view(report_id)


def track_report_view(
    auction_id: str,
    season_label: Optional[str] = None,
    catalogue_name: Optional[str] = None,
    tracker: Optional[Tracker] = None,
) -> None:
    active = _resolve(tracker)
    if active is None:
        return
    active.track_report_view(auction_id, auction_id)
    _custom(
        active,
        "auction_report_view",
        auction_id=auction_id,
        season_label=season_label,
        catalogue_name=catalogue_name,
        page_type="auction_report",
    )


def track_report_download(auction_id: str, format: str = "pdf", tracker: Optional[Tracker] = None) -> None:
    active = _resolve(tracker)
    if active is None:
        return
    active.track_report_download(auction_id, format)
    _custom(active, "auction_report_download", auction_id=auction_id, format=format)


def track_producer_click(producer_name: str, auction_id: Optional[str] = None, tracker: Optional[Tracker] = None) -> None:
    active = _resolve(tracker)
    if active is None:
        return
    active.track_bid_click(producer_name, auction_id)
    _custom(active, "producer_click", producer_name=producer_name, auction_id=auction_id)


def track_broker_click(broker_name: str, auction_id: Optional[str] = None, tracker: Optional[Tracker] = None) -> None:
    _custom(tracker, "broker_click", broker_name=broker_name, auction_id=auction_id)


def track_buyer_click(buyer_name: str, auction_id: Optional[str] = None, tracker: Optional[Tracker] = None) -> None:
    _custom(tracker, "buyer_click", buyer_name=buyer_name, auction_id=auction_id)


def track_province_click(province_name: str, auction_id: Optional[str] = None, tracker: Optional[Tracker] = None) -> None:
    _custom(tracker, "province_click", province_name=province_name, auction_id=auction_id)


def track_chart_interaction(chart_type: str, auction_id: Optional[str] = None, tracker: Optional[Tracker] = None) -> None:
    _custom(tracker, "chart_interaction", chart_type=chart_type, auction_id=auction_id)


def track_filter_change(
    filter_type: str,
    filter_value: str,
    auction_id: Optional[str] = None,
    tracker: Optional[Tracker] = None,
) -> None:
    _custom(
        tracker,
        "filter_change",
        filter_type=filter_type,
        filter_value=filter_value,
        auction_id=auction_id,
    )


def track_season_change(from_season: str, to_season: str, tracker: Optional[Tracker] = None) -> None:
    _custom(tracker, "season_change", from_season=from_season, to_season=to_season)


def track_auction_change(from_auction: str, to_auction: str, tracker: Optional[Tracker] = None) -> None:
    _custom(tracker, "auction_change", from_auction=from_auction, to_auction=to_auction)


def track_data_export(
    export_type: str,
    format: str,
    auction_id: Optional[str] = None,
    tracker: Optional[Tracker] = None,
) -> None:
    _custom(tracker, "data_export", export_type=export_type, format=format, auction_id=auction_id)


def track_auction_section_view(
    auction_id: str,
    section_name: str,
    time_visible_ms: int,
    tracker: Optional[Tracker] = None,
) -> None:
    """Engagement with one named section of an auction report."""
    active = _resolve(tracker)
    if active is None:
        return
    active.track(
        EventType.SECTION_VIEW,
        {
            "auction_id": auction_id,
            "section_name": section_name,
            "time_visible_ms": time_visible_ms,
            "event_name": "auction_section_engagement",
            "timestamp": epoch_ms(),
        },
    )


def track_auction_chart_interaction(
    auction_id: str,
    chart_type: str,
    interaction_type: str,
    tracker: Optional[Tracker] = None,
) -> None:
    _custom(
        tracker,
        "auction_chart_interaction",
        auction_id=auction_id,
        chart_type=chart_type,
        interaction_type=interaction_type,
    )


def track_auction_data_click(auction_id: str, data_type: str, item_name: str, tracker: Optional[Tracker] = None) -> None:
    # data_type: producer, broker, buyer or micron_price
    _custom(tracker, "auction_data_click", auction_id=auction_id, data_type=data_type, item_name=item_name)


def track_auction_tab_change(auction_id: str, from_tab: str, to_tab: str, tracker: Optional[Tracker] = None) -> None:
    _custom(tracker, "auction_tab_change", auction_id=auction_id, from_tab=from_tab, to_tab=to_tab)


def track_auction_export(
    auction_id: str,
    export_type: str,
    section_exported: str,
    tracker: Optional[Tracker] = None,
) -> None:
    _custom(
        tracker,
        "auction_export",
        auction_id=auction_id,
        export_type=export_type,
        section_exported=section_exported,
    )


def track_content_engagement(
    content_type: str,
    action: str,
    auction_id: Optional[str] = None,
    tracker: Optional[Tracker] = None,
) -> None:
    _custom(tracker, "content_engagement", content_type=content_type, action=action, auction_id=auction_id)


def track_mobile_menu_open(tracker: Optional[Tracker] = None) -> None:
    _custom(tracker, "mobile_menu_open")


def track_mobile_menu_close(tracker: Optional[Tracker] = None) -> None:
    _custom(tracker, "mobile_menu_close")


def track_performance_issue(issue_type: str, details: Any, tracker: Optional[Tracker] = None) -> None:
    _custom(tracker, "performance_issue", issue_type=issue_type, details=_truncated_json(details))


def track_search_query(query: str, results_count: int, tracker: Optional[Tracker] = None) -> None:
    # Long queries may carry personal details
    _custom(tracker, "search_query", query=query[:MAX_QUERY_LENGTH], results_count=results_count)


def track_user_error(
    error_type: str,
    message: str,
    context: Any = None,
    tracker: Optional[Tracker] = None,
) -> None:
    active = _resolve(tracker)
    if active is None:
        return
    active.track(
        EventType.JS_ERROR,
        {
            "error_type": error_type,
            "message": message[:MAX_DETAIL_LENGTH],
            "context": None if context is None else _truncated_json(context),
            "timestamp": epoch_ms(),
        },
    )
