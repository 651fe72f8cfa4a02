"""
Tests for the beacon wire format.
"""
import pytest
from pydantic import ValidationError

from wool_analytics.schemas.beacon import MAX_INT_VALUE, BeaconPayload, EventType, UtmParams


def test_defaults():
    beacon = BeaconPayload(session_id="abc")

    assert beacon.type is EventType.PAGEVIEW
    assert beacon.path == "/"
    assert beacon.meta == {}
    assert beacon.utm is None


def test_nulls_fall_back_to_defaults():
    beacon = BeaconPayload.model_validate({"session_id": "abc", "type": None, "path": None, "meta": None})

    assert beacon.type is EventType.PAGEVIEW
    assert beacon.path == "/"
    assert beacon.meta == {}


def test_long_values_are_clipped():
    beacon = BeaconPayload(
        session_id="abc",
        path="/" + "p" * 2000,
        page_title="t" * 600,
        referrer="https://example.com/" + "r" * 3000,
        ua="u" * 800,
        utm={"campaign": "c" * 400},
    )

    assert len(beacon.path) == 1024
    assert len(beacon.page_title) == 512
    assert len(beacon.referrer) == 2048
    assert len(beacon.ua) == 500
    assert len(beacon.utm.campaign) == 255


def test_numbers_are_rounded_and_non_negative():
    assert BeaconPayload(session_id="abc", duration_ms=1499.6).duration_ms == 1500

    with pytest.raises(ValidationError):
        BeaconPayload(session_id="abc", screen_w=-1)


def test_numbers_must_fit_an_integer_column():
    assert BeaconPayload(session_id="abc", screen_w=MAX_INT_VALUE).screen_w == MAX_INT_VALUE

    for field in ("screen_w", "screen_h", "duration_ms"):
        with pytest.raises(ValidationError):
            BeaconPayload(session_id="abc", **{field: MAX_INT_VALUE + 1})


@pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
def test_non_finite_numbers_are_rejected(value):
    with pytest.raises(ValidationError):
        BeaconPayload(session_id="abc", duration_ms=value)


def test_unknown_type_is_rejected():
    with pytest.raises(ValidationError):
        BeaconPayload(session_id="abc", type="teleport")


def test_unknown_fields_are_ignored():
    beacon = BeaconPayload.model_validate({"session_id": "abc", "visitor_id": "v1"})

    assert "visitor_id" not in beacon.model_dump()


def test_utm_empty():
    assert UtmParams().is_empty()
    assert UtmParams(source="").is_empty()
    assert not UtmParams(source="newsletter").is_empty()


def test_to_wire_drops_missing_fields():
    wire = BeaconPayload(session_id="abc", type="heartbeat", duration_ms=15000).to_wire()

    assert wire == {"session_id": "abc", "type": "heartbeat", "path": "/", "ua": "", "duration_ms": 15000, "meta": {}}
