"""
Tests for the time-on-page heartbeat.
"""
import asyncio

from wool_analytics.tracker.heartbeat import Heartbeat


def test_beat_reports_elapsed_seconds():
    beats = []
    heartbeat = Heartbeat(15, beats.append)

    heartbeat.beat()
    heartbeat.beat()

    assert beats == [15, 30]


def test_start_without_loop_does_nothing():
    heartbeat = Heartbeat(15, lambda seconds: None)

    heartbeat.start()

    assert not heartbeat.running


async def test_runs_on_the_event_loop():
    beats = []
    heartbeat = Heartbeat(0.01, beats.append)

    heartbeat.start()
    await asyncio.sleep(0.055)
    heartbeat.stop()
    count = len(beats)
    await asyncio.sleep(0.03)

    assert count >= 2
    assert len(beats) == count
    assert not heartbeat.running


async def test_restart_resets_elapsed():
    heartbeat = Heartbeat(10, lambda seconds: None)
    heartbeat.beat()
    assert heartbeat.elapsed == 10

    heartbeat.start()
    assert heartbeat.elapsed == 0
    assert heartbeat.running
    heartbeat.stop()
