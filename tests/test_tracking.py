import random
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from aerodeliver import tracking


def test_pending_order_waits_at_warehouse():
    snap = tracking.snapshot("pending")
    assert snap.progress == 5
    assert snap.phase == "to-pickup"
    assert snap.speed == 0
    assert snap.battery == 100


def test_delivered_order_has_landed():
    snap = tracking.snapshot("delivered", ticks=500)
    assert snap.progress == 100
    assert snap.phase == "to-drop"
    assert (snap.altitude, snap.speed, snap.battery) == (0, 0, 45)
    assert (snap.x, snap.y) == (350.0, 150.0)
    assert snap.minutes_left == 0


def test_in_transit_progress_and_telemetry():
    snap = tracking.snapshot("in-transit", ticks=40, rng=random.Random(7))
    assert snap.progress == 20
    assert snap.phase == "to-pickup"
    assert 117.5 <= snap.altitude <= 122.5
    assert 45 <= snap.speed <= 47
    assert snap.battery == pytest.approx(98.0)


def test_phase_switches_at_halfway():
    assert tracking.snapshot("in-transit", ticks=99).phase == "to-pickup"
    assert tracking.snapshot("in-transit", ticks=100).phase == "to-drop"


def test_progress_wraps_after_full_lap():
    assert tracking.progress_for_ticks(200) == 100
    assert tracking.progress_for_ticks(201) == 0
    assert tracking.progress_for_ticks(202) == 0.5


def test_battery_never_goes_negative():
    assert tracking.snapshot("in-transit", ticks=10_000).battery == 0


def test_minutes_left_rounds_half_up():
    assert tracking.minutes_left(30, 0) == 30
    assert tracking.minutes_left(30, 50) == 15
    assert tracking.minutes_left(25, 50) == 13
    assert tracking.minutes_left(None, 90) == 3
    assert tracking.minutes_left(30, 100) == 0


def test_zero_duration_is_not_replaced_by_default():
    assert tracking.minutes_left(0, 0) == 0
    assert tracking.minutes_left(0, 50) == 0


def test_route_endpoints_and_pickup_point():
    route = tracking.RoutePath()
    assert route.point_at(0) == (50.0, 50.0)
    assert route.point_at(1) == (350.0, 150.0)
    x, y = route.point_at(0.5)
    # the pickup leg is slightly longer than the straight drop leg
    assert 185 < x < 200
    assert 140 < y <= 150


def test_elapsed_ticks_from_naive_timestamp():
    now = datetime(2026, 1, 1, 12, 0, 10, tzinfo=timezone.utc)
    since = datetime(2026, 1, 1, 12, 0, 0)
    assert tracking.elapsed_ticks(since, now) == 100
    assert tracking.elapsed_ticks(None, now) == 0


def test_track_order_uses_acceptance_time():
    now = datetime.now(timezone.utc)
    order = SimpleNamespace(status="in-transit", accepted_at=now - timedelta(seconds=5), duration_minutes=20)
    snap = tracking.track_order(order, now=now)
    assert snap.progress == 25
    assert snap.minutes_left == 15
