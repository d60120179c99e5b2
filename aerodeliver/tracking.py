"""Simulated mission tracking.

There is no telemetry feed from real drones. A snapshot is derived from how
long the order has been in transit: the route progress advances on a fixed
tick and the telemetry numbers are jittered for display.
"""
import math
import random
from bisect import bisect_left
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from aerodeliver.lifecycle import OrderStatus

TICK_SECONDS = 0.1
PROGRESS_STEP = 0.5
# progress runs 0, 0.5, ... 100 and then wraps back to 0
TICKS_PER_LAP = int(100 / PROGRESS_STEP) + 1

CRUISE_ALTITUDE = 120.0
ALTITUDE_JITTER = 2.5
CRUISE_SPEED = 45.0
SPEED_JITTER = 2.0
BATTERY_DRAIN_PER_TICK = 0.05
LANDED_BATTERY = 45.0
PENDING_PROGRESS = 5.0
DEFAULT_DURATION_MINUTES = 30

Point = Tuple[float, float]


def _quad(p0: Point, p1: Point, p2: Point, t: float) -> Point:
    u = 1 - t
    return (
        u * u * p0[0] + 2 * u * t * p1[0] + t * t * p2[0],
        u * u * p0[1] + 2 * u * t * p1[1] + t * t * p2[1],
    )


class RoutePath:
    """Polyline approximation of the warehouse -> pickup -> drop route.

    Mirrors ``M 50 50 Q 125 100 200 150 L 200 150 Q 275 150 350 150``.
    """

    SVG = "M 50 50 Q 125 100 200 150 L 200 150 Q 275 150 350 150"
    SEGMENTS = (
        ((50.0, 50.0), (125.0, 100.0), (200.0, 150.0)),
        ((200.0, 150.0), (275.0, 150.0), (350.0, 150.0)),
    )

    def __init__(self, samples_per_segment: int = 200):
        points: List[Point] = [self.SEGMENTS[0][0]]
        for p0, p1, p2 in self.SEGMENTS:
            for i in range(1, samples_per_segment + 1):
                points.append(_quad(p0, p1, p2, i / samples_per_segment))
        self._points = points
        self._lengths = [0.0]
        for a, b in zip(points, points[1:]):
            self._lengths.append(self._lengths[-1] + math.dist(a, b))

    @property
    def length(self) -> float:
        return self._lengths[-1]

    def point_at(self, fraction: float) -> Point:
        fraction = min(1.0, max(0.0, fraction))
        target = fraction * self.length
        i = bisect_left(self._lengths, target)
        if i == 0:
            return self._points[0]
        if i >= len(self._points):
            return self._points[-1]
        start, end = self._lengths[i - 1], self._lengths[i]
        t = 0.0 if end == start else (target - start) / (end - start)
        (x0, y0), (x1, y1) = self._points[i - 1], self._points[i]
        return (round(x0 + (x1 - x0) * t, 2), round(y0 + (y1 - y0) * t, 2))


ROUTE = RoutePath()


@dataclass
class TrackingSnapshot:
    status: str
    progress: float
    phase: str
    altitude: float
    speed: float
    battery: float
    x: float
    y: float
    minutes_left: int


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def minutes_left(duration_minutes: Optional[int], progress: float) -> int:
    duration = DEFAULT_DURATION_MINUTES if duration_minutes is None else duration_minutes
    return max(0, _round_half_up(duration * (1 - progress / 100)))


def elapsed_ticks(since: Optional[datetime], now: Optional[datetime] = None) -> int:
    if since is None:
        return 0
    if since.tzinfo is None:
        since = since.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    return max(0, int((now - since).total_seconds() / TICK_SECONDS))


def progress_for_ticks(ticks: int) -> float:
    return (ticks % TICKS_PER_LAP) * PROGRESS_STEP


def snapshot(status: str, ticks: int = 0, duration_minutes: Optional[int] = None,
             rng: Optional[random.Random] = None) -> TrackingSnapshot:
    rng = rng or random.Random()
    status = OrderStatus(status)

    if status == OrderStatus.IN_TRANSIT:
        progress = progress_for_ticks(ticks)
        altitude = CRUISE_ALTITUDE + rng.uniform(-ALTITUDE_JITTER, ALTITUDE_JITTER)
        speed = CRUISE_SPEED + rng.uniform(0, SPEED_JITTER)
        battery = max(0.0, 100 - BATTERY_DRAIN_PER_TICK * ticks)
    elif status == OrderStatus.DELIVERED:
        progress, altitude, speed, battery = 100.0, 0.0, 0.0, LANDED_BATTERY
    else:
        progress, altitude, speed, battery = PENDING_PROGRESS, CRUISE_ALTITUDE, 0.0, 100.0

    x, y = ROUTE.point_at(progress / 100)
    return TrackingSnapshot(
        status=status.value,
        progress=progress,
        phase="to-pickup" if progress < 50 else "to-drop",
        altitude=round(altitude, 1),
        speed=round(speed, 1),
        battery=round(battery, 2),
        x=x,
        y=y,
        minutes_left=minutes_left(duration_minutes, progress),
    )


def track_order(order, now: Optional[datetime] = None) -> TrackingSnapshot:
    ticks = elapsed_ticks(order.accepted_at, now) if order.status == OrderStatus.IN_TRANSIT.value else 0
    return snapshot(order.status, ticks, order.duration_minutes)
