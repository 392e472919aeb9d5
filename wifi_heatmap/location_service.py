#!/usr/bin/env python3
# -*- coding: utf-8 -*-

# -----------------------------------------------------------------------------
# WiFi Heatmap
#
# wifi_heatmap/location_service.py
#
# Description:
# GPS location streams. Wraps the platform positioning source and provides a
# simulated walk for headless surveys. Subscriptions are released through a
# context manager so no callback outlives the session that registered it.
# -----------------------------------------------------------------------------

import itertools
import math
from contextlib import contextmanager
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from PyQt5.QtCore import QObject, QTimer
from PyQt5.QtPositioning import QGeoPositionInfo, QGeoPositionInfoSource

from .data_models import HeatmapError, LocationFix


HIGH_ACCURACY_INTERVAL_MS = 1000
LOW_ACCURACY_INTERVAL_MS = 5000

METERS_PER_DEGREE_LAT = 111320.0


class LocationUnavailableError(HeatmapError):
    """Raised when no positioning source exists on this system."""
    pass


class LocationStream(QObject):
    """
    Base class for GPS fix sources.

    Subscribers get a handle from ``subscribe`` and must hand it back to
    ``unsubscribe``. The underlying source runs only while at least one
    subscriber is registered.
    """

    def __init__(self, debug_mode=False, parent=None):
        super().__init__(parent)
        self.debug_mode = debug_mode
        self.high_accuracy = True
        self._subscribers: Dict[int, Tuple[Callable, Optional[Callable]]] = {}
        self._handles = itertools.count(1)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self, on_fix: Callable[[LocationFix], None],
                  on_error: Optional[Callable[[Exception], None]] = None) -> int:
        handle = next(self._handles)
        self._subscribers[handle] = (on_fix, on_error)
        if len(self._subscribers) == 1:
            try:
                self._start()
            except Exception:
                del self._subscribers[handle]
                raise
        return handle

    def unsubscribe(self, handle: int):
        if self._subscribers.pop(handle, None) is None:
            return
        if not self._subscribers:
            self._stop()

    def set_high_accuracy(self, enabled: bool):
        self.high_accuracy = bool(enabled)

    def _deliver_fix(self, fix: LocationFix):
        for on_fix, _on_error in list(self._subscribers.values()):
            on_fix(fix)

    def _deliver_error(self, error: Exception):
        if self.debug_mode:
            print(f"DEBUG: Location error: {error}")
        for _on_fix, on_error in list(self._subscribers.values()):
            if on_error is not None:
                on_error(error)

    def _start(self):
        pass

    def _stop(self):
        pass


class QtLocationStream(LocationStream):
    """
    Location stream backed by the system positioning source (QtPositioning).
    """

    def __init__(self, debug_mode=False, parent=None):
        super().__init__(debug_mode=debug_mode, parent=parent)
        self.source = QGeoPositionInfoSource.createDefaultSource(self)
        if self.source is None:
            raise LocationUnavailableError("No positioning source available on this system")

        self.source.positionUpdated.connect(self._on_position_updated)
        self.source.updateTimeout.connect(self._on_update_timeout)
        self.set_high_accuracy(True)

    def set_high_accuracy(self, enabled: bool):
        super().set_high_accuracy(enabled)
        if enabled:
            self.source.setPreferredPositioningMethods(QGeoPositionInfoSource.SatellitePositioningMethods)
            self.source.setUpdateInterval(HIGH_ACCURACY_INTERVAL_MS)
        else:
            self.source.setPreferredPositioningMethods(QGeoPositionInfoSource.AllPositioningMethods)
            self.source.setUpdateInterval(LOW_ACCURACY_INTERVAL_MS)

    def _start(self):
        self.source.startUpdates()
        if self.debug_mode:
            print(f"DEBUG: Started positioning source '{self.source.sourceName()}'")

    def _stop(self):
        self.source.stopUpdates()
        if self.debug_mode:
            print("DEBUG: Stopped positioning source")

    def _on_position_updated(self, info: QGeoPositionInfo):
        coordinate = info.coordinate()
        if not coordinate.isValid():
            return
        accuracy = None
        if info.hasAttribute(QGeoPositionInfo.HorizontalAccuracy):
            accuracy = info.attribute(QGeoPositionInfo.HorizontalAccuracy)
        self._deliver_fix(LocationFix(
            latitude=coordinate.latitude(),
            longitude=coordinate.longitude(),
            accuracy=accuracy,
            timestamp=info.timestamp().toPyDateTime()
        ))

    def _on_update_timeout(self):
        self._deliver_error(LocationUnavailableError("Positioning source timed out"))


def walk_waypoints(start: Tuple[float, float], bearing_deg: float, step_m: float,
                   steps: int) -> List[Tuple[float, float]]:
    """
    Generate (lat, lon) waypoints for a straight walk.

    Args:
        start: Starting (latitude, longitude)
        bearing_deg: Direction of travel, 0 is north, 90 is east
        step_m: Distance between consecutive waypoints in meters
        steps: Number of waypoints after the start
    """
    lat, lon = start
    bearing = math.radians(bearing_deg)
    waypoints = [(lat, lon)]
    for _ in range(steps):
        lat += step_m * math.cos(bearing) / METERS_PER_DEGREE_LAT
        lon += step_m * math.sin(bearing) / (METERS_PER_DEGREE_LAT * math.cos(math.radians(lat)))
        waypoints.append((lat, lon))
    return waypoints


class SimulatedLocationStream(LocationStream):
    """
    Replays a list of (latitude, longitude) waypoints on a QTimer.
    Stays at the last waypoint once the list is exhausted.
    """

    def __init__(self, waypoints: Sequence[Tuple[float, float]], interval_ms=HIGH_ACCURACY_INTERVAL_MS,
                 accuracy=5.0, debug_mode=False, parent=None):
        super().__init__(debug_mode=debug_mode, parent=parent)
        if not waypoints:
            raise ValueError("SimulatedLocationStream needs at least one waypoint")
        self.waypoints = list(waypoints)
        self.accuracy = accuracy
        self._position = 0
        self.timer = QTimer(self)
        self.timer.setInterval(interval_ms)
        self.timer.timeout.connect(self.advance)

    def set_high_accuracy(self, enabled: bool):
        super().set_high_accuracy(enabled)
        self.timer.setInterval(HIGH_ACCURACY_INTERVAL_MS if enabled else LOW_ACCURACY_INTERVAL_MS)

    def _start(self):
        self.timer.start()

    def _stop(self):
        self.timer.stop()

    @property
    def current_waypoint(self) -> Tuple[float, float]:
        return self.waypoints[self._position]

    def advance(self):
        """Emit the current waypoint and move on to the next one."""
        latitude, longitude = self.waypoints[self._position]
        if self._position < len(self.waypoints) - 1:
            self._position += 1
        self.emit_fix(LocationFix(latitude, longitude, accuracy=self.accuracy))

    def emit_fix(self, fix: LocationFix):
        self._deliver_fix(fix)


@contextmanager
def location_subscription(stream: LocationStream, on_fix, on_error=None):
    """
    Subscribe to a location stream for the duration of a with-block.
    The subscription is released on every exit path, including exceptions.
    """
    handle = stream.subscribe(on_fix, on_error)
    try:
        yield handle
    finally:
        stream.unsubscribe(handle)
