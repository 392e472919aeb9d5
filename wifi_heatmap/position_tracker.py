#!/usr/bin/env python3
# -*- coding: utf-8 -*-

# -----------------------------------------------------------------------------
# WiFi Heatmap
#
# wifi_heatmap/position_tracker.py
#
# Description:
# Dead-reckoning marker tracker. Converts GPS deltas since the last anchor
# into plan pixel displacement and smooths the resulting marker position.
# -----------------------------------------------------------------------------

import math
from typing import Optional, Tuple

from PyQt5.QtCore import QObject, pyqtSignal

from .data_models import Anchor, FloorDimensions, LocationFix


UNANCHORED = "unanchored"
ANCHORED = "anchored"

DEFAULT_SENSITIVITY = 50.0
DEFAULT_PIXEL_SCALE = 20.0
DEFAULT_SMOOTHING_FACTOR = 0.2

# Used when the current floor has no known dimensions
FALLBACK_DIMENSIONS = FloorDimensions(300, 200)


def sensitivity_scale(sensitivity: float) -> float:
    """Degrees-to-meters-like multiplier for a 0-100 sensitivity slider value."""
    return 50000 + sensitivity * 1500


def smooth_position(new_pos: Tuple[float, float], old_pos: Tuple[float, float],
                    factor: float = DEFAULT_SMOOTHING_FACTOR) -> Tuple[float, float]:
    """Exponential smoothing step from old_pos towards new_pos."""
    return (
        old_pos[0] + (new_pos[0] - old_pos[0]) * factor,
        old_pos[1] + (new_pos[1] - old_pos[1]) * factor,
    )


class PositionTracker(QObject):
    """
    Tracks the marker position on one floor plan from a stream of GPS fixes.

    The tracker is UNANCHORED until a marker is placed while a GPS fix is
    known. From then on every fix moves the marker by the GPS delta since the
    previous fix, and the anchor walks forward to the new fix. There is no
    absolute correction, so error accumulates over a session.
    """

    marker_moved = pyqtSignal(float, float)

    def __init__(self, dimensions: Optional[FloorDimensions] = None,
                 sensitivity: float = DEFAULT_SENSITIVITY,
                 pixel_scale: float = DEFAULT_PIXEL_SCALE,
                 smoothing_factor: float = DEFAULT_SMOOTHING_FACTOR,
                 debug_mode=False, parent=None):
        super().__init__(parent)
        if not 0 < smoothing_factor <= 1:
            raise ValueError(f"smoothing_factor must lie in (0, 1], got {smoothing_factor}")
        self.dimensions = dimensions
        self.sensitivity = self._clamp_sensitivity(sensitivity)
        self.pixel_scale = pixel_scale
        self.smoothing_factor = smoothing_factor
        self.debug_mode = debug_mode

        self.anchor: Optional[Anchor] = None
        self.marker_position: Optional[Tuple[float, float]] = None
        self.last_fix: Optional[LocationFix] = None

    @staticmethod
    def _clamp_sensitivity(sensitivity: float) -> float:
        return min(max(float(sensitivity), 0.0), 100.0)

    @property
    def state(self) -> str:
        return ANCHORED if self.anchor is not None else UNANCHORED

    @property
    def effective_dimensions(self) -> FloorDimensions:
        return self.dimensions if self.dimensions is not None else FALLBACK_DIMENSIONS

    def set_sensitivity(self, sensitivity: float):
        self.sensitivity = self._clamp_sensitivity(sensitivity)

    def set_dimensions(self, dimensions: Optional[FloorDimensions]):
        self.dimensions = dimensions

    def place_marker(self, x: float, y: float, fix: Optional[LocationFix] = None):
        """
        Place the marker at (x, y), replacing any previous anchor.

        Args:
            x, y: Tapped plan pixel position
            fix: GPS fix to anchor to; defaults to the last fix seen. Without
                any fix the marker is shown but the tracker stays unanchored.
        """
        if fix is None:
            fix = self.last_fix
        else:
            self.last_fix = fix

        self.marker_position = self.effective_dimensions.clamp(float(x), float(y))
        if fix is not None:
            self.anchor = Anchor(fix.latitude, fix.longitude, *self.marker_position)
        else:
            self.anchor = None

        if self.debug_mode:
            print(f"DEBUG: Marker placed at {self.marker_position}, state: {self.state}")
        self.marker_moved.emit(*self.marker_position)

    def update(self, fix: LocationFix) -> Optional[Tuple[float, float]]:
        """
        Move the marker by the GPS delta between the anchor and this fix.

        Returns:
            The new smoothed marker position, or None when unanchored
        """
        self.last_fix = fix
        if self.anchor is None or self.marker_position is None:
            return None

        lat_diff = fix.latitude - self.anchor.latitude
        lon_diff = fix.longitude - self.anchor.longitude

        scale = sensitivity_scale(self.sensitivity)
        moved_lat = lat_diff * scale
        moved_lon = lon_diff * scale * math.cos(fix.latitude * math.pi / 180)

        dx = moved_lon * self.pixel_scale
        dy = -moved_lat * self.pixel_scale  # North is up on screen

        old_x, old_y = self.marker_position
        raw_position = self.effective_dimensions.clamp(old_x + dx, old_y + dy)
        self.marker_position = smooth_position(raw_position, self.marker_position, self.smoothing_factor)

        self.anchor.latitude = fix.latitude
        self.anchor.longitude = fix.longitude

        if self.debug_mode:
            print(f"DEBUG: GPS delta ({lat_diff:.7f}, {lon_diff:.7f}) moved marker to "
                  f"({self.marker_position[0]:.1f}, {self.marker_position[1]:.1f})")
        self.marker_moved.emit(*self.marker_position)
        return self.marker_position
