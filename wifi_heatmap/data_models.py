#!/usr/bin/env python3
# -*- coding: utf-8 -*-

# -----------------------------------------------------------------------------
# WiFi Heatmap
#
# wifi_heatmap/data_models.py
#
# Description:
# Data model classes for the WiFi Heatmap engine. Contains the structures for
# samples, access point readings, GPS fixes, anchors, floors and the derived
# heatmap cells handed to a renderer.
# -----------------------------------------------------------------------------

import math
from datetime import datetime
from typing import List, Optional, Tuple


DEFAULT_FLOOR_WIDTH = 500.0
DEFAULT_FLOOR_HEIGHT = 500.0


class HeatmapError(Exception):
    """Base class for all errors raised by the heatmap engine."""
    pass


class InvalidFloorDimensionsError(HeatmapError):
    """Raised when a floor is created with non-positive dimensions."""
    pass


class FloorDimensions:
    """
    Width and height of a floor plan in plan pixel units.
    """
    def __init__(self, width, height):
        try:
            width = float(width)
            height = float(height)
        except (TypeError, ValueError):
            raise InvalidFloorDimensionsError(f"Floor dimensions must be numeric, got {width!r} x {height!r}")
        if not (0 < width < math.inf and 0 < height < math.inf):
            raise InvalidFloorDimensionsError(f"Floor dimensions must be positive and finite, got {width} x {height}")
        self.width = width
        self.height = height

    def contains(self, x: float, y: float) -> bool:
        return 0 <= x <= self.width and 0 <= y <= self.height

    def clamp(self, x: float, y: float) -> Tuple[float, float]:
        """Clamps a point component-wise into [0, width] x [0, height]."""
        return (min(max(x, 0.0), self.width), min(max(y, 0.0), self.height))

    def to_dict(self):
        return {'width': self.width, 'height': self.height}

    @classmethod
    def from_dict(cls, data):
        """Create FloorDimensions instance from dictionary."""
        return cls(width=data['width'], height=data['height'])

    def __eq__(self, other):
        if not isinstance(other, FloorDimensions):
            return NotImplemented
        return self.width == other.width and self.height == other.height

    def __repr__(self):
        return f"FloorDimensions({self.width:g}x{self.height:g})"


class Sample:
    """
    One scan reading bound to a location on the floor plan.

    Samples are immutable once created; every attribute is exposed read-only.
    """
    __slots__ = ('_x', '_y', '_strength', '_distance', '_quality', '_timestamp')

    def __init__(self, x, y, strength, distance=None, quality=None, timestamp=None):
        self._x = float(x)
        self._y = float(y)
        self._strength = float(strength)
        self._distance = distance
        self._quality = quality
        self._timestamp = timestamp if timestamp is not None else datetime.now()

    @property
    def x(self) -> float:
        return self._x

    @property
    def y(self) -> float:
        return self._y

    @property
    def position(self) -> Tuple[float, float]:
        return (self._x, self._y)

    @property
    def strength(self) -> float:
        """Signal level in dBm."""
        return self._strength

    @property
    def distance(self) -> Optional[float]:
        """Ranged distance to the access point in meters, if RTT was available."""
        return self._distance

    @property
    def quality(self) -> Optional[float]:
        return self._quality

    @property
    def timestamp(self) -> datetime:
        return self._timestamp

    def to_dict(self):
        return {
            'x': self._x,
            'y': self._y,
            'strength': self._strength,
            'distance': self._distance,
            'quality': self._quality,
            'timestamp': self._timestamp.isoformat(),  # Store as ISO format string
        }

    @classmethod
    def from_dict(cls, data):
        """Create Sample instance from dictionary."""
        timestamp = datetime.fromisoformat(data['timestamp']) if data.get('timestamp') else None
        return cls(
            x=data['x'],
            y=data['y'],
            strength=data['strength'],
            distance=data.get('distance'),
            quality=data.get('quality'),
            timestamp=timestamp
        )

    def __repr__(self):
        return f"Sample(x={self._x:g}, y={self._y:g}, strength={self._strength:g})"


class AccessPointReading:
    """
    Represents one access point observed during a WiFi scan.
    """
    def __init__(self, ssid, level, bssid=None, frequency=None, distance=None, quality=None,
                 is_rtt_responder=False):
        self.ssid = ssid
        self.bssid = bssid
        self.level = level
        self.frequency = frequency
        self.distance = distance
        self.quality = quality
        self.is_rtt_responder = is_rtt_responder

    @property
    def band(self) -> str:
        """Estimate band from frequency."""
        frequency = self.frequency or 0
        if 2400 <= frequency <= 2500:
            return "2.4 GHz"
        elif 5000 <= frequency <= 5900:
            return "5 GHz"
        elif 5955 <= frequency <= 7125:
            return "6 GHz"
        else:
            return "Unknown"

    def to_dict(self):
        return {
            'ssid': self.ssid,
            'bssid': self.bssid,
            'level': self.level,
            'frequency': self.frequency,
            'distance': self.distance,
            'quality': self.quality,
            'is_rtt_responder': self.is_rtt_responder,
        }

    @classmethod
    def from_dict(cls, data):
        """Create AccessPointReading instance from dictionary."""
        return cls(
            ssid=data['ssid'],
            level=data['level'],
            bssid=data.get('bssid'),
            frequency=data.get('frequency'),
            distance=data.get('distance'),
            quality=data.get('quality'),
            is_rtt_responder=data.get('is_rtt_responder', False)
        )

    def __repr__(self):
        return f"AccessPointReading(ssid={self.ssid!r}, level={self.level})"


class RangingResult:
    """
    Result of a WiFi RTT (802.11mc) ranging request against one responder.
    """
    def __init__(self, bssid, rssi, distance_mm, signal_quality):
        self.bssid = bssid
        self.rssi = rssi
        self.distance_mm = distance_mm
        self.signal_quality = signal_quality

    @property
    def distance_m(self) -> float:
        return self.distance_mm / 1000


class LocationFix:
    """
    An absolute GPS fix delivered by a location stream.
    """
    def __init__(self, latitude, longitude, accuracy=None, timestamp=None):
        self.latitude = float(latitude)
        self.longitude = float(longitude)
        self.accuracy = accuracy
        self.timestamp = timestamp if timestamp is not None else datetime.now()

    def __repr__(self):
        return f"LocationFix({self.latitude:.6f}, {self.longitude:.6f})"


class Anchor:
    """
    Reference pairing of a GPS fix and the plan pixel where the marker was placed.
    The GPS half advances to the latest fix on every position update.
    """
    def __init__(self, latitude, longitude, pixel_x, pixel_y):
        self.latitude = latitude
        self.longitude = longitude
        self.pixel_x = pixel_x
        self.pixel_y = pixel_y

    @property
    def gps_fix(self) -> Tuple[float, float]:
        return (self.latitude, self.longitude)

    @property
    def pixel_position(self) -> Tuple[float, float]:
        return (self.pixel_x, self.pixel_y)


class FloorPlanImage:
    """
    Reference to an uploaded floor plan image and its native pixel size.
    """
    def __init__(self, uri, width, height):
        self.uri = uri
        self.width = width
        self.height = height

    def to_dict(self):
        return {'uri': self.uri, 'width': self.width, 'height': self.height}

    @classmethod
    def from_dict(cls, data):
        """Create FloorPlanImage instance from dictionary."""
        return cls(uri=data['uri'], width=data['width'], height=data['height'])


class HeatmapCell:
    """
    One rendered tile of the heatmap grid. Derived on demand, never persisted.
    """
    __slots__ = ('x', 'y', 'width', 'height', 'color', 'opacity', 'strength')

    def __init__(self, x, y, width, height, color, opacity, strength):
        self.x = x
        self.y = y
        self.width = width
        self.height = height
        self.color = color  # QColor
        self.opacity = opacity
        self.strength = strength

    def to_dict(self):
        return {
            'x': self.x,
            'y': self.y,
            'width': self.width,
            'height': self.height,
            'color': self.color.name(),
            'opacity': self.opacity,
            'strength': self.strength,
        }

    def __repr__(self):
        return f"HeatmapCell(x={self.x:g}, y={self.y:g}, strength={self.strength:.1f})"


class RenderModel:
    """
    Everything a renderer needs for one floor: plan dimensions, the heatmap
    cells and the current marker position (or None).
    """
    def __init__(self, dimensions: FloorDimensions, cells: List[HeatmapCell],
                 marker_position: Optional[Tuple[float, float]] = None):
        self.dimensions = dimensions
        self.cells = cells
        self.marker_position = marker_position
