#!/usr/bin/env python3
# -*- coding: utf-8 -*-

# -----------------------------------------------------------------------------
# WiFi Heatmap
#
# wifi_heatmap/floor_registry.py
#
# Description:
# Floors and the registry that owns them. Each floor carries its plan image
# reference, fixed dimensions, its own sample store and its own position
# tracker.
# -----------------------------------------------------------------------------

import os
from typing import Dict, Iterator, List, Optional

from PyQt5.QtGui import QImage

from .data_models import (DEFAULT_FLOOR_HEIGHT, DEFAULT_FLOOR_WIDTH, FloorDimensions,
                          FloorPlanImage, HeatmapError, Sample)
from .position_tracker import PositionTracker
from .sample_store import SampleStore


class DuplicateFloorError(HeatmapError):
    """Raised when a floor id is already registered."""
    pass


class UnknownFloorError(HeatmapError):
    """Raised when a floor id is not registered."""
    pass


class FloorPlanImageError(HeatmapError):
    """Raised when a floor plan image cannot be read."""
    pass


class Floor:
    """
    Encapsulates data for a single floor plan.
    """
    def __init__(self, floor_id, dimensions=None, plan_image=None, samples=None):
        if not floor_id or not str(floor_id).strip():
            raise ValueError("Floor id must not be empty")
        self.floor_id = str(floor_id)
        self.plan_image = plan_image  # FloorPlanImage or None for a blank floor

        if dimensions is None:
            if plan_image is not None:
                dimensions = FloorDimensions(plan_image.width, plan_image.height)
            else:
                dimensions = FloorDimensions(DEFAULT_FLOOR_WIDTH, DEFAULT_FLOOR_HEIGHT)
        elif not isinstance(dimensions, FloorDimensions):
            dimensions = FloorDimensions(*dimensions)
        self.dimensions = dimensions

        self.samples = samples if samples is not None else SampleStore()
        self.tracker = PositionTracker(dimensions=self.dimensions)

    @property
    def is_blank(self) -> bool:
        return self.plan_image is None

    def to_dict(self):
        return {
            'floor_id': self.floor_id,
            'dimensions': self.dimensions.to_dict(),
            'plan_image': self.plan_image.to_dict() if self.plan_image else None,
            'samples': self.samples.to_list()
        }

    @classmethod
    def from_dict(cls, data):
        """Create Floor instance from dictionary."""
        plan_image = FloorPlanImage.from_dict(data['plan_image']) if data.get('plan_image') else None
        return cls(
            floor_id=data['floor_id'],
            dimensions=FloorDimensions.from_dict(data['dimensions']),
            plan_image=plan_image,
            samples=SampleStore.from_list(data.get('samples', []))
        )


class FloorPlanRegistry:
    """
    Keyed collection of floors with at most one current floor.

    Floors are created by explicit user action and never removed.
    """

    def __init__(self, validate_bounds=False, debug_mode=False):
        """
        Args:
            validate_bounds: Reject samples whose position lies outside the
                plan. Off by default, captured positions are not checked.
            debug_mode: Print debug traces
        """
        self._floors: Dict[str, Floor] = {}
        self._current_id: Optional[str] = None
        self.validate_bounds = validate_bounds
        self.debug_mode = debug_mode

    def add_floor(self, floor_id, dimensions=None, plan_image=None) -> Floor:
        """
        Register a new floor and make it current.

        Raises:
            DuplicateFloorError: If the id is already taken
            InvalidFloorDimensionsError: If the dimensions are not positive
        """
        floor_id = str(floor_id).strip()
        if floor_id in self._floors:
            raise DuplicateFloorError(f"Floor '{floor_id}' already exists")
        floor = Floor(floor_id, dimensions=dimensions, plan_image=plan_image)
        return self._register(floor)

    def _register(self, floor: Floor) -> Floor:
        if floor.floor_id in self._floors:
            raise DuplicateFloorError(f"Floor '{floor.floor_id}' already exists")
        self._floors[floor.floor_id] = floor
        self._current_id = floor.floor_id
        if self.debug_mode:
            print(f"DEBUG: Added floor '{floor.floor_id}' ({floor.dimensions})")
        return floor

    def create_blank_floor(self, dimensions=None) -> Floor:
        """Create a blank floor named "Floor N" where N is the next free number."""
        number = len(self._floors) + 1
        while f"Floor {number}" in self._floors:
            number += 1
        return self.add_floor(f"Floor {number}", dimensions=dimensions)

    def select(self, floor_id) -> Floor:
        if floor_id not in self._floors:
            raise UnknownFloorError(f"Floor '{floor_id}' does not exist")
        self._current_id = floor_id
        return self._floors[floor_id]

    def get(self, floor_id) -> Optional[Floor]:
        return self._floors.get(floor_id)

    @property
    def current(self) -> Optional[Floor]:
        if self._current_id is None:
            return None
        return self._floors[self._current_id]

    @property
    def current_id(self) -> Optional[str]:
        return self._current_id

    def ids(self) -> List[str]:
        return list(self._floors)

    def add_sample(self, floor_id, sample: Sample):
        """
        Append a sample to a floor's store.

        Raises:
            UnknownFloorError: If the floor does not exist
            ValueError: If bounds validation is enabled and the sample lies
                outside the plan
        """
        floor = self._floors.get(floor_id)
        if floor is None:
            raise UnknownFloorError(f"Floor '{floor_id}' does not exist")
        if self.validate_bounds and not floor.dimensions.contains(sample.x, sample.y):
            raise ValueError(f"Sample position {sample.position} lies outside floor '{floor_id}'")
        floor.samples.append(sample)

    def clear_samples(self, floor_id):
        floor = self._floors.get(floor_id)
        if floor is None:
            raise UnknownFloorError(f"Floor '{floor_id}' does not exist")
        floor.samples.clear()

    def to_dict(self):
        return {
            'floors': [floor.to_dict() for floor in self._floors.values()],
            'current_floor_id': self._current_id
        }

    @classmethod
    def from_dict(cls, data, validate_bounds=False, debug_mode=False):
        """Create FloorPlanRegistry instance from dictionary."""
        registry = cls(validate_bounds=validate_bounds, debug_mode=debug_mode)
        for floor_data in data.get('floors', []):
            registry._register(Floor.from_dict(floor_data))
        current_id = data.get('current_floor_id')
        if current_id in registry._floors:
            registry._current_id = current_id
        return registry

    def __len__(self):
        return len(self._floors)

    def __iter__(self) -> Iterator[Floor]:
        return iter(list(self._floors.values()))

    def __contains__(self, floor_id):
        return floor_id in self._floors


def load_floor_plan_image(image_path: str) -> FloorPlanImage:
    """
    Read a floor plan image and return a reference carrying its native size.

    Raises:
        FloorPlanImageError: If the file is missing or cannot be decoded
    """
    if not os.path.exists(image_path):
        raise FloorPlanImageError(f"Floor plan image not found: {image_path}")

    image = QImage(image_path)
    if image.isNull() or image.width() <= 0 or image.height() <= 0:
        raise FloorPlanImageError(f"Failed to load floor plan image: {image_path}")

    return FloorPlanImage(uri=os.path.abspath(image_path), width=image.width(), height=image.height())
