#!/usr/bin/env python3
# -*- coding: utf-8 -*-

# -----------------------------------------------------------------------------
# WiFi Heatmap
#
# wifi_heatmap/signal_interpolator.py
#
# Description:
# Inverse-distance weighted estimation of signal strength at arbitrary plan
# coordinates from a sparse set of captured samples.
# -----------------------------------------------------------------------------

import math
from typing import Optional, Sequence

import numpy as np
from scipy.spatial import cKDTree

from .data_models import Sample


DEFAULT_MAX_DISTANCE = 50.0
DEFAULT_SPATIAL_INDEX_THRESHOLD = 2000


class SampleIndex:
    """
    Query object over a fixed sample sequence.

    Built once per rasterization pass. Small sample sets are scanned linearly;
    large ones are pre-filtered with a KD-tree radius query. Both paths sum the
    retained samples in insertion order, so the result is identical.
    """

    def __init__(self, samples: Sequence[Sample], max_distance: float, use_tree: bool = False):
        self.samples = tuple(samples)
        self.max_distance = max_distance
        self._tree = None
        if use_tree and self.samples:
            points = np.array([(s.x, s.y) for s in self.samples], dtype=float)
            self._tree = cKDTree(points)

    @property
    def uses_tree(self) -> bool:
        return self._tree is not None

    def _candidates(self, x: float, y: float):
        if self._tree is None:
            return self.samples
        # Widen the radius slightly; the exact distance test below decides.
        radius = self.max_distance * (1 + 1e-9) + 1e-9
        indices = sorted(self._tree.query_ball_point((x, y), r=radius))
        return [self.samples[i] for i in indices]

    def estimate(self, x: float, y: float) -> Optional[float]:
        """
        Estimate signal strength at (x, y).

        Returns:
            Weighted mean strength in dBm, or None when no sample lies within
            max_distance of the query point.
        """
        total_weight = 0.0
        weighted_sum = 0.0

        for sample in self._candidates(x, y):
            dx = x - sample.x
            dy = y - sample.y
            distance = math.sqrt(dx * dx + dy * dy)
            if distance <= self.max_distance:
                weight = 1 / (distance + 1)
                total_weight += weight
                weighted_sum += weight * sample.strength

        if total_weight > 0:
            return weighted_sum / total_weight
        return None


class SignalInterpolator:
    """
    Inverse-distance weighting (IDW) over captured samples.

    Samples farther than ``max_distance`` plan units from the query point are
    ignored, the rest are weighted by ``1 / (d + 1)``.
    """

    def __init__(self, max_distance: float = DEFAULT_MAX_DISTANCE,
                 spatial_index_threshold: int = DEFAULT_SPATIAL_INDEX_THRESHOLD):
        """
        Initialize the interpolator.

        Args:
            max_distance: Radius of influence of one sample, in plan pixel units.
                Plan pixel density depends on the uploaded image, so this is
                configurable.
            spatial_index_threshold: Sample count above which a KD-tree is used
                to find nearby samples.
        """
        if max_distance < 0:
            raise ValueError(f"max_distance must not be negative, got {max_distance}")
        self.max_distance = float(max_distance)
        self.spatial_index_threshold = spatial_index_threshold

    def index(self, samples: Sequence[Sample]) -> SampleIndex:
        """Build a reusable query object for the given samples."""
        use_tree = len(samples) > self.spatial_index_threshold
        return SampleIndex(samples, self.max_distance, use_tree=use_tree)

    def estimate(self, x: float, y: float, samples: Sequence[Sample]) -> Optional[float]:
        return self.index(samples).estimate(x, y)


def interpolate_signal_strength(x: float, y: float, samples: Sequence[Sample],
                                max_distance: float = DEFAULT_MAX_DISTANCE) -> Optional[float]:
    """
    Convenience function estimating signal strength at a single point.

    Args:
        x, y: Query point in plan pixel coordinates
        samples: Captured samples
        max_distance: Radius of influence of one sample

    Returns:
        Estimated strength in dBm, or None if no sample is in range
    """
    return SignalInterpolator(max_distance=max_distance).estimate(x, y, samples)
