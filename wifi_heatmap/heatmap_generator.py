#!/usr/bin/env python3
# -*- coding: utf-8 -*-

# -----------------------------------------------------------------------------
# WiFi Heatmap
#
# wifi_heatmap/heatmap_generator.py
#
# Description:
# Signal strength heatmap generation for the WiFi Heatmap engine.
# Tiles a floor plan into cells and turns interpolated signal strength into
# colored cells for a renderer to draw.
# -----------------------------------------------------------------------------

from typing import Dict, List, Optional, Sequence

import numpy as np

from .color_mapper import ColorMapper
from .data_models import FloorDimensions, HeatmapCell, RenderModel, Sample
from .signal_interpolator import SignalInterpolator


DEFAULT_CELL_SIZE = 10.0
DEFAULT_OPACITY = 0.7


class HeatmapGenerator:
    """
    Generates heatmap cells from captured samples.

    The plan is partitioned into ``cell_size`` square cells starting at the
    top-left corner. Any fractional remainder at the right and bottom edges is
    not covered. Each cell takes the interpolated strength at its center;
    cells without an estimate are left out entirely so that a renderer draws
    nothing there. Opacity is fixed, only the color encodes strength.
    """

    def __init__(self, interpolator: Optional[SignalInterpolator] = None,
                 color_mapper: Optional[ColorMapper] = None,
                 cell_size: float = DEFAULT_CELL_SIZE,
                 opacity: float = DEFAULT_OPACITY):
        """
        Initialize the heatmap generator.

        Args:
            interpolator: Strength estimator (default radius of influence if omitted)
            color_mapper: Strength to color mapping (discrete bands if omitted)
            cell_size: Edge length of one cell in plan pixel units
            opacity: Opacity carried by every emitted cell
        """
        self.interpolator = interpolator or SignalInterpolator()
        self.color_mapper = color_mapper or ColorMapper()
        self.cell_size = self._check_cell_size(cell_size)
        if not 0.0 <= opacity <= 1.0:
            raise ValueError(f"opacity must lie in [0, 1], got {opacity}")
        self.opacity = opacity

    @staticmethod
    def _check_cell_size(cell_size: float) -> float:
        if not cell_size > 0:
            raise ValueError(f"cell_size must be positive, got {cell_size}")
        return float(cell_size)

    def grid_shape(self, dimensions: FloorDimensions, cell_size: Optional[float] = None):
        """Returns (rows, columns) of the cell grid covering the plan."""
        cell_size = self.cell_size if cell_size is None else self._check_cell_size(cell_size)
        columns = int(dimensions.width // cell_size)
        rows = int(dimensions.height // cell_size)
        return rows, columns

    def strength_grid(self, dimensions: FloorDimensions, samples: Sequence[Sample],
                      cell_size: Optional[float] = None) -> np.ndarray:
        """
        Create the interpolated signal strength grid.

        Args:
            dimensions: Floor plan dimensions
            samples: Captured samples
            cell_size: Overrides the generator cell size for this call

        Returns:
            2D numpy array (rows x columns) with strength in dBm, NaN where no
            sample is in range
        """
        cell_size = self.cell_size if cell_size is None else self._check_cell_size(cell_size)
        rows, columns = self.grid_shape(dimensions, cell_size)
        grid = np.full((rows, columns), np.nan)

        if not samples or rows == 0 or columns == 0:
            return grid

        index = self.interpolator.index(samples)
        for row in range(rows):
            center_y = (row + 0.5) * cell_size
            for col in range(columns):
                center_x = (col + 0.5) * cell_size
                strength = index.estimate(center_x, center_y)
                if strength is not None:
                    grid[row, col] = strength

        return grid

    def rasterize(self, dimensions: FloorDimensions, samples: Sequence[Sample],
                  cell_size: Optional[float] = None) -> List[HeatmapCell]:
        """
        Generate the heatmap cells for one floor.

        Args:
            dimensions: Floor plan dimensions
            samples: Captured samples
            cell_size: Overrides the generator cell size for this call

        Returns:
            Cells in row-major order; cells with no data are omitted
        """
        cell_size = self.cell_size if cell_size is None else self._check_cell_size(cell_size)
        grid = self.strength_grid(dimensions, samples, cell_size)
        rows, columns = grid.shape

        cells = []
        for row in range(rows):
            for col in range(columns):
                strength = grid[row, col]

                # Skip NaN values (no data)
                if np.isnan(strength):
                    continue

                cells.append(HeatmapCell(
                    x=col * cell_size,
                    y=row * cell_size,
                    width=cell_size,
                    height=cell_size,
                    color=self.color_mapper.color_for(strength),
                    opacity=self.opacity,
                    strength=float(strength)
                ))

        return cells

    def render_model(self, floor) -> RenderModel:
        """Build the renderer input for a floor from its current samples and marker."""
        cells = self.rasterize(floor.dimensions, floor.samples.all())
        return RenderModel(floor.dimensions, cells, floor.tracker.marker_position)

    def coverage_summary(self, samples: Sequence[Sample]) -> Dict[str, Optional[float]]:
        """
        Summary statistics over the captured strengths.

        Returns:
            Dict with sample count and min / max / mean strength (None when empty)
        """
        if not samples:
            return {'count': 0, 'min': None, 'max': None, 'mean': None}

        strengths = np.array([sample.strength for sample in samples], dtype=float)
        return {
            'count': len(samples),
            'min': float(strengths.min()),
            'max': float(strengths.max()),
            'mean': float(strengths.mean()),
        }
