"""
Feature-count aggregation.

Scores each cell with the number of tracked feature points inside it.
Membership is half-open on both axes, [x, x + width) by [y, y + height),
so a point on a shared edge belongs to the cell that starts there.
"""

from __future__ import annotations

from typing import Any

import numpy as np

from grid import Grid
from .base import Aggregator


def as_points(points: Any) -> np.ndarray:
    """
    Normalize a point collection to a float (N, 2) array.
    
    Accepts a list of (x, y) pairs, an (N, 2) array, or OpenCV's (N, 1, 2)
    layout from goodFeaturesToTrack / calcOpticalFlowPyrLK.
    """
    arr = np.asarray(points, dtype=np.float64)
    if arr.size == 0:
        return np.empty((0, 2), dtype=np.float64)
    arr = arr.reshape(-1, arr.shape[-1])
    if arr.shape[1] != 2:
        raise ValueError(f"Points must be (x, y) pairs, got shape {np.shape(points)}")
    return arr


def locate(grid: Grid, points: np.ndarray) -> np.ndarray:
    """
    Cell index for each point, or -1 for points outside the canvas.
    
    Equivalent to testing every cell with Cell.contains(), but uses the
    grid's edge arrays so the cost is O(points * log(cells)).
    """
    xs = points[:, 0]
    ys = points[:, 1]
    inside = (
        np.isfinite(xs) & np.isfinite(ys)
        & (xs >= 0) & (xs < grid.width)
        & (ys >= 0) & (ys < grid.height)
    )
    cols = np.searchsorted(grid.column_edges(), xs, side="right") - 1
    rows = np.searchsorted(grid.row_edges(), ys, side="right") - 1
    return np.where(inside, rows * grid.cols + cols, -1)


class FeatureCountAggregator(Aggregator):
    """Counts feature points per cell."""

    name = "features"

    def compute(self, grid: Grid, data: Any) -> np.ndarray:
        points = as_points(data)
        indices = locate(grid, points)
        indices = indices[indices >= 0]
        return np.bincount(indices, minlength=len(grid)).astype(np.int64)
