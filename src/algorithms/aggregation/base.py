"""
Aggregator interface.

An aggregator reads one frame of vision output (a point list or a binary
image) and overwrites every score in a Grid. It never changes the grid's
layout and keeps no state between calls, so calling it twice with the
same input yields the same scores.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional

import numpy as np

from grid import Grid


class Aggregator(ABC):
    """
    Abstract base class for grid aggregation strategies.
    
    Subclasses implement compute(); update() handles the missing-data
    guard and the single write into the grid.
    """

    name: str = "base"

    def update(self, grid: Grid, data: Any) -> Optional[np.ndarray]:
        """
        Recompute all cell scores from this frame's data.
        
        Args:
            grid: Grid whose scores are overwritten.
            data: Frame data for this strategy. None means "nothing captured
                yet" and leaves the current scores untouched.
            
        Returns:
            The new score array in cell order, or None if data was None.
        """
        if data is None:
            return None
        scores = self.compute(grid, data)
        grid.set_scores(scores)
        return scores

    @abstractmethod
    def compute(self, grid: Grid, data: Any) -> np.ndarray:
        """
        Compute scores for every cell without touching the grid.
        
        Returns:
            int64 array of length len(grid), in row-major cell order.
        """
        pass


def create_aggregator(mode: str, accumulate: str = "sum") -> Aggregator:
    """
    Factory: pick the aggregator for a display mode.
    
    Args:
        mode: "features" or "difference".
        accumulate: Pixel accumulation policy for the difference mode.
    """
    from .features import FeatureCountAggregator
    from .pixels import PixelCountAggregator

    if mode == "features":
        return FeatureCountAggregator()
    if mode == "difference":
        return PixelCountAggregator(accumulate=accumulate)
    raise ValueError(f"Unknown aggregation mode: {mode}")
