"""
Aggregation strategies for the activity grid.

Each aggregator turns one frame's worth of vision output into per-cell
activity scores. Aggregators are stateless: they compute a fresh score
array and write it into the grid in a single assignment.

Available aggregators:
- FeatureCountAggregator: counts tracked feature points per cell
- PixelCountAggregator: sums (or counts) foreground pixels per cell
"""

from .base import Aggregator, create_aggregator
from .features import FeatureCountAggregator
from .pixels import PixelCountAggregator, ACCUMULATE_SUM, ACCUMULATE_COUNT

__all__ = [
    "Aggregator",
    "create_aggregator",
    "FeatureCountAggregator",
    "PixelCountAggregator",
    "ACCUMULATE_SUM",
    "ACCUMULATE_COUNT",
]
