"""
Grid layer: fixed partition of the video canvas into scored cells.

The grid is built once at startup. Its layout never changes; only the
per-cell activity scores are rewritten each frame by an aggregator.
"""

from .grid import Cell, Grid, create_grid_from_config

__all__ = [
    "Cell",
    "Grid",
    "create_grid_from_config",
]
