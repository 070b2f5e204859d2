"""
Score-to-opacity mapping.

The normalization constant depends on the aggregator: feature counts are
small integers, pixel sums run into the hundreds of thousands. It is always
passed in by the caller.
"""

from __future__ import annotations

from typing import Iterator, Tuple

from grid import Cell, Grid


def intensity(score: float, normalization: float) -> float:
    """
    Opacity in [0, 1] for a cell score.
    
    Args:
        score: Cell activity score.
        normalization: Score that maps to full opacity. Must be positive.
    """
    if normalization <= 0:
        raise ValueError(f"normalization must be positive, got {normalization}")
    alpha = float(score) / float(normalization)
    return min(max(alpha, 0.0), 1.0)


def visible_cells(grid: Grid, normalization: float) -> Iterator[Tuple[Cell, float]]:
    """Yield (cell, alpha) for every cell with a nonzero score, in grid order."""
    scores = grid.scores()
    for cell in grid.cells():
        score = scores[cell.index]
        if score > 0:
            yield cell, intensity(score, normalization)
