"""
OpenCV overlay rendering for the activity grid.

Draws each active cell as a translucent filled rectangle and tracked
features as small dots. All drawing happens in place on a BGR canvas.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Tuple

import cv2
import numpy as np

from grid import Grid
from .intensity import visible_cells


@dataclass
class OverlayStyle:
    """
    Colors (BGR) and sizes for the overlay.
    
    Attributes:
        cell_color: Fill color for active cells.
        point_color: Color of feature dots.
        point_alpha: Opacity of feature dots.
        point_radius: Dot radius in pixels.
        draw_grid_lines: Draw thin outlines for every cell.
        grid_line_color: Outline color.
    """
    cell_color: Tuple[int, int, int] = (0, 255, 0)  # Green
    point_color: Tuple[int, int, int] = (255, 0, 255)  # Purple
    point_alpha: float = 0.5
    point_radius: int = 3
    draw_grid_lines: bool = False
    grid_line_color: Tuple[int, int, int] = (64, 64, 64)


class OverlayRenderer:
    """Renders grid scores and feature points onto a canvas."""

    def __init__(self, style: Optional[OverlayStyle] = None):
        self.style = style or OverlayStyle()

    def draw_cells(self, canvas: np.ndarray, grid: Grid, normalization: float) -> int:
        """
        Blend every visible cell over the canvas.
        
        Returns:
            Number of cells drawn.
        """
        color = np.array(self.style.cell_color, dtype=np.float32)
        drawn = 0
        for cell, alpha in visible_cells(grid, normalization):
            roi = canvas[cell.y:cell.y2, cell.x:cell.x2]
            blended = roi.astype(np.float32) * (1.0 - alpha) + color * alpha
            roi[:] = blended.round().astype(canvas.dtype)
            drawn += 1
        return drawn

    def draw_grid_lines(self, canvas: np.ndarray, grid: Grid) -> None:
        for cell in grid.cells():
            cv2.rectangle(
                canvas,
                (cell.x, cell.y),
                (cell.x2 - 1, cell.y2 - 1),
                self.style.grid_line_color,
                1,
            )

    def draw_points(self, canvas: np.ndarray, points: Any) -> None:
        """Draw feature points as translucent dots."""
        if points is None:
            return
        pts = np.asarray(points, dtype=np.float32).reshape(-1, 2)
        if len(pts) == 0:
            return
        layer = canvas.copy()
        for x, y in pts:
            if not (np.isfinite(x) and np.isfinite(y)):
                continue
            cv2.circle(
                layer,
                (int(round(x)), int(round(y))),
                self.style.point_radius,
                self.style.point_color,
                -1,
            )
        a = self.style.point_alpha
        cv2.addWeighted(layer, a, canvas, 1.0 - a, 0, dst=canvas)

    def render(
        self,
        canvas: np.ndarray,
        grid: Grid,
        normalization: float,
        points: Any = None,
    ) -> np.ndarray:
        """Draw cells, then optional grid lines and points. Returns the canvas."""
        self.draw_cells(canvas, grid, normalization)
        if self.style.draw_grid_lines:
            self.draw_grid_lines(canvas, grid)
        self.draw_points(canvas, points)
        return canvas
