"""
Tests for intensity mapping and overlay rendering.
"""

import numpy as np
import pytest

from presentation.intensity import intensity, visible_cells
from presentation.overlay import OverlayRenderer, OverlayStyle


class TestIntensity:
    def test_linear_mapping(self):
        assert intensity(5, 10) == 0.5
        assert intensity(0, 10) == 0.0

    def test_clamped_to_one(self):
        assert intensity(25, 10) == 1.0
        assert intensity(3_000_000, 1005555) == 1.0

    def test_non_positive_normalization_raises(self):
        with pytest.raises(ValueError):
            intensity(1, 0)
        with pytest.raises(ValueError):
            intensity(1, -5)

    def test_visible_cells_skips_zero_scores(self, grid):
        grid.set_score(0, 5)
        grid.set_score(42, 20)
        
        visible = list(visible_cells(grid, 10))
        
        assert [(cell.index, alpha) for cell, alpha in visible] == [(0, 0.5), (42, 1.0)]

    def test_all_zero_renders_nothing(self, grid):
        assert list(visible_cells(grid, 10)) == []


class TestOverlayRenderer:
    def test_draw_cells_blends_active_cell(self, grid):
        canvas = np.zeros((480, 640, 3), dtype=np.uint8)
        grid.set_score(0, 5)  # alpha 0.5
        
        drawn = OverlayRenderer().draw_cells(canvas, grid, 10)
        
        assert drawn == 1
        assert tuple(canvas[10, 10]) == (0, 128, 0)
        assert tuple(canvas[47, 63]) == (0, 128, 0)
        assert tuple(canvas[48, 64]) == (0, 0, 0)

    def test_full_intensity_is_solid_color(self, grid):
        canvas = np.full((480, 640, 3), 200, dtype=np.uint8)
        grid.set_score(grid.index_of(2, 3), 50)
        
        OverlayRenderer(OverlayStyle(cell_color=(10, 20, 30))).draw_cells(canvas, grid, 10)
        
        cell = grid.cell(2, 3)
        assert tuple(canvas[cell.y + 1, cell.x + 1]) == (10, 20, 30)
        assert tuple(canvas[0, 0]) == (200, 200, 200)

    def test_empty_grid_leaves_canvas(self, grid):
        canvas = np.zeros((480, 640, 3), dtype=np.uint8)
        assert OverlayRenderer().draw_cells(canvas, grid, 10) == 0
        assert canvas.sum() == 0

    def test_draw_points(self):
        canvas = np.zeros((100, 100, 3), dtype=np.uint8)
        style = OverlayStyle(point_color=(255, 0, 255), point_alpha=1.0)
        
        OverlayRenderer(style).draw_points(canvas, np.array([[[50.0, 40.0]]], dtype=np.float32))
        
        assert tuple(canvas[40, 50]) == (255, 0, 255)
        assert tuple(canvas[0, 0]) == (0, 0, 0)

    def test_draw_points_none_or_empty(self):
        canvas = np.zeros((10, 10, 3), dtype=np.uint8)
        renderer = OverlayRenderer()
        renderer.draw_points(canvas, None)
        renderer.draw_points(canvas, np.empty((0, 2)))
        assert canvas.sum() == 0

    def test_render_with_grid_lines(self, grid):
        canvas = np.zeros((480, 640, 3), dtype=np.uint8)
        style = OverlayStyle(draw_grid_lines=True, grid_line_color=(1, 2, 3))
        
        out = OverlayRenderer(style).render(canvas, grid, 10)
        
        assert out is canvas
        assert tuple(canvas[0, 0]) == (1, 2, 3)
        assert tuple(canvas[20, 20]) == (0, 0, 0)
