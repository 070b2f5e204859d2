"""
Grid of screen regions with per-cell activity scores.

Cells are stored in row-major order (index = row * cols + col). Every
consumer (aggregators, intensity mapping, overlay) iterates that same
sequence, so scores and drawing always line up.
"""

from __future__ import annotations

import math
import numbers
from dataclasses import dataclass
from typing import Any, Dict, Iterator, Sequence, Tuple

import numpy as np


@dataclass(frozen=True)
class Cell:
    """
    One rectangular region of the canvas.
    
    Attributes:
        index: Position in the grid's row-major order.
        col: Column number (0 = left).
        row: Row number (0 = top).
        x: Left edge in pixels (inclusive).
        y: Top edge in pixels (inclusive).
        width: Width in pixels.
        height: Height in pixels.
    """
    index: int
    col: int
    row: int
    x: int
    y: int
    width: int
    height: int

    @property
    def x2(self) -> int:
        """Right edge (exclusive)."""
        return self.x + self.width

    @property
    def y2(self) -> int:
        """Bottom edge (exclusive)."""
        return self.y + self.height

    @property
    def area(self) -> int:
        return self.width * self.height

    def contains(self, x: float, y: float) -> bool:
        """Half-open membership test: [x, x2) by [y, y2)."""
        return self.x <= x < self.x2 and self.y <= y < self.y2


def _check_ints(what: str, *values: Any) -> None:
    """Reject non-integer sizes."""
    for value in values:
        if isinstance(value, bool) or not isinstance(value, numbers.Integral):
            raise ValueError(f"{what} must be integers, got {values!r}")


def _split_axis(length: int, divisions: int) -> np.ndarray:
    """Edges for `divisions` equal spans; the last span absorbs the remainder."""
    step = length // divisions
    edges = np.arange(divisions + 1, dtype=np.int64) * step
    edges[-1] = length
    return edges


def _tile_axis(length: int, size: int) -> np.ndarray:
    """Edges for fixed-size spans; the last span is clipped to the canvas."""
    count = math.ceil(length / size)
    edges = np.arange(count + 1, dtype=np.int64) * size
    edges[-1] = length
    return edges


class Grid:
    """
    Fixed tiling of a width x height canvas into cols x rows cells.
    
    Cells tile the canvas exactly: no pixel is left out and no pixel is
    shared. Scores are non-negative integers owned by the grid; the cells
    themselves are immutable geometry.
    
    Example:
        grid = Grid.from_divisions(640, 480, 10)
        grid.cell(1, 0)   # Cell(index=1, col=1, row=0, x=64, y=0, width=64, height=48)
    """

    def __init__(self, width: int, height: int, cols: int, rows: int):
        _check_ints("Canvas dimensions", width, height)
        _check_ints("Grid divisions", cols, rows)
        if width <= 0 or height <= 0:
            raise ValueError(f"Canvas dimensions must be positive, got {width}x{height}")
        if cols <= 0 or rows <= 0:
            raise ValueError(f"Grid divisions must be positive, got {cols}x{rows}")
        if cols > width or rows > height:
            raise ValueError(
                f"Grid {cols}x{rows} is finer than the canvas {width}x{height}"
            )
        self._init_layout(width, height, _split_axis(width, cols), _split_axis(height, rows))

    @classmethod
    def from_divisions(cls, width: int, height: int, divisions: int) -> "Grid":
        """Create a divisions x divisions grid over the canvas."""
        return cls(width, height, divisions, divisions)

    @classmethod
    def from_cell_size(cls, width: int, height: int, cell_width: int, cell_height: int) -> "Grid":
        """
        Create a grid of fixed-size cells.
        
        Produces ceil(width / cell_width) x ceil(height / cell_height) cells;
        the last column and row are clipped to the canvas.
        """
        _check_ints("Canvas dimensions", width, height)
        _check_ints("Cell size", cell_width, cell_height)
        if width <= 0 or height <= 0:
            raise ValueError(f"Canvas dimensions must be positive, got {width}x{height}")
        if cell_width <= 0 or cell_height <= 0:
            raise ValueError(f"Cell size must be positive, got {cell_width}x{cell_height}")
        grid = cls.__new__(cls)
        grid._init_layout(width, height, _tile_axis(width, cell_width), _tile_axis(height, cell_height))
        return grid

    def _init_layout(self, width: int, height: int, x_edges: np.ndarray, y_edges: np.ndarray) -> None:
        self._width = int(width)
        self._height = int(height)
        self._x_edges = x_edges
        self._y_edges = y_edges
        self._x_edges.flags.writeable = False
        self._y_edges.flags.writeable = False
        self._cols = len(x_edges) - 1
        self._rows = len(y_edges) - 1

        cells = []
        for row in range(self._rows):
            y0, y1 = int(y_edges[row]), int(y_edges[row + 1])
            for col in range(self._cols):
                x0, x1 = int(x_edges[col]), int(x_edges[col + 1])
                cells.append(Cell(
                    index=len(cells),
                    col=col,
                    row=row,
                    x=x0,
                    y=y0,
                    width=x1 - x0,
                    height=y1 - y0,
                ))
        self._cells: Tuple[Cell, ...] = tuple(cells)
        self._scores = np.zeros(len(cells), dtype=np.int64)

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def cols(self) -> int:
        return self._cols

    @property
    def rows(self) -> int:
        return self._rows

    @property
    def shape(self) -> Tuple[int, int]:
        """(rows, cols), matching numpy image indexing."""
        return (self._rows, self._cols)

    def __len__(self) -> int:
        return len(self._cells)

    def __iter__(self) -> Iterator[Cell]:
        return iter(self._cells)

    def __repr__(self) -> str:
        return f"Grid({self._width}x{self._height}, cols={self._cols}, rows={self._rows})"

    def cells(self) -> Tuple[Cell, ...]:
        """All cells in row-major order."""
        return self._cells

    def column_edges(self) -> np.ndarray:
        """Read-only x boundaries, length cols + 1, from 0 to width."""
        return self._x_edges

    def row_edges(self) -> np.ndarray:
        """Read-only y boundaries, length rows + 1, from 0 to height."""
        return self._y_edges

    def index_of(self, col: int, row: int) -> int:
        if not (0 <= col < self._cols and 0 <= row < self._rows):
            raise IndexError(f"Cell ({col}, {row}) outside {self._cols}x{self._rows} grid")
        return row * self._cols + col

    def cell(self, col: int, row: int) -> Cell:
        return self._cells[self.index_of(col, row)]

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self._cells):
            raise IndexError(f"Cell index {index} out of range (0..{len(self._cells) - 1})")

    def score(self, index: int) -> int:
        self._check_index(index)
        return int(self._scores[index])

    def set_score(self, index: int, value: int) -> None:
        self._check_index(index)
        if value < 0:
            raise ValueError(f"Score must be non-negative, got {value}")
        self._scores[index] = value

    def scores(self) -> np.ndarray:
        """Copy of all scores in cell order."""
        return self._scores.copy()

    def set_scores(self, values: Sequence[int]) -> None:
        """Replace every score at once (one write per frame)."""
        arr = np.asarray(values, dtype=np.int64).reshape(-1)
        if arr.shape != self._scores.shape:
            raise ValueError(f"Expected {len(self._scores)} scores, got {arr.size}")
        if arr.size and arr.min() < 0:
            raise ValueError("Scores must be non-negative")
        self._scores[:] = arr

    def reset(self) -> None:
        self._scores[:] = 0

    def total(self) -> int:
        return int(self._scores.sum())

    def active_count(self) -> int:
        """Number of cells with a nonzero score."""
        return int(np.count_nonzero(self._scores))


def create_grid_from_config(grid_cfg: Dict[str, Any], width: int, height: int) -> Grid:
    """
    Factory: build a Grid for a width x height canvas from the grid config dict.
    
    Uses cell_size [w, h] when present, otherwise divisions (default 10).
    """
    cell_size = grid_cfg.get("cell_size")
    if cell_size:
        cell_w, cell_h = cell_size
        return Grid.from_cell_size(width, height, int(cell_w), int(cell_h))
    return Grid.from_divisions(width, height, int(grid_cfg.get("divisions", 10)))
