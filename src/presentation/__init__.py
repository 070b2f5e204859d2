"""
Presentation: map cell scores to opacity and draw them.
"""

from .intensity import intensity, visible_cells
from .overlay import OverlayRenderer, OverlayStyle

__all__ = [
    "intensity",
    "visible_cells",
    "OverlayRenderer",
    "OverlayStyle",
]
