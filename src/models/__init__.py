"""
Typed models for the grid flow demo.
"""

from .frame import FrameData
from .config import (
    Config,
    CameraConfig,
    GridConfig,
    FeaturesConfig,
    DifferenceConfig,
    DisplayConfig,
    MODE_NONE,
    MODE_FEATURES,
    MODE_DIFFERENCE,
    MODES,
)

__all__ = [
    # Frame
    "FrameData",
    # Config
    "Config",
    "CameraConfig",
    "GridConfig",
    "FeaturesConfig",
    "DifferenceConfig",
    "DisplayConfig",
    # Modes
    "MODE_NONE",
    "MODE_FEATURES",
    "MODE_DIFFERENCE",
    "MODES",
]
