"""
Typed configuration models matching the YAML config structure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

MODE_NONE = "none"
MODE_FEATURES = "features"
MODE_DIFFERENCE = "difference"
MODES = (MODE_NONE, MODE_FEATURES, MODE_DIFFERENCE)

BACKGROUNDS = ("black", "camera", "difference")

FEATURE_SOURCE_DIFFERENCE = "difference"
FEATURE_SOURCE_FRAME = "frame"
FEATURE_SOURCES = (FEATURE_SOURCE_DIFFERENCE, FEATURE_SOURCE_FRAME)


@dataclass
class CameraConfig:
    """Camera configuration."""
    device_id: Union[int, str] = 0
    resolution: List[int] = field(default_factory=lambda: [640, 480])
    fps: int = 30
    max_retries: int = 3
    flip_horizontal: bool = False

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CameraConfig":
        """Adapter: Create from config dictionary."""
        return cls(
            device_id=d.get("device_id", 0),
            resolution=d.get("resolution", [640, 480]),
            fps=d.get("fps", 30),
            max_retries=d.get("max_retries", 3),
            flip_horizontal=d.get("flip_horizontal", False),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "device_id": self.device_id,
            "resolution": self.resolution,
            "fps": self.fps,
            "max_retries": self.max_retries,
            "flip_horizontal": self.flip_horizontal,
        }


@dataclass
class GridConfig:
    """
    Grid layout.

    Either divisions (N x N cells) or an explicit cell_size [w, h]; when
    cell_size is set it wins.
    """
    divisions: int = 10
    cell_size: Optional[List[int]] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "GridConfig":
        return cls(
            divisions=d.get("divisions", 10),
            cell_size=d.get("cell_size"),
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"divisions": self.divisions}
        if self.cell_size is not None:
            d["cell_size"] = self.cell_size
        return d


@dataclass
class FeaturesConfig:
    """
    Corner detection and tracking parameters.

    Attributes:
        max_corners: Maximum corners returned by goodFeaturesToTrack.
        quality_level: Minimal accepted corner quality relative to the best.
        min_distance: Minimum pixel distance between corners.
        min_features: Re-detect when fewer points than this are tracked.
        refresh_interval: Re-detect every N frames (0 disables).
        source: "difference" tracks corners on the background-difference
            mask (nothing until a background is captured); "frame" tracks
            the grayscale camera frame.
    """
    max_corners: int = 300
    quality_level: float = 0.005
    min_distance: float = 3
    min_features: int = 5
    refresh_interval: int = 300
    source: str = FEATURE_SOURCE_DIFFERENCE

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "FeaturesConfig":
        return cls(
            max_corners=d.get("max_corners", 300),
            quality_level=d.get("quality_level", 0.005),
            min_distance=d.get("min_distance", 3),
            min_features=d.get("min_features", 5),
            refresh_interval=d.get("refresh_interval", 300),
            source=d.get("source", FEATURE_SOURCE_DIFFERENCE),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "max_corners": self.max_corners,
            "quality_level": self.quality_level,
            "min_distance": self.min_distance,
            "min_features": self.min_features,
            "refresh_interval": self.refresh_interval,
            "source": self.source,
        }


@dataclass
class DifferenceConfig:
    """
    Frame differencing parameters.

    Attributes:
        kernel_size: Gaussian blur kernel (odd, positive).
        threshold: Absolute difference above which a pixel is foreground.
        max_value: Value written for foreground pixels.
        reference: "background" compares against the frame captured with
            the spacebar; "previous" compares against the previous frame.
        accumulate: Pixel aggregation policy, "sum" or "count".
    """
    kernel_size: int = 5
    threshold: int = 150
    max_value: int = 255
    reference: str = "background"
    accumulate: str = "sum"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "DifferenceConfig":
        return cls(
            kernel_size=d.get("kernel_size", 5),
            threshold=d.get("threshold", 150),
            max_value=d.get("max_value", 255),
            reference=d.get("reference", "background"),
            accumulate=d.get("accumulate", "sum"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kernel_size": self.kernel_size,
            "threshold": self.threshold,
            "max_value": self.max_value,
            "reference": self.reference,
            "accumulate": self.accumulate,
        }


@dataclass
class DisplayConfig:
    """
    Window and overlay settings.

    Attributes:
        enabled: Show a cv2 window and read keys from it.
        window_name: Title of the window.
        initial_mode: Mode before any key is pressed ("none" draws nothing).
        background: "black", "camera", or "difference" (background-subtraction view).
        feature_normalization: Feature count drawn at full opacity.
        difference_normalization: Pixel score drawn at full opacity.
        show_points: Draw tracked feature points in features mode.
        draw_grid_lines: Outline every cell.
    """
    enabled: bool = True
    window_name: str = "Grid Flow"
    initial_mode: str = MODE_NONE
    background: str = "black"
    feature_normalization: float = 10.0
    difference_normalization: float = 1005555.0
    show_points: bool = False
    draw_grid_lines: bool = False

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "DisplayConfig":
        return cls(
            enabled=d.get("enabled", True),
            window_name=d.get("window_name", "Grid Flow"),
            initial_mode=d.get("initial_mode", MODE_NONE),
            background=d.get("background", "black"),
            feature_normalization=d.get("feature_normalization", 10.0),
            difference_normalization=d.get("difference_normalization", 1005555.0),
            show_points=d.get("show_points", False),
            draw_grid_lines=d.get("draw_grid_lines", False),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "window_name": self.window_name,
            "initial_mode": self.initial_mode,
            "background": self.background,
            "feature_normalization": self.feature_normalization,
            "difference_normalization": self.difference_normalization,
            "show_points": self.show_points,
            "draw_grid_lines": self.draw_grid_lines,
        }

    def normalization_for(self, mode: str) -> float:
        if mode == MODE_DIFFERENCE:
            return self.difference_normalization
        return self.feature_normalization


@dataclass
class Config:
    """
    Complete application configuration.

    This is a typed representation of the YAML config structure.
    """
    camera: CameraConfig = field(default_factory=CameraConfig)
    grid: GridConfig = field(default_factory=GridConfig)
    features: FeaturesConfig = field(default_factory=FeaturesConfig)
    difference: DifferenceConfig = field(default_factory=DifferenceConfig)
    display: DisplayConfig = field(default_factory=DisplayConfig)
    log_path: str = "logs/gridflow.log"
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Config":
        """Adapter: Create Config from raw dictionary (e.g., from load_config)."""
        return cls(
            camera=CameraConfig.from_dict(d.get("camera") or {}),
            grid=GridConfig.from_dict(d.get("grid") or {}),
            features=FeaturesConfig.from_dict(d.get("features") or {}),
            difference=DifferenceConfig.from_dict(d.get("difference") or {}),
            display=DisplayConfig.from_dict(d.get("display") or {}),
            log_path=d.get("log_path", "logs/gridflow.log"),
            log_level=d.get("log_level", "INFO"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert back to dictionary."""
        return {
            "camera": self.camera.to_dict(),
            "grid": self.grid.to_dict(),
            "features": self.features.to_dict(),
            "difference": self.difference.to_dict(),
            "display": self.display.to_dict(),
            "log_path": self.log_path,
            "log_level": self.log_level,
        }
