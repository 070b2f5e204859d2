"""
Sparse feature tracking: Shi-Tomasi corners followed by pyramidal
Lucas-Kanade optical flow.

Corners are re-detected when too few points survive tracking, and
periodically every refresh_interval frames.
"""

from __future__ import annotations

import logging
from typing import Optional

import cv2
import numpy as np

from models.config import FeaturesConfig
from .frame_diff import to_gray


class FeatureTracker:
    """Tracks feature points across consecutive grayscale frames."""

    def __init__(self, config: Optional[FeaturesConfig] = None):
        self.config = config or FeaturesConfig()
        self._prev_gray: Optional[np.ndarray] = None
        self._points = np.empty((0, 1, 2), dtype=np.float32)
        self._frame_count = 0

    @property
    def points(self) -> np.ndarray:
        """Current points as an (N, 2) float32 array."""
        return self._points.reshape(-1, 2)

    @property
    def frame_count(self) -> int:
        return self._frame_count

    def reset(self) -> None:
        self._prev_gray = None
        self._points = np.empty((0, 1, 2), dtype=np.float32)
        self._frame_count = 0

    def _needs_refresh(self) -> bool:
        cfg = self.config
        if len(self._points) < cfg.min_features:
            return True
        return cfg.refresh_interval > 0 and self._frame_count % cfg.refresh_interval == 0

    def _detect(self, gray: np.ndarray) -> np.ndarray:
        cfg = self.config
        corners = cv2.goodFeaturesToTrack(
            gray,
            maxCorners=cfg.max_corners,
            qualityLevel=cfg.quality_level,
            minDistance=cfg.min_distance,
        )
        if corners is None:
            return np.empty((0, 1, 2), dtype=np.float32)
        return corners.astype(np.float32)

    def _track(self, gray: np.ndarray) -> np.ndarray:
        if self._prev_gray is None or len(self._points) == 0:
            return self._points
        next_points, status, _err = cv2.calcOpticalFlowPyrLK(
            self._prev_gray, gray, self._points, None
        )
        if next_points is None or status is None:
            return np.empty((0, 1, 2), dtype=np.float32)
        return next_points[status.reshape(-1) == 1].reshape(-1, 1, 2)

    def update(self, frame: Optional[np.ndarray]) -> np.ndarray:
        """
        Advance tracking by one frame.
        
        Args:
            frame: BGR or grayscale frame; None keeps the current points.
            
        Returns:
            Tracked points as an (N, 2) array.
        """
        if frame is None:
            return self.points

        gray = to_gray(frame)
        if self._prev_gray is not None and self._prev_gray.shape != gray.shape:
            logging.warning("Frame size changed, resetting feature tracker")
            self.reset()

        self._frame_count += 1
        self._points = self._track(gray)
        if self._needs_refresh():
            self._points = self._detect(gray)
            logging.debug(f"[FEATURES] frame={self._frame_count} detected={len(self._points)}")

        self._prev_gray = gray
        return self.points
