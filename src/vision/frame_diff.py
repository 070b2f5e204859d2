"""
Frame differencing.

Given a current frame and an already-blurred reference frame, blur the
current frame with the same kernel, take the absolute difference and
threshold it to a binary 0 / 255 mask.
"""

from __future__ import annotations

import logging
from typing import Optional

import cv2
import numpy as np

from models.config import DifferenceConfig

REFERENCE_BACKGROUND = "background"
REFERENCE_PREVIOUS = "previous"


def to_gray(frame: np.ndarray) -> np.ndarray:
    """Single-channel view of a BGR or grayscale frame."""
    if frame.ndim == 3 and frame.shape[2] == 3:
        return cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)
    if frame.ndim == 3 and frame.shape[2] == 1:
        return np.ascontiguousarray(frame[:, :, 0])
    return frame


def blur(frame: Optional[np.ndarray], kernel_size: int = 5) -> Optional[np.ndarray]:
    """Gaussian blur of the grayscale frame (sigma derived from kernel size)."""
    if frame is None:
        return None
    return cv2.GaussianBlur(to_gray(frame), (kernel_size, kernel_size), 0)


def difference_mask(
    current: Optional[np.ndarray],
    reference: Optional[np.ndarray],
    threshold: int = 150,
    max_value: int = 255,
    kernel_size: int = 5,
) -> Optional[np.ndarray]:
    """
    Binary change mask between current and a blurred reference frame.
    
    Returns:
        uint8 array with values 0 or max_value, or None if either frame is
        missing.
    
    Raises:
        ValueError: If the frames differ in size.
    """
    if current is None or reference is None:
        return None

    blurred = blur(current, kernel_size)
    reference = to_gray(reference)
    if blurred.shape != reference.shape:
        raise ValueError(
            f"Frame shape {blurred.shape} does not match reference shape {reference.shape}"
        )

    diff = cv2.absdiff(blurred, reference)
    _, mask = cv2.threshold(diff, threshold, max_value, cv2.THRESH_BINARY)
    return mask


class FrameDifferencer:
    """
    Holds the reference frames and produces masks per tick.
    
    The background reference is only set on request (spacebar); the
    previous-frame reference is refreshed on every call to update().
    """

    def __init__(self, config: Optional[DifferenceConfig] = None):
        self.config = config or DifferenceConfig()
        self._background: Optional[np.ndarray] = None
        self._previous: Optional[np.ndarray] = None

    @property
    def background(self) -> Optional[np.ndarray]:
        return self._background

    @property
    def has_reference(self) -> bool:
        return self._reference() is not None

    def capture_background(self, frame: Optional[np.ndarray]) -> bool:
        """
        Store a blurred copy of frame as the background reference.
        
        Returns:
            False if there was no frame to capture.
        """
        if frame is None:
            logging.warning("No frame available to capture as background")
            return False
        self._background = blur(frame, self.config.kernel_size)
        logging.info("Background reference captured")
        return True

    def _reference(self) -> Optional[np.ndarray]:
        if self.config.reference == REFERENCE_PREVIOUS:
            return self._previous
        return self._background

    def background_mask(self, frame: Optional[np.ndarray]) -> Optional[np.ndarray]:
        """Mask against the background reference, regardless of config."""
        cfg = self.config
        return difference_mask(frame, self._background, cfg.threshold, cfg.max_value, cfg.kernel_size)

    def update(self, frame: Optional[np.ndarray]) -> Optional[np.ndarray]:
        """
        Mask for this tick against the configured reference.
        
        Returns None until a reference exists.
        """
        if frame is None:
            return None
        cfg = self.config
        mask = difference_mask(frame, self._reference(), cfg.threshold, cfg.max_value, cfg.kernel_size)
        if cfg.reference == REFERENCE_PREVIOUS:
            self._previous = blur(frame, cfg.kernel_size)
        return mask

    def reset_previous(self) -> None:
        """Forget the previous-frame reference; the next update() re-seeds it."""
        self._previous = None

    def reset(self) -> None:
        self._background = None
        self._previous = None
