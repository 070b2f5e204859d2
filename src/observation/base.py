"""
ObservationSource interface for frame sources.

The demo only needs "give me the next frame, or None": a live webcam, a
video file, or a scripted list of frames in tests all fit behind it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterator, Optional, Tuple

from models.frame import FrameData


@dataclass
class ObservationConfig:
    """
    Base configuration for observation sources.
    
    Attributes:
        source_id: Identifier used in logs and FrameData.source.
        resolution: Requested (width, height). None = source default.
        fps: Requested frames per second. None = source default.
    """
    source_id: str = "default"
    resolution: Optional[Tuple[int, int]] = None
    fps: Optional[int] = None


class ObservationSource(ABC):
    """
    Abstract base class for frame sources.
    
    Lifecycle:
        1. Create instance with config
        2. Call open() (raises RuntimeError if the device is unavailable)
        3. Call read() once per tick; None means no new frame
        4. Call close() to release resources
    
    Can also be used as a context manager:
        with OpenCVSource(config) as source:
            for frame_data in source:
                process(frame_data)
    """

    def __init__(self, config: ObservationConfig):
        self._config = config
        self._is_open = False
        self._frame_index = 0

    @property
    def source_id(self) -> str:
        return self._config.source_id

    @property
    def is_open(self) -> bool:
        return self._is_open

    @property
    def frame_index(self) -> int:
        """Number of frames read since open()."""
        return self._frame_index

    @abstractmethod
    def open(self) -> None:
        """
        Open the source. Must be called before read().
        
        Raises:
            RuntimeError: If the source cannot be opened.
        """
        pass

    @abstractmethod
    def read(self) -> Optional[FrameData]:
        """Next frame, or None if none is available right now."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Release the source. Safe to call multiple times."""
        pass

    def __enter__(self) -> "ObservationSource":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __iter__(self) -> Iterator[FrameData]:
        """Yield frames until read() returns None."""
        if not self._is_open:
            raise RuntimeError("Source must be open before iterating")
        
        while True:
            frame_data = self.read()
            if frame_data is None:
                break
            yield frame_data
