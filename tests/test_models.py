"""
Smoke tests for typed models.
"""

import time

import numpy as np

from models.frame import FrameData


class TestFrameData:
    def test_from_numpy(self):
        frame = np.zeros((480, 640, 3), dtype=np.uint8)
        fd = FrameData.from_numpy(frame, timestamp=123.0, frame_index=5, source="cam")
        assert fd.width == 640
        assert fd.height == 480
        assert fd.size == (640, 480)
        assert fd.timestamp == 123.0
        assert fd.frame_index == 5
        assert fd.is_color

    def test_from_numpy_stamps_time(self):
        before = time.time()
        fd = FrameData.from_numpy(np.zeros((10, 10), dtype=np.uint8))
        assert fd.timestamp >= before
        assert not fd.is_color
