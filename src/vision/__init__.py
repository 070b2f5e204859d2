"""
Vision collaborators built on OpenCV.

These wrap the OpenCV calls the demo depends on (blur, differencing,
thresholding, corner detection, optical flow) and hand plain numpy arrays
to the aggregation layer.
"""

from .frame_diff import FrameDifferencer, blur, difference_mask, to_gray
from .features import FeatureTracker

__all__ = [
    "FrameDifferencer",
    "blur",
    "difference_mask",
    "to_gray",
    "FeatureTracker",
]
