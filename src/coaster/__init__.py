"""
Coaster - Biarc space-curve engine for roller coaster tracks.

This package provides:
- Tangent-continuous biarc curves between two posed keypoints
- Length-normalized position and roll-corrected rotation sampling
- Adaptive sample placement for mesh building
- Point, line and overlap proximity queries
- A linked track-segment chain built on those curves
"""

__version__ = "0.1.0"

from coaster.curves.curve import Anchor, Curve, Keypoint
from coaster.curves.biarc import Biarc
from coaster.curves.composite import BiarcBezierComposite
from coaster.track.track import Track

__all__ = [
    "Anchor",
    "Curve",
    "Keypoint",
    "Biarc",
    "BiarcBezierComposite",
    "Track",
    "__version__",
]
