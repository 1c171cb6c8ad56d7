"""
Curves module - Keypoint curves for track geometry.

This module contains:
- Curve: Abstract lazily recomputed curve between two keypoints
- Keypoint / Anchor: End poses and the mutable objects supplying them
- Biarc: Two tangent-continuous circular arcs with roll correction
- BiarcBezierComposite: Biarc refined into two cubic Bezier spans
"""

from coaster.curves.curve import (
    EPSILON,
    Anchor,
    Curve,
    Keypoint,
    LineRangeHit,
    RangeHit,
)
from coaster.curves.biarc import Arc, Biarc
from coaster.curves.composite import BiarcBezierComposite, CubicBezier

__all__ = [
    "EPSILON",
    "Anchor",
    "Curve",
    "Keypoint",
    "LineRangeHit",
    "RangeHit",
    "Arc",
    "Biarc",
    "BiarcBezierComposite",
    "CubicBezier",
]
