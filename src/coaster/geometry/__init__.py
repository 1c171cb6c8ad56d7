"""
Geometry module - Vector, rotation and proximity primitives.

This module contains:
- vector: numpy-backed 3D vector helpers and world axes
- rotation: scipy Rotation helpers (axis-angle, look rotation, sweeps)
- proximity: Line segment versus circle proximity test
"""

from coaster.geometry.vector import (
    UNIT_X,
    UNIT_Y,
    UNIT_Z,
    vec3,
    length,
    length_squared,
    normalize,
    normalize_safe,
)
from coaster.geometry.rotation import axis_angle, look_rotation
from coaster.geometry.proximity import approx_within_line_range

__all__ = [
    "UNIT_X",
    "UNIT_Y",
    "UNIT_Z",
    "vec3",
    "length",
    "length_squared",
    "normalize",
    "normalize_safe",
    "axis_angle",
    "look_rotation",
    "approx_within_line_range",
]
