"""
Biarc - Two circular arcs joined with tangent continuity.

Defines:
- Arc: one circular (or straight, zero radius) span
- find_parameters / compute_arc: closed-form arc solve from end tangents
- Biarc: Curve variant answering every query from the arc geometry

Arc1 is parametrized from the start keypoint towards the joint, arc2 from
the end keypoint back towards the joint. Positions on a circular arc are
``center + axis1*cos(a) + axis2*sin(a)`` for ``a`` in ``[0, angle]``.
"""

from dataclasses import dataclass, field
from typing import Tuple
import logging
import math

import numpy as np
from scipy.spatial.transform import Rotation, Slerp

from coaster.curves.curve import (
    EPSILON,
    LINE_RANGE_MISS,
    RANGE_MISS,
    Anchor,
    Curve,
    Keypoint,
    LineRangeHit,
    RangeHit,
)
from coaster.geometry.proximity import approx_within_line_range
from coaster.geometry.rotation import axis_angle, interpolate, look_rotation, sweep
from coaster.geometry.vector import UNIT_X, UNIT_Y, UNIT_Z, horizontal_distance_squared, normalize_safe, vec3


logger = logging.getLogger(__name__)

TWO_PI = 2.0 * math.pi


@dataclass
class Arc:
    """A circular arc, or a straight chord when ``radius`` is zero."""
    center: np.ndarray = field(default_factory=lambda: np.zeros(3))
    radius: float = 0.0
    axis1: np.ndarray = field(default_factory=lambda: np.zeros(3))   # center -> arc start, |axis1| = radius
    axis2: np.ndarray = field(default_factory=lambda: np.zeros(3))   # start tangent * radius
    axis3: np.ndarray = field(default_factory=lambda: np.zeros(3))   # unit plane normal
    angle: float = 0.0            # Signed sweep in radians
    arc_length: float = 0.0

    start_rotation: Rotation = field(default_factory=Rotation.identity)
    delta_rotation: Rotation = field(default_factory=Rotation.identity)
    roll_delta: float = 0.0       # Degrees of roll spread across the arc

    # Identity -> delta_rotation interpolator, None for straight arcs
    rotation_sweep: Slerp | None = None

    @property
    def is_straight(self) -> bool:
        return self.radius == 0.0

    def get_state(self) -> dict:
        """Get arc geometry for debugging and serialization."""
        return {
            "center": self.center.tolist(),
            "radius": self.radius,
            "angle_deg": math.degrees(self.angle),
            "arc_length": self.arc_length,
            "normal": self.axis3.tolist(),
            "roll_delta_deg": self.roll_delta,
        }


def compute_arc(point: np.ndarray, tangent: np.ndarray, point_to_mid: np.ndarray, arc: Arc) -> None:
    """Fit the arc leaving ``point`` along ``tangent`` that reaches the joint.

    Sets ``center``, ``radius`` and ``angle``; axes and length are filled
    in by ``find_parameters``.
    """
    norm = np.cross(point_to_mid, tangent)
    perp = np.cross(tangent, norm)

    twist = float(np.dot(perp, point_to_mid))
    denom = 2.0 * twist

    if abs(denom) < EPSILON:
        arc.center = point + point_to_mid * 0.5
        arc.radius = 0.0
        arc.angle = 0.0
        return

    center_dist = float(np.dot(point_to_mid, point_to_mid)) / denom
    arc.center = point + perp * center_dist
    arc.radius = abs(center_dist * float(np.linalg.norm(perp)))

    if arc.radius < EPSILON:
        arc.angle = 0.0
        return

    inv_rad = 1.0 / arc.radius
    center_to_point = point - arc.center
    center_to_end_dir = center_to_point * inv_rad
    center_to_mid_dir = (center_to_point + point_to_mid) * inv_rad

    cos_angle = float(np.clip(np.dot(center_to_end_dir, center_to_mid_dir), -1.0, 1.0))
    arc.angle = math.acos(cos_angle) * float(np.sign(twist))


def _semicircle_pair(p1: np.ndarray, p2: np.ndarray, t2: np.ndarray, v: np.ndarray, v_mag2: float) -> Tuple[Arc, Arc]:
    """Closed-form S-bend for parallel tangents orthogonal to the chord."""
    arc1, arc2 = Arc(), Arc()

    inv_mag2 = 1.0 / v_mag2
    plane_normal = np.cross(v, t2)
    perp_axis = np.cross(plane_normal, v)

    rad = math.sqrt(v_mag2) * 0.25
    center_to_p1 = v * -0.25

    arc1.center = p1 - center_to_p1
    arc1.radius = rad
    arc1.axis1 = center_to_p1
    arc1.axis2 = perp_axis * rad * inv_mag2
    arc1.angle = math.pi
    arc1.arc_length = math.pi * rad

    arc2.center = p2 + center_to_p1
    arc2.radius = rad
    arc2.axis1 = -center_to_p1
    arc2.axis2 = perp_axis * -rad * inv_mag2
    arc2.angle = math.pi
    arc2.arc_length = math.pi * rad

    return arc1, arc2


def find_parameters(start: Keypoint, end: Keypoint) -> Tuple[Arc, Arc]:
    """Solve the two arcs joining ``start`` and ``end``.

    Args:
        start: Start keypoint (position and unit tangent are used)
        end: End keypoint

    Returns:
        Tuple of (arc1, arc2) with center, radius, axis1, axis2, angle and
        arc_length filled in
    """
    p1 = start.position
    p2 = end.position
    t1 = start.tangent
    t2 = end.tangent

    v = p2 - p1
    t = t1 + t2
    v_mag2 = float(np.dot(v, v))

    if v_mag2 < EPSILON * EPSILON:
        logger.debug("Coincident keypoints, collapsing biarc to a point")
        arc1 = Arc(center=p1.copy())
        arc2 = Arc(center=p2.copy())
        return arc1, arc2

    v_dot_t = float(np.dot(v, t))
    denom = 2.0 * (1.0 - float(np.dot(t1, t2)))

    if denom < EPSILON:
        # denom = 2(1 - t1.t2) vanishes for parallel tangents, dropping the quadratic term
        v_dot_t2 = float(np.dot(v, t2))

        if abs(v_dot_t2) < EPSILON:
            logger.debug("Parallel tangents with lateral offset, using semicircle pair")
            return _semicircle_pair(p1, p2, t2, v, v_mag2)

        d = v_mag2 / (4.0 * v_dot_t2)
    else:
        discrim = max(v_dot_t * v_dot_t + denom * v_mag2, 0.0)
        d = (-v_dot_t + math.sqrt(discrim)) / denom

    pm = (p1 + p2 + (t1 - t2) * d) * 0.5

    p1_to_pm = pm - p1
    p2_to_pm = pm - p2

    arc1, arc2 = Arc(), Arc()
    compute_arc(p1, t1, p1_to_pm, arc1)
    compute_arc(p2, t2, p2_to_pm, arc2)

    if d < 0.0:
        # Joint lies behind the start: both arcs take the long way round
        arc1.angle = float(np.sign(arc1.angle)) * TWO_PI - arc1.angle
        arc2.angle = float(np.sign(arc2.angle)) * TWO_PI - arc2.angle

    arc1.axis1 = p1 - arc1.center
    arc1.axis2 = t1 * arc1.radius
    arc1.arc_length = float(np.linalg.norm(p1_to_pm)) if arc1.is_straight else abs(arc1.radius * arc1.angle)

    arc2.axis1 = p2 - arc2.center
    arc2.axis2 = t2 * -arc2.radius
    arc2.arc_length = float(np.linalg.norm(p2_to_pm)) if arc2.is_straight else abs(arc2.radius * arc2.angle)

    return arc1, arc2


def find_rotation(keypoint: Keypoint, arc: Arc) -> None:
    """Set the arc's start orientation and the rotation it sweeps through."""
    arc.start_rotation = look_rotation(keypoint.tangent, keypoint.normal)

    if arc.arc_length < EPSILON or arc.is_straight:
        arc.delta_rotation = Rotation.identity()
        arc.rotation_sweep = None
        return

    degrees = math.degrees(arc.angle)
    arc.delta_rotation = axis_angle(arc.axis3, degrees)
    arc.rotation_sweep = sweep(arc.axis3, degrees)


class Biarc(Curve):
    """Curve made of two circular arcs meeting at one interior joint.

    Tangents match the keypoints at both ends and each other at the joint.
    Roll is corrected so the frames coming from either end agree at the
    joint, the mismatch being spread over the arcs by their lengths.
    """

    def __init__(self, anchor: Anchor | None = None, end_anchor: Anchor | None = None):
        super().__init__(anchor, end_anchor)
        self._arc1 = Arc()
        self._arc2 = Arc()

    @classmethod
    def from_keypoints(cls, start: Keypoint, end: Keypoint) -> "Biarc":
        """Create a biarc with fixed keypoints and no anchors."""
        curve = cls()
        curve.fit(start, end)
        return curve

    @property
    def arcs(self) -> Tuple[Arc, Arc]:
        self._ensure_updated()
        return (self._arc1, self._arc2)

    @property
    def split_t(self) -> float:
        """Arc-length fraction of the joint between the two arcs."""
        self._ensure_updated()
        return self._arc1.arc_length * self._inv_length

    def _on_update_curve(self) -> float:
        start = self.start
        end = self.end

        arc1, arc2 = find_parameters(start, end)

        arc1.axis3 = normalize_safe(np.cross(arc1.axis1, arc1.axis2))
        arc2.axis3 = normalize_safe(np.cross(arc2.axis1, arc2.axis2))

        find_rotation(start, arc1)
        find_rotation(end, arc2)

        # Frames reached at the joint from either end
        mid1 = arc1.delta_rotation * arc1.start_rotation
        mid2 = arc2.delta_rotation * arc2.start_rotation

        from_x = mid1.apply(UNIT_X)
        from_y = mid1.apply(UNIT_Y)
        dest_x = mid2.apply(UNIT_X)

        delta = math.degrees(math.atan2(float(np.dot(dest_x, from_y)), float(np.dot(dest_x, from_x))))

        length = arc1.arc_length + arc2.arc_length

        if length >= EPSILON:
            inv_length = 1.0 / length
            arc1.roll_delta = delta * arc1.arc_length * inv_length
            arc2.roll_delta = -delta * arc2.arc_length * inv_length

        self._arc1 = arc1
        self._arc2 = arc2

        return length

    def _on_get_position(self, t: float) -> np.ndarray:
        arc1 = self._arc1
        arc2 = self._arc2
        delta = t * self._length

        if delta < arc1.arc_length:
            if arc1.arc_length < EPSILON:
                return arc1.center + arc1.axis1

            arc_frac = delta / arc1.arc_length
            if arc1.is_straight:
                return arc1.center + arc1.axis1 * (1.0 - arc_frac * 2.0)

            angle = arc1.angle * arc_frac
            return arc1.center + arc1.axis1 * math.cos(angle) + arc1.axis2 * math.sin(angle)

        if arc2.arc_length < EPSILON:
            return arc2.center + arc2.axis1

        arc_frac = (delta - arc1.arc_length) / arc2.arc_length
        if arc2.is_straight:
            return arc2.center + arc2.axis1 * (arc_frac * 2.0 - 1.0)

        angle = arc2.angle * (1.0 - arc_frac)
        return arc2.center + arc2.axis1 * math.cos(angle) + arc2.axis2 * math.sin(angle)

    def _on_get_rotation(self, t: float) -> Rotation:
        arc1 = self._arc1
        arc2 = self._arc2
        delta = t * self._length

        if delta < arc1.arc_length:
            frac = delta / arc1.arc_length if arc1.arc_length >= EPSILON else 0.0
            return self._arc_rotation(arc1, frac)

        if arc2.arc_length >= EPSILON:
            frac = 1.0 - (delta - arc1.arc_length) / arc2.arc_length
        else:
            frac = 0.0
        return self._arc_rotation(arc2, frac)

    @staticmethod
    def _arc_rotation(arc: Arc, frac: float) -> Rotation:
        roll = axis_angle(UNIT_Z, arc.roll_delta * frac)
        if arc.rotation_sweep is None:
            return arc.start_rotation * roll
        return interpolate(arc.rotation_sweep, frac) * arc.start_rotation * roll

    def _on_get_deltas(self, delta_angle: float, min_dist: float, max_dist: float) -> np.ndarray:
        if self._length < EPSILON:
            return np.array([0.0, 1.0])

        mid = self._arc1.arc_length / (self._arc1.arc_length + self._arc2.arc_length)

        first = self._arc_deltas(self._arc1, delta_angle, min_dist, max_dist, 0.0, mid)
        second = self._arc_deltas(self._arc2, delta_angle, min_dist, max_dist, mid, 1.0 - mid)

        return np.concatenate((first, second, [1.0]))

    @staticmethod
    def _arc_deltas(
        arc: Arc,
        delta_angle: float,
        min_dist: float,
        max_dist: float,
        offset: float,
        scale: float,
    ) -> np.ndarray:
        """Evenly spaced fractions covering ``[offset, offset + scale)``."""
        if scale <= 0.0:
            return np.empty(0)

        if arc.radius <= 0.0:
            dist = max_dist
        else:
            angle = arc.arc_length / arc.radius
            count = math.floor(angle / delta_angle + 1.0)
            dist = float(np.clip(arc.arc_length / count, min_dist, max_dist))

        count = math.floor(arc.arc_length / dist + 1.0)
        return offset + (scale / count) * np.arange(count, dtype=np.float64)

    def _arc_range(self, arc: Arc, flip: bool, t_scale: float, pos: np.ndarray, max_dist: float) -> RangeHit:
        """Nearest point on one arc, if it can be within ``max_dist``."""
        diff = pos - arc.center

        if arc.is_straight:
            axis_len2 = float(np.dot(arc.axis1, arc.axis1))
            along = float(np.dot(diff, arc.axis1)) / axis_len2 if axis_len2 >= EPSILON * EPSILON else 1.0
            frac = float(np.clip((1.0 - along) * 0.5, 0.0, 1.0))

            t = frac * arc.arc_length * t_scale
        else:
            plane_dist = float(np.dot(diff, arc.axis3))
            if abs(plane_dist) > max_dist:
                return RANGE_MISS

            dist2 = float(np.dot(diff, diff))
            max_rad = arc.radius + max_dist
            if dist2 > max_rad * max_rad:
                return RANGE_MISS

            min_rad = arc.radius - max_dist
            if min_rad > 0.0 and dist2 < min_rad * min_rad:
                return RANGE_MISS

            plane_pos = normalize_safe(diff - plane_dist * arc.axis3) * arc.radius

            x = float(np.dot(arc.axis1, plane_pos))
            y = float(np.dot(arc.axis2, plane_pos))
            ang = _clamp_to_sweep(math.atan2(y, x), arc.angle)

            t = abs(ang) * arc.radius * t_scale

        if flip:
            t = 1.0 - t

        nearest = self._on_get_position(t)
        dist = float(np.linalg.norm(nearest - pos))

        if dist > max_dist:
            return RangeHit(False, t, dist)
        return RangeHit(True, t, dist)

    def _on_is_within_range(self, pos: np.ndarray, max_dist: float) -> RangeHit:
        t_scale = self._inv_length

        hit1 = self._arc_range(self._arc1, False, t_scale, pos, max_dist)
        hit2 = self._arc_range(self._arc2, True, t_scale, pos, max_dist)

        if not hit1.hit and not hit2.hit:
            return RANGE_MISS

        if not hit1.hit or (hit2.hit and hit2.dist < hit1.dist):
            return hit2
        return hit1

    def _arc_line_test(
        self,
        arc: Arc,
        start: np.ndarray,
        end: np.ndarray,
        max_dist: float,
    ) -> Tuple[float, RangeHit]:
        """Line fraction of the closest approach to one arc, or inf."""
        if arc.is_straight:
            return (math.inf, RANGE_MISS)

        found, line_delta = approx_within_line_range(
            arc.center, arc.axis1, arc.axis3, arc.radius, start, end, max_dist,
        )
        if not found:
            return (math.inf, RANGE_MISS)

        hit = self._on_is_within_range(start + (end - start) * line_delta, max_dist * math.sqrt(2.0))
        if not hit.hit:
            return (math.inf, hit)
        return (line_delta, hit)

    def find_line_range(self, start, end, max_dist: float) -> LineRangeHit:
        """Line query against both arcs, whether or not the curve is chained."""
        self._ensure_updated()
        return self._on_is_approx_within_line_range(vec3(start), vec3(end), max_dist)

    def _on_is_approx_within_line_range(
        self,
        start: np.ndarray,
        end: np.ndarray,
        max_dist: float,
    ) -> LineRangeHit:
        l0, hit0 = self._arc_line_test(self._arc1, start, end, max_dist)
        l1, hit1 = self._arc_line_test(self._arc2, start, end, max_dist)

        if not math.isinf(l0) and l0 <= l1:
            return LineRangeHit(True, l0, hit0.t, hit0.dist)

        if not math.isinf(l1):
            return LineRangeHit(True, l1, hit1.t, hit1.dist)

        return LINE_RANGE_MISS

    def _on_is_approx_overlapping(self, other: Curve, max_range: float) -> bool:
        # Keep the test symmetric by comparing current geometry on both sides
        for a in (self._arc1, self._arc2):
            for b in other.arcs:
                reach = a.radius + b.radius + max_range
                if horizontal_distance_squared(a.center, b.center) <= reach * reach:
                    return True
        return False


def _clamp_to_sweep(angle: float, sweep_angle: float) -> float:
    """Map an atan2 angle onto ``[0, sweep_angle]``, snapping to the nearer end."""
    if sweep_angle >= 0.0:
        if angle < 0.0:
            angle += TWO_PI
        if angle > sweep_angle:
            return sweep_angle if angle - sweep_angle < TWO_PI - angle else 0.0
        return angle

    if angle > 0.0:
        angle -= TWO_PI
    if angle < sweep_angle:
        return sweep_angle if sweep_angle - angle < TWO_PI + angle else 0.0
    return angle
