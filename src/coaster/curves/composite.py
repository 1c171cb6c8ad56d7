"""
Biarc Bezier composite - Biarc refined into two cubic Bezier spans.

The biarc supplies the joint pose, the length, roll and every proximity
query; the Bezier spans replace its position and forward direction with a
shape whose curvature changes smoothly across the joint.
"""

from dataclasses import dataclass, field
from typing import Tuple
import math

import numpy as np
from scipy.spatial.transform import Rotation

from coaster.curves.biarc import Arc, Biarc
from coaster.curves.curve import EPSILON, Anchor, Curve, Keypoint, LineRangeHit, RangeHit
from coaster.geometry.rotation import look_rotation, up_of


@dataclass
class CubicBezier:
    """Cubic Bezier span between two points."""
    p0: np.ndarray = field(default_factory=lambda: np.zeros(3))
    p1: np.ndarray = field(default_factory=lambda: np.zeros(3))
    p2: np.ndarray = field(default_factory=lambda: np.zeros(3))
    p3: np.ndarray = field(default_factory=lambda: np.zeros(3))

    @classmethod
    def from_keypoints(
        cls,
        p0: np.ndarray,
        d0: np.ndarray,
        p3: np.ndarray,
        d3: np.ndarray,
    ) -> "CubicBezier":
        """Fit a span leaving ``p0`` along ``d0`` and arriving at ``p3`` along ``d3``.

        Both handles share one length ``s``, the smaller magnitude root of
        ``(|d0 + d3|^2 - 1) s^2 + 2 (dp . (d0 + d3)) s + |dp|^2 = 0``.

        Args:
            p0: Start point
            d0: Unit tangent at the start
            p3: End point
            d3: Unit tangent at the end

        Returns:
            Fitted span
        """
        dp = p3 - p0
        dt = d3 + d0

        a = float(np.dot(dt, dt)) - 1.0
        b = float(np.dot(dp, dt)) * 2.0
        c = float(np.dot(dp, dp))

        tangent_scale = 1.0
        if abs(a) < EPSILON:
            if abs(b) >= EPSILON:
                tangent_scale = abs(c / b)
        else:
            root = b * b - 4.0 * a * c
            if root >= 0.0:
                sqrt_root = math.sqrt(root)
                solution1 = abs((-b + sqrt_root) / (2.0 * a))
                solution2 = abs((-b - sqrt_root) / (2.0 * a))
                tangent_scale = min(solution1, solution2)

        return cls(
            p0=p0.copy(),
            p1=p0 + d0 * tangent_scale,
            p2=p3 - d3 * tangent_scale,
            p3=p3.copy(),
        )

    def position(self, t: float) -> np.ndarray:
        s = 1.0 - t
        return (
            s * s * s * self.p0
            + 3.0 * s * s * t * self.p1
            + 3.0 * s * t * t * self.p2
            + t * t * t * self.p3
        )

    def derivative(self, t: float) -> np.ndarray:
        """First derivative with respect to the span parameter."""
        s = 1.0 - t
        return (
            3.0 * s * s * (self.p1 - self.p0)
            + 6.0 * s * t * (self.p2 - self.p1)
            + 3.0 * t * t * (self.p3 - self.p2)
        )


class BiarcBezierComposite(Curve):
    """Biarc whose visible shape is re-expressed as two cubic Bezier spans.

    Owns an inner Biarc fitted to the same keypoints. Length, sampling,
    roll reference and proximity queries come from that biarc unchanged.
    """

    # Parameter step for the central-difference forward direction
    ROTATION_STEP = 1.0 / 128.0

    def __init__(self, anchor: Anchor | None = None, end_anchor: Anchor | None = None):
        super().__init__(anchor, end_anchor)
        self._biarc = Biarc()
        self._bezier1 = CubicBezier()
        self._bezier2 = CubicBezier()
        self._split_t: float = 0.0
        self._inv_split_t: float = 0.0
        self._inv_neg_split_t: float = 0.0

    @classmethod
    def from_keypoints(cls, start: Keypoint, end: Keypoint) -> "BiarcBezierComposite":
        """Create a composite with fixed keypoints and no anchors."""
        curve = cls()
        curve.fit(start, end)
        return curve

    @property
    def biarc(self) -> Biarc:
        self._ensure_updated()
        return self._biarc

    @property
    def arcs(self) -> Tuple[Arc, Arc]:
        self._ensure_updated()
        return self._biarc.arcs

    @property
    def beziers(self) -> Tuple[CubicBezier, CubicBezier]:
        self._ensure_updated()
        return (self._bezier1, self._bezier2)

    @property
    def split_t(self) -> float:
        self._ensure_updated()
        return self._split_t

    def _on_update_curve(self) -> float:
        start = self.start
        end = self.end

        self._biarc.fit(start, end)
        length = self._biarc.length

        self._split_t = self._biarc.split_t
        self._inv_split_t = 1.0 / self._split_t if self._split_t >= EPSILON else 0.0
        neg_split = 1.0 - self._split_t
        self._inv_neg_split_t = 1.0 / neg_split if neg_split >= EPSILON else 0.0

        mid_pos = self._biarc.get_position(self._split_t)
        mid_tan = self._biarc.get_forward(self._split_t)

        self._bezier1 = CubicBezier.from_keypoints(start.position, start.tangent, mid_pos, mid_tan)
        self._bezier2 = CubicBezier.from_keypoints(mid_pos, mid_tan, end.position, end.tangent)

        return length

    def _on_get_position(self, t: float) -> np.ndarray:
        if self._inv_neg_split_t == 0.0 or (t < self._split_t and self._inv_split_t > 0.0):
            return self._bezier1.position(t * self._inv_split_t)
        return self._bezier2.position((t - self._split_t) * self._inv_neg_split_t)

    def _on_get_rotation(self, t: float) -> Rotation:
        base_rot = self._biarc.get_rotation(t)

        ahead = self._on_get_position(min(1.0, t + self.ROTATION_STEP))
        behind = self._on_get_position(max(0.0, t - self.ROTATION_STEP))

        forward = ahead - behind
        if np.dot(forward, forward) < EPSILON * EPSILON:
            return base_rot
        return look_rotation(forward, up_of(base_rot))

    def _on_get_deltas(self, delta_angle: float, min_dist: float, max_dist: float) -> np.ndarray:
        return self._biarc.get_deltas(delta_angle, min_dist, max_dist)

    def _on_is_within_range(self, pos: np.ndarray, max_dist: float) -> RangeHit:
        return self._biarc.is_within_range(pos, max_dist)

    def _on_is_approx_within_line_range(
        self,
        start: np.ndarray,
        end: np.ndarray,
        max_dist: float,
    ) -> LineRangeHit:
        return self._biarc.find_line_range(start, end, max_dist)

    def _on_is_approx_overlapping(self, other: Curve, max_range: float) -> bool:
        return self._biarc.is_approx_overlapping(other, max_range)
