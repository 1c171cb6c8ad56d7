"""
Curve - Abstract keypoint curve with a lazily recomputed cache.

Defines:
- Keypoint: position, tangent and normal of one curve end
- Anchor: mutable pose a curve reads its keypoints from
- Curve: dirty-flag cache and the query surface every variant implements
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import NamedTuple, Optional, Sequence, Tuple
import logging

import numpy as np
from scipy.spatial.transform import Rotation

from coaster.geometry.vector import UNIT_Y, UNIT_Z, approx_equal, vec3
from coaster.geometry.rotation import forward_of, look_rotation, right_of, up_of


logger = logging.getLogger(__name__)

# Tolerance for every degenerate-geometry decision in the curve layer
EPSILON = 1e-4

# Position, tangent and normal of one end
Pose = Tuple[np.ndarray, np.ndarray, np.ndarray]


@dataclass
class Keypoint:
    """Pose of one curve end."""
    position: np.ndarray = field(default_factory=lambda: np.zeros(3))
    tangent: np.ndarray = field(default_factory=lambda: UNIT_Z.copy())
    normal: np.ndarray = field(default_factory=lambda: UNIT_Y.copy())

    def __post_init__(self):
        self.position = vec3(self.position)
        self.tangent = vec3(self.tangent)
        self.normal = vec3(self.normal)

    def copy(self) -> "Keypoint":
        return Keypoint(self.position.copy(), self.tangent.copy(), self.normal.copy())


class Anchor:
    """World pose that supplies a curve end.

    The curve only reads ``position``, ``forward`` and ``up``; whoever owns
    the anchor moves it and then invalidates the curves that depend on it.
    """

    def __init__(
        self,
        position: Sequence[float] | np.ndarray = (0.0, 0.0, 0.0),
        rotation: Rotation | None = None,
    ):
        self.position = vec3(position)
        self.rotation = rotation if rotation is not None else Rotation.identity()

    @classmethod
    def from_vectors(
        cls,
        position: Sequence[float] | np.ndarray,
        forward: Sequence[float] | np.ndarray,
        up: Sequence[float] | np.ndarray = (0.0, 1.0, 0.0),
    ) -> "Anchor":
        """Create an anchor facing ``forward`` with ``up`` as the roll reference."""
        return cls(position, look_rotation(vec3(forward), vec3(up)))

    @property
    def forward(self) -> np.ndarray:
        return forward_of(self.rotation)

    @property
    def up(self) -> np.ndarray:
        return up_of(self.rotation)

    @property
    def right(self) -> np.ndarray:
        return right_of(self.rotation)

    def move_to(
        self,
        position: Sequence[float] | np.ndarray,
        rotation: Rotation | None = None,
    ) -> None:
        """Move the anchor, optionally changing its orientation."""
        self.position = vec3(position)
        if rotation is not None:
            self.rotation = rotation

    def to_keypoint(self) -> Keypoint:
        return Keypoint(self.position.copy(), self.forward, self.up)


class RangeHit(NamedTuple):
    """Result of a point proximity query."""
    hit: bool
    t: float
    dist: float


class LineRangeHit(NamedTuple):
    """Result of a line segment proximity query."""
    hit: bool
    t_line: float
    t_curve: float
    dist: float


RANGE_MISS = RangeHit(False, 0.0, float("inf"))
LINE_RANGE_MISS = LineRangeHit(False, float("nan"), float("nan"), float("nan"))


class Curve(ABC):
    """Curve between two keypoints with length-normalized sampling.

    Keypoints are read from anchors (or supplied directly with ``fit``)
    and the derived geometry is cached until ``invalidate`` is called.
    Every public query brings the cache up to date first.

    The end keypoint comes from the successor's anchor when ``next`` is set,
    otherwise from ``end_anchor``, otherwise from the curve's own anchor.

    Usage:
        curve = Biarc(Anchor.from_vectors((0, 0, 0), (0, 0, 1)),
                      Anchor.from_vectors((4, 0, 8), (1, 0, 0)))
        pos = curve.get_position(0.5)
    """

    def __init__(self, anchor: Anchor | None = None, end_anchor: Anchor | None = None):
        """Initialize an empty, dirty curve.

        Args:
            anchor: Pose supplying the start keypoint
            end_anchor: Pose supplying the end keypoint when unchained
        """
        self.anchor = anchor
        self.end_anchor = end_anchor

        self._next: Optional["Curve"] = None
        self._start = Keypoint()
        self._end = Keypoint()

        # Cached values
        self._length: float = 0.0
        self._inv_length: float = 0.0
        self._invalidated: bool = True

    @property
    def next(self) -> Optional["Curve"]:
        """Successor whose start pose ends this curve. Not owned."""
        return self._next

    @next.setter
    def next(self, value: Optional["Curve"]) -> None:
        if value is self._next:
            return
        self._next = value
        self.invalidate()

    @property
    def start(self) -> Keypoint:
        return self._start

    @property
    def end(self) -> Keypoint:
        return self._end

    @property
    def is_invalidated(self) -> bool:
        return self._invalidated

    @property
    def length(self) -> float:
        """Total curve length."""
        self._ensure_updated()
        return self._length

    @property
    def inverse_length(self) -> float:
        """One over ``length``, or 0 for a zero-length curve."""
        self._ensure_updated()
        return self._inv_length

    @property
    def arcs(self) -> Tuple:
        """Circular arcs backing the curve; empty when not arc based."""
        return ()

    def invalidate(self) -> None:
        self._invalidated = True

    def fit(self, start: Keypoint, end: Keypoint) -> None:
        """Supply both keypoints directly.

        Intended for curves without anchors; a curve with an anchor
        re-reads its poses on the next recompute.
        """
        self._start = start.copy()
        self._end = end.copy()
        self.invalidate()

    def check_anchors(self) -> bool:
        """Invalidate the curve if either anchor moved since the last recompute.

        Returns:
            True if a change beyond EPSILON was detected
        """
        changed = False
        if self.anchor is not None:
            changed = self._pose_changed(self._anchor_pose(self.anchor), self._start)
        end_source = self._end_source()
        if end_source is not None:
            changed = self._pose_changed(end_source, self._end) or changed
        if changed:
            self.invalidate()
        return changed

    def update_curve(self) -> None:
        """Read the current poses and recompute the cached geometry."""
        self._invalidated = False

        if self.anchor is not None:
            self._read_keypoint(self._anchor_pose(self.anchor), self._start)
        end_source = self._end_source()
        if end_source is not None:
            self._read_keypoint(end_source, self._end)

        self._length = self._on_update_curve()
        self._inv_length = 1.0 / self._length if self._length >= EPSILON else 0.0

        logger.debug(
            "Recomputed %s: length=%.6f",
            type(self).__name__,
            self._length,
        )

    def get_position(self, t: float) -> np.ndarray:
        """World position at arc-length fraction ``t``."""
        self._ensure_updated()
        return self._on_get_position(float(t))

    def get_rotation(self, t: float) -> Rotation:
        """Orientation at arc-length fraction ``t`` (local Z is forward)."""
        self._ensure_updated()
        return self._on_get_rotation(float(t))

    def get_forward(self, t: float) -> np.ndarray:
        return forward_of(self.get_rotation(t))

    def get_up(self, t: float) -> np.ndarray:
        return up_of(self.get_rotation(t))

    def get_right(self, t: float) -> np.ndarray:
        return right_of(self.get_rotation(t))

    def get_deltas(self, delta_angle: float, min_dist: float, max_dist: float) -> np.ndarray:
        """Ascending sample fractions from 0 to 1 for mesh building.

        Args:
            delta_angle: Largest angle in radians a sample step may turn
            min_dist: Smallest step length along a circular arc
            max_dist: Largest step length

        Returns:
            Fresh float array starting at 0.0 and ending at exactly 1.0
        """
        if delta_angle <= 0.0:
            raise ValueError(f"delta_angle must be positive, got {delta_angle}")
        if max_dist <= 0.0:
            raise ValueError(f"max_dist must be positive, got {max_dist}")
        if min_dist > max_dist:
            raise ValueError(f"min_dist {min_dist} exceeds max_dist {max_dist}")

        self._ensure_updated()
        return self._on_get_deltas(delta_angle, min_dist, max_dist)

    def is_within_range(self, pos: Sequence[float] | np.ndarray, max_dist: float) -> RangeHit:
        """Find the curve point nearest ``pos`` if it lies within ``max_dist``.

        Returns:
            RangeHit; ``t`` and ``dist`` are meaningless when ``hit`` is False
        """
        self._ensure_updated()
        return self._on_is_within_range(vec3(pos), max_dist)

    def is_approx_within_line_range(
        self,
        start: Sequence[float] | np.ndarray,
        end: Sequence[float] | np.ndarray,
        max_dist: float,
    ) -> LineRangeHit:
        """Check whether the line segment ``start``-``end`` passes near the curve.

        Only chained curves take part in crossing detection, so a curve
        without a successor always misses.
        """
        self._ensure_updated()
        if self._next is None:
            return LINE_RANGE_MISS
        return self._on_is_approx_within_line_range(vec3(start), vec3(end), max_dist)

    def is_approx_overlapping(self, other: "Curve", max_range: float) -> bool:
        """Coarse horizontal overlap test against another curve."""
        self._ensure_updated()
        return self._on_is_approx_overlapping(other, max_range)

    def _ensure_updated(self) -> None:
        if self._invalidated:
            self.update_curve()

    def _end_source(self) -> Pose | None:
        if self._next is not None:
            if self._next.anchor is not None:
                return self._anchor_pose(self._next.anchor)
            # Fitted successor: its start keypoint is the only pose it has
            start = self._next.start
            return start.position, start.tangent, start.normal
        if self.end_anchor is not None:
            return self._anchor_pose(self.end_anchor)
        if self.anchor is not None:
            return self._anchor_pose(self.anchor)
        return None

    @staticmethod
    def _anchor_pose(anchor: Anchor) -> Pose:
        return anchor.position, anchor.forward, anchor.up

    @staticmethod
    def _pose_changed(source: Pose, keypoint: Keypoint) -> bool:
        pos, tan, nrm = source
        return not (
            approx_equal(pos, keypoint.position, EPSILON)
            and approx_equal(tan, keypoint.tangent, EPSILON)
            and approx_equal(nrm, keypoint.normal, EPSILON)
        )

    @staticmethod
    def _read_keypoint(source: Pose, keypoint: Keypoint) -> bool:
        """Copy a pose into ``keypoint``, ignoring sub-epsilon jitter."""
        changed = False
        pos, tan, nrm = source

        if not approx_equal(pos, keypoint.position, EPSILON):
            changed = True
            keypoint.position = np.array(pos, dtype=float)

        if not approx_equal(tan, keypoint.tangent, EPSILON):
            changed = True
            keypoint.tangent = np.array(tan, dtype=float)

        if not approx_equal(nrm, keypoint.normal, EPSILON):
            changed = True
            keypoint.normal = np.array(nrm, dtype=float)

        return changed
