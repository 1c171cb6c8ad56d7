"""
Track segment - One node of the track chain and the curve leaving it.

Defines:
- Track types (plain, brake, chain lift, booster)
- Segment linking with curve invalidation
- Distance-based pose queries along the segment's curve
"""

from enum import Enum
from typing import Optional, Sequence, Tuple

import numpy as np
from scipy.spatial.transform import Rotation

from coaster.curves.biarc import Biarc
from coaster.curves.composite import BiarcBezierComposite
from coaster.curves.curve import Anchor, Curve
from coaster.geometry.rotation import forward_of
from coaster.geometry.vector import vec3


CURVE_TYPES = {
    "biarc": Biarc,
    "composite": BiarcBezierComposite,
}


class TrackType(Enum):
    """Types of track pieces."""
    DEFAULT = "default"
    BRAKE = "brake"
    CHAIN_LIFT = "chain_lift"
    BOOSTER = "booster"


class TrackSegment:
    """A single node of the track chain.

    The segment's anchor is the start pose of its curve; the curve ends at
    the anchor of the ``next`` segment. A segment without a successor is
    just an open end and its curve is never sampled.
    """

    def __init__(
        self,
        anchor: Anchor | None = None,
        track_type: TrackType = TrackType.DEFAULT,
        segment_id: int = -1,
        curve_type: str = "biarc",
    ):
        """Initialize an unlinked segment.

        Args:
            anchor: Guide pose of the segment. Defaults to the origin facing +Z.
            track_type: Kind of track piece
            segment_id: Identifier, assigned by the owning track
            curve_type: Curve variant name, "biarc" or "composite"
        """
        if curve_type not in CURVE_TYPES:
            raise ValueError(f"Unknown curve type: {curve_type}")

        self.anchor = anchor or Anchor()
        self.track_type = track_type
        self.segment_id = segment_id
        self.curve: Curve = CURVE_TYPES[curve_type](self.anchor)

        self._next: Optional["TrackSegment"] = None
        self._prev: Optional["TrackSegment"] = None

    def __repr__(self) -> str:
        return f"TrackSegment(id={self.segment_id}, type={self.track_type.value})"

    @property
    def next(self) -> Optional["TrackSegment"]:
        return self._next

    @next.setter
    def next(self, value: Optional["TrackSegment"]) -> None:
        if value is self:
            raise ValueError("Cannot link a segment to itself")
        if self._next is value:
            return
        if self._next is not None:
            self._next._prev = None

        self._next = value
        self.curve.next = value.curve if value is not None else None

        if value is not None:
            # A segment has at most one predecessor
            if value._prev is not None:
                value._prev.next = None
            value._prev = self
            value.invalidate()

        self.invalidate()
        if self._prev is not None:
            self._prev.invalidate()

    @property
    def prev(self) -> Optional["TrackSegment"]:
        return self._prev

    @property
    def position(self) -> np.ndarray:
        return self.anchor.position

    @property
    def forward(self) -> np.ndarray:
        return self.anchor.forward

    @property
    def up(self) -> np.ndarray:
        return self.anchor.up

    @property
    def length(self) -> float:
        """Length of the curve to the next segment."""
        return self.curve.length

    def invalidate(self) -> None:
        self.curve.invalidate()

    def move_to(
        self,
        position: Sequence[float] | np.ndarray,
        rotation: Rotation | None = None,
    ) -> None:
        """Move the guide pose; curves ending or starting here are recomputed."""
        self.anchor.move_to(position, rotation)
        self.invalidate()
        if self._prev is not None:
            self._prev.invalidate()

    def get_track_pos(self, t: float) -> np.ndarray:
        return self.curve.get_position(t)

    def get_track_pos_at_delta(self, delta: float) -> np.ndarray:
        """Position ``delta`` length units along the segment."""
        return self.curve.get_position(delta * self.curve.inverse_length)

    def get_track_rotation(self, t: float) -> Rotation:
        return self.curve.get_rotation(t)

    def get_track_transform(self, t: float) -> Tuple[np.ndarray, Rotation]:
        """Pose at fraction ``t``.

        Open ends (no successor, or before the start of the first segment)
        report the guide pose itself.

        Returns:
            Tuple of (position, rotation)
        """
        if self._next is None or (t < 0.0 and self._prev is None):
            return (self.anchor.position.copy(), self.anchor.rotation)

        return (self.get_track_pos(t), self.get_track_rotation(t))

    def get_track_transform_at_delta(self, delta: float) -> Tuple[np.ndarray, Rotation]:
        return self.get_track_transform(delta * self.curve.inverse_length)

    def get_track_gradient_at_delta(self, delta: float) -> float:
        """Vertical component of the forward direction ``delta`` units along."""
        rotation = self.get_track_rotation(delta * self.curve.inverse_length)
        return float(forward_of(rotation)[1])

    def is_within_range(self, pos: Sequence[float] | np.ndarray, max_range: float) -> Tuple[bool, float]:
        """Check if ``pos`` is within ``max_range`` of this segment's curve.

        Returns:
            Tuple of (in_range, t)
        """
        hit = self.curve.is_within_range(pos, max_range)
        return (hit.hit, hit.t)

    def is_approximately_in_line_range(
        self,
        start: Sequence[float] | np.ndarray,
        end: Sequence[float] | np.ndarray,
        max_range: float,
    ) -> Tuple[bool, float, float]:
        """Check if the line ``start``-``end`` passes near this segment's curve.

        Returns:
            Tuple of (in_range, line_delta, track_delta)
        """
        hit = self.curve.is_approx_within_line_range(start, end, max_range)
        return (hit.hit, hit.t_line, hit.t_curve)

    def could_cross_over(self, other: "TrackSegment", max_range: float) -> bool:
        return self.curve.is_approx_overlapping(other.curve, max_range)

    def get_state(self) -> dict:
        """Get segment state for serialization.

        Returns:
            Dictionary containing segment data
        """
        return {
            "segment_id": self.segment_id,
            "next_id": self._next.segment_id if self._next is not None else -1,
            "type": self.track_type.value,
            "position": self.anchor.position.tolist(),
            "rotation": self.anchor.rotation.as_quat().tolist(),
        }

    @classmethod
    def from_state(cls, state: dict, curve_type: str = "biarc") -> "TrackSegment":
        """Rebuild an unlinked segment from ``get_state`` output.

        Links are restored by the owning track once every segment exists.
        """
        try:
            track_type = TrackType(state["type"])
        except ValueError:
            raise ValueError(f"Unknown track type: {state['type']!r}") from None

        anchor = Anchor(vec3(state["position"]), Rotation.from_quat(state["rotation"]))
        return cls(
            anchor=anchor,
            track_type=track_type,
            segment_id=int(state["segment_id"]),
            curve_type=curve_type,
        )
