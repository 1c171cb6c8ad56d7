"""
Track - Collection of linked track segments.

Contains:
- Segment bookkeeping (add, link, split, remove)
- Nearest-segment lookup for picking
- Crossover candidates for support placement
- Distance-based traversal across segment boundaries
- JSON persistence
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, NamedTuple, Optional, Sequence, Tuple
import json
import logging
import math

import numpy as np

from coaster.curves.curve import EPSILON, Anchor
from coaster.track.segment import CURVE_TYPES, TrackSegment


logger = logging.getLogger(__name__)


class NumpyEncoder(json.JSONEncoder):
    """JSON encoder that handles numpy types."""

    def default(self, obj):
        if isinstance(obj, np.integer):
            return int(obj)
        if isinstance(obj, np.floating):
            return float(obj)
        if isinstance(obj, np.ndarray):
            return obj.tolist()
        return super().default(obj)


@dataclass
class TrackConfig:
    """Track configuration. Distances are in world units."""
    name: str = "Coaster"
    curve_type: str = "biarc"          # "biarc" or "composite"

    # Picking and crossing detection
    selection_range: float = 0.5
    crossover_range: float = 2.0

    # Sampling along each curve
    delta_angle: float = math.pi / 32.0
    min_sample_dist: float = 0.25
    max_sample_dist: float = 4.0

    # Cross-section
    half_width: float = 0.5
    max_support_tilt: float = 0.866    # |right.y| above this has no supports (30 deg bank)

    def __post_init__(self):
        """Validate configuration."""
        if self.curve_type not in CURVE_TYPES:
            raise ValueError(f"Unknown curve type: {self.curve_type}")
        for name in ("selection_range", "crossover_range", "delta_angle", "max_sample_dist", "half_width"):
            if getattr(self, name) <= 0.0:
                raise ValueError(f"{name} must be positive")
        if not 0.0 <= self.min_sample_dist <= self.max_sample_dist:
            raise ValueError("min_sample_dist must lie in [0, max_sample_dist]")


class TrackCursor(NamedTuple):
    """Position along the track expressed as segment plus distance."""
    segment: TrackSegment
    progress: float
    on_track: bool


class Track:
    """Roller coaster track built from linked segments.

    Segments form chains (or loops) through their ``next`` links. Each
    linked segment owns the curve from its own pose to its successor's.

    Usage:
        track = Track()
        a = track.add_segment(position=(0, 0, 0), forward=(0, 0, 1))
        b = track.add_segment(position=(8, 2, 8), forward=(1, 0, 0))
        track.link(a, b)

        pos = a.get_track_pos_at_delta(3.0)
    """

    def __init__(self, config: TrackConfig | None = None):
        """Initialize an empty track.

        Args:
            config: Track configuration. Uses defaults if None.
        """
        self.config = config or TrackConfig()

        self._segments: Dict[int, TrackSegment] = {}
        self._next_id: int = 0

    @property
    def segments(self) -> List[TrackSegment]:
        """Segments in insertion order."""
        return list(self._segments.values())

    @property
    def num_segments(self) -> int:
        return len(self._segments)

    @property
    def total_length(self) -> float:
        """Summed curve length of every linked segment."""
        return sum(s.length for s in self._segments.values() if s.next is not None)

    @property
    def is_closed(self) -> bool:
        """Check if every segment is linked on both sides."""
        if not self._segments:
            return False
        return all(s.next is not None and s.prev is not None for s in self._segments.values())

    def get(self, segment_id: int) -> Optional[TrackSegment]:
        return self._segments.get(segment_id)

    def __contains__(self, segment: TrackSegment) -> bool:
        return self._segments.get(segment.segment_id) is segment

    def add_segment(
        self,
        segment: TrackSegment | None = None,
        position: Sequence[float] | None = None,
        forward: Sequence[float] | None = None,
        up: Sequence[float] = (0.0, 1.0, 0.0),
    ) -> TrackSegment:
        """Add a segment, creating one from a pose when none is given.

        Args:
            segment: Existing unowned segment to add
            position: Guide position for a new segment
            forward: Guide forward direction for a new segment
            up: Guide up direction for a new segment

        Returns:
            The added segment, with its id assigned
        """
        if segment is None:
            anchor = Anchor.from_vectors(
                position if position is not None else (0.0, 0.0, 0.0),
                forward if forward is not None else (0.0, 0.0, 1.0),
                up,
            )
            segment = TrackSegment(anchor, curve_type=self.config.curve_type)
        elif segment in self:
            raise ValueError(f"{segment!r} is already part of the track")

        if segment.segment_id < 0 or segment.segment_id in self._segments:
            segment.segment_id = self._next_id
        self._next_id = max(self._next_id, segment.segment_id + 1)

        self._segments[segment.segment_id] = segment
        return segment

    def _require(self, segment: TrackSegment) -> None:
        if segment not in self:
            raise ValueError(f"{segment!r} does not belong to this track")

    def link(self, segment: TrackSegment, next_segment: TrackSegment) -> None:
        """Connect ``segment`` to ``next_segment``, replacing existing links."""
        self._require(segment)
        self._require(next_segment)
        segment.next = next_segment
        logger.debug("Linked segment %d -> %d", segment.segment_id, next_segment.segment_id)

    def unlink(self, segment: TrackSegment) -> None:
        self._require(segment)
        if segment.next is not None:
            logger.debug("Unlinked segment %d -> %d", segment.segment_id, segment.next.segment_id)
        segment.next = None

    def remove_segment(self, segment: TrackSegment) -> None:
        """Remove a segment, bridging its neighbours when both exist."""
        self._require(segment)

        prev_segment = segment.prev
        next_segment = segment.next

        segment.next = None
        if prev_segment is not None:
            prev_segment.next = None
            if next_segment is not None and next_segment is not prev_segment:
                prev_segment.next = next_segment

        del self._segments[segment.segment_id]
        logger.debug("Removed segment %d", segment.segment_id)

    def create_from_end(self, segment: TrackSegment) -> Optional[TrackSegment]:
        """Extend the chain from whichever end of ``segment`` is open.

        The new segment starts at the same pose as ``segment``.

        Returns:
            The new segment, or None when both ends are already linked
        """
        self._require(segment)
        if segment.next is not None and segment.prev is not None:
            return None

        anchor = Anchor(segment.anchor.position.copy(), segment.anchor.rotation)
        inst = self.add_segment(TrackSegment(anchor, segment.track_type, curve_type=self.config.curve_type))

        if segment.next is None:
            segment.next = inst
        else:
            inst.next = segment

        return inst

    def split_segment(self, segment: TrackSegment, t: float) -> TrackSegment:
        """Insert a new segment at fraction ``t`` of ``segment``'s curve.

        Returns:
            The inserted segment
        """
        self._require(segment)
        if segment.next is None:
            raise RuntimeError(f"Cannot split {segment!r}: it has no successor")

        position, rotation = segment.get_track_transform(t)
        old_next = segment.next

        segment.next = None
        inserted = self.create_from_end(segment)
        inserted.move_to(position, rotation)
        inserted.next = old_next
        inserted.track_type = segment.track_type

        logger.debug(
            "Split segment %d at t=%.4f, inserted %d",
            segment.segment_id,
            t,
            inserted.segment_id,
        )
        return inserted

    def find_closest(
        self,
        pos: Sequence[float] | np.ndarray,
        max_range: float | None = None,
    ) -> Tuple[Optional[TrackSegment], float]:
        """Find the linked segment whose curve passes nearest ``pos``.

        Args:
            pos: World position
            max_range: Pick tolerance. Uses config.selection_range if None.

        Returns:
            Tuple of (segment, t), or (None, nan) when nothing is in range
        """
        max_range = self.config.selection_range if max_range is None else max_range

        closest: Optional[TrackSegment] = None
        closest_t = float("nan")
        closest_dist = float("inf")

        for segment in self._segments.values():
            if segment.next is None:
                continue

            hit = segment.curve.is_within_range(pos, max_range)
            if not hit.hit or hit.dist >= closest_dist:
                continue

            closest = segment
            closest_t = hit.t
            closest_dist = hit.dist

        return (closest, closest_t)

    def potential_crossovers(
        self,
        segment: TrackSegment,
        max_range: float | None = None,
    ) -> List[TrackSegment]:
        """Linked segments whose curves may pass above or below ``segment``."""
        max_range = self.config.crossover_range if max_range is None else max_range

        return [
            other for other in self._segments.values()
            if other is not segment
            and other.next is not None
            and other.could_cross_over(segment, max_range)
        ]

    def advance(self, segment: TrackSegment, progress: float, distance: float) -> TrackCursor:
        """Move a cursor ``distance`` units along the chain.

        Args:
            segment: Current segment
            progress: Distance already travelled along ``segment``
            distance: Signed distance to move

        Returns:
            TrackCursor; ``on_track`` is False when an open end was reached,
            in which case the cursor is clamped to that end
        """
        progress += distance
        visited_empty = set()

        while True:
            if segment.next is None:
                if progress > 0.0:
                    return TrackCursor(segment, 0.0, False)
                break
            if progress < segment.length:
                break
            if segment.length < EPSILON:
                # Guard against looping forever over zero-length segments
                if segment.segment_id in visited_empty:
                    return TrackCursor(segment, 0.0, True)
                visited_empty.add(segment.segment_id)

            progress -= segment.length
            segment = segment.next

        while progress < 0.0:
            if segment.prev is None:
                return TrackCursor(segment, 0.0, False)

            segment = segment.prev
            if segment.length < EPSILON:
                if segment.segment_id in visited_empty:
                    return TrackCursor(segment, 0.0, True)
                visited_empty.add(segment.segment_id)
            progress += segment.length

        return TrackCursor(segment, progress, True)

    def get_state(self) -> dict:
        """Get complete track state for serialization.

        Returns:
            Dictionary containing all track data
        """
        return {
            "name": self.config.name,
            "curve_type": self.config.curve_type,
            "num_segments": self.num_segments,
            "total_length": self.total_length,
            "segments": [s.get_state() for s in self._segments.values()],
        }

    def save(self, path: Path | str) -> Path:
        """Write the track to a JSON file.

        Returns:
            Path to the written file
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.get_state(), f, indent=2, cls=NumpyEncoder)
        return path

    @classmethod
    def from_state(cls, state: dict, config: TrackConfig | None = None) -> "Track":
        """Rebuild a track, including links, from ``get_state`` output."""
        if config is None:
            config = TrackConfig(
                name=state.get("name", "Coaster"),
                curve_type=state.get("curve_type", "biarc"),
            )
        track = cls(config)

        segment_states = state.get("segments", [])
        for seg_state in segment_states:
            track.add_segment(TrackSegment.from_state(seg_state, config.curve_type))

        for seg_state in segment_states:
            next_id = int(seg_state.get("next_id", -1))
            if next_id < 0:
                continue
            segment = track.get(int(seg_state["segment_id"]))
            next_segment = track.get(next_id)
            if next_segment is None:
                logger.warning(
                    "Segment %d links to missing segment %d, leaving it open",
                    segment.segment_id,
                    next_id,
                )
                continue
            segment.next = next_segment

        return track

    @classmethod
    def load(cls, path: Path | str, config: TrackConfig | None = None) -> "Track":
        with open(path) as f:
            state = json.load(f)
        return cls.from_state(state, config)
