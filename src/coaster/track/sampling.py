"""
Track sampling - Cross-section frames along a segment for mesh building.

Provides:
- Adaptive frame placement from the curve's sample fractions
- Rail edge positions
- Support placement that avoids track passing underneath
"""

from dataclasses import dataclass
from typing import Callable, List, Optional
import numpy as np
from scipy.spatial.transform import Rotation

from coaster.geometry.rotation import right_of, up_of
from coaster.geometry.vector import UNIT_Y
from coaster.track.segment import TrackSegment
from coaster.track.track import Track


# Ground height lookup: (x, z) -> y
GroundHeight = Callable[[float, float], float]


@dataclass
class TrackFrame:
    """Track cross-section at one sample along a segment."""
    t: float
    position: np.ndarray
    rotation: Rotation
    right: np.ndarray
    up: np.ndarray
    left_edge: np.ndarray
    right_edge: np.ndarray
    supported: bool = False
    ground: float = 0.0


def _flat_ground(x: float, z: float) -> float:
    return 0.0


def sample_segment(
    track: Track,
    segment: TrackSegment,
    ground_height: Optional[GroundHeight] = None,
) -> List[TrackFrame]:
    """Sample cross-section frames along ``segment``.

    A frame gets a support column when the track there is upright and not
    banked too steeply, and no other track passes through the column
    between the frame and the ground.

    Args:
        track: Track owning the segment (for config and crossing candidates)
        segment: Segment to sample
        ground_height: Ground lookup. Flat ground at y=0 if None.

    Returns:
        Frames in ascending ``t``; empty for a segment without a successor
    """
    if segment.next is None:
        return []

    config = track.config
    ground_height = ground_height or _flat_ground
    hit_range = config.crossover_range

    crossovers = track.potential_crossovers(segment, hit_range)

    frames = []
    deltas = segment.curve.get_deltas(config.delta_angle, config.min_sample_dist, config.max_sample_dist)

    for t_raw in deltas:
        t = float(np.clip(t_raw, 0.0, 1.0))

        position, rotation = segment.get_track_transform(t)
        right = right_of(rotation)
        up = up_of(rotation)

        supported = abs(float(np.dot(right, UNIT_Y))) < config.max_support_tilt and float(np.dot(up, UNIT_Y)) > 0.0
        ground = 0.0

        if supported:
            ground = float(ground_height(float(position[0]), float(position[2])))

            column_top = position - UNIT_Y * hit_range * 1.5
            column_base = np.array([column_top[0], ground, column_top[2]])

            for other in crossovers:
                in_range, _, _ = other.is_approximately_in_line_range(column_top, column_base, hit_range)
                if in_range:
                    supported = False
                    break

        frames.append(TrackFrame(
            t=t,
            position=position,
            rotation=rotation,
            right=right,
            up=up,
            left_edge=position - right * config.half_width,
            right_edge=position + right * config.half_width,
            supported=supported,
            ground=ground,
        ))

    return frames
