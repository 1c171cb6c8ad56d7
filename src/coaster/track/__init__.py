"""
Track module - Linked track segments built on keypoint curves.

This module contains:
- Track: Segment collection with linking, splitting, picking and persistence
- TrackSegment: One node of the chain and the curve to its successor
- TrackType: Kind of track piece
- sample_segment: Cross-section frames and support placement for meshing
"""

from coaster.track.segment import TrackSegment, TrackType
from coaster.track.track import Track, TrackConfig, TrackCursor
from coaster.track.sampling import TrackFrame, sample_segment

__all__ = [
    "Track",
    "TrackConfig",
    "TrackCursor",
    "TrackSegment",
    "TrackType",
    "TrackFrame",
    "sample_segment",
]
