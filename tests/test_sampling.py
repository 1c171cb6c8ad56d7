"""Tests for cross-section sampling and support placement."""

import pytest
import numpy as np

from coaster.track import Track, TrackConfig, sample_segment


def stacked_turns():
    """Two identical quarter turns, one five units above the other."""
    track = Track()
    lower = track.add_segment(position=(0, 1, 0), forward=(0, 0, 1))
    track.link(lower, track.add_segment(position=(5, 1, 5), forward=(1, 0, 0)))

    upper = track.add_segment(position=(0, 6, 0), forward=(0, 0, 1))
    track.link(upper, track.add_segment(position=(5, 6, 5), forward=(1, 0, 0)))
    return track, lower, upper


class TestSampleSegment:
    """Test frame sampling along a segment."""

    def test_open_end_has_no_frames(self):
        """Test a segment without successor is not sampled."""
        track = Track()
        segment = track.add_segment(position=(0, 0, 0))
        assert sample_segment(track, segment) == []

    def test_frames_follow_deltas(self):
        """Test frames sit at the curve's sample fractions."""
        track, lower, _ = stacked_turns()
        config = track.config
        frames = sample_segment(track, lower)
        deltas = lower.curve.get_deltas(config.delta_angle, config.min_sample_dist, config.max_sample_dist)

        assert [f.t for f in frames] == pytest.approx(list(deltas))
        assert frames[0].t == 0.0
        assert frames[-1].t == 1.0
        assert np.allclose(frames[-1].position, [5.0, 1.0, 5.0], atol=1e-3)

    def test_rail_edges(self):
        """Test rail edges are half_width either side of the centre line."""
        track = Track(TrackConfig(half_width=0.75))
        a = track.add_segment(position=(0, 0, 0), forward=(0, 0, 1))
        track.link(a, track.add_segment(position=(0, 0, 10), forward=(0, 0, 1)))

        for frame in sample_segment(track, a):
            assert np.allclose(frame.right_edge - frame.position, [0.75, 0.0, 0.0])
            assert np.allclose(frame.left_edge - frame.position, [-0.75, 0.0, 0.0])

    def test_supports_on_clear_ground(self):
        """Test every frame of the lower track is supported."""
        track, lower, _ = stacked_turns()
        frames = sample_segment(track, lower)
        assert frames
        assert all(f.supported for f in frames)
        assert all(f.ground == 0.0 for f in frames)

    def test_supports_blocked_by_track_below(self):
        """Test no frame of the upper track puts a column through the lower one."""
        track, _, upper = stacked_turns()
        frames = sample_segment(track, upper)
        assert frames
        assert not any(f.supported for f in frames)

    def test_steep_bank_unsupported(self):
        """Test track banked on its side gets no supports."""
        track = Track()
        a = track.add_segment(position=(0, 3, 0), forward=(0, 0, 1), up=(1, 0, 0))
        track.link(a, track.add_segment(position=(0, 3, 10), forward=(0, 0, 1), up=(1, 0, 0)))

        frames = sample_segment(track, a)
        assert frames
        assert not any(f.supported for f in frames)

    def test_ground_height_lookup(self):
        """Test the ground callback sets the support base."""
        track, lower, _ = stacked_turns()
        frames = sample_segment(track, lower, ground_height=lambda x, z: -3.0)
        assert all(f.ground == -3.0 for f in frames)
