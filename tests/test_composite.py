"""Tests for the Bezier-refined biarc."""

import math

import pytest
import numpy as np

from coaster.curves import Anchor, BiarcBezierComposite, CubicBezier, Keypoint


def quarter_turn() -> BiarcBezierComposite:
    return BiarcBezierComposite.from_keypoints(
        Keypoint((0, 0, 0), (0, 0, 1)),
        Keypoint((5, 0, 5), (1, 0, 0)),
    )


def climbing_turn() -> BiarcBezierComposite:
    return BiarcBezierComposite.from_keypoints(
        Keypoint((0, 0, 0), (0, 0, 1), (0, 1, 0)),
        Keypoint((6, 3, 8), (1, 0, 0), (0, 0.8, 0.6)),
    )


class TestCubicBezier:
    """Test the Bezier span fit."""

    def test_endpoints_and_handles(self):
        """Test the span interpolates its ends along the given tangents."""
        p0 = np.array([0.0, 0.0, 0.0])
        p3 = np.array([4.0, 0.0, 4.0])
        d0 = np.array([0.0, 0.0, 1.0])
        d3 = np.array([1.0, 0.0, 0.0])
        span = CubicBezier.from_keypoints(p0, d0, p3, d3)

        assert np.allclose(span.position(0.0), p0)
        assert np.allclose(span.position(1.0), p3)

        lead = span.p1 - span.p0
        trail = span.p3 - span.p2
        assert np.allclose(lead / np.linalg.norm(lead), d0)
        assert np.allclose(trail / np.linalg.norm(trail), d3)
        assert np.linalg.norm(lead) == pytest.approx(np.linalg.norm(trail))

    def test_straight_fallback(self):
        """Test opposite-sum tangents use the linear handle length."""
        # |d0 + d3|^2 == 1 makes the quadratic term vanish
        d0 = np.array([math.sin(math.pi / 3.0), 0.0, math.cos(math.pi / 3.0)])
        d3 = np.array([-math.sin(math.pi / 3.0), 0.0, math.cos(math.pi / 3.0)])
        span = CubicBezier.from_keypoints(np.zeros(3), d0, np.array([0.0, 0.0, 2.0]), d3)

        # a = 0, b = 2 * (0, 0, 2).(0, 0, 1) = 4, c = 4
        assert np.linalg.norm(span.p1 - span.p0) == pytest.approx(1.0)

    def test_derivative_matches_positions(self):
        """Test the analytic derivative against a finite difference."""
        span = CubicBezier(
            np.zeros(3),
            np.array([0.0, 0.0, 1.0]),
            np.array([1.0, 1.0, 2.0]),
            np.array([2.0, 0.0, 2.0]),
        )
        h = 1e-6
        for t in (0.2, 0.5, 0.8):
            numeric = (span.position(t + h) - span.position(t - h)) / (2.0 * h)
            assert np.allclose(span.derivative(t), numeric, atol=1e-5)


class TestBiarcBezierComposite:
    """Test the composite curve."""

    @pytest.mark.parametrize("factory", [quarter_turn, climbing_turn])
    def test_endpoints(self, factory):
        """Test the curve starts and ends on its keypoints."""
        curve = factory()
        assert np.allclose(curve.get_position(0.0), curve.start.position, atol=1e-3)
        assert np.allclose(curve.get_position(1.0), curve.end.position, atol=1e-3)

    def test_length_matches_biarc(self):
        """Test length and split come from the inner biarc."""
        curve = climbing_turn()
        assert curve.length == pytest.approx(curve.biarc.length)
        assert curve.split_t == pytest.approx(curve.biarc.split_t)

    def test_joint_shared(self):
        """Test both spans meet at the biarc joint with matching handles."""
        curve = climbing_turn()
        first, second = curve.beziers
        joint = curve.biarc.get_position(curve.split_t)

        assert np.allclose(first.p3, joint)
        assert np.allclose(second.p0, joint)

        trail = first.p3 - first.p2
        lead = second.p1 - second.p0
        assert np.allclose(trail / np.linalg.norm(trail), lead / np.linalg.norm(lead))

    def test_close_to_circle(self):
        """Test the spans stay close to the circle a quarter turn lies on."""
        curve = quarter_turn()
        for t in np.linspace(0.0, 1.0, 21):
            dist = np.linalg.norm(curve.get_position(t) - np.array([5.0, 0.0, 0.0]))
            assert dist == pytest.approx(5.0, abs=0.05)

    def test_rotation_follows_shape(self):
        """Test forward follows the spans and up stays level on a flat turn."""
        curve = quarter_turn()
        for t in (0.2, 0.5, 0.8):
            step = curve.ROTATION_STEP
            direction = curve.get_position(t + step) - curve.get_position(t - step)
            direction /= np.linalg.norm(direction)

            assert np.allclose(curve.get_forward(t), direction, atol=1e-9)
            assert np.allclose(curve.get_up(t), [0.0, 1.0, 0.0], atol=1e-9)

    def test_delegated_queries(self):
        """Test sampling and point queries match the inner biarc."""
        curve = climbing_turn()
        inner = curve.biarc

        assert np.array_equal(curve.get_deltas(0.1, 0.25, 2.0), inner.get_deltas(0.1, 0.25, 2.0))

        pos = inner.get_position(0.3) + np.array([0.0, 0.2, 0.0])
        assert curve.is_within_range(pos, 0.5) == inner.is_within_range(pos, 0.5)

    def test_chained_line_range(self):
        """Test line queries run against the inner biarc once chained."""
        start = Anchor.from_vectors((0, 0, 0), (0, 0, 1))
        end = Anchor.from_vectors((5, 0, 5), (1, 0, 0))
        curve = BiarcBezierComposite(start)

        s = 5.0 * math.sqrt(0.5)
        line = ((5.0 - s, 5.0, s), (5.0 - s, -5.0, s))
        assert not curve.is_approx_within_line_range(*line, 0.5).hit

        curve.next = BiarcBezierComposite(end)
        hit = curve.is_approx_within_line_range(*line, 0.5)
        assert hit.hit
        assert hit.t_curve == pytest.approx(0.5, abs=1e-3)

    def test_overlap_against_biarc_arcs(self):
        """Test overlap compares the inner arcs on both sides."""
        curve = quarter_turn()
        other = BiarcBezierComposite.from_keypoints(
            Keypoint((12, 10, 0), (0, 0, 1)),
            Keypoint((17, 10, 5), (1, 0, 0)),
        )
        assert curve.is_approx_overlapping(other, 3.0)
        assert other.is_approx_overlapping(curve, 3.0)
        assert not curve.is_approx_overlapping(other, 1.0)

    def test_anchor_move_refits(self):
        """Test moving an anchor and invalidating refits both spans."""
        start = Anchor.from_vectors((0, 0, 0), (0, 0, 1))
        end = Anchor.from_vectors((5, 0, 5), (1, 0, 0))
        curve = BiarcBezierComposite(start, end)
        before = curve.length

        end.move_to((10, 0, 10))
        curve.invalidate()

        assert curve.length == pytest.approx(2.0 * before)
        assert np.allclose(curve.get_position(1.0), [10.0, 0.0, 10.0], atol=1e-3)
