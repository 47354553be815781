import math

import pytest

from core.adaptive_params import compute_adaptive_params
from core.config import HorizonConfig
from core.horizon import HorizonEstimator
from core.segments import LineSegment

W, H = 640, 480


def horizon_segments(y=240.0):
    """Three collinear level segments spanning most of the frame width."""
    return [
        LineSegment(20, y, 200, y),
        LineSegment(220, y, 400, y),
        LineSegment(420, y, 620, y),
    ]


def test_collinear_level_segments_give_confident_centre_horizon():
    analysis = HorizonEstimator().estimate(horizon_segments(), W, H)
    hz = analysis.horizon
    assert analysis.has_horizon
    assert hz.y == pytest.approx(H / 2)
    assert hz.angle == pytest.approx(0.0)
    assert hz.confidence > 0.5
    assert hz.segment_count == 3
    assert hz.total_length == pytest.approx(560.0)
    assert hz.offset == pytest.approx(-240.0)


def test_empty_segment_list_is_explicit_empty_result():
    estimator = HorizonEstimator()
    analysis = estimator.estimate([], W, H)
    assert analysis.horizon is None
    assert not analysis.has_horizon
    assert analysis.walls == ()
    assert estimator.smoother.size("y") == 0
    assert estimator.smoother.size("angle") == 0


def test_steep_segment_is_wall_only():
    rad = math.radians(80)
    seg = LineSegment(300, 100, 300 + 200 * math.cos(rad), 100 + 200 * math.sin(rad))
    analysis = HorizonEstimator().estimate([seg], W, H)
    assert analysis.horizon is None
    assert analysis.walls == (seg,)


def test_many_short_segments_beat_one_long_segment():
    short = [LineSegment(x, 100, x + 50, 100) for x in (0, 60, 120, 180)]
    long = [LineSegment(100, 400, 300, 400)]
    hz = HorizonEstimator().estimate(long + short, W, H).horizon
    assert hz.segment_count == 4
    assert hz.y == pytest.approx(100.0)


def test_no_horizon_frame_leaves_buffers_untouched():
    estimator = HorizonEstimator()
    estimator.estimate(horizon_segments(240), W, H)
    estimator.estimate([], W, H)
    assert estimator.smoother.history("y") == [pytest.approx(240.0)]


def test_min_cluster_segments_can_reject_everything():
    estimator = HorizonEstimator(HorizonConfig(min_cluster_segments=2))
    analysis = estimator.estimate([LineSegment(0, 200, 300, 200)], W, H)
    assert analysis.horizon is None
    assert analysis.candidate_count == 1
    assert estimator.smoother.size("y") == 0


def test_raw_values_repeat_after_reset():
    segments = horizon_segments(210) + [LineSegment(50, 300, 250, 330)]
    estimator = HorizonEstimator()
    first = estimator.estimate(segments, W, H).horizon
    estimator.reset()
    second = estimator.estimate(segments, W, H).horizon
    assert (first.raw_angle, first.offset, first.raw_y) == (second.raw_angle, second.offset, second.raw_y)


def test_single_frame_spike_is_smoothed_out():
    estimator = HorizonEstimator()
    for _ in range(3):
        estimator.estimate(horizon_segments(240), W, H)
    spike = estimator.estimate(horizon_segments(300), W, H).horizon
    assert spike.raw_y == pytest.approx(300.0)
    assert spike.y == pytest.approx(240.0)


def test_smoothed_y_follows_persistent_change():
    estimator = HorizonEstimator(HorizonConfig(smooth_frames=3))
    estimator.estimate(horizon_segments(240), W, H)
    for _ in range(3):
        hz = estimator.estimate(horizon_segments(200), W, H).horizon
    assert hz.y == pytest.approx(200.0)


def test_tilted_horizon_reports_angle_and_centre_y():
    angle = 6.0
    t = math.tan(math.radians(angle))
    # line through (320, 250) with the given tilt
    segs = [LineSegment(x, 250 + (x - 320) * t, x + 150, 250 + (x + 150 - 320) * t) for x in (20, 200, 420)]
    hz = HorizonEstimator().estimate(segs, W, H).horizon
    assert hz.angle == pytest.approx(angle)
    assert hz.y == pytest.approx(250.0)


def test_malformed_segments_do_not_fail_frame():
    segments = horizon_segments() + [LineSegment(5, 5, 5, 5), LineSegment(float("nan"), 0, 1, 1)]
    analysis = HorizonEstimator().estimate(segments, W, H)
    assert analysis.rejected == 2
    assert analysis.horizon.segment_count == 3


@pytest.mark.parametrize("dy", [-300, -120, -10, 0, 40, 150, 320])
def test_output_ranges(dy):
    segs = [LineSegment(0, 240, 300, 240 + dy), LineSegment(350, 100, 600, 100 + dy // 2)]
    hz = HorizonEstimator(HorizonConfig(max_horizon_angle=90, wall_angle_tolerance=0)).estimate(segs, W, H).horizon
    assert hz is not None
    assert -90.0 <= hz.angle <= 90.0
    assert 0.0 <= hz.confidence <= 1.0


def test_precomputed_params_are_used_as_given():
    params = compute_adaptive_params(W, H, HorizonConfig(cluster_angle_tolerance=2.0))
    analysis = HorizonEstimator().estimate(horizon_segments(), W, H, params)
    assert analysis.params is params
    assert analysis.horizon.segment_count == 3
