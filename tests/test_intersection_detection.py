"""Tests for intersection_detection.py."""
from intersection_detection import detect_intersections, segment_shape_intersections, segment_segment_intersections
from network_types import SegmentPairContribution, SegmentShapeContribution


def test_crossing_segments_yield_one_candidate(make_segment, settings):
    a = make_segment(1, (0, 0), (100, 0))
    b = make_segment(2, (50, -50), (50, 50))
    found = segment_segment_intersections([a, b], settings)
    assert len(found) == 1
    assert found[0].kind == "segment-segment"
    assert found[0].contribution == SegmentPairContribution(1, 2)
    assert abs(found[0].point.x - 50) < 1e-9
    assert abs(found[0].point.y) < 1e-9


def test_parallel_and_disjoint_segments_yield_nothing(make_segment, settings):
    a = make_segment(1, (0, 0), (100, 0))
    b = make_segment(2, (0, 20), (100, 20))
    c = make_segment(3, (200, -10), (200, 10))
    assert segment_segment_intersections([a, b, c], settings) == []


def test_shared_endpoint_is_a_candidate(make_segment, settings):
    a = make_segment(1, (0, 0), (100, 100))
    b = make_segment(2, (100, 100), (100, 200))
    found = segment_segment_intersections([a, b], settings)
    assert len(found) == 1
    assert abs(found[0].point.x - 100) < 1e-9
    assert abs(found[0].point.y - 100) < 1e-9


def test_each_pair_reported_once(make_segment, settings):
    # three segments through one point: 3 pairs
    segs = [
        make_segment(1, (0, 0), (100, 100)),
        make_segment(2, (200, 0), (100, 100)),
        make_segment(3, (100, 100), (100, 200)),
    ]
    found = segment_segment_intersections(segs, settings)
    pairs = sorted(c.contribution.segment_ids() for c in found)
    assert pairs == [(1, 2), (1, 3), (2, 3)]


def test_segment_through_shape_hits_two_sides(make_segment, make_shape, settings):
    seg = make_segment(1, (-50, 0), (50, 0))
    shape = make_shape(7, (0, 0))
    found = segment_shape_intersections(seg, shape, settings)
    assert sorted(c.contribution.shape_side for c in found) == [1, 3]
    for candidate in found:
        assert candidate.kind == "segment-shape"
        assert candidate.contribution.segment == 1
        assert candidate.contribution.shape == 7
        assert abs(abs(candidate.point.x) - 20) < 1e-9


def test_segment_ending_on_shape_side(make_segment, make_shape, settings):
    seg = make_segment(1, (100, 100), (20, 0))
    shape = make_shape(7, (0, 0))
    found = segment_shape_intersections(seg, shape, settings)
    assert len(found) == 1
    assert found[0].contribution == SegmentShapeContribution(1, 7, 1)


def test_segment_missing_shape(make_segment, make_shape, settings):
    seg = make_segment(1, (100, 100), (200, 100))
    assert segment_shape_intersections(seg, make_shape(7, (0, 0)), settings) == []


def test_rotated_shape_is_hit_on_rotated_sides(make_segment, make_shape, settings):
    # a 100x10 bar turned upright blocks a horizontal segment at x = +-5
    seg = make_segment(1, (-50, 0), (50, 0))
    bar = make_shape(7, (0, 0), width=100, height=10, rotation=90)
    found = segment_shape_intersections(seg, bar, settings)
    assert len(found) == 2
    assert sorted(round(c.point.x, 6) for c in found) == [-5.0, 5.0]


def test_detect_intersections_does_not_mutate_inputs(make_segment, make_shape):
    segs = [make_segment(1, (0, 0), (100, 0)), make_segment(2, (50, -50), (50, 50))]
    shapes = [make_shape(7, (50, 0))]
    before = [s.copy() for s in segs], [s.copy() for s in shapes]
    found = detect_intersections(segs, shapes)
    assert segs == before[0]
    assert shapes == before[1]
    kinds = sorted(c.kind for c in found)
    assert kinds.count("segment-segment") == 1
    assert kinds.count("segment-shape") == 4


def test_detect_intersections_empty():
    assert detect_intersections([], []) == []
