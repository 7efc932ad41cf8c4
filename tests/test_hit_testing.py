"""Tests for hit_testing.py picking and snapping."""
from hit_testing import (
    closest_anchor,
    find_junction_at,
    find_segment_at,
    find_shape_at,
    snap_position,
    snap_to_grid,
)
from network_types import Junction, Point


def test_find_shape_at_respects_rotation(make_shape):
    bar = make_shape(1, (0, 0), width=100, height=10, rotation=90)
    assert find_shape_at([bar], Point(0, 40)) is bar
    assert find_shape_at([bar], Point(40, 0)) is None


def test_find_shape_at_includes_outline(make_shape):
    box = make_shape(1, (0, 0))
    assert find_shape_at([box], Point(20, 0)) is box


def test_find_shape_at_returns_topmost(make_shape):
    lower = make_shape(1, (0, 0))
    upper = make_shape(2, (10, 10))
    assert find_shape_at([lower, upper], Point(5, 5)) is upper
    assert find_shape_at([lower, upper], Point(-15, -15)) is lower


def test_find_segment_at(make_segment):
    seg = make_segment(1, (0, 0), (100, 0))
    assert find_segment_at([seg], Point(50, 9)) is seg
    assert find_segment_at([seg], Point(50, 10)) is None
    assert find_segment_at([seg], Point(105, 0)) is seg
    assert find_segment_at([seg], Point(50, 4), tolerance=3) is None


def test_find_junction_at():
    junction = Junction(3, Point(10, 10))
    assert find_junction_at([junction], Point(12, 12)) is junction
    assert find_junction_at([junction], Point(30, 10)) is None


def test_snap_to_grid():
    assert snap_to_grid(Point(29, -11)) == Point(20, -20)
    assert snap_to_grid(Point(31, 49), grid_size=10) == Point(30, 50)


def test_closest_anchor(make_segment, make_shape):
    segs = [make_segment(1, (0, 0), (100, 0))]
    shapes = [make_shape(1, (200, 200))]
    assert closest_anchor(Point(95, 5), segs, shapes) == Point(100, 0)
    assert closest_anchor(Point(210, 195), segs, shapes) == Point(200, 200)
    assert closest_anchor(Point(50, 0), segs, shapes) is None
    assert closest_anchor(Point(15, 0), segs, shapes) is None
    assert closest_anchor(Point(0, 0), [], []) is None


def test_snap_position_prefers_anchor_over_grid(make_segment):
    segs = [make_segment(1, (33, 33), (133, 33))]
    assert snap_position(Point(27, 28), segs) == Point(33, 33)
    assert snap_position(Point(27, 28), segs, snap_points=False) == Point(20, 20)
    assert snap_position(Point(27, 28), snap_grid=False) == Point(27, 28)
