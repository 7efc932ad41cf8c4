"""Tests for geometry_utils.py pure functions."""
import math

from geometry_utils import (
    point_on_segment,
    project_onto_segment,
    rotated_rectangle_sides,
    rotated_rectangle_vertices,
    segment_intersection,
)
from network_types import Point, Shape

P = Point


# --- segment_intersection ---

def test_segment_intersection_perpendicular():
    p = segment_intersection(P(0, 0), P(10, 0), P(5, -5), P(5, 5))
    assert p is not None
    assert abs(p.x - 5.0) < 1e-12
    assert abs(p.y - 0.0) < 1e-12


def test_segment_intersection_diagonal():
    p = segment_intersection(P(0, 0), P(10, 10), P(0, 10), P(10, 0))
    assert abs(p.x - 5.0) < 1e-12
    assert abs(p.y - 5.0) < 1e-12


def test_segment_intersection_parallel_is_none():
    assert segment_intersection(P(0, 0), P(10, 0), P(0, 1), P(10, 1)) is None


def test_segment_intersection_collinear_is_none():
    assert segment_intersection(P(0, 0), P(10, 0), P(5, 0), P(20, 0)) is None


def test_segment_intersection_nearly_parallel_below_threshold():
    assert segment_intersection(P(0, 0), P(10, 0), P(0, 1), P(1, 1.000001)) is None


def test_segment_intersection_outside_range_is_none():
    assert segment_intersection(P(0, 0), P(10, 0), P(20, -5), P(20, 5)) is None


def test_segment_intersection_touching_endpoints():
    p = segment_intersection(P(0, 0), P(10, 0), P(10, 0), P(10, 10))
    assert p is not None
    assert abs(p.x - 10.0) < 1e-12


def test_segment_intersection_tolerates_small_overshoot():
    # ua = 1.0005 is inside [-0.001, 1.001]
    p = segment_intersection(P(0, 0), P(10, 0), P(10.005, -5), P(10.005, 5))
    assert p is not None
    assert abs(p.x - 10.005) < 1e-9


def test_segment_intersection_rejects_larger_overshoot():
    assert segment_intersection(P(0, 0), P(10, 0), P(10.05, -5), P(10.05, 5)) is None


def test_segment_intersection_nan_is_none():
    assert segment_intersection(P(math.nan, 0), P(10, 0), P(5, -5), P(5, 5)) is None
    assert segment_intersection(P(0, 0), P(10, 0), P(5, -5), P(5, math.inf)) is None


# --- point_on_segment ---

def test_point_on_segment_within_tolerance():
    assert point_on_segment(P(5, 2), P(0, 0), P(10, 0), 3)


def test_point_on_segment_at_tolerance_is_false():
    assert not point_on_segment(P(5, 3), P(0, 0), P(10, 0), 3)


def test_point_on_segment_clamps_past_end():
    assert point_on_segment(P(12, 0), P(0, 0), P(10, 0), 3)
    assert not point_on_segment(P(14, 0), P(0, 0), P(10, 0), 3)


def test_point_on_segment_short_segment_is_false():
    assert not point_on_segment(P(0, 0), P(0, 0), P(0.5, 0), 3)


def test_point_on_segment_nan_is_false():
    assert not point_on_segment(P(math.nan, 0), P(0, 0), P(10, 0), 3)


def test_project_onto_segment():
    q, t = project_onto_segment(P(4, 7), P(0, 0), P(10, 0))
    assert abs(q.x - 4.0) < 1e-12 and abs(q.y) < 1e-12
    assert abs(t - 0.4) < 1e-12


# --- rotated rectangle ---

def _shape(rotation=0.0):
    return Shape(id=1, type="fan", center=P(0, 0), width=40, height=20, rotation=rotation)


def test_rotated_rectangle_vertices_unrotated():
    verts = rotated_rectangle_vertices(_shape())
    expected = [(-20, -10), (20, -10), (20, 10), (-20, 10)]
    for v, (ex, ey) in zip(verts, expected):
        assert abs(v.x - ex) < 1e-12
        assert abs(v.y - ey) < 1e-12


def test_rotated_rectangle_vertices_quarter_turn():
    verts = rotated_rectangle_vertices(_shape(90))
    expected = [(10, -20), (10, 20), (-10, 20), (-10, -20)]
    for v, (ex, ey) in zip(verts, expected):
        assert abs(v.x - ex) < 1e-9
        assert abs(v.y - ey) < 1e-9


def test_rotated_rectangle_sides_are_closed_and_indexed():
    sides = rotated_rectangle_sides(_shape(30))
    assert [s.index for s in sides] == [0, 1, 2, 3]
    for a, b in zip(sides, sides[1:] + sides[:1]):
        assert a.end == b.start


def test_rotated_rectangle_offset_center():
    shape = Shape(id=1, type="fan", center=P(100, 50), width=10, height=10)
    verts = rotated_rectangle_vertices(shape)
    assert verts[0] == P(95, 45)
    assert verts[2] == P(105, 55)
