from __future__ import annotations

from typing import Optional, Sequence

import numpy as np
from scipy.spatial import KDTree
from shapely.geometry import LineString, Polygon
from shapely.geometry import Point as ShapelyPoint

from geometry_utils import rotated_rectangle_vertices
from network_settings import GRID_SIZE, PICK_TOLERANCE, SNAP_RADIUS
from network_types import Junction, Point, Segment, Shape


def shape_polygon(shape: Shape) -> Polygon:
    return Polygon([v.as_tuple() for v in rotated_rectangle_vertices(shape)])


def segment_line(segment: Segment) -> LineString:
    return LineString([segment.start.as_tuple(), segment.end.as_tuple()])


def find_shape_at(shapes: Sequence[Shape], point: Point) -> Optional[Shape]:
    """Topmost shape whose rotated outline covers `point`. Later shapes are on top."""
    probe = ShapelyPoint(point.x, point.y)
    for shape in reversed(shapes):
        if shape_polygon(shape).covers(probe):
            return shape
    return None


def find_segment_at(segments: Sequence[Segment], point: Point, tolerance: float = PICK_TOLERANCE) -> Optional[Segment]:
    probe = ShapelyPoint(point.x, point.y)
    for segment in segments:
        if segment_line(segment).distance(probe) < tolerance:
            return segment
    return None


def find_junction_at(junctions: Sequence[Junction], point: Point, tolerance: float = PICK_TOLERANCE) -> Optional[Junction]:
    for junction in junctions:
        if junction.position.distance_to(point) < tolerance:
            return junction
    return None


def snap_to_grid(point: Point, grid_size: float = GRID_SIZE) -> Point:
    snapped = np.round(point.as_array() / grid_size) * grid_size
    return Point(float(snapped[0]), float(snapped[1]))


def closest_anchor(
    point: Point,
    segments: Sequence[Segment],
    shapes: Sequence[Shape],
    radius: float = SNAP_RADIUS,
) -> Optional[Point]:
    """Nearest segment endpoint or shape center strictly within `radius`."""
    anchors = [p for s in segments for p in (s.start, s.end)] + [s.center for s in shapes]
    if not anchors:
        return None
    tree = KDTree(np.array([a.as_tuple() for a in anchors], dtype=float))
    dist, index = tree.query(point.as_array(), k=1, distance_upper_bound=radius)
    if not np.isfinite(dist) or dist >= radius:
        return None
    return anchors[int(index)]


def snap_position(
    point: Point,
    segments: Sequence[Segment] = (),
    shapes: Sequence[Shape] = (),
    grid_size: float = GRID_SIZE,
    snap_grid: bool = True,
    snap_points: bool = True,
    radius: float = SNAP_RADIUS,
) -> Point:
    """Round to the grid, then prefer an existing endpoint or shape center close to the raw point."""
    snapped = snap_to_grid(point, grid_size) if snap_grid else point
    if snap_points:
        anchor = closest_anchor(point, segments, shapes, radius)
        if anchor is not None:
            snapped = anchor
    return snapped
