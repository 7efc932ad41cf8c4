from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

import numpy as np

from network_settings import MIN_ON_SEGMENT_LENGTH, PARALLEL_EPS, PARAM_EPS
from network_types import Point, Shape


@dataclass(frozen=True)
class Side:
    """One edge of a rotated rectangle. `index` runs 0-3 from the top-left corner."""
    start: Point
    end: Point
    index: int


def _all_finite(points: Iterable[Point]) -> bool:
    return all(p.is_finite() for p in points)


def distance(a: Point, b: Point) -> float:
    return a.distance_to(b)


def segment_intersection(
    p1: Point,
    p2: Point,
    p3: Point,
    p4: Point,
    parallel_eps: float = PARALLEL_EPS,
    param_eps: float = PARAM_EPS,
) -> Optional[Point]:
    """
    Intersect segment p1-p2 with segment p3-p4.

    Returns None for near-parallel pairs (|det| < parallel_eps) or when either
    parameter falls outside [-param_eps, 1 + param_eps].
    """
    if not _all_finite((p1, p2, p3, p4)):
        return None

    d1x, d1y = p2.x - p1.x, p2.y - p1.y
    d2x, d2y = p4.x - p3.x, p4.y - p3.y
    det = d2y * d1x - d2x * d1y
    if abs(det) < parallel_eps:
        return None

    ox, oy = p1.x - p3.x, p1.y - p3.y
    ua = (d2x * oy - d2y * ox) / det
    ub = (d1x * oy - d1y * ox) / det

    lo, hi = -param_eps, 1.0 + param_eps
    if not (lo <= ua <= hi and lo <= ub <= hi):
        return None

    return Point(p1.x + ua * d1x, p1.y + ua * d1y)


def project_onto_segment(point: Point, seg_start: Point, seg_end: Point) -> Tuple[Point, float]:
    """Clamped projection of `point` onto the segment, with its parameter in [0, 1]."""
    cx, cy = seg_end.x - seg_start.x, seg_end.y - seg_start.y
    len_sq = cx * cx + cy * cy
    if len_sq == 0.0:
        return seg_start, 0.0
    t = ((point.x - seg_start.x) * cx + (point.y - seg_start.y) * cy) / len_sq
    t = float(np.clip(t, 0.0, 1.0))
    return Point(seg_start.x + t * cx, seg_start.y + t * cy), t


def point_on_segment(
    point: Point,
    seg_start: Point,
    seg_end: Point,
    tolerance: float,
    min_length: float = MIN_ON_SEGMENT_LENGTH,
) -> bool:
    if not _all_finite((point, seg_start, seg_end)):
        return False
    if seg_start.distance_to(seg_end) < min_length:
        return False
    projection, _ = project_onto_segment(point, seg_start, seg_end)
    return point.distance_to(projection) < tolerance


def rotated_rectangle_vertices(shape: Shape) -> Tuple[Point, ...]:
    """Corners of the shape rotated by `shape.rotation` degrees about its center."""
    half_w = 0.5 * shape.width
    half_h = 0.5 * shape.height
    corners = np.array(
        [[-half_w, -half_h], [half_w, -half_h], [half_w, half_h], [-half_w, half_h]],
        dtype=float,
    )
    angle = np.deg2rad(shape.rotation)
    c, s = np.cos(angle), np.sin(angle)
    rotation = np.array([[c, -s], [s, c]])
    rotated = corners @ rotation.T + shape.center.as_array()
    return tuple(Point(float(x), float(y)) for x, y in rotated)


def rotated_rectangle_sides(shape: Shape) -> Tuple[Side, ...]:
    vertices = rotated_rectangle_vertices(shape)
    return tuple(
        Side(vertices[i], vertices[(i + 1) % len(vertices)], i)
        for i in range(len(vertices))
    )
