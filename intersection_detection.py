from __future__ import annotations

import logging
import time
from typing import List, Optional, Sequence

from geometry_utils import point_on_segment, rotated_rectangle_sides, segment_intersection
from network_settings import NetworkSettings
from network_types import (
    Point,
    RawIntersection,
    Segment,
    SegmentPairContribution,
    SegmentShapeContribution,
    Shape,
)

logger = logging.getLogger(__name__)

# TODO: a uniform grid over segment bounding boxes would replace the O(N^2) pair scan
# if schematics ever grow past a few thousand ducts.


def _segment_pair_point(a: Segment, b: Segment, settings: NetworkSettings) -> Optional[Point]:
    point = segment_intersection(
        a.start, a.end, b.start, b.end,
        parallel_eps=settings.parallel_eps,
        param_eps=settings.param_eps,
    )
    if point is None:
        return None
    tol = settings.on_segment_tolerance
    min_len = settings.min_on_segment_length
    if not point_on_segment(point, a.start, a.end, tol, min_len):
        return None
    if not point_on_segment(point, b.start, b.end, tol, min_len):
        return None
    return point


def segment_segment_intersections(
    segments: Sequence[Segment],
    settings: NetworkSettings,
) -> List[RawIntersection]:
    found: List[RawIntersection] = []
    for i in range(len(segments)):
        for j in range(i + 1, len(segments)):
            a, b = segments[i], segments[j]
            point = _segment_pair_point(a, b, settings)
            if point is None:
                continue
            found.append(RawIntersection(point, SegmentPairContribution(a.id, b.id)))
    return found


def segment_shape_intersections(
    segment: Segment,
    shape: Shape,
    settings: NetworkSettings,
) -> List[RawIntersection]:
    """Every point where the segment crosses one of the shape's rotated sides."""
    found: List[RawIntersection] = []
    tol = settings.on_segment_tolerance
    min_len = settings.min_on_segment_length
    for side in rotated_rectangle_sides(shape):
        point = segment_intersection(
            segment.start, segment.end, side.start, side.end,
            parallel_eps=settings.parallel_eps,
            param_eps=settings.param_eps,
        )
        if point is None:
            continue
        if not point_on_segment(point, segment.start, segment.end, tol, min_len):
            continue
        if not point_on_segment(point, side.start, side.end, tol, min_len):
            continue
        found.append(RawIntersection(point, SegmentShapeContribution(segment.id, shape.id, side.index)))
    return found


def detect_intersections(
    segments: Sequence[Segment],
    shapes: Sequence[Shape],
    settings: NetworkSettings | None = None,
) -> List[RawIntersection]:
    """Enumerate raw segment x segment and segment x shape candidates. Never mutates its inputs."""
    settings = settings or NetworkSettings()
    start = time.perf_counter()

    candidates = segment_segment_intersections(segments, settings)
    num_pairs = len(candidates)
    for segment in segments:
        for shape in shapes:
            candidates.extend(segment_shape_intersections(segment, shape, settings))

    elapsed_ms = (time.perf_counter() - start) * 1000
    logger.info(
        f"[DETECT] {num_pairs} segment-segment and {len(candidates) - num_pairs} segment-shape "
        f"candidates from {len(segments)} segments and {len(shapes)} shapes in {elapsed_ms:.2f} ms"
    )
    return candidates
