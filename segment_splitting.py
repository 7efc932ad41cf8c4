from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Sequence, Tuple

from geometry_utils import project_onto_segment
from network_settings import MIN_SEGMENT_LENGTH
from network_types import IdAllocator, Junction, Point, Segment, SegmentId

logger = logging.getLogger(__name__)

SEGMENT_NAMESPACE = "segment"


@dataclass(frozen=True)
class SplitResult:
    segments: Tuple[Segment, ...]
    lineage: Dict[SegmentId, Tuple[SegmentId, ...]] = field(default_factory=dict)

    @property
    def num_split(self) -> int:
        return len(self.lineage)


def add_split_point(points: List[Point], point: Point, tolerance: float = MIN_SEGMENT_LENGTH) -> bool:
    """Append `point` unless one already lies within `tolerance` (inclusive)."""
    if any(existing.distance_to(point) <= tolerance for existing in points):
        return False
    points.append(point)
    return True


def split_points_from_junctions(
    segments: Sequence[Segment],
    junctions: Iterable[Junction],
    tolerance: float = MIN_SEGMENT_LENGTH,
) -> Dict[SegmentId, List[Point]]:
    """Junction positions projected onto every segment the junction names."""
    by_id = {s.id: s for s in segments}
    split_points: Dict[SegmentId, List[Point]] = {}
    for junction in junctions:
        for segment_id in junction.segment_ids():
            segment = by_id.get(segment_id)
            if segment is None:
                continue
            projected, _ = project_onto_segment(junction.position, segment.start, segment.end)
            add_split_point(split_points.setdefault(segment_id, []), projected, tolerance)
    return split_points


def split_segment(
    segment: Segment,
    points: Sequence[Point],
    allocator: IdAllocator,
    min_length: float = MIN_SEGMENT_LENGTH,
) -> List[Segment]:
    """
    Cut `segment` at `points`. Points no farther than `min_length` from either
    end, or from an earlier cut, are ignored, so every cut leaves pieces longer
    than `min_length`. With nothing left to cut at, the segment itself is returned.
    Pieces inherit style, metadata and tr but start with empty bookkeeping.
    """
    interior: List[Point] = []
    for point in points:
        if point.distance_to(segment.start) <= min_length or point.distance_to(segment.end) <= min_length:
            continue
        add_split_point(interior, point, min_length)

    if not interior:
        return [segment]

    ordered = [segment.start] + sorted(interior, key=segment.start.distance_to) + [segment.end]
    pieces: List[Segment] = []
    for a, b in zip(ordered[:-1], ordered[1:]):
        if a.distance_to(b) <= min_length:
            continue
        pieces.append(Segment(
            id=allocator.next(SEGMENT_NAMESPACE),
            start=a,
            end=b,
            width=segment.width,
            color=segment.color,
            metadata=dict(segment.metadata),
            tr=segment.tr,
        ))
    return pieces


def split_segments(
    segments: Sequence[Segment],
    split_points: Mapping[SegmentId, Sequence[Point]],
    allocator: IdAllocator,
    min_length: float = MIN_SEGMENT_LENGTH,
) -> SplitResult:
    start = time.perf_counter()
    result: List[Segment] = []
    lineage: Dict[SegmentId, Tuple[SegmentId, ...]] = {}

    for segment in segments:
        points = split_points.get(segment.id)
        if not points:
            result.append(segment)
            continue
        pieces = split_segment(segment, points, allocator, min_length)
        if len(pieces) == 1 and pieces[0] is segment:
            result.append(segment)
            continue
        lineage[segment.id] = tuple(p.id for p in pieces)
        result.extend(pieces)

    elapsed_ms = (time.perf_counter() - start) * 1000
    logger.info(
        f"[SPLIT] Split {len(lineage)} of {len(segments)} segments into "
        f"{sum(len(v) for v in lineage.values())} pieces in {elapsed_ms:.2f} ms"
    )
    return SplitResult(tuple(result), lineage)
