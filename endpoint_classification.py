from __future__ import annotations

import logging
import time
from dataclasses import replace
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from network_settings import (
    ENDPOINT_TOLERANCE,
    PASSABILITY_END,
    PASSABILITY_MIDDLE,
    PASSABILITY_START,
)
from network_types import (
    Contribution,
    EndpointKind,
    Junction,
    JunctionId,
    Segment,
    SegmentId,
    SegmentPairContribution,
    SegmentShapeContribution,
)

logger = logging.getLogger(__name__)

PASSABILITY_BY_KIND = {
    EndpointKind.START: PASSABILITY_START,
    EndpointKind.END: PASSABILITY_END,
    EndpointKind.MIDDLE: PASSABILITY_MIDDLE,
}


def endpoint_kind(segment: Segment, junction: Junction, tolerance: float = ENDPOINT_TOLERANCE) -> EndpointKind:
    """Pure classification of how `segment` touches `junction`."""
    dist_to_start = segment.start.distance_to(junction.position)
    dist_to_end = segment.end.distance_to(junction.position)
    near_start = dist_to_start < tolerance
    near_end = dist_to_end < tolerance

    if near_start and near_end:
        return EndpointKind.START if dist_to_start < dist_to_end else EndpointKind.END
    if near_start:
        return EndpointKind.START
    if near_end:
        return EndpointKind.END
    return EndpointKind.MIDDLE


def record_endpoint(segment: Segment, junction_id: JunctionId, kind: EndpointKind) -> None:
    if kind is EndpointKind.START and junction_id not in segment.track:
        segment.track.append(junction_id)
    elif kind is EndpointKind.END and junction_id not in segment.endtrack:
        segment.endtrack.append(junction_id)
    segment.passability[junction_id] = PASSABILITY_BY_KIND[kind]


def classify_endpoint(segment: Segment, junction: Junction, tolerance: float = ENDPOINT_TOLERANCE) -> EndpointKind:
    """Classify and update the segment's track/endtrack/passability bookkeeping."""
    kind = endpoint_kind(segment, junction, tolerance)
    record_endpoint(segment, junction.id, kind)
    return kind


def _annotate(
    contribution: Contribution,
    kinds: Mapping[SegmentId, EndpointKind],
) -> Contribution:
    if isinstance(contribution, SegmentPairContribution):
        return replace(
            contribution,
            endpoint_a=kinds.get(contribution.segment_a),
            endpoint_b=kinds.get(contribution.segment_b),
        )
    if isinstance(contribution, SegmentShapeContribution):
        return replace(contribution, endpoint=kinds.get(contribution.segment))
    raise TypeError(f"Unknown contribution type: {type(contribution).__name__}")


def classify_junctions(
    segments: Sequence[Segment],
    junctions: Sequence[Junction],
    tolerance: float = ENDPOINT_TOLERANCE,
) -> List[Junction]:
    """
    Reset every segment's bookkeeping, classify each (segment, junction) pair
    once and return junction copies whose contributions carry the endpoint
    labels. Segments missing from `segments` are left unlabelled.
    """
    start = time.perf_counter()
    by_id: Dict[SegmentId, Segment] = {s.id: s for s in segments}
    for segment in segments:
        segment.clear_bookkeeping()

    counts = {kind: 0 for kind in EndpointKind}
    stale = 0
    annotated: List[Junction] = []
    for junction in junctions:
        kinds: Dict[SegmentId, EndpointKind] = {}
        for segment_id in junction.segment_ids():
            segment: Optional[Segment] = by_id.get(segment_id)
            if segment is None:
                stale += 1
                continue
            kind = classify_endpoint(segment, junction, tolerance)
            kinds[segment_id] = kind
            counts[kind] += 1

        copy = junction.copy()
        copy.contributions = [_annotate(c, kinds) for c in junction.contributions]
        annotated.append(copy)

    elapsed_ms = (time.perf_counter() - start) * 1000
    logger.info(
        f"[CLASSIFY] {counts[EndpointKind.START]} start, {counts[EndpointKind.END]} end, "
        f"{counts[EndpointKind.MIDDLE]} middle touches over {len(junctions)} junctions in {elapsed_ms:.2f} ms"
    )
    if stale:
        logger.debug(f"[CLASSIFY] Skipped {stale} references to missing segments")
    return annotated


def junction_touches(junction: Junction) -> Tuple[Tuple[SegmentId, EndpointKind], ...]:
    """Labelled (segment, kind) pairs of a classified junction, first occurrence per segment."""
    seen: Dict[SegmentId, EndpointKind] = {}
    for contribution in junction.contributions:
        for segment_id, kind in contribution.touches():
            if kind is not None and segment_id not in seen:
                seen[segment_id] = kind
    return tuple(seen.items())
