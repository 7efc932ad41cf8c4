"""
Resistance propagation over classified junctions.

Resistance (`tr`) flows from segments that arrive at a junction by their end
to segments that leave it by their start. Every pass re-reads the current
values at each junction, picks one pattern and applies it. The loop stops on
the first pass with no change or at the pass ceiling, whichever comes first.
"""
from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence, Tuple, Union

import networkx as nx

from endpoint_classification import junction_touches
from network_settings import DEFAULT_TR, MAX_PROPAGATION_PASSES, TR_CHANGE_EPS
from network_types import (
    EndpointKind,
    Junction,
    JunctionId,
    Segment,
    SegmentId,
    SegmentShapeContribution,
    Shape,
    ShapeId,
)

logger = logging.getLogger(__name__)


# -----------------------------
# Junction patterns
# -----------------------------

@dataclass(frozen=True)
class Override:
    """A shape with an airValue sits on the junction; it sets every departing segment."""
    value: float
    shape: ShapeId
    starts: Tuple[SegmentId, ...]


@dataclass(frozen=True)
class OneToOne:
    end: SegmentId
    start: SegmentId


@dataclass(frozen=True)
class FanOut:
    end: SegmentId
    starts: Tuple[SegmentId, ...]


@dataclass(frozen=True)
class FanIn:
    ends: Tuple[SegmentId, ...]
    starts: Tuple[SegmentId, ...]


@dataclass(frozen=True)
class NoRule:
    pass


JunctionPattern = Union[Override, OneToOne, FanOut, FanIn, NoRule]


@dataclass(frozen=True)
class JunctionGroups:
    starts: Tuple[SegmentId, ...]
    ends: Tuple[SegmentId, ...]
    middles: Tuple[SegmentId, ...]


@dataclass(frozen=True)
class PropagationResult:
    passes: int
    converged: bool
    changed_segments: frozenset = frozenset()


def group_junction(junction: Junction, segments: Mapping[SegmentId, Segment]) -> JunctionGroups:
    """Partition the junction's live segments by endpoint kind."""
    groups: Dict[EndpointKind, List[SegmentId]] = {kind: [] for kind in EndpointKind}
    for segment_id, kind in junction_touches(junction):
        if segment_id not in segments:
            continue
        groups[kind].append(segment_id)
    return JunctionGroups(
        starts=tuple(groups[EndpointKind.START]),
        ends=tuple(groups[EndpointKind.END]),
        middles=tuple(groups[EndpointKind.MIDDLE]),
    )


def junction_air_value(junction: Junction, shapes: Mapping[ShapeId, Shape]) -> Optional[Tuple[ShapeId, float]]:
    """The last shape on the junction that carries an airValue, if any."""
    found: Optional[Tuple[ShapeId, float]] = None
    for contribution in junction.contributions:
        if not isinstance(contribution, SegmentShapeContribution):
            continue
        shape = shapes.get(contribution.shape)
        if shape is None or shape.air_value is None:
            continue
        found = (shape.id, float(shape.air_value))
    return found


def junction_pattern(
    junction: Junction,
    segments: Mapping[SegmentId, Segment],
    shapes: Mapping[ShapeId, Shape],
) -> JunctionPattern:
    groups = group_junction(junction, segments)

    air = junction_air_value(junction, shapes)
    if air is not None:
        shape_id, value = air
        return Override(value=value, shape=shape_id, starts=groups.starts)

    n_end, n_start = len(groups.ends), len(groups.starts)
    if n_end == 1 and n_start == 1:
        return OneToOne(end=groups.ends[0], start=groups.starts[0])
    if n_end == 1 and n_start > 1:
        return FanOut(end=groups.ends[0], starts=groups.starts)
    if n_end >= 2 and n_start >= 1:
        return FanIn(ends=groups.ends, starts=groups.starts)
    return NoRule()


def _targets(pattern: JunctionPattern, segments: Mapping[SegmentId, Segment]) -> Tuple[Tuple[SegmentId, ...], float]:
    if isinstance(pattern, Override):
        return pattern.starts, pattern.value
    if isinstance(pattern, OneToOne):
        return (pattern.start,), segments[pattern.end].tr
    if isinstance(pattern, FanOut):
        return pattern.starts, segments[pattern.end].tr / len(pattern.starts)
    if isinstance(pattern, FanIn):
        total = math.fsum(segments[s].tr for s in pattern.ends)
        return pattern.starts, total / len(pattern.starts)
    return (), 0.0


def apply_pattern(
    pattern: JunctionPattern,
    segments: Mapping[SegmentId, Segment],
    change_eps: float = TR_CHANGE_EPS,
) -> List[SegmentId]:
    """Write the pattern's value into its target segments; return the ids that changed."""
    targets, value = _targets(pattern, segments)
    changed: List[SegmentId] = []
    for segment_id in targets:
        segment = segments[segment_id]
        if abs(segment.tr - value) > change_eps:
            logger.debug(f"[PROPAGATE] {type(pattern).__name__}: segment {segment_id} tr {segment.tr} -> {value}")
            segment.tr = value
            changed.append(segment_id)
    return changed


def ensure_default_tr(segments: Sequence[Segment], default: float = DEFAULT_TR) -> int:
    """Give a default tr to any segment without a usable one; return how many were set."""
    count = 0
    for segment in segments:
        if segment.tr is None or not math.isfinite(segment.tr):
            segment.tr = float(default)
            count += 1
    return count


def propagate_resistance(
    segments: Sequence[Segment],
    junctions: Sequence[Junction],
    shapes: Sequence[Shape] = (),
    max_passes: int = MAX_PROPAGATION_PASSES,
    default_tr: float = DEFAULT_TR,
    change_eps: float = TR_CHANGE_EPS,
) -> PropagationResult:
    """Relax `tr` over the junctions in place, bounded by `max_passes`."""
    start = time.perf_counter()
    ensure_default_tr(segments, default_tr)
    by_id = {s.id: s for s in segments}
    shapes_by_id = {s.id: s for s in shapes}

    passes = 0
    converged = False
    touched: set[SegmentId] = set()
    while passes < max_passes:
        passes += 1
        changed_this_pass = 0
        for junction in junctions:
            pattern = junction_pattern(junction, by_id, shapes_by_id)
            changed = apply_pattern(pattern, by_id, change_eps)
            changed_this_pass += len(changed)
            touched.update(changed)
        if changed_this_pass == 0:
            converged = True
            break

    elapsed_ms = (time.perf_counter() - start) * 1000
    if converged:
        logger.info(f"[PROPAGATE] tr stabilised after {passes} passes over {len(junctions)} junctions in {elapsed_ms:.2f} ms")
    else:
        cycles = flow_cycles(build_flow_graph(segments, junctions))
        logger.warning(
            f"[PROPAGATE] tr still changing after {passes} passes; keeping last values "
            f"({len(cycles)} flow cycles, e.g. {cycles[:1]})"
        )
    return PropagationResult(passes=passes, converged=converged, changed_segments=frozenset(touched))


# -----------------------------
# Flow graph
# -----------------------------

def build_flow_graph(segments: Sequence[Segment], junctions: Sequence[Junction]) -> nx.DiGraph:
    """Directed segment graph: u -> v when u ends and v starts at the same junction."""
    graph = nx.DiGraph()
    by_id = {s.id: s for s in segments}
    graph.add_nodes_from(by_id)
    for junction in junctions:
        groups = group_junction(junction, by_id)
        for u in groups.ends:
            for v in groups.starts:
                if u == v:
                    continue
                if graph.has_edge(u, v):
                    graph.edges[u, v]["junctions"].append(junction.id)
                else:
                    graph.add_edge(u, v, junctions=[junction.id])
    return graph


def flow_cycles(graph: nx.DiGraph) -> List[List[SegmentId]]:
    return sorted((sorted(c) for c in nx.simple_cycles(graph)), key=lambda c: (len(c), c))


def upstream_segments(graph: nx.DiGraph, segment_id: SegmentId) -> frozenset:
    """Every segment whose resistance can reach `segment_id`."""
    if segment_id not in graph:
        return frozenset()
    return frozenset(nx.ancestors(graph, segment_id))


def junction_ids_by_pattern(
    segments: Sequence[Segment],
    junctions: Sequence[Junction],
    shapes: Sequence[Shape] = (),
) -> Dict[str, List[JunctionId]]:
    """Pattern name -> junction ids, for debug display."""
    by_id = {s.id: s for s in segments}
    shapes_by_id = {s.id: s for s in shapes}
    out: Dict[str, List[JunctionId]] = {}
    for junction in junctions:
        name = type(junction_pattern(junction, by_id, shapes_by_id)).__name__
        out.setdefault(name, []).append(junction.id)
    return out
