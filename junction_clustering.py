from __future__ import annotations

import logging
import time
from typing import List, Sequence

from network_settings import MERGE_TOLERANCE
from network_types import IdAllocator, Junction, RawIntersection

logger = logging.getLogger(__name__)

JUNCTION_NAMESPACE = "junction"


def sweep_cluster(candidates: Sequence[RawIntersection], tolerance: float = MERGE_TOLERANCE) -> List[Junction]:
    """
    Greedy x-sorted sweep. Each unused candidate seeds a junction which absorbs
    every later unused candidate within `tolerance` of its running centroid.
    Returned junctions carry placeholder id 0.
    """
    ordered = sorted(candidates, key=lambda c: (c.point.x, c.point.y))
    used = [False] * len(ordered)
    junctions: List[Junction] = []

    for i, seed in enumerate(ordered):
        if used[i]:
            continue
        used[i] = True
        junction = Junction(0, seed.point, [seed.contribution])

        for j in range(i + 1, len(ordered)):
            other = ordered[j]
            if abs(other.point.x - seed.point.x) > tolerance:
                break
            if used[j]:
                continue
            if junction.position.distance_to(other.point) < tolerance:
                junction.absorb(other.point, [other.contribution])
                used[j] = True

        junctions.append(junction)

    return junctions


def dedupe_junctions(junctions: Sequence[Junction], tolerance: float = MERGE_TOLERANCE) -> List[Junction]:
    """Merge junctions still within `tolerance` of each other until none are. Safe to re-run."""
    merged = [j.copy() for j in junctions]
    changed = True
    while changed:
        changed = False
        survivors: List[Junction] = []
        for junction in merged:
            for kept in survivors:
                if kept.position.distance_to(junction.position) < tolerance:
                    kept.absorb(junction.position, junction.contributions, junction.weight)
                    changed = True
                    break
            else:
                survivors.append(junction)
        merged = survivors
    return merged


def cluster_intersections(
    candidates: Sequence[RawIntersection],
    allocator: IdAllocator,
    tolerance: float = MERGE_TOLERANCE,
) -> List[Junction]:
    """Collapse raw candidates into canonical junctions and give each a fresh id."""
    start = time.perf_counter()

    swept = sweep_cluster(candidates, tolerance)
    junctions = dedupe_junctions(swept, tolerance)
    for junction in junctions:
        junction.id = allocator.next(JUNCTION_NAMESPACE)

    elapsed_ms = (time.perf_counter() - start) * 1000
    logger.info(
        f"[CLUSTER] Merged {len(candidates)} candidates into {len(junctions)} junctions "
        f"({len(swept) - len(junctions)} merged by dedup) in {elapsed_ms:.2f} ms"
    )
    return junctions
