"""Tests for junction_clustering.py."""
import random

from junction_clustering import cluster_intersections, dedupe_junctions, sweep_cluster
from network_types import IdAllocator, Point, RawIntersection, SegmentPairContribution


def _candidate(x, y, a=1, b=2):
    return RawIntersection(Point(x, y), SegmentPairContribution(a, b))


def test_nearby_candidates_merge_at_centroid():
    candidates = [_candidate(0, 0, 1, 2), _candidate(2, 0, 1, 3), _candidate(4, 0, 2, 3)]
    junctions = sweep_cluster(candidates, 5)
    assert len(junctions) == 1
    junction = junctions[0]
    assert abs(junction.position.x - 2.0) < 1e-12
    assert abs(junction.position.y) < 1e-12
    assert junction.weight == 3
    assert len(junction.contributions) == 3
    assert junction.segment_ids() == (1, 2, 3)


def test_distant_candidates_stay_apart():
    junctions = sweep_cluster([_candidate(0, 0), _candidate(6, 0)], 5)
    assert len(junctions) == 2


def test_distance_at_tolerance_does_not_merge():
    junctions = sweep_cluster([_candidate(0, 0), _candidate(3, 4)], 5)
    assert len(junctions) == 2


def test_same_x_different_y_stay_apart():
    junctions = sweep_cluster([_candidate(10, 0), _candidate(10, 50), _candidate(10, 2)], 5)
    positions = sorted((j.position.x, j.position.y) for j in junctions)
    assert len(positions) == 2
    assert abs(positions[0][1] - 1.0) < 1e-12
    assert positions[1] == (10.0, 50.0)


def test_result_does_not_depend_on_input_order():
    candidates = [_candidate(x, y) for x, y in [(0, 0), (1, 1), (100, 0), (101, 0), (50, 50), (52, 49)]]
    expected = sorted((round(j.position.x, 9), round(j.position.y, 9)) for j in sweep_cluster(candidates, 5))
    rng = random.Random(42)
    for _ in range(5):
        shuffled = list(candidates)
        rng.shuffle(shuffled)
        got = sorted((round(j.position.x, 9), round(j.position.y, 9)) for j in sweep_cluster(shuffled, 5))
        assert got == expected


def test_dedupe_merges_what_the_sweep_left_close():
    # the sweep stops at |dx| > 5 from the seed, but the centroid has drifted to x=2
    candidates = [_candidate(0, 0), _candidate(4, 0), _candidate(5.5, 0)]
    swept = sweep_cluster(candidates, 5)
    assert len(swept) == 2

    merged = dedupe_junctions(swept, 5)
    assert len(merged) == 1
    assert abs(merged[0].position.x - 9.5 / 3) < 1e-12
    assert merged[0].weight == 3
    assert len(merged[0].contributions) == 3


def test_dedupe_is_idempotent_and_leaves_input_alone():
    swept = sweep_cluster([_candidate(0, 0), _candidate(4, 0), _candidate(5.5, 0), _candidate(40, 0)], 5)
    before = [j.copy() for j in swept]
    once = dedupe_junctions(swept, 5)
    twice = dedupe_junctions(once, 5)
    assert [(j.position, len(j.contributions)) for j in once] == [(j.position, len(j.contributions)) for j in twice]
    assert [j.position for j in swept] == [j.position for j in before]


def test_merged_junctions_are_farther_apart_than_tolerance():
    rng = random.Random(7)
    candidates = [_candidate(rng.uniform(0, 60), rng.uniform(0, 60)) for _ in range(80)]
    junctions = cluster_intersections(candidates, IdAllocator(), 5)
    for i, a in enumerate(junctions):
        for b in junctions[i + 1:]:
            assert a.position.distance_to(b.position) >= 5
    assert sum(len(j.contributions) for j in junctions) == len(candidates)


def test_ids_are_fresh_and_monotonic():
    allocator = IdAllocator()
    first = cluster_intersections([_candidate(0, 0), _candidate(50, 0)], allocator)
    second = cluster_intersections([_candidate(0, 0), _candidate(50, 0)], allocator)
    assert [j.id for j in first] == [1, 2]
    assert min(j.id for j in second) > max(j.id for j in first)


def test_cluster_empty():
    assert cluster_intersections([], IdAllocator()) == []
