from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple, Union

import numpy as np

from network_settings import DEFAULT_TR

SegmentId = int
ShapeId = int
JunctionId = int


class NetworkInputError(ValueError):
    """Raised when the input layer hands the network an invalid edit."""


class EndpointKind(Enum):
    """How a segment touches a junction."""
    START = "start"
    END = "end"
    MIDDLE = "middle"


@dataclass(frozen=True)
class Point:
    x: float
    y: float

    @classmethod
    def of(cls, value) -> "Point":
        """Coerce a Point, an (x, y) pair or a {"x", "y"} mapping."""
        if isinstance(value, Point):
            return value
        if isinstance(value, dict):
            return cls(float(value["x"]), float(value["y"]))
        x, y = value
        return cls(float(x), float(y))

    def as_array(self) -> np.ndarray:
        return np.array((self.x, self.y), dtype=float)

    def as_tuple(self) -> Tuple[float, float]:
        return (self.x, self.y)

    def distance_to(self, other: "Point") -> float:
        return float(math.hypot(self.x - other.x, self.y - other.y))

    def translated(self, dx: float, dy: float) -> "Point":
        return Point(self.x + dx, self.y + dy)

    def is_finite(self) -> bool:
        return math.isfinite(self.x) and math.isfinite(self.y)


@dataclass
class Segment:
    """A drawn duct. `track`/`endtrack` hold the junctions at its start/end."""
    id: SegmentId
    start: Point
    end: Point
    width: float = 10.0
    color: str = "#ffffff"
    metadata: Dict[str, object] = field(default_factory=dict)
    tr: float = DEFAULT_TR
    track: List[JunctionId] = field(default_factory=list)
    endtrack: List[JunctionId] = field(default_factory=list)
    passability: Dict[JunctionId, int] = field(default_factory=dict)

    @property
    def length(self) -> float:
        return self.start.distance_to(self.end)

    def endpoint(self, which: EndpointKind) -> Point:
        if which is EndpointKind.START:
            return self.start
        if which is EndpointKind.END:
            return self.end
        raise ValueError(f"A segment has no single {which.value} point")

    def clear_bookkeeping(self) -> None:
        self.track = []
        self.endtrack = []
        self.passability = {}

    def copy(self) -> "Segment":
        return Segment(
            id=self.id,
            start=self.start,
            end=self.end,
            width=self.width,
            color=self.color,
            metadata=dict(self.metadata),
            tr=self.tr,
            track=list(self.track),
            endtrack=list(self.endtrack),
            passability=dict(self.passability),
        )


@dataclass
class Shape:
    """A placed equipment icon: a rectangle rotated about its center."""
    id: ShapeId
    type: str
    center: Point
    width: float
    height: float
    rotation: float = 0.0
    air_value: Optional[float] = None
    label: str = "Object"
    category: str = "generic"

    def copy(self) -> "Shape":
        return Shape(
            id=self.id,
            type=self.type,
            center=self.center,
            width=self.width,
            height=self.height,
            rotation=self.rotation,
            air_value=self.air_value,
            label=self.label,
            category=self.category,
        )


@dataclass(frozen=True)
class SegmentPairContribution:
    segment_a: SegmentId
    segment_b: SegmentId
    endpoint_a: Optional[EndpointKind] = None
    endpoint_b: Optional[EndpointKind] = None

    kind = "segment-segment"

    def segment_ids(self) -> Tuple[SegmentId, ...]:
        return (self.segment_a, self.segment_b)

    def touches(self) -> Tuple[Tuple[SegmentId, Optional[EndpointKind]], ...]:
        return ((self.segment_a, self.endpoint_a), (self.segment_b, self.endpoint_b))


@dataclass(frozen=True)
class SegmentShapeContribution:
    segment: SegmentId
    shape: ShapeId
    shape_side: int
    endpoint: Optional[EndpointKind] = None

    kind = "segment-shape"

    def segment_ids(self) -> Tuple[SegmentId, ...]:
        return (self.segment,)

    def touches(self) -> Tuple[Tuple[SegmentId, Optional[EndpointKind]], ...]:
        return ((self.segment, self.endpoint),)


Contribution = Union[SegmentPairContribution, SegmentShapeContribution]


@dataclass(frozen=True)
class RawIntersection:
    """One unclustered intersection fact as found by the detector."""
    point: Point
    contribution: Contribution

    @property
    def kind(self) -> str:
        return self.contribution.kind


@dataclass
class Junction:
    id: JunctionId
    position: Point
    contributions: List[Contribution] = field(default_factory=list)
    weight: int = 1

    def absorb(self, position: Point, contributions: List[Contribution], weight: int = 1) -> None:
        """Fold `weight` raw points at `position` into the running mean."""
        total = self.weight + weight
        self.position = Point(
            (self.position.x * self.weight + position.x * weight) / total,
            (self.position.y * self.weight + position.y * weight) / total,
        )
        self.weight = total
        self.contributions.extend(contributions)

    def segment_ids(self) -> Tuple[SegmentId, ...]:
        seen: Dict[SegmentId, None] = {}
        for contribution in self.contributions:
            for segment_id in contribution.segment_ids():
                seen.setdefault(segment_id, None)
        return tuple(seen)

    def shape_ids(self) -> Tuple[ShapeId, ...]:
        seen: Dict[ShapeId, None] = {}
        for contribution in self.contributions:
            if isinstance(contribution, SegmentShapeContribution):
                seen.setdefault(contribution.shape, None)
        return tuple(seen)

    def copy(self) -> "Junction":
        return Junction(self.id, self.position, list(self.contributions), self.weight)


class IdAllocator:
    """Monotonic integer ids, one counter per namespace."""

    def __init__(self, first: int = 1):
        self._first = int(first)
        self._next: Dict[str, int] = {}

    def next(self, namespace: str) -> int:
        value = self._next.get(namespace, self._first)
        self._next[namespace] = value + 1
        return value

    def peek(self, namespace: str) -> int:
        return self._next.get(namespace, self._first)

    def reset(self, namespace: str) -> None:
        self._next.pop(namespace, None)
