from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Union

import networkx as nx

import hit_testing
import shape_catalog
from endpoint_classification import classify_junctions
from geometry_utils import rotated_rectangle_vertices
from intersection_detection import detect_intersections
from junction_clustering import JUNCTION_NAMESPACE, cluster_intersections
from network_settings import NetworkSettings
from network_types import (
    Contribution,
    EndpointKind,
    IdAllocator,
    Junction,
    JunctionId,
    NetworkInputError,
    Point,
    Segment,
    SegmentId,
    SegmentShapeContribution,
    Shape,
    ShapeId,
)
from resistance_propagation import PropagationResult, build_flow_graph, flow_cycles, propagate_resistance
from segment_splitting import SEGMENT_NAMESPACE, split_points_from_junctions, split_segments

logger = logging.getLogger(__name__)

SHAPE_NAMESPACE = "shape"

_UNSET = object()


##############################################
#              Read-only views               #
##############################################

@dataclass(frozen=True)
class SegmentView:
    id: SegmentId
    start: Point
    end: Point
    width: float
    color: str
    tr: float
    length: float
    metadata: Mapping[str, object]
    track: Tuple[JunctionId, ...]
    endtrack: Tuple[JunctionId, ...]
    passability: Mapping[JunctionId, int]


@dataclass(frozen=True)
class ShapeView:
    id: ShapeId
    type: str
    center: Point
    width: float
    height: float
    rotation: float
    air_value: Optional[float]
    label: str
    category: str
    vertices: Tuple[Point, ...]


@dataclass(frozen=True)
class JunctionView:
    id: JunctionId
    position: Point
    contributions: Tuple[Contribution, ...]

    @property
    def num_segment_pairs(self) -> int:
        return sum(1 for c in self.contributions if not isinstance(c, SegmentShapeContribution))

    @property
    def num_segment_shapes(self) -> int:
        return sum(1 for c in self.contributions if isinstance(c, SegmentShapeContribution))

    @property
    def shape_ids(self) -> Tuple[ShapeId, ...]:
        return tuple(dict.fromkeys(c.shape for c in self.contributions if isinstance(c, SegmentShapeContribution)))


@dataclass(frozen=True)
class NetworkSnapshot:
    segments: Tuple[SegmentView, ...]
    shapes: Tuple[ShapeView, ...]
    junctions: Tuple[JunctionView, ...]
    propagation: Optional[PropagationResult]
    cycles: Tuple[Tuple[SegmentId, ...], ...] = ()

    def segment(self, segment_id: SegmentId) -> SegmentView:
        for view in self.segments:
            if view.id == segment_id:
                return view
        raise KeyError(segment_id)

    def shape(self, shape_id: ShapeId) -> ShapeView:
        for view in self.shapes:
            if view.id == shape_id:
                return view
        raise KeyError(shape_id)


@dataclass
class _WorkingState:
    segments: Dict[SegmentId, Segment]
    shapes: Dict[ShapeId, Shape]
    junctions: List[Junction]
    propagation: Optional[PropagationResult]
    lineage: Dict[SegmentId, Tuple[SegmentId, ...]] = field(default_factory=dict)


class VentilationNetwork:
    """
    Arena of segments, shapes and junctions for one schematic.

    Every mutator validates its input, applies the edit to a working copy,
    runs the pipeline from the stage the edit invalidates and commits the
    whole result at once.
    """

    def __init__(self, settings: NetworkSettings | None = None):
        self.settings = settings or NetworkSettings()
        self._ids = IdAllocator()
        self._segments: Dict[SegmentId, Segment] = {}
        self._shapes: Dict[ShapeId, Shape] = {}
        self._junctions: List[Junction] = []
        self.last_propagation: Optional[PropagationResult] = None
        self._last_lineage: Dict[SegmentId, Tuple[SegmentId, ...]] = {}

    ##############################################
    #             Network Properties             #
    ##############################################

    @property
    def segments(self) -> Tuple[Segment, ...]:
        return tuple(s.copy() for s in self._segments.values())

    @property
    def shapes(self) -> Tuple[Shape, ...]:
        return tuple(s.copy() for s in self._shapes.values())

    @property
    def junctions(self) -> Tuple[Junction, ...]:
        return tuple(j.copy() for j in self._junctions)

    @property
    def segment_ids(self) -> Tuple[SegmentId, ...]:
        return tuple(self._segments)

    @property
    def shape_ids(self) -> Tuple[ShapeId, ...]:
        return tuple(self._shapes)

    def segment(self, segment_id: SegmentId) -> Segment:
        return self._require_segment(segment_id).copy()

    def shape(self, shape_id: ShapeId) -> Shape:
        return self._require_shape(shape_id).copy()

    def junction(self, junction_id: JunctionId) -> Junction:
        for junction in self._junctions:
            if junction.id == junction_id:
                return junction.copy()
        raise NetworkInputError(f"Unknown junction id {junction_id!r}")

    ##############################################
    #              Segment Mutators              #
    ##############################################

    def add_segment(
        self,
        start,
        end,
        style: Mapping[str, object] | None = None,
    ) -> Tuple[SegmentId, ...]:
        """
        Add a drawn segment and recompute. `style` may carry color, width,
        tr and metadata. Returns the ids the new segment ended up as after
        splitting against the existing network.
        """
        p0 = self._point(start, "start")
        p1 = self._point(end, "end")
        self._check_length(p0, p1)
        style = dict(style or {})
        unknown = set(style) - {"color", "width", "tr", "metadata"}
        if unknown:
            raise NetworkInputError(f"Unknown segment style keys: {sorted(unknown)}")

        segment = Segment(
            id=self._ids.next(SEGMENT_NAMESPACE),
            start=p0,
            end=p1,
            width=self._positive(style.get("width", 10.0), "width"),
            color=str(style.get("color", "#ffffff")),
            metadata=self._metadata(style.get("metadata")),
            tr=self._finite(style.get("tr", self.settings.default_tr), "tr"),
        )

        def edit(state: _WorkingState) -> None:
            state.segments[segment.id] = segment

        self._run_pipeline_from("detect", edit)
        ids = self.descendants(segment.id)
        logger.info(f"[NETWORK] Added segment {segment.id} as {list(ids)}")
        return ids

    def delete_segment(self, segment_id: SegmentId) -> None:
        self._require_segment(segment_id)
        self._run_pipeline_from("detect", lambda state: state.segments.pop(segment_id))
        logger.info(f"[NETWORK] Deleted segment {segment_id}")

    def move_endpoint(self, segment_id: SegmentId, which, new_pos) -> Tuple[SegmentId, ...]:
        segment = self._require_segment(segment_id)
        kind = self._endpoint_kind(which)
        target = self._point(new_pos, "new_pos")
        start, end = (target, segment.end) if kind is EndpointKind.START else (segment.start, target)
        self._check_length(start, end)

        def edit(state: _WorkingState) -> None:
            moved = state.segments[segment_id]
            moved.start, moved.end = start, end

        self._run_pipeline_from("detect", edit)
        return self.descendants(segment_id)

    def move_segment(self, segment_id: SegmentId, dx: float, dy: float) -> Tuple[SegmentId, ...]:
        self._require_segment(segment_id)
        dx = self._finite(dx, "dx")
        dy = self._finite(dy, "dy")

        def edit(state: _WorkingState) -> None:
            moved = state.segments[segment_id]
            moved.start = moved.start.translated(dx, dy)
            moved.end = moved.end.translated(dx, dy)

        self._run_pipeline_from("detect", edit)
        return self.descendants(segment_id)

    def set_segment_tr(self, segment_id: SegmentId, value: float) -> None:
        """Manual tr override followed by re-propagation; downstream rules may overwrite it."""
        self._require_segment(segment_id)
        value = self._finite(value, "tr")

        def edit(state: _WorkingState) -> None:
            state.segments[segment_id].tr = value

        self._run_pipeline_from("propagate", edit)

    def set_segment_properties(
        self,
        segment_id: SegmentId,
        color: str | None = None,
        width: float | None = None,
        metadata: Mapping[str, object] | None = None,
    ) -> None:
        """Style and custom metadata edits; they do not touch the geometry."""
        segment = self._require_segment(segment_id)
        if width is not None:
            segment.width = self._positive(width, "width")
        if color is not None:
            segment.color = str(color)
        if metadata is not None:
            segment.metadata.update(self._metadata(metadata))

    ##############################################
    #               Shape Mutators               #
    ##############################################

    def add_shape(
        self,
        type: str,
        x: float,
        y: float,
        width: float | None = None,
        height: float | None = None,
        rotation: float = 0.0,
        label: str | None = None,
        air_value=_UNSET,
    ) -> ShapeId:
        template = shape_catalog.lookup(type)
        center = self._point((x, y), "center")
        shape = Shape(
            id=self._ids.next(SHAPE_NAMESPACE),
            type=template.type,
            center=center,
            width=self._positive(template.width if width is None else width, "width"),
            height=self._positive(template.height if height is None else height, "height"),
            rotation=self._finite(rotation, "rotation"),
            air_value=self._air_value(template.air_value if air_value is _UNSET else air_value),
            label=template.label if label is None else str(label),
            category=template.category,
        )

        def edit(state: _WorkingState) -> None:
            state.shapes[shape.id] = shape

        self._run_pipeline_from("detect", edit)
        logger.info(f"[NETWORK] Placed {shape.type} shape {shape.id} at ({center.x:.1f}, {center.y:.1f})")
        return shape.id

    def delete_shape(self, shape_id: ShapeId) -> None:
        self._require_shape(shape_id)
        self._run_pipeline_from("detect", lambda state: state.shapes.pop(shape_id))
        logger.info(f"[NETWORK] Deleted shape {shape_id}")

    def move_shape(self, shape_id: ShapeId, x: float, y: float) -> None:
        self._require_shape(shape_id)
        center = self._point((x, y), "center")
        self._edit_shape(shape_id, lambda shape: setattr(shape, "center", center))

    def rotate_shape(self, shape_id: ShapeId, degrees: float = 90.0) -> None:
        shape = self._require_shape(shape_id)
        self.set_shape_rotation(shape_id, (shape.rotation + self._finite(degrees, "degrees")) % 360.0)

    def set_shape_rotation(self, shape_id: ShapeId, degrees: float) -> None:
        self._require_shape(shape_id)
        degrees = self._finite(degrees, "degrees")
        self._edit_shape(shape_id, lambda shape: setattr(shape, "rotation", degrees))

    def resize_shape(self, shape_id: ShapeId, width: float, height: float) -> None:
        """Change the extent; the center stays put."""
        self._require_shape(shape_id)
        width = self._positive(width, "width")
        height = self._positive(height, "height")

        def resize(shape: Shape) -> None:
            shape.width, shape.height = width, height

        self._edit_shape(shape_id, resize)

    def set_shape_label(self, shape_id: ShapeId, label: str) -> None:
        self._require_shape(shape_id).label = str(label)

    def set_shape_air_value(self, shape_id: ShapeId, value: Optional[float]) -> None:
        """Set or clear (None) the shape's resistance override and re-propagate."""
        self._require_shape(shape_id)
        value = self._air_value(value)

        def edit(state: _WorkingState) -> None:
            state.shapes[shape_id].air_value = value

        self._run_pipeline_from("propagate", edit)

    ##############################################
    #             Whole-network edits            #
    ##############################################

    def recompute_network(self) -> PropagationResult:
        """Detect, cluster, split, classify and propagate from the current segments and shapes."""
        self._run_pipeline_from("detect")
        return self.last_propagation

    def reset_network(self) -> None:
        self._segments = {}
        self._shapes = {}
        self._junctions = []
        self.last_propagation = None
        self._last_lineage = {}
        self._ids.reset(JUNCTION_NAMESPACE)
        logger.info("[NETWORK] Cleared network")

    def clear_junctions(self) -> None:
        self._junctions = []
        for segment in self._segments.values():
            segment.clear_bookkeeping()
        self._ids.reset(JUNCTION_NAMESPACE)

    def delete_at(self, point) -> Optional[Tuple[str, int]]:
        """Delete the topmost shape under `point`, else the nearest picked segment."""
        point = self._point(point, "point")
        shape = hit_testing.find_shape_at(tuple(self._shapes.values()), point)
        if shape is not None:
            self.delete_shape(shape.id)
            return ("shape", shape.id)
        segment = hit_testing.find_segment_at(tuple(self._segments.values()), point, self.settings.pick_tolerance)
        if segment is not None:
            self.delete_segment(segment.id)
            return ("segment", segment.id)
        return None

    def snap(self, point, snap_grid: bool = True, snap_points: bool = True) -> Point:
        return hit_testing.snap_position(
            self._point(point, "point"),
            tuple(self._segments.values()),
            tuple(self._shapes.values()),
            grid_size=self.settings.grid_size,
            snap_grid=snap_grid,
            snap_points=snap_points,
            radius=self.settings.snap_radius,
        )

    ##############################################
    #                  Queries                   #
    ##############################################

    def descendants(self, segment_id: SegmentId) -> Tuple[SegmentId, ...]:
        """Live ids that `segment_id` became in the last pipeline run."""
        if segment_id in self._segments:
            return (segment_id,)
        children = self._last_lineage.get(segment_id, ())
        out: List[SegmentId] = []
        for child in children:
            out.extend(self.descendants(child))
        return tuple(out)

    def passability_at(self, segment_id: SegmentId, junction_id: JunctionId) -> int:
        return self._require_segment(segment_id).passability.get(junction_id, 0)

    def total_passability(self, segment_id: SegmentId) -> int:
        return sum(self._require_segment(segment_id).passability.values())

    def flow_graph(self) -> nx.DiGraph:
        return build_flow_graph(tuple(self._segments.values()), self._junctions)

    def snapshot(self) -> NetworkSnapshot:
        segments = tuple(
            SegmentView(
                id=s.id,
                start=s.start,
                end=s.end,
                width=s.width,
                color=s.color,
                tr=s.tr,
                length=s.length,
                metadata=MappingProxyType(dict(s.metadata)),
                track=tuple(s.track),
                endtrack=tuple(s.endtrack),
                passability=MappingProxyType(dict(s.passability)),
            )
            for s in self._segments.values()
        )
        shapes = tuple(
            ShapeView(
                id=s.id,
                type=s.type,
                center=s.center,
                width=s.width,
                height=s.height,
                rotation=s.rotation,
                air_value=s.air_value,
                label=s.label,
                category=s.category,
                vertices=rotated_rectangle_vertices(s),
            )
            for s in self._shapes.values()
        )
        junctions = tuple(JunctionView(j.id, j.position, tuple(j.contributions)) for j in self._junctions)
        cycles = tuple(tuple(c) for c in flow_cycles(self.flow_graph()))
        return NetworkSnapshot(segments, shapes, junctions, self.last_propagation, cycles)

    ##############################################
    #            "Private" Methods               #
    ##############################################

    def _run_pipeline_from(self, stage: str, edit: Callable[[_WorkingState], None] | None = None) -> None:
        stages = tuple(self._pipeline())
        valid_names = {name for name, _ in stages}
        if stage not in valid_names:
            raise ValueError(f"Unknown pipeline stage '{stage}'. Expected one of {sorted(valid_names)}")

        state = _WorkingState(
            segments={k: s.copy() for k, s in self._segments.items()},
            shapes={k: s.copy() for k, s in self._shapes.items()},
            junctions=[j.copy() for j in self._junctions],
            propagation=self.last_propagation,
        )
        if edit is not None:
            edit(state)

        should_run = False
        for name, fn in stages:
            if not should_run and name == stage:
                should_run = True
            if should_run:
                fn(state)

        self._segments = state.segments
        self._shapes = state.shapes
        self._junctions = state.junctions
        self.last_propagation = state.propagation
        if stage == "detect":
            self._last_lineage = state.lineage

    def _pipeline(self) -> Iterable[tuple[str, Callable[[_WorkingState], None]]]:
        return (
            ("detect", self._detect_junctions),
            ("split", self._split_segments),
            ("classify", self._classify_endpoints),
            ("propagate", self._propagate_resistance),
        )

    def _detect_junctions(self, state: _WorkingState) -> None:
        candidates = detect_intersections(
            tuple(state.segments.values()),
            tuple(state.shapes.values()),
            self.settings,
        )
        state.junctions = cluster_intersections(candidates, self._ids, self.settings.merge_tolerance)

    def _split_segments(self, state: _WorkingState) -> None:
        segments = tuple(state.segments.values())
        split_points = split_points_from_junctions(segments, state.junctions, self.settings.min_segment_length)
        result = split_segments(segments, split_points, self._ids, self.settings.min_segment_length)
        if not result.lineage:
            return
        state.segments = {s.id: s for s in result.segments}
        state.lineage.update(result.lineage)
        # contributions still name the pre-split ids
        self._detect_junctions(state)

    def _classify_endpoints(self, state: _WorkingState) -> None:
        state.junctions = classify_junctions(
            tuple(state.segments.values()),
            state.junctions,
            self.settings.endpoint_tolerance,
        )

    def _propagate_resistance(self, state: _WorkingState) -> None:
        state.propagation = propagate_resistance(
            tuple(state.segments.values()),
            state.junctions,
            tuple(state.shapes.values()),
            max_passes=self.settings.max_passes,
            default_tr=self.settings.default_tr,
            change_eps=self.settings.tr_change_eps,
        )

    def _edit_shape(self, shape_id: ShapeId, change: Callable[[Shape], None]) -> None:
        self._run_pipeline_from("detect", lambda state: change(state.shapes[shape_id]))

    def _require_segment(self, segment_id: SegmentId) -> Segment:
        try:
            return self._segments[segment_id]
        except KeyError:
            raise NetworkInputError(f"Unknown segment id {segment_id!r}") from None

    def _require_shape(self, shape_id: ShapeId) -> Shape:
        try:
            return self._shapes[shape_id]
        except KeyError:
            raise NetworkInputError(f"Unknown shape id {shape_id!r}") from None

    def _check_length(self, start: Point, end: Point) -> None:
        length = start.distance_to(end)
        if not length > self.settings.min_segment_length:
            raise NetworkInputError(
                f"Segment length {length:.3f} must exceed {self.settings.min_segment_length}"
            )

    @staticmethod
    def _point(value, name: str) -> Point:
        try:
            point = Point.of(value)
        except (TypeError, ValueError, KeyError) as exc:
            raise NetworkInputError(f"Malformed {name} coordinate: {value!r}") from exc
        if not point.is_finite():
            raise NetworkInputError(f"Non-finite {name} coordinate: {value!r}")
        return point

    @staticmethod
    def _finite(value, name: str) -> float:
        try:
            number = float(value)
        except (TypeError, ValueError) as exc:
            raise NetworkInputError(f"{name} must be a number, got {value!r}") from exc
        if not math.isfinite(number):
            raise NetworkInputError(f"{name} must be finite, got {value!r}")
        return number

    @classmethod
    def _positive(cls, value, name: str) -> float:
        number = cls._finite(value, name)
        if number <= 0.0:
            raise NetworkInputError(f"{name} must be positive, got {value!r}")
        return number

    @staticmethod
    def _metadata(value) -> Dict[str, object]:
        if value is None:
            return {}
        if not isinstance(value, Mapping):
            raise NetworkInputError(f"metadata must be a mapping, got {value!r}")
        return dict(value)

    @classmethod
    def _air_value(cls, value) -> Optional[float]:
        return None if value is None else cls._finite(value, "air_value")

    @staticmethod
    def _endpoint_kind(which: Union[str, EndpointKind]) -> EndpointKind:
        try:
            kind = which if isinstance(which, EndpointKind) else EndpointKind(str(which).lower())
        except ValueError:
            kind = None
        if kind not in (EndpointKind.START, EndpointKind.END):
            raise NetworkInputError(f"Endpoint must be 'start' or 'end', got {which!r}")
        return kind
