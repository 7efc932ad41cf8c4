from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, List

import svgwrite

from network_types import SegmentPairContribution, SegmentShapeContribution
from ventilation_network import JunctionView, NetworkSnapshot, SegmentView

logger = logging.getLogger(__name__)

PROPAGATION_RULES = {
    "rule_with_object": "If a shape with an airValue sits on the junction, every segment leaving it by its start takes that airValue.",
    "rule_a": "One segment arrives by its end and one leaves by its start: the leaving segment takes the arriving tr.",
    "rule_b": "One segment arrives by its end and several leave by their start: the arriving tr is divided by the number leaving.",
    "rule_c": "At least two segments arrive by their end: their tr values are summed and divided by the number leaving by their start.",
}


def _xy(point) -> Dict[str, float]:
    return {"x": point.x, "y": point.y}


def _junction_points_for(snapshot: NetworkSnapshot, segment: SegmentView) -> List[dict]:
    shapes = {s.id: s for s in snapshot.shapes}
    out: List[dict] = []
    for junction in snapshot.junctions:
        for contribution in junction.contributions:
            for segment_id, kind in contribution.touches():
                if segment_id != segment.id:
                    continue
                entry = {
                    "pointId": junction.id,
                    "endpoint": kind.value if kind is not None else None,
                    **_xy(junction.position),
                }
                if isinstance(contribution, SegmentShapeContribution) and contribution.shape in shapes:
                    shape = shapes[contribution.shape]
                    entry["objectInfo"] = {
                        "id": shape.id,
                        "label": shape.label,
                        "type": shape.type,
                        "airValue": shape.air_value,
                    }
                out.append(entry)
    return out


def tr_report(snapshot: NetworkSnapshot) -> dict:
    """Per-segment resistance report with the junctions each segment touches."""
    lines = [
        {
            "lineId": segment.id,
            "start": _xy(segment.start),
            "end": _xy(segment.end),
            "tr": segment.tr,
            "length": round(segment.length, 1),
            "intersectionPoints": _junction_points_for(snapshot, segment),
            "properties": dict(segment.metadata),
        }
        for segment in snapshot.segments
    ]
    propagation = snapshot.propagation
    return {
        "lines": lines,
        "totalLines": len(snapshot.segments),
        "totalObjects": len(snapshot.shapes),
        "totalIntersections": len(snapshot.junctions),
        "propagation": {
            "passes": propagation.passes if propagation else 0,
            "converged": propagation.converged if propagation else True,
            "cycles": [list(c) for c in snapshot.cycles],
        },
        "calculationRules": dict(PROPAGATION_RULES),
    }


def junction_summary(junction: JunctionView, snapshot: NetworkSnapshot) -> dict:
    shapes = {s.id: s for s in snapshot.shapes}
    objects = [
        {"id": s.id, "label": s.label, "type": s.type, "airValue": s.air_value}
        for s in (shapes[i] for i in junction.shape_ids if i in shapes)
    ]
    return {
        "id": junction.id,
        **_xy(junction.position),
        "intersectionCount": len(junction.contributions),
        "intersectionTypes": {
            "lineLine": junction.num_segment_pairs,
            "lineObject": junction.num_segment_shapes,
        },
        "objects": objects,
    }


def junction_report(snapshot: NetworkSnapshot) -> List[dict]:
    return [junction_summary(j, snapshot) for j in snapshot.junctions]


def segment_report(snapshot: NetworkSnapshot) -> List[dict]:
    return [
        {
            "id": s.id,
            "start": _xy(s.start),
            "end": _xy(s.end),
            "color": s.color,
            "width": s.width,
            "metadata": dict(s.metadata),
            "tr": s.tr,
            "realLength": s.length,
            "track": list(s.track),
            "endtrack": list(s.endtrack),
            "passability": {str(k): v for k, v in s.passability.items()},
        }
        for s in snapshot.segments
    ]


def write_json(data, path: Path | str) -> Path:
    path = Path(path)
    path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
    logger.info(f"[EXPORT] Wrote {path}")
    return path


def contribution_label(contribution) -> str:
    if isinstance(contribution, SegmentPairContribution):
        return f"segments {contribution.segment_a}/{contribution.segment_b}"
    return f"segment {contribution.segment} x shape {contribution.shape} side {contribution.shape_side}"


def export_svg(snapshot: NetworkSnapshot, filename: Path | str, margin: float = 20.0, show_tr: bool = True) -> Path:
    """
    Draw the snapshot as an SVG file.

    Parameters:
        snapshot: read-only network snapshot
        filename: output SVG file path
        margin: padding added around the drawing's bounding box
        show_tr: label each segment with its tr at the midpoint
    """
    xs = [p.x for s in snapshot.segments for p in (s.start, s.end)]
    ys = [p.y for s in snapshot.segments for p in (s.start, s.end)]
    xs += [v.x for s in snapshot.shapes for v in s.vertices]
    ys += [v.y for s in snapshot.shapes for v in s.vertices]
    min_x, min_y = (min(xs), min(ys)) if xs else (0.0, 0.0)
    max_x, max_y = (max(xs), max(ys)) if xs else (0.0, 0.0)
    width = max_x - min_x + 2 * margin
    height = max_y - min_y + 2 * margin

    dwg = svgwrite.Drawing(str(filename), size=(f"{width:.0f}", f"{height:.0f}"))
    dwg.viewbox(min_x - margin, min_y - margin, width, height)
    dwg.add(dwg.rect(insert=(min_x - margin, min_y - margin), size=(width, height), fill="#2c3e50"))

    for segment in snapshot.segments:
        dwg.add(dwg.line(
            start=segment.start.as_tuple(),
            end=segment.end.as_tuple(),
            stroke=segment.color,
            stroke_width=segment.width,
            stroke_linecap="round",
        ))
        if show_tr:
            mid = ((segment.start.x + segment.end.x) / 2, (segment.start.y + segment.end.y) / 2 - segment.width)
            dwg.add(dwg.text(f"tr={segment.tr:.2f}", insert=mid, fill="#f1c40f", font_size=10))

    for shape in snapshot.shapes:
        dwg.add(dwg.polygon([v.as_tuple() for v in shape.vertices], fill="#3498db", fill_opacity=0.6, stroke="#ecf0f1"))
        label = shape.label if shape.air_value is None else f"{shape.label} ({shape.air_value:g})"
        dwg.add(dwg.text(label, insert=(shape.center.x, shape.center.y), fill="#ecf0f1", font_size=9, text_anchor="middle"))

    for junction in snapshot.junctions:
        marker = dwg.circle(center=junction.position.as_tuple(), r=4, fill="#e74c3c")
        marker.set_desc(title=f"#{junction.id}: " + "; ".join(contribution_label(c) for c in junction.contributions))
        dwg.add(marker)

    dwg.save()
    logger.info(
        f"[EXPORT] Exported {len(snapshot.segments)} segments, {len(snapshot.shapes)} shapes "
        f"and {len(snapshot.junctions)} junctions to {filename}"
    )
    return Path(filename)
