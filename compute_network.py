from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Sequence

from network_export import export_svg, junction_report, segment_report, tr_report, write_json
from network_settings import ENDPOINT_TOLERANCE, MAX_PROPAGATION_PASSES, MERGE_TOLERANCE, NetworkSettings
from network_types import NetworkInputError
from ventilation_network import VentilationNetwork

logger = logging.getLogger(__name__)


def _entries(schematic: dict, key: str) -> list:
    entries = schematic.get(key, [])
    if not isinstance(entries, list):
        raise NetworkInputError(f"'{key}' must be a list")
    for i, item in enumerate(entries):
        if not isinstance(item, dict):
            raise NetworkInputError(f"{key[:-1].capitalize()} #{i} must be an object")
    return entries


def build_network(schematic: dict, settings: NetworkSettings | None = None) -> VentilationNetwork:
    """Replay a JSON schematic through the network's input API."""
    if not isinstance(schematic, dict):
        raise NetworkInputError(f"Schematic must be a JSON object, got {type(schematic).__name__}")
    network = VentilationNetwork(settings)
    for i, item in enumerate(_entries(schematic, "shapes")):
        try:
            network.add_shape(
                item.get("type", "generic"),
                item["x"],
                item["y"],
                width=item.get("width"),
                height=item.get("height"),
                rotation=item.get("rotation", 0.0),
                label=item.get("label"),
                **({"air_value": item["air_value"]} if "air_value" in item else {}),
            )
        except KeyError as exc:
            raise NetworkInputError(f"Shape #{i} is missing {exc}") from None

    for i, item in enumerate(_entries(schematic, "segments")):
        if "start" not in item or "end" not in item:
            raise NetworkInputError(f"Segment #{i} needs both 'start' and 'end'")
        style = {k: item[k] for k in ("color", "width", "tr", "metadata") if k in item}
        network.add_segment(item["start"], item["end"], style)
    return network


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Recompute junctions and resistance (tr) for a ventilation schematic",
    )
    parser.add_argument(
        "input",
        type=Path,
        help="Path to a JSON schematic with 'segments' and 'shapes' lists",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Where to write the tr report (default: <input>_tr.json)",
    )
    parser.add_argument(
        "--svg",
        type=Path,
        default=None,
        help="Optional SVG drawing of the recomputed network",
    )
    parser.add_argument(
        "--full",
        action="store_true",
        help="Also include per-segment properties and junction summaries in the report",
    )
    parser.add_argument(
        "--merge-tolerance",
        type=float,
        default=MERGE_TOLERANCE,
        help=f"Distance under which intersection points are merged (default: {MERGE_TOLERANCE})",
    )
    parser.add_argument(
        "--endpoint-tolerance",
        type=float,
        default=ENDPOINT_TOLERANCE,
        help=f"Distance under which a junction counts as a segment's start or end (default: {ENDPOINT_TOLERANCE})",
    )
    parser.add_argument(
        "--max-passes",
        type=int,
        default=MAX_PROPAGATION_PASSES,
        help=f"Ceiling on propagation passes (default: {MAX_PROPAGATION_PASSES})",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='[%(asctime)s] %(levelname)s: %(message)s',
        datefmt='%H:%M:%S'
    )

    if not args.input.is_file():
        logger.error(f"Input path does not exist: {args.input}")
        return 1

    try:
        schematic = json.loads(args.input.read_text(encoding="utf-8"))
        settings = NetworkSettings(
            merge_tolerance=args.merge_tolerance,
            endpoint_tolerance=args.endpoint_tolerance,
            max_passes=args.max_passes,
        )
        network = build_network(schematic, settings)
    except (json.JSONDecodeError, ValueError) as exc:
        logger.error(f"Failed to load {args.input}: {exc}")
        return 1

    snapshot = network.snapshot()
    propagation = snapshot.propagation
    print(f"Segments: {len(snapshot.segments)}, Shapes: {len(snapshot.shapes)}, Junctions: {len(snapshot.junctions)}")
    if propagation is not None:
        state = "converged" if propagation.converged else "stopped at ceiling"
        print(f"Propagation: {propagation.passes} passes ({state})")

    report = tr_report(snapshot)
    if args.full:
        report["segments"] = segment_report(snapshot)
        report["junctions"] = junction_report(snapshot)
    output = args.output or args.input.with_name(f"{args.input.stem}_tr.json")
    write_json(report, output)
    print(f"Wrote tr report to {output}")

    if args.svg is not None:
        export_svg(snapshot, args.svg)
        print(f"Exported SVG to {args.svg}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
