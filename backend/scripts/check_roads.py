from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

from pathfinder.errors import MalformedNetworkError
from pathfinder.network_builder import build_graph, load_feature_collection
from pathfinder.settings import settings


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Check the roads GeoJSON asset and report graph statistics.")
    parser.add_argument(
        "--roads",
        type=Path,
        default=Path(settings.roads_path),
        help="Path to the roads FeatureCollection (GeoJSON).",
    )
    parser.add_argument(
        "--exists-only",
        action="store_true",
        help="Only check that the file exists; skip building the graph.",
    )
    return parser


def run_check(args: argparse.Namespace) -> dict[str, Any]:
    roads_path = Path(args.roads)
    report: dict[str, Any] = {"roads_path": str(roads_path), "exists": roads_path.exists()}
    if not report["exists"] or args.exists_only:
        return report

    collection = load_feature_collection(roads_path)
    features = collection["features"]
    graph = build_graph(collection)
    components = graph.component_sizes()
    bbox = graph.bbox()
    report.update(
        {
            "feature_count": len(features),
            "line_feature_count": sum(
                1
                for f in features
                if isinstance(f, dict) and isinstance(f.get("geometry"), dict)
                and f["geometry"].get("type") == "LineString"
            ),
            "node_count": graph.node_count,
            "edge_count": graph.edge_count,
            "isolated_node_count": graph.isolated_node_count(),
            "component_count": len(components),
            "largest_component_nodes": components[0] if components else 0,
            "bbox": (
                {"lat_min": bbox[0], "lat_max": bbox[1], "lng_min": bbox[2], "lng_max": bbox[3]}
                if bbox is not None
                else None
            ),
        }
    )
    return report


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        report = run_check(args)
    except MalformedNetworkError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    if not report["exists"]:
        print(f"Error: roads file not found: {args.roads}", file=sys.stderr)
        print("Download the road network GeoJSON and set ROADS_PATH or pass --roads.", file=sys.stderr)
        return 1
    print(json.dumps(report, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
