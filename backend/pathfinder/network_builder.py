from __future__ import annotations

import time
from collections.abc import Callable, Mapping, Sequence
from pathlib import Path
from typing import Any

import ijson

from .errors import MalformedNetworkError
from .geo import haversine_km, is_real_number, is_valid_lat_lng, js_round
from .graph import Graph, NodeId, Point
from .logging_utils import log_event
from .settings import settings

ProgressFn = Callable[[int], None]

LINE_GEOMETRY = "LineString"


def _feature_list(collection: object) -> list[Any]:
    if isinstance(collection, Mapping):
        features = collection.get("features")
    else:
        features = collection
    if not isinstance(features, Sequence) or isinstance(features, (str, bytes)):
        raise MalformedNetworkError("Road network must be a feature collection with a 'features' list")
    return list(features)


def _line_coordinates(feature: object, index: int) -> list[tuple[float, float]] | None:
    """Validated (lng, lat) pairs of a line feature, or None for any other geometry."""
    if not isinstance(feature, Mapping):
        raise MalformedNetworkError(f"Feature {index} is not an object", details={"feature_index": index})
    geometry = feature.get("geometry")
    if geometry is None:
        return None
    if not isinstance(geometry, Mapping):
        raise MalformedNetworkError(
            f"Feature {index} has an invalid geometry",
            details={"feature_index": index},
        )
    if geometry.get("type") != LINE_GEOMETRY:
        return None
    raw_coords = geometry.get("coordinates")
    if not isinstance(raw_coords, Sequence) or isinstance(raw_coords, (str, bytes)):
        raise MalformedNetworkError(
            f"Feature {index} has no coordinate list",
            details={"feature_index": index},
        )
    coords: list[tuple[float, float]] = []
    for pos, raw in enumerate(raw_coords):
        if (
            not isinstance(raw, Sequence)
            or isinstance(raw, (str, bytes))
            or len(raw) < 2
            or not is_real_number(raw[0])
            or not is_real_number(raw[1])
        ):
            raise MalformedNetworkError(
                f"Feature {index} has a non-numeric coordinate at position {pos}",
                details={"feature_index": index, "coordinate_index": pos},
            )
        lng, lat = float(raw[0]), float(raw[1])
        if not is_valid_lat_lng(lat, lng):
            raise MalformedNetworkError(
                f"Feature {index} has an out-of-range coordinate at position {pos}",
                details={"feature_index": index, "coordinate_index": pos, "lat": lat, "lng": lng},
            )
        coords.append((lng, lat))
    return coords


def build_graph(
    collection: object,
    on_progress: ProgressFn | None = None,
    *,
    progress_interval: int | None = None,
) -> Graph:
    """Build an undirected road graph from a GeoJSON-like feature collection.

    Coincident coordinates collapse into one node. Nodes are created in a first
    pass so every edge of the second pass references existing vertices. After
    each feature of the edge pass a percentage is reported every
    ``progress_interval`` features and once at the end. Any malformed feature
    aborts the whole build with ``MalformedNetworkError``.
    """
    interval = max(1, int(progress_interval or settings.build_progress_interval))
    features = _feature_list(collection)
    total = len(features)
    started = time.monotonic()
    log_event("network_build_started", total_features=total)

    lines = [_line_coordinates(feature, idx) for idx, feature in enumerate(features)]

    graph = Graph()
    for coords in lines:
        if not coords:
            continue
        for lng, lat in coords:
            point = Point(lat=lat, lng=lng)
            graph.add_node(NodeId.from_point(point), point)
    log_event("network_build_nodes", node_count=graph.node_count)

    edges_added = 0
    processed = 0
    for coords in lines:
        if coords:
            for (lng1, lat1), (lng2, lat2) in zip(coords, coords[1:]):
                weight = haversine_km(lat1, lng1, lat2, lng2)
                graph.add_edge(NodeId(lat=lat1, lng=lng1), NodeId(lat=lat2, lng=lng2), weight)
                edges_added += 1
        processed += 1
        if on_progress is not None and (processed % interval == 0 or processed == total):
            on_progress(js_round(processed / total * 100))

    log_event(
        "network_build_complete",
        total_features=total,
        line_features=sum(1 for coords in lines if coords is not None),
        node_count=graph.node_count,
        edge_count=graph.edge_count,
        segments=edges_added,
        duration_ms=round((time.monotonic() - started) * 1000.0, 2),
    )
    return graph


def load_feature_collection(path: Path | str) -> dict[str, Any]:
    """Stream a GeoJSON FeatureCollection from disk."""
    path = Path(path)
    try:
        with path.open("rb") as fh:
            features = list(ijson.items(fh, "features.item", use_float=True))
    except OSError as exc:
        raise MalformedNetworkError(
            f"Roads file could not be read: {path}",
            details={"path": str(path), "error": str(exc)},
        ) from exc
    except ijson.JSONError as exc:
        raise MalformedNetworkError(
            f"Roads file is not valid JSON: {path}",
            details={"path": str(path), "error": str(exc)},
        ) from exc
    return {"type": "FeatureCollection", "features": features}
