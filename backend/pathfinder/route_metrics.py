from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from .graph import Graph, NodeId
from .settings import settings


@dataclass(frozen=True)
class RouteDetails:
    distance_km: float
    time_hours: float

    def as_dict(self) -> dict[str, float]:
        return {"distance": self.distance_km, "time": self.time_hours}


def route_details(
    graph: Graph,
    path: Sequence[NodeId],
    *,
    average_speed_kph: float | None = None,
) -> RouteDetails:
    speed = float(settings.average_speed_kph if average_speed_kph is None else average_speed_kph)
    distance = 0.0
    for a, b in zip(path, path[1:]):
        distance += graph.edge_weight(a, b)
    return RouteDetails(distance_km=distance, time_hours=distance / speed)


def path_geometry(graph: Graph, path: Sequence[NodeId]) -> list[tuple[float, float]]:
    """Path vertices as GeoJSON positions (lng first)."""
    coords: list[tuple[float, float]] = []
    for node_id in path:
        point = graph.point(node_id)
        coords.append((point.lng, point.lat))
    return coords


def route_feature(graph: Graph, path: Sequence[NodeId], details: RouteDetails | None = None) -> dict[str, Any]:
    details = details or route_details(graph, path)
    return {
        "type": "Feature",
        "geometry": {
            "type": "LineString",
            "coordinates": [[lng, lat] for lng, lat in path_geometry(graph, path)],
        },
        "properties": details.as_dict(),
    }
