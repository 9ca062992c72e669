from __future__ import annotations

import math

from .errors import InvalidCoordinateError
from .geo import KM_PER_DEGREE, haversine_km, is_valid_lat_lng
from .graph import Graph, NodeId
from .logging_utils import log_event
from .settings import settings


def search_radii(initial_radius: float, max_radius: float) -> tuple[float, ...]:
    """Doubling radii (degrees) from ``initial_radius`` while not above ``max_radius``."""
    radii: list[float] = []
    radius = float(initial_radius)
    while radius <= max_radius:
        radii.append(radius)
        radius *= 2.0
    return tuple(radii)


def find_nearest_node(
    graph: Graph,
    lat: float,
    lng: float,
    *,
    initial_radius: float | None = None,
    max_radius: float | None = None,
) -> NodeId | None:
    """Resolve a coordinate to the closest graph vertex.

    An exact coordinate match is returned without scanning. Otherwise the
    expanding-radius search is evaluated over one pass of the node set: the
    globally closest vertex is the answer at the first radius that contains
    it, and the fallback when none does. Returns None only for an empty graph.
    """
    if not is_valid_lat_lng(lat, lng):
        raise InvalidCoordinateError(
            f"Invalid coordinates: lat={lat!r}, lng={lng!r}",
            details={"lat": lat, "lng": lng},
        )
    lat = float(lat)
    lng = float(lng)

    exact = NodeId(lat=lat, lng=lng)
    if exact in graph:
        log_event("nearest_node_exact", node_id=str(exact))
        return exact

    closest: NodeId | None = None
    closest_km = math.inf
    for node_id, point in graph.nodes.items():
        dist = haversine_km(lat, lng, point.lat, point.lng)
        if dist < closest_km:
            closest_km = dist
            closest = node_id

    if closest is None:
        log_event("nearest_node_none", lat=lat, lng=lng, node_count=0)
        return None

    radii = search_radii(
        settings.nearest_initial_radius if initial_radius is None else initial_radius,
        settings.nearest_max_radius if max_radius is None else max_radius,
    )
    for radius in radii:
        if closest_km < radius * KM_PER_DEGREE:
            log_event(
                "nearest_node_resolved",
                node_id=str(closest),
                distance_km=round(closest_km, 6),
                search_radius_deg=radius,
                checked_nodes=graph.node_count,
            )
            return closest

    log_event(
        "nearest_node_fallback",
        node_id=str(closest),
        distance_km=round(closest_km, 6),
        max_radius_deg=radii[-1] if radii else None,
        checked_nodes=graph.node_count,
    )
    return closest
