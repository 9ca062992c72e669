from __future__ import annotations

import pytest

import pathfinder.nearest as nearest
from pathfinder.errors import InvalidCoordinateError
from pathfinder.graph import Graph, NodeId, Point
from pathfinder.nearest import find_nearest_node, search_radii


def _graph(*coords: tuple[float, float]) -> Graph:
    graph = Graph()
    for lat, lng in coords:
        point = Point(lat=lat, lng=lng)
        graph.add_node(NodeId.from_point(point), point)
    return graph


def test_exact_match_returns_without_scanning(monkeypatch) -> None:
    graph = _graph((55.70, 37.60), (55.71, 37.61))

    def _no_scan(*_args: object) -> float:
        raise AssertionError("exact match must not compute distances")

    monkeypatch.setattr(nearest, "haversine_km", _no_scan)

    assert find_nearest_node(graph, 55.71, 37.61) == NodeId(lat=55.71, lng=37.61)


def test_returns_closest_node_within_radius() -> None:
    graph = _graph((55.7000, 37.6000), (55.7010, 37.6000), (55.7100, 37.6000))
    assert find_nearest_node(graph, 55.7008, 37.6000) == NodeId(lat=55.7010, lng=37.6000)


def test_falls_back_to_globally_closest_node_beyond_max_radius() -> None:
    # ~11 km and ~22 km north of the query; nothing within 5.5 km.
    graph = _graph((55.80, 37.60), (55.90, 37.60))
    assert find_nearest_node(graph, 55.70, 37.60) == NodeId(lat=55.80, lng=37.60)


def test_empty_graph_returns_none() -> None:
    assert find_nearest_node(Graph(), 55.70, 37.60) is None


@pytest.mark.parametrize(
    ("lat", "lng"),
    [(91.0, 0.0), (0.0, -180.5), (float("nan"), 37.0), (None, 37.0), ("55.7", 37.6)],
)
def test_invalid_coordinates_are_rejected(lat: object, lng: object) -> None:
    graph = _graph((55.70, 37.60))
    with pytest.raises(InvalidCoordinateError):
        find_nearest_node(graph, lat, lng)  # type: ignore[arg-type]


def test_search_radii_double_up_to_max() -> None:
    assert search_radii(0.01, 0.05) == pytest.approx((0.01, 0.02, 0.04))
    assert search_radii(0.1, 0.05) == ()



def test_radius_degrees_are_converted_to_km(monkeypatch) -> None:
    events: list[tuple[str, dict[str, object]]] = []
    monkeypatch.setattr(nearest, "log_event", lambda event, **fields: events.append((event, fields)))
    # ~1.5 km north: outside 0.01 deg (1.11 km), inside 0.02 deg (2.22 km).
    graph = _graph((55.7135, 37.60))

    assert find_nearest_node(graph, 55.70, 37.60) == NodeId(lat=55.7135, lng=37.60)
    assert events[-1][0] == "nearest_node_resolved"
    assert events[-1][1]["search_radius_deg"] == 0.02
