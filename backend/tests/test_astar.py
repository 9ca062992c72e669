from __future__ import annotations

import math

import pytest

import pathfinder.astar as astar
from pathfinder.astar import find_path, find_path_with_stats
from pathfinder.errors import MaxIterationsExceededError, RouteTooFarError, TargetUnreachableError
from pathfinder.geo import haversine_km
from pathfinder.graph import Graph, NodeId, Point
from pathfinder.route_metrics import path_geometry, route_details, route_feature


def _add(graph: Graph, lat: float, lng: float) -> NodeId:
    point = Point(lat=lat, lng=lng)
    node_id = NodeId.from_point(point)
    graph.add_node(node_id, point)
    return node_id


def _connect(graph: Graph, a: NodeId, b: NodeId) -> None:
    graph.add_edge(a, b, haversine_km(a.lat, a.lng, b.lat, b.lng))


def _line_graph(count: int = 5) -> tuple[Graph, list[NodeId]]:
    """Nodes 1 km apart along the 37.6E meridian."""
    graph = Graph()
    nodes = [_add(graph, 55.0 + math.degrees(i / 6371.0), 37.6) for i in range(count)]
    for a, b in zip(nodes, nodes[1:]):
        _connect(graph, a, b)
    return graph, nodes


def test_straight_line_path_and_metrics() -> None:
    graph, nodes = _line_graph()

    path = find_path(graph, nodes[0], nodes[4])
    details = route_details(graph, path)

    assert list(path) == nodes
    assert details.distance_km == pytest.approx(4.0)
    assert details.time_hours == pytest.approx(0.8)


def test_path_to_self_has_single_node() -> None:
    graph, nodes = _line_graph()
    seen: list[int] = []

    path = find_path(graph, nodes[2], nodes[2], seen.append)

    assert path == (nodes[2],)
    assert route_details(graph, path).distance_km == 0.0
    assert seen == [100]


def test_prefers_shorter_route_over_fewer_hops() -> None:
    graph = Graph()
    a = _add(graph, 55.00, 37.60)
    b = _add(graph, 55.01, 37.60)
    detour = _add(graph, 55.005, 37.70)
    m1 = _add(graph, 55.0033, 37.601)
    m2 = _add(graph, 55.0066, 37.601)
    _connect(graph, a, detour)
    _connect(graph, detour, b)
    _connect(graph, a, m1)
    _connect(graph, m1, m2)
    _connect(graph, m2, b)

    assert find_path(graph, a, b) == (a, m1, m2, b)


def test_too_far_fails_before_search(monkeypatch) -> None:
    graph = Graph()
    a = _add(graph, 55.0, 37.6)
    b = _add(graph, 56.0, 37.6)  # ~111 km
    _connect(graph, a, b)

    class _NoQueue:
        def __init__(self) -> None:
            raise AssertionError("search must not start")

    monkeypatch.setattr(astar, "MinPriorityQueue", _NoQueue)

    with pytest.raises(RouteTooFarError) as excinfo:
        find_path(graph, a, b)
    assert excinfo.value.reason_code == "route_too_far"


def test_disconnected_nodes_are_unreachable() -> None:
    graph = Graph()
    a = _add(graph, 55.00, 37.60)
    b = _add(graph, 55.05, 37.60)

    with pytest.raises(TargetUnreachableError):
        find_path(graph, a, b)


def test_diverging_search_is_stopped() -> None:
    graph = Graph()
    start = _add(graph, 55.0, 37.6)
    goal = _add(graph, 55.1, 37.6)
    far = _add(graph, 56.5, 37.6)  # ~155 km from the goal
    _connect(graph, start, far)
    _connect(graph, far, goal)

    with pytest.raises(TargetUnreachableError) as excinfo:
        find_path(graph, start, goal)
    assert "too far from target" in str(excinfo.value)


def test_iteration_cap() -> None:
    graph, nodes = _line_graph()

    with pytest.raises(MaxIterationsExceededError) as excinfo:
        find_path(graph, nodes[0], nodes[4], max_iterations=2)
    assert excinfo.value.details is not None
    assert excinfo.value.details["expansions"] == 2


def test_progress_is_capped_until_goal_found() -> None:
    graph, nodes = _line_graph()
    seen: list[int] = []

    result, stats = find_path_with_stats(graph, nodes[0], nodes[4], seen.append, progress_interval=1)

    assert seen == [20, 40, 60, 80, 95, 100]
    assert stats["expansions"] == 5
    assert result.cost == pytest.approx(4.0)


def test_repeated_search_is_identical() -> None:
    graph = Graph()
    # Two equal-length routes around a square; tie-breaking must be stable.
    a = _add(graph, 55.000, 37.600)
    b = _add(graph, 55.000, 37.610)
    c = _add(graph, 55.010, 37.600)
    d = _add(graph, 55.010, 37.610)
    for u, v in ((a, b), (a, c), (b, d), (c, d)):
        _connect(graph, u, v)

    first = find_path(graph, a, d)
    assert all(find_path(graph, a, d) == first for _ in range(5))


def test_route_feature_uses_lng_lat_order() -> None:
    graph, nodes = _line_graph(3)
    path = find_path(graph, nodes[0], nodes[2])

    feature = route_feature(graph, path)

    assert path_geometry(graph, path)[0] == (37.6, 55.0)
    assert feature["type"] == "Feature"
    assert feature["geometry"]["type"] == "LineString"
    assert feature["geometry"]["coordinates"][0] == [37.6, 55.0]
    assert feature["properties"]["distance"] == pytest.approx(2.0)
    assert feature["properties"]["time"] == pytest.approx(0.4)
