from __future__ import annotations

import math
from collections import deque
from dataclasses import dataclass


@dataclass(frozen=True)
class Point:
    lat: float
    lng: float


@dataclass(frozen=True)
class NodeId:
    """Vertex identity: the exact coordinate pair, no snapping."""

    lat: float
    lng: float

    @classmethod
    def from_point(cls, point: Point) -> "NodeId":
        return cls(lat=point.lat, lng=point.lng)

    def __str__(self) -> str:
        return f"{self.lat!r},{self.lng!r}"


class Graph:
    """Undirected weighted road graph; edge weights are great-circle kilometres."""

    def __init__(self) -> None:
        self.nodes: dict[NodeId, Point] = {}
        self.adjacency: dict[NodeId, dict[NodeId, float]] = {}

    def add_node(self, node_id: NodeId, point: Point) -> None:
        if node_id not in self.nodes:
            self.nodes[node_id] = point
        self.adjacency.setdefault(node_id, {})

    def add_edge(self, a: NodeId, b: NodeId, weight: float) -> None:
        self.adjacency.setdefault(a, {})[b] = float(weight)
        self.adjacency.setdefault(b, {})[a] = float(weight)

    def neighbors(self, node_id: NodeId) -> frozenset[NodeId]:
        return frozenset(self.adjacency.get(node_id, ()))

    def edge_weight(self, a: NodeId, b: NodeId) -> float:
        return self.adjacency.get(a, {}).get(b, math.inf)

    def point(self, node_id: NodeId) -> Point:
        return self.nodes[node_id]

    def __contains__(self, node_id: object) -> bool:
        return node_id in self.nodes

    @property
    def node_count(self) -> int:
        return len(self.nodes)

    @property
    def edge_count(self) -> int:
        directed = 0
        loops = 0
        for src, edges in self.adjacency.items():
            directed += len(edges)
            if src in edges:
                loops += 1
        return (directed - loops) // 2 + loops

    def isolated_node_count(self) -> int:
        return sum(1 for node_id in self.nodes if not self.adjacency.get(node_id))

    def component_sizes(self) -> list[int]:
        seen: set[NodeId] = set()
        sizes: list[int] = []
        for node_id in self.nodes:
            if node_id in seen:
                continue
            seen.add(node_id)
            q: deque[NodeId] = deque([node_id])
            size = 0
            while q:
                current = q.popleft()
                size += 1
                for nxt in self.adjacency.get(current, ()):
                    if nxt not in seen:
                        seen.add(nxt)
                        q.append(nxt)
            sizes.append(size)
        return sorted(sizes, reverse=True)

    def bbox(self) -> tuple[float, float, float, float] | None:
        """(lat_min, lat_max, lng_min, lng_max), or None for an empty graph."""
        if not self.nodes:
            return None
        lats = [p.lat for p in self.nodes.values()]
        lngs = [p.lng for p in self.nodes.values()]
        return (min(lats), max(lats), min(lngs), max(lngs))
