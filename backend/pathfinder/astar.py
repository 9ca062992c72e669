from __future__ import annotations

import math
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from .errors import (
    MaxIterationsExceededError,
    NoNearestNodeError,
    RouteTooFarError,
    TargetUnreachableError,
)
from .geo import haversine_km, js_round
from .graph import Graph, NodeId
from .logging_utils import log_event
from .priority_queue import MinPriorityQueue
from .settings import settings

ProgressFn = Callable[[int], None]


@dataclass(frozen=True)
class PathResult:
    nodes: tuple[NodeId, ...]
    cost: float


def reconstruct_path(came_from: dict[NodeId, NodeId], current: NodeId) -> tuple[NodeId, ...]:
    path = [current]
    while current in came_from:
        current = came_from[current]
        path.append(current)
    path.reverse()
    return tuple(path)


def _distance_between(graph: Graph, a: NodeId, b: NodeId) -> float:
    pa = graph.point(a)
    pb = graph.point(b)
    return haversine_km(pa.lat, pa.lng, pb.lat, pb.lng)


def find_path_with_stats(
    graph: Graph,
    start: NodeId,
    goal: NodeId,
    on_progress: ProgressFn | None = None,
    *,
    max_distance_km: float | None = None,
    max_iterations: int | None = None,
    divergence_factor: float | None = None,
    progress_interval: int | None = None,
) -> tuple[PathResult, dict[str, Any]]:
    max_distance = float(settings.max_route_distance_km if max_distance_km is None else max_distance_km)
    iteration_cap = int(settings.max_search_iterations if max_iterations is None else max_iterations)
    divergence_km = max_distance * float(
        settings.divergence_factor if divergence_factor is None else divergence_factor
    )
    interval = max(1, int(progress_interval or settings.search_progress_interval))

    if start not in graph or goal not in graph:
        raise NoNearestNodeError("Start or end node is not part of the loaded graph")

    direct_km = _distance_between(graph, start, goal)
    if direct_km > max_distance:
        log_event(
            "path_search_failed",
            reason="route_too_far",
            direct_distance_km=round(direct_km, 3),
            max_distance_km=max_distance,
        )
        raise RouteTooFarError(
            f"Points are too far apart: {direct_km:.2f} km (max {max_distance:g} km)",
            details={"direct_distance_km": direct_km, "max_distance_km": max_distance},
        )

    started = time.monotonic()
    total_nodes = max(1, graph.node_count)
    log_event(
        "path_search_started",
        start=str(start),
        goal=str(goal),
        direct_distance_km=round(direct_km, 6),
        graph_nodes=graph.node_count,
    )

    open_set: MinPriorityQueue[NodeId] = MinPriorityQueue()
    closed: set[NodeId] = set()
    came_from: dict[NodeId, NodeId] = {}
    g_score: dict[NodeId, float] = {start: 0.0}
    f_score: dict[NodeId, float] = {start: direct_km}
    open_set.insert(start, direct_km)
    expansions = 0

    def _stats() -> dict[str, Any]:
        return {
            "expansions": expansions,
            "open_set_size": len(open_set),
            "closed_set_size": len(closed),
            "duration_ms": round((time.monotonic() - started) * 1000.0, 2),
        }

    while not open_set.is_empty():
        if expansions >= iteration_cap:
            log_event("path_search_failed", reason="max_iterations_exceeded", **_stats())
            raise MaxIterationsExceededError(
                f"Path finding stopped after {iteration_cap} iterations",
                details=_stats(),
            )
        current, _priority = open_set.extract_min()
        # Stale heap entry for a node already finalised with a better f.
        if current in closed:
            continue
        expansions += 1

        remaining_km = _distance_between(graph, current, goal)
        if remaining_km > divergence_km:
            log_event("path_search_failed", reason="diverged", remaining_km=round(remaining_km, 3), **_stats())
            raise TargetUnreachableError(
                "Path finding stopped: too far from target",
                details={"remaining_km": remaining_km, **_stats()},
            )

        if expansions % interval == 0:
            progress = min(95, js_round(expansions / total_nodes * 100))
            if on_progress is not None:
                on_progress(progress)
            log_event("path_search_progress", progress=progress, **_stats())

        if current == goal:
            path = reconstruct_path(came_from, current)
            if on_progress is not None:
                on_progress(100)
            stats = _stats()
            stats["path_nodes"] = len(path)
            log_event("path_search_found", **stats)
            return PathResult(nodes=path, cost=g_score[current]), stats

        closed.add(current)
        current_g = g_score[current]
        # Adjacency order, not set order, so ties expand identically on every run.
        for neighbor, weight in graph.adjacency.get(current, {}).items():
            if neighbor in closed:
                continue
            tentative = current_g + weight
            if tentative < g_score.get(neighbor, math.inf):
                came_from[neighbor] = current
                g_score[neighbor] = tentative
                f_score[neighbor] = tentative + _distance_between(graph, neighbor, goal)
                open_set.insert(neighbor, f_score[neighbor])

    log_event("path_search_failed", reason="open_set_exhausted", **_stats())
    raise TargetUnreachableError("No path found between points", details=_stats())


def find_path(
    graph: Graph,
    start: NodeId,
    goal: NodeId,
    on_progress: ProgressFn | None = None,
    *,
    max_distance_km: float | None = None,
    max_iterations: int | None = None,
) -> tuple[NodeId, ...]:
    result, _stats = find_path_with_stats(
        graph,
        start,
        goal,
        on_progress,
        max_distance_km=max_distance_km,
        max_iterations=max_iterations,
    )
    return result.nodes
