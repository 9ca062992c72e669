from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping
from typing import Any

from pydantic import BaseModel, ValidationError

from .astar import find_path
from .errors import (
    GraphNotLoadedError,
    InvalidCoordinateError,
    MalformedNetworkError,
    NoNearestNodeError,
    OutOfBoundsError,
    PathfinderError,
    normalize_reason_code,
)
from .geo import haversine_km
from .graph import Graph
from .logging_utils import log_event, request_context
from .metrics_store import record_request
from .models import (
    AreaSet,
    ErrorMessage,
    FindRouteData,
    InitComplete,
    InitData,
    RoadsProgress,
    RouteDetailsOut,
    RouteFound,
    RouteProgress,
    SetAreaData,
)
from .nearest import find_nearest_node
from .network_builder import build_graph
from .route_metrics import route_details, route_feature
from .settings import settings

Emit = Callable[[dict[str, Any]], None]


def _dump(model: BaseModel) -> dict[str, Any]:
    return model.model_dump(mode="json")


def _validation_summary(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        parts.append(f"{loc}: {err.get('msg', 'invalid')}" if loc else str(err.get("msg", "invalid")))
    return "; ".join(parts)


class RouteSession:
    """Request dispatcher bound to one loaded road network.

    Each call to :meth:`handle` emits zero or more progress messages followed
    by exactly one terminal message, except for unknown message types which
    are logged and ignored. Failures never reset the loaded graph or area.
    """

    def __init__(self, name: str = "default") -> None:
        self.name = name
        self.graph: Graph | None = None
        self.area: SetAreaData | None = None

    def status(self) -> dict[str, Any]:
        area = self.area
        return {
            "session": self.name,
            "graph_loaded": self.graph is not None,
            "node_count": self.graph.node_count if self.graph is not None else 0,
            "edge_count": self.graph.edge_count if self.graph is not None else 0,
            "area": (
                {**area.model_dump(mode="json"), "active": area.region() is not None}
                if area is not None
                else None
            ),
        }

    def handle(self, message: object, emit: Emit) -> None:
        started = time.monotonic()
        progress_count = 0

        def _emit_progress(payload: dict[str, Any]) -> None:
            nonlocal progress_count
            progress_count += 1
            emit(payload)

        msg_type = "invalid"
        if isinstance(message, Mapping):
            msg_type = str(message.get("type") or "")
        reason_code: str | None = None
        with request_context(self.name, msg_type):
            try:
                if not isinstance(message, Mapping):
                    raise TypeError("Message must be an object with 'type' and 'data'")
                data = message.get("data")
                log_event("session_request")
                if msg_type == "init":
                    self._handle_init(data, _emit_progress, emit)
                elif msg_type == "set_area":
                    self._handle_set_area(data, emit)
                elif msg_type == "find_route":
                    self._handle_find_route(data, _emit_progress, emit)
                else:
                    log_event("session_unknown_message", level=logging.WARNING)
                    return
            except PathfinderError as exc:
                reason_code = normalize_reason_code(exc.reason_code)
                log_event(
                    "session_request_failed",
                    level=logging.WARNING,
                    reason_code=reason_code,
                    error_message=str(exc),
                    details=exc.details,
                )
                emit(_dump(ErrorMessage(error=str(exc), reason_code=reason_code)))
            except Exception as exc:
                reason_code = "internal_error"
                log_event(
                    "session_request_failed",
                    level=logging.WARNING,
                    reason_code=reason_code,
                    error_type=type(exc).__name__,
                    error_message=str(exc).strip() or type(exc).__name__,
                )
                emit(_dump(ErrorMessage(error=str(exc).strip() or type(exc).__name__, reason_code=reason_code)))
            finally:
                if msg_type in {"init", "set_area", "find_route", "invalid"}:
                    record_request(
                        msg_type,
                        duration_ms=(time.monotonic() - started) * 1000.0,
                        progress_messages=progress_count,
                        reason_code=reason_code,
                    )

    def _handle_init(self, data: object, emit_progress: Emit, emit: Emit) -> None:
        try:
            payload = InitData.model_validate(data)
        except ValidationError as exc:
            raise MalformedNetworkError(f"Invalid init payload: {_validation_summary(exc)}") from exc

        def _on_progress(progress: int) -> None:
            emit_progress(_dump(RoadsProgress(progress=progress)))

        try:
            graph = build_graph(payload.roads, _on_progress)
        except MalformedNetworkError as exc:
            log_event("network_build_failed", level=logging.WARNING, error_message=str(exc), details=exc.details)
            raise
        self.graph = graph
        emit(_dump(InitComplete()))

    def _handle_set_area(self, data: object, emit: Emit) -> None:
        area = SetAreaData.from_payload(data)
        self.area = area
        region = area.region()
        log_event(
            "session_area_set",
            active=region is not None,
            center=region.center.model_dump() if region is not None else None,
            radius_km=region.radius_km if region is not None else None,
        )
        emit(_dump(AreaSet(center=area.center, radius=area.radius)))

    def _parse_route_request(self, data: object) -> FindRouteData:
        try:
            request = FindRouteData.model_validate(data)
        except ValidationError as exc:
            raise InvalidCoordinateError(
                f"Invalid coordinates provided: {_validation_summary(exc)}"
            ) from exc
        if settings.reject_zero_coordinates and any(v == 0 for v in request.coordinates()):
            raise InvalidCoordinateError("Invalid coordinates provided")
        return request

    def _check_area(self, request: FindRouteData) -> None:
        # A missing centre or a non-positive radius leaves routing unconstrained.
        region = self.area.region() if self.area is not None else None
        if region is None:
            return
        center = region.center
        start_km = haversine_km(request.start_lat, request.start_lng, center.lat, center.lng)
        end_km = haversine_km(request.end_lat, request.end_lng, center.lat, center.lng)
        if start_km > region.radius_km or end_km > region.radius_km:
            raise OutOfBoundsError(
                details={
                    "start_distance_km": start_km,
                    "end_distance_km": end_km,
                    "radius_km": region.radius_km,
                },
            )

    def _handle_find_route(self, data: object, emit_progress: Emit, emit: Emit) -> None:
        graph = self.graph
        if graph is None:
            raise GraphNotLoadedError()
        request = self._parse_route_request(data)
        self._check_area(request)

        start = find_nearest_node(graph, request.start_lat, request.start_lng)
        end = find_nearest_node(graph, request.end_lat, request.end_lng)
        if start is None or end is None:
            raise NoNearestNodeError()

        def _on_progress(progress: int) -> None:
            emit_progress(_dump(RouteProgress(progress=progress)))

        path = find_path(graph, start, end, _on_progress)
        details = route_details(graph, path)
        feature = route_feature(graph, path, details)
        log_event(
            "session_route_found",
            path_nodes=len(path),
            distance_km=round(details.distance_km, 6),
            time_hours=round(details.time_hours, 6),
        )
        emit(
            _dump(
                RouteFound(
                    path=feature,
                    details=RouteDetailsOut(distance=details.distance_km, time=details.time_hours),
                )
            )
        )
