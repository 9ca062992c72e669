from __future__ import annotations

from dataclasses import dataclass
from typing import Any

FROZEN_REASON_CODES: frozenset[str] = frozenset(
    {
        "malformed_network",
        "invalid_coordinate",
        "graph_not_loaded",
        "out_of_bounds",
        "no_nearest_node",
        "route_too_far",
        "target_unreachable",
        "max_iterations_exceeded",
        "empty_queue",
        "worker_stopped",
        "internal_error",
    }
)


@dataclass
class PathfinderError(ValueError):
    reason_code: str
    message: str
    details: dict[str, Any] | None = None

    def __str__(self) -> str:
        return self.message


class _CodedError(PathfinderError):
    code = "internal_error"
    default_message = "pathfinder error"

    def __init__(self, message: str | None = None, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            reason_code=self.code,
            message=str(message or self.default_message),
            details=details,
        )


class MalformedNetworkError(_CodedError):
    code = "malformed_network"
    default_message = "Road network data is malformed"


class InvalidCoordinateError(_CodedError):
    code = "invalid_coordinate"
    default_message = "Invalid coordinates provided"


class GraphNotLoadedError(_CodedError):
    code = "graph_not_loaded"
    default_message = "Graph not initialized. Please load roads data first."


class OutOfBoundsError(_CodedError):
    code = "out_of_bounds"
    default_message = "Start or end point is outside the allowed area"


class NoNearestNodeError(_CodedError):
    code = "no_nearest_node"
    default_message = "Could not find nearest nodes for start or end points"


class RouteTooFarError(_CodedError):
    code = "route_too_far"
    default_message = "Points are too far apart"


class TargetUnreachableError(_CodedError):
    code = "target_unreachable"
    default_message = "No path found between points"


class MaxIterationsExceededError(_CodedError):
    code = "max_iterations_exceeded"
    default_message = "Path finding stopped due to maximum iterations reached"


class EmptyQueueError(_CodedError):
    code = "empty_queue"
    default_message = "extract_min from an empty priority queue"


class WorkerStoppedError(_CodedError):
    code = "worker_stopped"
    default_message = "Worker is not running"


def normalize_reason_code(reason_code: str, *, default: str = "internal_error") -> str:
    code = str(reason_code or "").strip()
    if code in FROZEN_REASON_CODES:
        return code
    return default
