from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from threading import Lock


@dataclass
class RequestTypeStats:
    request_count: int = 0
    error_count: int = 0
    progress_messages: int = 0
    total_duration_ms: float = 0.0
    max_duration_ms: float = 0.0
    reason_codes: dict[str, int] = field(default_factory=dict)


class MetricsStore:
    """Per-request-type counters shared by every session in the process."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._created_at = datetime.now(UTC).isoformat()
        self._requests: dict[str, RequestTypeStats] = {}

    def record(
        self,
        request_type: str,
        *,
        duration_ms: float,
        progress_messages: int = 0,
        reason_code: str | None = None,
    ) -> None:
        name = request_type.strip() or "unknown"
        d_ms = max(float(duration_ms), 0.0)

        with self._lock:
            stats = self._requests.setdefault(name, RequestTypeStats())
            stats.request_count += 1
            stats.progress_messages += max(0, int(progress_messages))
            if reason_code:
                stats.error_count += 1
                stats.reason_codes[reason_code] = stats.reason_codes.get(reason_code, 0) + 1
            stats.total_duration_ms += d_ms
            if d_ms > stats.max_duration_ms:
                stats.max_duration_ms = d_ms

    def snapshot(self) -> dict[str, object]:
        with self._lock:
            requests: dict[str, dict[str, object]] = {}
            total_requests = 0
            total_errors = 0

            for name in sorted(self._requests):
                stats = self._requests[name]
                total_requests += stats.request_count
                total_errors += stats.error_count
                avg_duration_ms = (
                    stats.total_duration_ms / stats.request_count if stats.request_count else 0.0
                )
                requests[name] = {
                    "request_count": stats.request_count,
                    "error_count": stats.error_count,
                    "progress_messages": stats.progress_messages,
                    "reason_codes": dict(sorted(stats.reason_codes.items())),
                    "avg_duration_ms": round(avg_duration_ms, 3),
                    "max_duration_ms": round(stats.max_duration_ms, 3),
                }

            return {
                "created_at": self._created_at,
                "total_requests": total_requests,
                "total_errors": total_errors,
                "requests": requests,
            }

    def reset(self) -> None:
        with self._lock:
            self._created_at = datetime.now(UTC).isoformat()
            self._requests.clear()


METRICS = MetricsStore()


def record_request(
    request_type: str,
    *,
    duration_ms: float,
    progress_messages: int = 0,
    reason_code: str | None = None,
) -> None:
    METRICS.record(
        request_type,
        duration_ms=duration_ms,
        progress_messages=progress_messages,
        reason_code=reason_code,
    )


def metrics_snapshot() -> dict[str, object]:
    return METRICS.snapshot()


def reset_metrics() -> None:
    METRICS.reset()
