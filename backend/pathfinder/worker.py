from __future__ import annotations

import logging
import queue
import threading
from collections.abc import Callable, Iterator
from typing import Any

from .errors import WorkerStoppedError
from .logging_utils import log_event, request_context
from .models import TERMINAL_TYPES, ErrorMessage
from .session import RouteSession

OnMessage = Callable[[dict[str, Any]], None]

# Marks the end of one request on its reply queue; unknown message types produce only this.
REQUEST_DONE = object()
_STOP = object()


class PathfinderWorker:
    """One background thread serving a RouteSession, one request at a time.

    Requests go in through :meth:`post`. Outbound messages go to the request's
    reply queue when one is given, otherwise to ``on_message`` or, failing
    that, to :attr:`outbox`.
    """

    def __init__(
        self,
        session: RouteSession | None = None,
        *,
        on_message: OnMessage | None = None,
        name: str = "pathfinder-worker",
    ) -> None:
        self.session = session or RouteSession()
        self.outbox: queue.Queue[dict[str, Any]] = queue.Queue()
        self._on_message = on_message
        self._inbox: queue.Queue[Any] = queue.Queue()
        self._name = name
        self._lock = threading.Lock()
        self._thread: threading.Thread | None = None
        self._accepting = False

    @property
    def running(self) -> bool:
        thread = self._thread
        return thread is not None and thread.is_alive()

    def start(self) -> "PathfinderWorker":
        with self._lock:
            if self._thread is not None and self._thread.is_alive():
                return self
            self._accepting = True
            self._thread = threading.Thread(target=self._run, name=self._name, daemon=True)
            self._thread.start()
        with request_context(self.session.name, "worker"):
            log_event("worker_started", worker=self._name)
        return self

    def stop(self, timeout: float | None = 5.0) -> None:
        """Stop accepting requests, finish the current one and fail whatever is still queued."""
        with self._lock:
            thread = self._thread
            self._thread = None
            self._accepting = False
            if thread is not None:
                self._inbox.put(_STOP)
        if thread is not None:
            thread.join(timeout)
        self._drain()
        with request_context(self.session.name, "worker"):
            log_event("worker_stopped", worker=self._name)

    def post(self, message: object, reply_to: queue.Queue[Any] | None = None) -> None:
        """Queue ``message``; a worker that is not running answers with a ``worker_stopped`` error."""
        with self._lock:
            if self._accepting:
                self._inbox.put((message, reply_to))
                return
        self._refuse(reply_to)

    def iter_request(self, message: object, *, timeout: float | None = None) -> Iterator[dict[str, Any]]:
        """Post ``message`` and yield its progress messages and terminal reply."""
        reply: queue.Queue[Any] = queue.Queue()
        self.post(message, reply)
        while True:
            item = reply.get(timeout=timeout)
            if item is REQUEST_DONE:
                return
            yield item

    def request(self, message: object, *, timeout: float | None = None) -> list[dict[str, Any]]:
        return list(self.iter_request(message, timeout=timeout))

    def _deliver(self, payload: dict[str, Any], reply_to: queue.Queue[Any] | None) -> None:
        if reply_to is not None:
            reply_to.put(payload)
        elif self._on_message is not None:
            self._on_message(payload)
        else:
            self.outbox.put(payload)

    def _refuse(self, reply_to: queue.Queue[Any] | None) -> None:
        exc = WorkerStoppedError()
        self._deliver(ErrorMessage(error=str(exc), reason_code=exc.reason_code).model_dump(mode="json"), reply_to)
        if reply_to is not None:
            reply_to.put(REQUEST_DONE)

    def _drain(self) -> None:
        while True:
            try:
                item = self._inbox.get_nowait()
            except queue.Empty:
                return
            if item is _STOP:
                # Still owed to a thread that has not reached it yet.
                self._inbox.put(_STOP)
                return
            _message, reply_to = item
            self._refuse(reply_to)

    def _run(self) -> None:
        while True:
            item = self._inbox.get()
            if item is _STOP:
                self._drain()
                return
            message, reply_to = item
            try:
                self.session.handle(message, lambda payload: self._deliver(payload, reply_to))
            except Exception as exc:  # pragma: no cover - delivery callback failure
                log_event(
                    "worker_delivery_failed",
                    level=logging.ERROR,
                    worker=self._name,
                    error_type=type(exc).__name__,
                    error_message=str(exc).strip() or type(exc).__name__,
                )
            finally:
                if reply_to is not None:
                    reply_to.put(REQUEST_DONE)


def is_terminal(payload: dict[str, Any]) -> bool:
    return str(payload.get("type", "")) in TERMINAL_TYPES
