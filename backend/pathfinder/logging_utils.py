from __future__ import annotations

import contextvars
import itertools
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from pythonjsonlogger import jsonlogger

from .settings import settings

# Fields of the request currently being served by a session; merged into every event.
_REQUEST_CONTEXT: contextvars.ContextVar[dict[str, Any]] = contextvars.ContextVar(
    "pathfinder_request_context",
    default={},
)
_REQUEST_SEQ = itertools.count(1)


class _RequestContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in _REQUEST_CONTEXT.get().items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True


def _build_logger() -> logging.Logger:
    logger = logging.getLogger("pathfinder")
    logger.setLevel(logging.getLevelNamesMapping().get(settings.log_level, logging.INFO))
    logger.propagate = False
    logger.addFilter(_RequestContextFilter())

    formatter = jsonlogger.JsonFormatter("%(levelname)s %(message)s")
    stream = logging.StreamHandler()
    stream.setFormatter(formatter)
    logger.addHandler(stream)

    log_file = Path(settings.out_dir) / "logs" / "pathfinder.log.jsonl"
    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
    except OSError:
        # Read-only deployments still get stream logging.
        return logger
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)
    return logger


LOGGER: logging.Logger | None = None


def get_logger() -> logging.Logger:
    global LOGGER
    if LOGGER is None:
        LOGGER = _build_logger()
    return LOGGER


@contextmanager
def request_context(session: str, request_type: str) -> Iterator[dict[str, Any]]:
    """Tag every event logged inside the block with the session and request."""
    context = {
        "session": session,
        "request_type": request_type,
        "request_seq": next(_REQUEST_SEQ),
    }
    token = _REQUEST_CONTEXT.set(context)
    try:
        yield context
    finally:
        _REQUEST_CONTEXT.reset(token)


def current_request_context() -> dict[str, Any]:
    return dict(_REQUEST_CONTEXT.get())


def log_event(event: str, *, level: int = logging.INFO, **fields: Any) -> None:
    get_logger().log(level, event, extra={"event": event, **fields})
