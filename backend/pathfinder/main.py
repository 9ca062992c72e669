from __future__ import annotations

import json
import threading
from collections.abc import Iterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from fastapi import Body, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse

from .errors import MalformedNetworkError
from .logging_utils import log_event, request_context
from .metrics_store import metrics_snapshot
from .network_builder import load_feature_collection
from .session import RouteSession
from .settings import settings
from .worker import PathfinderWorker

NDJSON_MEDIA_TYPE = "application/x-ndjson"


class SessionRegistry:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._workers: dict[str, PathfinderWorker] = {}

    def get_or_create(self, session_id: str) -> PathfinderWorker:
        # Every registered worker is started before the lock is released.
        with self._lock:
            worker = self._workers.get(session_id)
            if worker is None:
                worker = PathfinderWorker(RouteSession(session_id), name=f"pathfinder-{session_id}")
                self._workers[session_id] = worker
            return worker.start()

    def get(self, session_id: str) -> PathfinderWorker | None:
        with self._lock:
            return self._workers.get(session_id)

    def remove(self, session_id: str) -> PathfinderWorker | None:
        with self._lock:
            worker = self._workers.pop(session_id, None)
        if worker is not None:
            worker.stop()
        return worker

    def close(self) -> None:
        with self._lock:
            workers = list(self._workers.values())
            self._workers.clear()
        for worker in workers:
            worker.stop()


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.sessions = SessionRegistry()
    yield
    app.state.sessions.close()


app = FastAPI(title="Road Network Pathfinder", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _registry(request: Request) -> SessionRegistry:
    registry: SessionRegistry | None = getattr(request.app.state, "sessions", None)
    if registry is None:
        raise HTTPException(status_code=503, detail="Session registry not initialised")
    return registry


def _ndjson(messages: Iterator[dict[str, Any]]) -> Iterator[str]:
    for message in messages:
        yield json.dumps(message, separators=(",", ":")) + "\n"


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/metrics")
async def metrics() -> dict[str, object]:
    return metrics_snapshot()


@app.post("/sessions/{session_id}/messages")
def post_message(session_id: str, request: Request, message: dict[str, Any] = Body(...)) -> StreamingResponse:
    worker = _registry(request).get_or_create(session_id)
    return StreamingResponse(_ndjson(worker.iter_request(message)), media_type=NDJSON_MEDIA_TYPE)


@app.post("/sessions/{session_id}/roads-file")
def load_roads_file(session_id: str, request: Request, path: str | None = None) -> StreamingResponse:
    roads_path = Path(path or settings.roads_path)
    if not roads_path.exists():
        raise HTTPException(status_code=404, detail=f"Roads file not found: {roads_path}")
    try:
        roads = load_feature_collection(roads_path)
    except MalformedNetworkError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    with request_context(session_id, "roads_file"):
        log_event("roads_file_loaded", path=str(roads_path), features=len(roads["features"]))
    worker = _registry(request).get_or_create(session_id)
    return StreamingResponse(
        _ndjson(worker.iter_request({"type": "init", "data": {"roads": roads}})),
        media_type=NDJSON_MEDIA_TYPE,
    )


@app.get("/sessions/{session_id}")
async def session_status(session_id: str, request: Request) -> dict[str, Any]:
    worker = _registry(request).get(session_id)
    if worker is None:
        raise HTTPException(status_code=404, detail="Unknown session")
    return {**worker.session.status(), "running": worker.running}


@app.delete("/sessions/{session_id}")
def delete_session(session_id: str, request: Request) -> dict[str, Any]:
    worker = _registry(request).remove(session_id)
    if worker is None:
        raise HTTPException(status_code=404, detail="Unknown session")
    return {"session": session_id, "deleted": True}
