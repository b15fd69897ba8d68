"""FastAPI app exposing the playback bookmark store.

Endpoints:
 - GET  /               -> liveness string
 - POST /bookmark/set   -> form fields `item`, `time`; stores the position (bad `time` -> 0)
 - GET  /bookmark/get   -> {"time": <int>} for `item`, 0 if it was never bookmarked

The store is hydrated from the snapshot file on startup and a PersistenceScheduler flushes
it back periodically; both are stopped cleanly on shutdown.
"""
from __future__ import annotations

import asyncio
import logging
import re
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Form, Query, Request
from fastapi.responses import PlainTextResponse, Response
from pydantic import BaseModel

import bookmarks
from scheduler import PersistenceScheduler
from settings import Settings, load_settings

logger = logging.getLogger("api")

_INT_RE = re.compile(r"[+-]?[0-9]+")


class BookmarkOut(BaseModel):
    time: int


def parse_position(value: Optional[str]) -> int:
    """Parse a decimal position, falling back to 0 for anything malformed."""
    if value is None or not _INT_RE.fullmatch(value):
        return 0
    try:
        return int(value)
    except ValueError:
        # digit strings past the interpreter's int conversion limit
        return 0


def create_app(
    store: Optional[bookmarks.BookmarkStore] = None,
    scheduler: Optional[PersistenceScheduler] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    settings = settings or load_settings()
    # an injected store is assumed to be hydrated already
    hydrate = store is None
    if store is None:
        store = bookmarks.BookmarkStore()
    if scheduler is None:
        scheduler = PersistenceScheduler(
            store,
            settings.storage_path,
            flush_interval=settings.flush_interval,
            requeue_on_failure=settings.requeue_failed_flush,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if hydrate:
            bookmarks.hydrate(store, settings.storage_path)
        scheduler.start()
        try:
            yield
        finally:
            await asyncio.to_thread(scheduler.stop, flush=settings.flush_on_shutdown)

    app = FastAPI(title="playback-bookmarker", lifespan=lifespan)
    app.state.store = store
    app.state.scheduler = scheduler
    app.state.settings = settings

    @app.get("/", response_class=PlainTextResponse)
    def index():
        return "Hello from Playback Bookmarker!\n"

    @app.post("/bookmark/set", response_class=Response)
    def set_bookmark(request: Request, item: Optional[str] = Form(None), time: Optional[str] = Form(None)):
        # fields missing from the body may come from the query string
        if item is None:
            item = request.query_params.get("item", "")
        if time is None:
            time = request.query_params.get("time")
        request.app.state.store.set(item, parse_position(time))
        return Response(status_code=200)

    @app.get("/bookmark/get", response_model=BookmarkOut)
    def get_bookmark(request: Request, item: str = Query("", description="Media item identifier")):
        return BookmarkOut(time=request.app.state.store.get(item))

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    cfg = app.state.settings
    logging.basicConfig(level=cfg.log_level, format="%(asctime)s %(levelname)s %(message)s")
    uvicorn.run(app, host=cfg.host, port=cfg.port)
