from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import Any, Optional

import orjson
from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from apps.events_api.events import router as events_router
from apps.events_api.metrics import CONTENT_TYPE_LATEST, LAT, REG, REQS, generate_latest
from libs.eventhub_core.eventhub.config import configure_logging
from libs.eventhub_core.eventhub.errors import InvalidQueryError, UnsupportedOperatorError
from libs.eventhub_core.eventhub.storage import BackendSelector, get_selector

_log = logging.getLogger(__name__)


class OrjsonResponse(JSONResponse):
    def render(self, content: Any) -> bytes:
        return orjson.dumps(content, default=str, option=orjson.OPT_UTC_Z)


def create_app(selector: Optional[BackendSelector] = None) -> FastAPI:
    """Build the events API around ``selector`` (the process-wide one by default)."""
    selector = selector or get_selector()

    @asynccontextmanager
    async def _lifespan(app: FastAPI):
        configure_logging()
        db = await selector.connect()
        _log.info("Events API serving from %s backend", db.backend)
        yield

    app = FastAPI(title="EventHub API", version="0.1.0", lifespan=_lifespan, default_response_class=OrjsonResponse)
    app.state.selector = selector
    app.include_router(events_router)

    @app.exception_handler(InvalidQueryError)
    @app.exception_handler(UnsupportedOperatorError)
    async def _bad_query(request: Request, exc: Exception):
        return OrjsonResponse(status_code=400, content={"detail": str(exc)})

    @app.middleware("http")
    async def metrics_mw(request: Request, call_next):
        start = time.perf_counter()
        try:
            return await call_next(request)
        finally:
            backend = selector.database.backend if selector.selected else "-"
            LAT.labels(request.url.path, request.method).observe(time.perf_counter() - start)
            REQS.labels(request.url.path, request.method, backend).inc()

    @app.get("/health")
    async def health():
        db = await selector.connect()
        return {"status": "ok", "backend": db.backend, "using_in_memory": db.using_in_memory}

    @app.get("/metrics")
    def metrics():
        return Response(generate_latest(REG), media_type=CONTENT_TYPE_LATEST)

    return app


app = create_app()
