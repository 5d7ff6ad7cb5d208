"""FastAPI application exposing the pixel and the stats endpoints.

The routes only translate HTTP to the event log's two operations:

- `/counter.gif` -> `ViewRecorder.record_view`, always answering with the pixel.
- `/stats.json` and `/daily.json` -> `StatsQuery`, mapping `QueryError` to 503.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Query
from fastapi.responses import JSONResponse, Response

from config import Config
from eventlog import EventStore, QueryError, StatsQuery, StatsReport, ViewRecorder, WriteError

from .pixel import PIXEL_GIF, PIXEL_HEADERS

logger = logging.getLogger(__name__)

SERVICE_NAME = "pageview-pixel"


def stats_to_json(report: StatsReport) -> dict[str, Any]:
    """Flatten a report into the documented `/stats.json` shape."""
    return {
        "total_events": report.summary.total_events,
        "unique_pages": report.summary.unique_pages,
        "latest": [event.model_dump() for event in report.latest],
    }


def create_app(config: Config, store: EventStore, *, recorder: ViewRecorder | None = None) -> FastAPI:
    """Build the application around an already-open store.

    The store is closed when the application shuts down.
    """
    recorder = recorder or ViewRecorder(store=store)
    stats = StatsQuery(
        store=store,
        default_limit=config.stats.default_limit,
        max_limit=config.stats.max_limit,
    )

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        try:
            yield
        finally:
            store.close()

    app = FastAPI(title="Pageview Pixel", version="0.1.0", lifespan=lifespan)

    @app.get("/health")
    async def health() -> dict[str, Any]:
        return {"ok": True, "service": SERVICE_NAME, "recorder": recorder.degraded_status()}

    @app.get("/counter.gif")
    async def count_page_view(
        domain: str | None = Query(None, description="Site the view happened on"),
        page: str | None = Query(None, description="Path or page key"),
    ) -> Response:
        try:
            await recorder.record_view(domain, page)
        except WriteError:
            # A lost pixel is not worth a broken image; the recorder already logged it.
            pass
        return Response(content=PIXEL_GIF, media_type="image/gif", headers=PIXEL_HEADERS)

    @app.get("/stats.json")
    async def export(
        domain: str | None = Query(None, description="Only count events for this exact domain"),
        limit: int | None = Query(None, ge=0, description="Max recent events to return"),
    ) -> Any:
        try:
            report = await stats.query_stats(domain, limit)
        except QueryError as e:
            return JSONResponse(status_code=503, content={"error": str(e)})
        return stats_to_json(report)

    @app.get("/daily.json")
    async def daily(
        domain: str | None = Query(None, description="Only include this exact domain"),
    ) -> Any:
        try:
            rows = await stats.query_daily(domain)
        except QueryError as e:
            return JSONResponse(status_code=503, content={"error": str(e)})
        return {"pageviews": [row.model_dump(mode="json") for row in rows]}

    return app
