"""
iperf3_statuspage/main.py  · iperf3 status page
Startup: runs iperf3 once, then keeps refreshing on a fixed interval.
All endpoints are cache-read-only.
"""

import asyncio
import logging
from contextlib import asynccontextmanager, suppress
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from iperf3_statuspage.core.cache import ResultStore
from iperf3_statuspage.core.config import Settings, format_ts, load_settings
from iperf3_statuspage.core.query import QueryService, ResultStatus
from iperf3_statuspage.core.scheduler import Refresher
from iperf3_statuspage.routers import iperf3
from iperf3_statuspage.runners.base import MeasurementRunner
from iperf3_statuspage.runners.iperf3 import Iperf3Runner

log = logging.getLogger("main")

VERSION = "0.1.0"


def create_app(
    settings: Optional[Settings] = None,
    *,
    store: Optional[ResultStore] = None,
    runner: Optional[MeasurementRunner] = None,
    start_refresher: bool = True,
) -> FastAPI:
    settings = settings or load_settings()
    store = store or ResultStore()
    runner = runner or Iperf3Runner(
        settings.iperf3_bin, settings.iperf3_timeout_s, settings.iperf3_extra_args,
    )
    refresher = Refresher(store, runner, settings.target, settings.interval_s)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        log.info("🚀 iperf3 status page starting...")
        task = None
        if start_refresher:
            settings.require_target()
            task = asyncio.create_task(refresher.run_forever())
        yield
        log.info("🛑 Shutting down...")
        if task is not None:
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task

    app = FastAPI(
        title="iperf3 status page",
        description=(
            "Runs iperf3 against a fixed server on an interval and serves "
            "the most recent result as JSON."
        ),
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.store = store
    app.state.refresher = refresher
    app.state.query_service = QueryService(store, stale_after_s=settings.stale_after_s)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    app.include_router(iperf3.router)

    @app.get("/", tags=["meta"])
    async def root():
        return {
            "status":  "online",
            "version": VERSION,
            "target":  str(settings.target),
            "endpoints": {
                "iperf3": "/iperf3",
                "health": "/health",
                "docs":   "/docs",
            },
        }

    @app.get("/health", tags=["meta"])
    async def health(request: Request):
        """Lightweight health check; never triggers a run."""
        result = request.app.state.query_service.current_result()
        status = {
            ResultStatus.AVAILABLE:   "healthy",
            ResultStatus.STALE:       "stale",
            ResultStatus.UNAVAILABLE: "warming_up",
        }[result.status]
        summary = request.app.state.store.summary()
        if summary:
            summary["captured_at"] = format_ts(summary["captured_at"], settings.tz)
        stats = request.app.state.refresher.stats()
        stats["last_success_at"] = format_ts(stats["last_success_at"], settings.tz)
        return {
            "status":    status,
            "ready":     result.available,
            "target":    str(settings.target),
            "cache":     summary,
            "refresher": stats,
        }

    return app


_settings = load_settings()

logging.basicConfig(
    level=_settings.log_level,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

app = create_app(_settings)


def run() -> None:
    """Console entry point: serve on BIND_ADDRESS:BIND_PORT."""
    import uvicorn

    settings = app.state.settings
    log.info(f"Starting server at http://{settings.bind_address}:{settings.bind_port}/iperf3")
    uvicorn.run(app, host=settings.bind_address, port=settings.bind_port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run()
