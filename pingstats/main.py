"""FastAPI entrypoint for pingstats."""

import logging

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

from pingstats.config import Settings, get_settings
from pingstats.counter import RequestCounter
from pingstats.middleware import request_counting_middleware
from pingstats.reporter import ReportSink, StatsReporter

settings = get_settings()
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)


async def ping() -> str:
    return "pong"


def create_app(
    *,
    app_settings: Settings | None = None,
    counter: RequestCounter | None = None,
    sink: ReportSink | None = None,
) -> FastAPI:
    """Wire one shared counter into the counting middleware and the reporter."""

    app_settings = app_settings or settings
    if counter is None:
        counter = RequestCounter()
    reporter = StatsReporter(
        counter,
        interval_seconds=app_settings.stats_interval_seconds,
        sink=sink,
    )

    app = FastAPI(title=app_settings.app_name, version=app_settings.app_version)
    app.state.request_counter = counter
    app.state.stats_reporter = reporter
    app.middleware("http")(request_counting_middleware(counter))

    @app.on_event("startup")
    async def startup_event() -> None:
        reporter.start()

    @app.on_event("shutdown")
    async def shutdown_event() -> None:
        await reporter.stop()

    app.add_api_route(
        "/ping",
        ping,
        methods=["GET"],
        response_class=PlainTextResponse,
        tags=["health"],
    )
    return app


app = create_app()
request_counter: RequestCounter = app.state.request_counter
