"""FastAPI application entrypoint for the day planner API."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from api.routes.notifications import router as notifications_router
from api.routes.schedules import router as schedules_router
from api.services.schedule_store import ScheduleStore
from core.logging_setup import setup_logging
from core.settings import Settings, get_settings
from scheduler.service import NotificationScheduler
from scheduler.subscribers import SubscriberRegistry
from scheduler.timers import APSchedulerTimerSource, TimerSource

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, timers: Optional[TimerSource] = None) -> FastAPI:
    """Build the app with its own store, subscriber registry, and scheduler.

    ``timers`` defaults to an APScheduler-backed source; tests pass a fake
    clock instead.
    """

    settings = settings or get_settings()
    timer_source: TimerSource = timers or APSchedulerTimerSource(
        misfire_grace_seconds=settings.misfire_grace_seconds
    )
    store = ScheduleStore()
    subscribers = SubscriberRegistry(send_timeout=settings.broadcast_timeout_seconds)
    notifier = NotificationScheduler(
        store,
        subscribers,
        timer_source,
        lead_minutes=settings.notify_lead_minutes,
        refresh_at=settings.refresh_time,
    )
    store.add_mutation_listener(notifier.on_mutation)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if isinstance(timer_source, APSchedulerTimerSource):
            timer_source.start()
        await notifier.start()
        try:
            yield
        finally:
            await notifier.shutdown()
            if isinstance(timer_source, APSchedulerTimerSource):
                timer_source.shutdown()

    app = FastAPI(
        title="Day Planner",
        version="0.1.0",
        description="Schedule entries for the day and get reminded ten minutes before each one starts.",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.timers = timer_source
    app.state.store = store
    app.state.subscribers = subscribers
    app.state.notifier = notifier

    app.include_router(schedules_router)
    app.include_router(notifications_router)

    @app.exception_handler(RequestValidationError)
    async def invalid_payload(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = [
            {"loc": [str(part) for part in error.get("loc", ())], "msg": error.get("msg", ""), "type": error.get("type", "")}
            for error in exc.errors()
        ]
        return JSONResponse(status_code=400, content={"message": "Invalid schedule data", "errors": errors})

    @app.get("/health")
    def healthcheck() -> dict[str, str]:
        """Simple readiness probe used by deployment tooling."""

        return {"status": "ok"}

    return app


app = create_app()


def main() -> None:
    settings = get_settings()
    setup_logging(level=settings.log_level, log_file=settings.log_file)
    logger.info("Starting day planner on %s:%s", settings.host, settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    main()
