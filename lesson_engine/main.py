from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from lesson_engine.config import settings
from lesson_engine.errors import SchedulingError
from lesson_engine.extensions import db
from lesson_engine.routers import calendar, classes, lessons, schedule

log = logging.getLogger(__name__)


def _scheduling_error_handler(request: Request, exc: SchedulingError) -> JSONResponse:
    if exc.status_code >= 500:
        log.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        log.info("%s %s rejected (%s): %s", request.method, request.url.path, exc.kind, exc.message)
    return JSONResponse(exc.to_dict(), status_code=exc.status_code)


@asynccontextmanager
async def _lifespan(app: FastAPI):
    db.create_all()
    yield


def create_app() -> FastAPI:
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    app = FastAPI(title=settings.APP_NAME, version=settings.APP_VERSION, lifespan=_lifespan)
    app.add_exception_handler(SchedulingError, _scheduling_error_handler)

    app.include_router(lessons.router)
    app.include_router(schedule.router)
    app.include_router(classes.router)
    app.include_router(calendar.router)

    @app.get("/health", tags=["meta"])
    def health():
        return {"status": "ok", "version": settings.APP_VERSION}

    return app


app = create_app()
