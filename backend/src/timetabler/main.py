from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from timetabler.api.routers.assignments import router as assignments_router
from timetabler.api.routers.health import router as health_router
from timetabler.api.routers.schedules import router as schedules_router
from timetabler.api.routers.school_data import router as school_data_router
from timetabler.domain.core.validate import ValidationError
from timetabler.domain.solver.batch import MissingConfigError
from timetabler.logging import configure_logging
from timetabler.services.errors import BadRequestError, NotFoundError
from timetabler.settings import Settings, load_settings


def create_app(settings: Settings | None = None) -> FastAPI:
    active_settings = settings or load_settings()
    configure_logging(debug=active_settings.debug, solver_trace=active_settings.solver_trace)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        if active_settings.db_backend == "postgres":
            from timetabler.infra.db.session import init_db

            init_db()
        yield

    app = FastAPI(title=active_settings.app_name, version=active_settings.app_version, lifespan=lifespan)

    @app.exception_handler(NotFoundError)
    async def handle_not_found(_: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(BadRequestError)
    async def handle_bad_request(_: Request, exc: BadRequestError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(MissingConfigError)
    async def handle_missing_config(_: Request, exc: MissingConfigError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(ValidationError)
    async def handle_validation(_: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": exc.errors})

    @app.exception_handler(ValueError)
    async def handle_value_error(_: Request, exc: ValueError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(HTTPException)
    async def passthrough_http(_: Request, exc: HTTPException) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

    app.include_router(health_router)
    app.include_router(school_data_router)
    app.include_router(assignments_router)
    app.include_router(schedules_router)

    return app


app = create_app()
