from __future__ import annotations

from collections.abc import Generator

from fastapi import Depends

from timetabler.infra.repositories.school_repository import InMemorySchoolRepository, SchoolRepository
from timetabler.services.assignment_service import AssignmentService
from timetabler.services.schedule_service import ScheduleService
from timetabler.services.school_data_service import SchoolDataService
from timetabler.settings import load_settings

settings = load_settings()
_memory_repository = InMemorySchoolRepository()


def _get_memory_repository() -> SchoolRepository:
    return _memory_repository


def _get_postgres_repository() -> Generator[SchoolRepository, None, None]:
    from timetabler.infra.db.session import get_db
    from timetabler.infra.repositories.sql_school_repository import SqlSchoolRepository

    for db in get_db():
        yield SqlSchoolRepository(db)


if settings.db_backend == "postgres":
    get_repository = _get_postgres_repository
else:
    get_repository = _get_memory_repository


def get_school_data_service(repository: SchoolRepository = Depends(get_repository)) -> SchoolDataService:
    return SchoolDataService(repository)


def get_assignment_service(repository: SchoolRepository = Depends(get_repository)) -> AssignmentService:
    return AssignmentService(repository)


def get_schedule_service(repository: SchoolRepository = Depends(get_repository)) -> ScheduleService:
    return ScheduleService(repository, settings)
