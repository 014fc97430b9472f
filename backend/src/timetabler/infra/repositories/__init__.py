from timetabler.infra.repositories.school_repository import (
    DatasetRecord,
    InMemorySchoolRepository,
    SchoolRepository,
    school_repository,
)

__all__ = [
    "DatasetRecord",
    "InMemorySchoolRepository",
    "SchoolRepository",
    "school_repository",
]
