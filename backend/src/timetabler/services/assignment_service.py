from __future__ import annotations

import logging
from dataclasses import dataclass

from timetabler.domain.assignment.assign import AssignmentResult, assign_teachers
from timetabler.domain.core.schema import TeachingAssignment
from timetabler.infra.repositories.school_repository import SchoolRepository
from timetabler.services.errors import BadRequestError
from timetabler.services.school_data_service import SchoolDataService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AutoAssignOutcome:
    result: AssignmentResult
    persisted: list[TeachingAssignment]
    removed: int = 0


class AssignmentService:
    def __init__(self, repository: SchoolRepository) -> None:
        self._repository = repository
        self._data = SchoolDataService(repository)

    def list_assignments(self, year: str | None = None, semester: str | None = None) -> list[TeachingAssignment]:
        return self._repository.list_assignments(year, semester)

    def auto_assign(
        self,
        grades: list[str],
        year: str,
        semester: str,
        *,
        replace_existing: bool = False,
    ) -> AutoAssignOutcome:
        if not grades:
            raise BadRequestError("At least one grade is required")
        dataset = self._data.get_dataset()

        removed = 0
        if replace_existing:
            class_ids = [c.id for c in dataset.classes_for(year, grades)]
            removed = self._repository.delete_assignments(class_ids, year, semester)
            logger.info("Removed %s existing assignments before auto-assign", removed)

        # todo el año: el semestre 2 necesita las del semestre 1 para la continuidad
        existing = self._repository.list_assignments(year)
        result = assign_teachers(dataset, grades, year, semester, existing)
        persisted = self._repository.add_assignments(result.created)
        logger.info(
            "Auto-assign %s/%s grades=%s: %s created, %s unassigned",
            year, semester, grades, len(persisted), len(result.unassigned),
        )
        return AutoAssignOutcome(result=result, persisted=persisted, removed=removed)
