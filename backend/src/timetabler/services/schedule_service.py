from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from timetabler.domain.core.audit import Violation, find_violations
from timetabler.domain.core.schema import ClassSection, Schedule, SchoolDataset
from timetabler.domain.core.validate import ValidationReport, validate_before_generate
from timetabler.domain.solver.batch import BatchOptions, BatchOrchestrator, BatchResult
from timetabler.infra.repositories.school_repository import SchoolRepository
from timetabler.services.errors import BadRequestError, NotFoundError
from timetabler.services.school_data_service import SchoolDataService
from timetabler.settings import Settings, load_settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerationReport:
    batch: BatchResult
    violations: list[Violation]


class ScheduleService:
    def __init__(self, repository: SchoolRepository, settings: Settings | None = None) -> None:
        self._repository = repository
        self._data = SchoolDataService(repository)
        self._settings = settings or load_settings()

    def _options(self, seed: int | None) -> BatchOptions:
        s = self._settings
        return BatchOptions(
            max_iterations=s.solver_max_iterations,
            max_batch_attempts=s.solver_batch_attempts,
            activity_attempts=s.solver_activity_attempts,
            seed=seed if seed is not None else s.solver_random_seed,
        )

    # --- validate / generate ---

    def validate(self, grades: list[str], year: str, semester: str) -> ValidationReport:
        dataset = self._data.get_dataset()
        assignments = self._repository.list_assignments(year, semester)
        return validate_before_generate(dataset, assignments, grades, year, semester)

    def generate(
        self,
        grades: list[str],
        year: str,
        semester: str,
        *,
        seed: int | None = None,
        strict: bool = False,
    ) -> GenerationReport:
        if not grades:
            raise BadRequestError("At least one grade is required")
        dataset = self._data.get_dataset()
        classes = dataset.classes_for(year, grades)
        if not classes:
            raise BadRequestError(f"No classes found for grades {grades} in year {year}")
        if strict:
            assignments = self._repository.list_assignments(year, semester)
            validate_before_generate(dataset, assignments, grades, year, semester, raise_on_error=True)
        return self._run(dataset, classes, year, semester, seed)

    def generate_for_class(self, class_id: str, year: str, semester: str, *, seed: int | None = None) -> GenerationReport:
        dataset = self._data.get_dataset()
        section = dataset.index_classes().get(class_id)
        if section is None:
            raise NotFoundError("Class", class_id)
        return self._run(dataset, [section], year, semester, seed)

    def _run(
        self,
        dataset: SchoolDataset,
        classes: list[ClassSection],
        year: str,
        semester: str,
        seed: int | None,
    ) -> GenerationReport:
        orchestrator = BatchOrchestrator(dataset, self._options(seed))
        assignments = self._repository.list_assignments(year, semester)
        committed = self._repository.list_schedules(year, semester)

        batch = orchestrator.run(
            classes, assignments, committed, year, semester,
            persist=self._repository.replace_schedule,
            discard=lambda class_id: self._repository.delete_schedules([class_id], year, semester),
        )

        violations = find_violations(self._repository.list_schedules(year, semester), dataset, assignments)
        for v in violations:
            logger.warning("Schedule audit: %s [%s] %s", v.class_id, v.kind, v.message)
        logger.info(
            "Generation %s/%s finished: %s solved, %s failed, %s attempts",
            year, semester, len(batch.solved), len(batch.failed), batch.attempts,
        )
        return GenerationReport(batch=batch, violations=violations)

    # --- read / delete ---

    def list_schedules(self, year: str, semester: str) -> list[Schedule]:
        return self._repository.list_schedules(year, semester)

    def get_schedule(self, class_id: str, year: str, semester: str) -> Schedule:
        return self._repository.get_schedule(class_id, year, semester)

    def teacher_schedule(self, teacher_id: str, year: str, semester: str) -> list[dict[str, Any]]:
        """Vista por profesor: las celdas de todas las clases donde imparte."""
        if teacher_id not in self._data.get_dataset().index_teachers():
            raise NotFoundError("Teacher", teacher_id)
        entries: list[dict[str, Any]] = []
        for schedule in self._repository.list_schedules(year, semester):
            for day in schedule.timetable:
                for p in day.periods:
                    if p.teacher_id != teacher_id:
                        continue
                    entries.append({
                        "day": day.day,
                        "period": p.period,
                        "class_id": schedule.class_id,
                        "class_name": schedule.class_name,
                        "subject_id": p.subject_id,
                        "label": p.label,
                    })
        return entries

    def delete_schedules(self, year: str, semester: str, grades: list[str] | None = None) -> int:
        class_ids = None
        if grades:
            dataset = self._data.get_dataset()
            class_ids = [c.id for c in dataset.classes_for(year, grades)]
        deleted = self._repository.delete_schedules(class_ids, year, semester)
        logger.info("Deleted %s schedules for %s/%s", deleted, year, semester)
        return deleted
