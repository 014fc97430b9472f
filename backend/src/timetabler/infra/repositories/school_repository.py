from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from threading import Lock
from typing import Any, Iterable, Protocol

from timetabler.domain.core.schema import Schedule, TeachingAssignment
from timetabler.services.errors import NotFoundError


@dataclass
class DatasetRecord:
    payload: dict[str, Any]
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class SchoolRepository(Protocol):
    def get_dataset(self) -> DatasetRecord: ...

    def save_dataset(self, payload: dict[str, Any]) -> DatasetRecord: ...

    def list_assignments(self, year: str | None = None, semester: str | None = None) -> list[TeachingAssignment]: ...

    def add_assignments(self, records: Iterable[TeachingAssignment]) -> list[TeachingAssignment]: ...

    def delete_assignments(self, class_ids: Iterable[str], year: str, semester: str) -> int: ...

    def list_schedules(self, year: str, semester: str) -> list[Schedule]: ...

    def get_schedule(self, class_id: str, year: str, semester: str) -> Schedule: ...

    def replace_schedule(self, record: Schedule) -> Schedule: ...

    def delete_schedules(self, class_ids: Iterable[str] | None, year: str, semester: str) -> int: ...


class InMemorySchoolRepository:
    def __init__(self) -> None:
        self._lock = Lock()
        self._dataset: DatasetRecord | None = None
        self._assignments: dict[tuple[str, str, str, str], TeachingAssignment] = {}
        self._schedules: dict[tuple[str, str, str], Schedule] = {}

    # --- dataset ---

    def get_dataset(self) -> DatasetRecord:
        if self._dataset is None:
            raise NotFoundError("SchoolDataset", "current")
        return self._dataset

    def save_dataset(self, payload: dict[str, Any]) -> DatasetRecord:
        with self._lock:
            self._dataset = DatasetRecord(payload=payload)
            return self._dataset

    # --- assignments ---

    def list_assignments(self, year: str | None = None, semester: str | None = None) -> list[TeachingAssignment]:
        return [
            a for a in self._assignments.values()
            if (year is None or a.year == year) and (semester is None or a.semester == semester)
        ]

    def add_assignments(self, records: Iterable[TeachingAssignment]) -> list[TeachingAssignment]:
        """Inserta solo las claves (asignatura, clase, año, semestre) que no existan."""
        added: list[TeachingAssignment] = []
        with self._lock:
            for record in records:
                if record.key in self._assignments:
                    continue
                self._assignments[record.key] = record
                added.append(record)
        return added

    def delete_assignments(self, class_ids: Iterable[str], year: str, semester: str) -> int:
        wanted = set(class_ids)
        with self._lock:
            doomed = [
                k for k, a in self._assignments.items()
                if a.class_id in wanted and a.year == year and a.semester == semester
            ]
            for k in doomed:
                del self._assignments[k]
        return len(doomed)

    # --- schedules ---

    def list_schedules(self, year: str, semester: str) -> list[Schedule]:
        return sorted(
            (s for s in self._schedules.values() if s.year == year and s.semester == semester),
            key=lambda s: s.class_id,
        )

    def get_schedule(self, class_id: str, year: str, semester: str) -> Schedule:
        schedule = self._schedules.get((class_id, year, semester))
        if schedule is None:
            raise NotFoundError("Schedule", f"{class_id}/{year}/{semester}")
        return schedule

    def replace_schedule(self, record: Schedule) -> Schedule:
        with self._lock:
            self._schedules.pop(record.key, None)
            self._schedules[record.key] = record
        return record

    def delete_schedules(self, class_ids: Iterable[str] | None, year: str, semester: str) -> int:
        wanted = set(class_ids) if class_ids is not None else None
        with self._lock:
            doomed = [
                k for k, s in self._schedules.items()
                if s.year == year and s.semester == semester and (wanted is None or s.class_id in wanted)
            ]
            for k in doomed:
                del self._schedules[k]
        return len(doomed)


school_repository = InMemorySchoolRepository()
