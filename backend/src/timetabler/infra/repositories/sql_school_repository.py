from __future__ import annotations

from datetime import timezone
from typing import Any, Iterable

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from timetabler.domain.core.io import schedule_from_dict, schedule_to_dict
from timetabler.domain.core.schema import Schedule, TeachingAssignment
from timetabler.infra.db.models import ScheduleModel, SchoolDatasetModel, TeachingAssignmentModel
from timetabler.infra.repositories.school_repository import DatasetRecord, SchoolRepository
from timetabler.services.errors import NotFoundError

_DATASET_ROW_ID = 1


class SqlSchoolRepository(SchoolRepository):
    def __init__(self, db: Session) -> None:
        self._db = db

    def _to_assignment(self, model: TeachingAssignmentModel) -> TeachingAssignment:
        return TeachingAssignment(
            teacher_id=model.teacher_id,
            subject_id=model.subject_id,
            class_id=model.class_id,
            year=model.year,
            semester=model.semester,
        )

    def _to_schedule(self, model: ScheduleModel) -> Schedule:
        return schedule_from_dict({
            "class_id": model.class_id,
            "class_name": model.class_name,
            "year": model.year,
            "semester": model.semester,
            "timetable": model.timetable,
        })

    # --- dataset ---

    def get_dataset(self) -> DatasetRecord:
        row = self._db.get(SchoolDatasetModel, _DATASET_ROW_ID)
        if row is None:
            raise NotFoundError("SchoolDataset", "current")
        return DatasetRecord(payload=row.payload, updated_at=row.updated_at.astimezone(timezone.utc))

    def save_dataset(self, payload: dict[str, Any]) -> DatasetRecord:
        row = self._db.get(SchoolDatasetModel, _DATASET_ROW_ID)
        if row is None:
            row = SchoolDatasetModel(id=_DATASET_ROW_ID, payload=payload)
        else:
            row.payload = payload
        self._db.add(row)
        self._db.commit()
        self._db.refresh(row)
        return DatasetRecord(payload=row.payload, updated_at=row.updated_at.astimezone(timezone.utc))

    # --- assignments ---

    def list_assignments(self, year: str | None = None, semester: str | None = None) -> list[TeachingAssignment]:
        stmt = select(TeachingAssignmentModel)
        if year is not None:
            stmt = stmt.where(TeachingAssignmentModel.year == year)
        if semester is not None:
            stmt = stmt.where(TeachingAssignmentModel.semester == semester)
        rows = self._db.scalars(stmt.order_by(TeachingAssignmentModel.id.asc())).all()
        return [self._to_assignment(row) for row in rows]

    def add_assignments(self, records: Iterable[TeachingAssignment]) -> list[TeachingAssignment]:
        records = list(records)
        if not records:
            return []
        existing = {a.key for a in self.list_assignments()}
        added: list[TeachingAssignment] = []
        for record in records:
            if record.key in existing:
                continue
            existing.add(record.key)
            self._db.add(TeachingAssignmentModel(
                teacher_id=record.teacher_id,
                subject_id=record.subject_id,
                class_id=record.class_id,
                year=record.year,
                semester=record.semester,
            ))
            added.append(record)
        self._db.commit()
        return added

    def delete_assignments(self, class_ids: Iterable[str], year: str, semester: str) -> int:
        result = self._db.execute(
            delete(TeachingAssignmentModel).where(
                TeachingAssignmentModel.class_id.in_(list(class_ids)),
                TeachingAssignmentModel.year == year,
                TeachingAssignmentModel.semester == semester,
            )
        )
        self._db.commit()
        return result.rowcount or 0

    # --- schedules ---

    def list_schedules(self, year: str, semester: str) -> list[Schedule]:
        stmt = (
            select(ScheduleModel)
            .where(ScheduleModel.year == year, ScheduleModel.semester == semester)
            .order_by(ScheduleModel.class_id.asc())
        )
        return [self._to_schedule(row) for row in self._db.scalars(stmt).all()]

    def get_schedule(self, class_id: str, year: str, semester: str) -> Schedule:
        stmt = select(ScheduleModel).where(
            ScheduleModel.class_id == class_id,
            ScheduleModel.year == year,
            ScheduleModel.semester == semester,
        )
        row = self._db.scalars(stmt).first()
        if row is None:
            raise NotFoundError("Schedule", f"{class_id}/{year}/{semester}")
        return self._to_schedule(row)

    def replace_schedule(self, record: Schedule) -> Schedule:
        # borrar + insertar en la misma transacción
        self._db.execute(
            delete(ScheduleModel).where(
                ScheduleModel.class_id == record.class_id,
                ScheduleModel.year == record.year,
                ScheduleModel.semester == record.semester,
            )
        )
        payload = schedule_to_dict(record)
        self._db.add(ScheduleModel(
            class_id=record.class_id,
            class_name=record.class_name,
            year=record.year,
            semester=record.semester,
            timetable=payload["timetable"],
        ))
        self._db.commit()
        return record

    def delete_schedules(self, class_ids: Iterable[str] | None, year: str, semester: str) -> int:
        stmt = delete(ScheduleModel).where(ScheduleModel.year == year, ScheduleModel.semester == semester)
        if class_ids is not None:
            stmt = stmt.where(ScheduleModel.class_id.in_(list(class_ids)))
        result = self._db.execute(stmt)
        self._db.commit()
        return result.rowcount or 0
