from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from timetabler.api.deps import get_schedule_service
from timetabler.api.schemas import (
    ActivityReportResponse,
    BatchRequest,
    ClassResultResponse,
    DeleteResponse,
    GenerateClassRequest,
    GenerateRequest,
    GenerateResponse,
    ScheduleResponse,
    TeacherLessonResponse,
    ValidateResponse,
    ViolationResponse,
)
from timetabler.domain.core.io import schedule_to_dict
from timetabler.domain.core.schema import Schedule
from timetabler.domain.solver.batch import ClassResult
from timetabler.services.schedule_service import GenerationReport, ScheduleService

router = APIRouter(prefix="/schedules", tags=["schedules"])


def _to_schedule(schedule: Schedule) -> ScheduleResponse:
    return ScheduleResponse(**schedule_to_dict(schedule))


def _to_result(result: ClassResult) -> ClassResultResponse:
    return ClassResultResponse(
        class_id=result.class_id,
        class_name=result.class_name,
        success=result.success,
        reason=result.reason,
        message=result.message,
        iterations=result.iterations,
        attempt=result.attempt,
        used_pairing_fallback=result.used_pairing_fallback,
        activities=[ActivityReportResponse.model_validate(r) for r in result.activity_reports],
    )


def _to_generate(report: GenerationReport) -> GenerateResponse:
    batch = report.batch
    return GenerateResponse(
        year=batch.year,
        semester=batch.semester,
        attempts=batch.attempts,
        solved=len(batch.solved),
        failed=len(batch.failed),
        results=[_to_result(r) for r in batch.results],
        violations=[ViolationResponse.model_validate(v) for v in report.violations],
    )


@router.post("/validate", response_model=ValidateResponse)
def validate_batch(
    body: BatchRequest,
    service: ScheduleService = Depends(get_schedule_service),
) -> ValidateResponse:
    report = service.validate(body.grades, body.year, body.semester)
    return ValidateResponse(
        ok=report.ok,
        errors=report.errors,
        warnings=report.warnings,
        class_count=report.class_count,
        assignment_count=report.assignment_count,
    )


@router.post("/generate/{class_id}", response_model=GenerateResponse)
def generate_for_class(
    class_id: str,
    body: GenerateClassRequest,
    service: ScheduleService = Depends(get_schedule_service),
) -> GenerateResponse:
    return _to_generate(service.generate_for_class(class_id, body.year, body.semester, seed=body.seed))


@router.post("/generate", response_model=GenerateResponse)
def generate(
    body: GenerateRequest,
    service: ScheduleService = Depends(get_schedule_service),
) -> GenerateResponse:
    return _to_generate(service.generate(body.grades, body.year, body.semester, seed=body.seed, strict=body.strict))


@router.get("", response_model=list[ScheduleResponse])
def list_schedules(
    year: str,
    semester: str,
    service: ScheduleService = Depends(get_schedule_service),
) -> list[ScheduleResponse]:
    return [_to_schedule(s) for s in service.list_schedules(year, semester)]


@router.get("/teacher/{teacher_id}", response_model=list[TeacherLessonResponse])
def teacher_schedule(
    teacher_id: str,
    year: str,
    semester: str,
    service: ScheduleService = Depends(get_schedule_service),
) -> list[TeacherLessonResponse]:
    return [TeacherLessonResponse(**e) for e in service.teacher_schedule(teacher_id, year, semester)]


@router.get("/{class_id}", response_model=ScheduleResponse)
def get_schedule(
    class_id: str,
    year: str,
    semester: str,
    service: ScheduleService = Depends(get_schedule_service),
) -> ScheduleResponse:
    return _to_schedule(service.get_schedule(class_id, year, semester))


@router.delete("", response_model=DeleteResponse)
def delete_schedules(
    year: str,
    semester: str,
    grades: list[str] | None = Query(default=None),
    service: ScheduleService = Depends(get_schedule_service),
) -> DeleteResponse:
    return DeleteResponse(deleted=service.delete_schedules(year, semester, grades))
