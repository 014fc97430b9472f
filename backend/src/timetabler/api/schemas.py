from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ErrorResponse(BaseModel):
    detail: str | list[str]


class HealthResponse(BaseModel):
    status: str
    name: str
    version: str
    db_backend: str


# --- school data ---

class SchoolDataResponse(BaseModel):
    payload: dict[str, Any]
    updated_at: datetime


# --- assignments ---

class TermQuery(BaseModel):
    year: str = Field(min_length=1, max_length=16)
    semester: str = Field(pattern=r"^[12]$")


class BatchRequest(TermQuery):
    grades: list[str] = Field(min_length=1)


class AutoAssignRequest(BatchRequest):
    replace_existing: bool = False


class AssignmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    teacher_id: str
    subject_id: str
    class_id: str
    year: str
    semester: str


class UnassignedResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    class_id: str
    class_name: str
    subject_id: str
    subject_name: str
    reason: str


class AutoAssignResponse(BaseModel):
    created: list[AssignmentResponse]
    unassigned: list[UnassignedResponse]
    removed: int = 0


# --- schedules ---

class ValidateResponse(BaseModel):
    ok: bool
    errors: list[str]
    warnings: list[str]
    class_count: int
    assignment_count: int


class GenerateRequest(BatchRequest):
    seed: int | None = None
    strict: bool = False


class GenerateClassRequest(TermQuery):
    seed: int | None = None


class ActivityReportResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    activity_id: str
    requested: int
    placed: int
    fixed_slot_failed: bool
    complete: bool


class ClassResultResponse(BaseModel):
    class_id: str
    class_name: str
    success: bool
    reason: str | None = None
    message: str = ""
    iterations: int = 0
    attempt: int = 0
    used_pairing_fallback: bool = False
    activities: list[ActivityReportResponse] = Field(default_factory=list)


class ViolationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    kind: str
    class_id: str
    message: str


class GenerateResponse(BaseModel):
    year: str
    semester: str
    attempts: int
    solved: int
    failed: int
    results: list[ClassResultResponse]
    violations: list[ViolationResponse]


class ScheduleResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    class_id: str
    class_name: str
    year: str
    semester: str
    timetable: list[dict[str, Any]]


class TeacherLessonResponse(BaseModel):
    day: str
    period: int
    class_id: str
    class_name: str
    subject_id: str | None
    label: str


class DeleteResponse(BaseModel):
    deleted: int
