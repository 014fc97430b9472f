"""Constructores compartidos por los tests (datasets pequeños y contextos de solver)."""

from __future__ import annotations

import random
from typing import Any

from timetabler.domain.calendar.grid import build_grid, session_ranges
from timetabler.domain.core.schema import (
    ClassSection,
    DayConfig,
    GradeConfig,
    ScheduleConfig,
    SchoolDataset,
    Subject,
    SubjectRule,
    Teacher,
)
from timetabler.domain.solver.registry import ConflictRegistry
from timetabler.domain.solver.state import SolverContext

DAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday")
YEAR = "2025-2026"


def make_config(*grades: GradeConfig, periods: int = 6, days=DAYS) -> ScheduleConfig:
    return ScheduleConfig(
        days=tuple(DayConfig(name=d, morning_periods=periods, afternoon_periods=0) for d in days),
        grades={g.grade: g for g in grades},
    )


def make_grade(*rules: SubjectRule, grade: str = "10", **kwargs: Any) -> GradeConfig:
    return GradeConfig(grade=grade, subjects={r.subject_id: r for r in rules}, **kwargs)


def availability(free: set[tuple[int, int]], days: int = 5, periods: int = 6) -> tuple:
    """Matriz con True solo en las celdas (day_idx, period_idx) indicadas."""
    return tuple(tuple((d, p) in free for p in range(periods)) for d in range(days))


def make_context(
    config: ScheduleConfig,
    grade: GradeConfig,
    *,
    class_id: str = "10A",
    room_id: str | None = None,
    registry: ConflictRegistry | None = None,
    seed: int = 7,
    max_iterations: int = 200_000,
) -> SolverContext:
    ranges = session_ranges(config.days, grade.session_rule)
    return SolverContext(
        grid=build_grid(config.day_names(), ranges.total, grade.rest_periods),
        ranges=ranges,
        registry=registry if registry is not None else ConflictRegistry(),
        class_id=class_id,
        room_id=room_id,
        rng=random.Random(seed),
        max_iterations=max_iterations,
    )


def make_dataset(
    config: ScheduleConfig | None,
    teachers: list[Teacher],
    classes: list[ClassSection],
    subjects: list[Subject],
) -> SchoolDataset:
    return SchoolDataset(config=config, teachers=tuple(teachers), classes=tuple(classes), subjects=tuple(subjects))


def school_payload() -> dict[str, Any]:
    """Payload en el formato del sistema externo (camelCase, listas)."""
    return {
        "config": {
            "days": [{"name": d, "morningPeriods": 5, "afternoonPeriods": 0} for d in DAYS],
            "gradeConfigs": [
                {
                    "grade": "10",
                    "rules": {"session": "morning"},
                    "subjects": [
                        {"subjectId": "math", "periodsPerWeek": 4, "maxPerDay": 2},
                        {"subjectId": "lit", "periodsPerWeek": 3, "maxPerDay": 2},
                        {"subjectId": "eng", "periodsPerWeek": 2, "maxPerDay": 1, "allowConsecutive": False},
                    ],
                    "activities": [
                        {
                            "activityId": "flag",
                            "periodsPerWeek": 1,
                            "fixedSlots": [{"dayOfWeek": "Monday", "period": 1}],
                        }
                    ],
                }
            ],
        },
        "teachers": [
            {"id": "T1", "name": "An", "mainSubject": "math", "subjects": [{"subjectId": "math", "grades": ["10"]}]},
            {"id": "T2", "name": "Binh", "mainSubject": "lit", "subjects": [{"subjectId": "lit", "grades": ["10"]}]},
            {"id": "T3", "name": "Chi", "mainSubject": "eng", "subjects": [{"subjectId": "eng", "grades": ["10"]}]},
        ],
        "classes": [
            {"id": "10A", "grade": "10", "year": YEAR, "name": "10A", "roomId": "R1"},
            {"id": "10B", "grade": "10", "year": YEAR, "name": "10B", "roomId": "R2"},
        ],
        "subjects": [
            {"id": "math", "name": "Toán", "grades": ["10"]},
            {"id": "lit", "name": "Ngữ văn", "grades": ["10"]},
            {"id": "eng", "name": "Tiếng Anh", "grades": ["10"]},
        ],
        "activities": [{"id": "flag", "name": "Chào cờ", "grades": ["10"]}],
    }
