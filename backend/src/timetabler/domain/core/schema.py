# domain/core/schema.py
# Contrato de datos del generador de horarios (phân công + xếp thời khóa biểu).
# Todo lo que llega del sistema externo se normaliza aquí una sola vez (ver io.py).

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Tuple


# ---------- Tipos base ----------

DayName = str  # "Monday".."Saturday" (o "Thứ 2".."Thứ 7")

DEFAULT_DAYS: Tuple[DayName, ...] = (
    "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday",
)

DEFAULT_SESSION_PERIODS = 5
DEFAULT_MAX_PER_DAY = 2
DEFAULT_MAX_CLASSES = 3
DEFAULT_WEEKLY_LESSONS = 17


# ---------- Enums ----------

class Session(str, Enum):
    """Buổi de una asignatura/actividad relativo a la regla del curso."""
    MAIN = "main"
    EXTRA = "extra"


class SessionRule(str, Enum):
    """Buổi chính de un curso (grade)."""
    MORNING = "morning"
    AFTERNOON = "afternoon"
    BOTH = "both"


class TeacherStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


# ---------- Calendario ----------

@dataclass(frozen=True)
class DayConfig:
    name: DayName
    morning_periods: int = DEFAULT_SESSION_PERIODS
    afternoon_periods: int = DEFAULT_SESSION_PERIODS

    @property
    def total_periods(self) -> int:
        return self.morning_periods + self.afternoon_periods


@dataclass(frozen=True, order=True)
class RestPeriod:
    """Celda bloqueada permanentemente (period es 1-based)."""
    day: DayName
    period: int


@dataclass(frozen=True)
class FixedSlot:
    day: DayName
    period: int  # 1..N


# ---------- Reglas por curso ----------

@dataclass(frozen=True)
class SubjectRule:
    subject_id: str
    periods_per_week: int = 0
    session: Session = Session.MAIN
    max_per_day: int = DEFAULT_MAX_PER_DAY
    allow_consecutive: bool = True
    class_periods: Dict[str, int] = field(default_factory=dict)  # class_id -> periods
    fixed_slot: Optional[FixedSlot] = None


@dataclass(frozen=True)
class ActivityRule:
    activity_id: str
    periods_per_week: int = 0
    session: Session = Session.MAIN
    max_per_day: int = 1
    allow_consecutive: bool = False
    class_periods: Dict[str, int] = field(default_factory=dict)
    fixed_slot: Optional[FixedSlot] = None
    is_permanent: bool = True
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    def applies_on(self, on_date: Optional[date]) -> bool:
        if self.is_permanent or on_date is None:
            return True
        if self.start_date is not None and on_date < self.start_date:
            return False
        if self.end_date is not None and on_date > self.end_date:
            return False
        return True


@dataclass(frozen=True)
class GradeConfig:
    grade: str
    session_rule: SessionRule = SessionRule.MORNING
    subjects: Dict[str, SubjectRule] = field(default_factory=dict)
    activities: Tuple[ActivityRule, ...] = ()
    rest_periods: Tuple[RestPeriod, ...] = ()

    def subject_rule(self, subject_id: str) -> Optional[SubjectRule]:
        return self.subjects.get(subject_id)


@dataclass(frozen=True)
class ScheduleConfig:
    days: Tuple[DayConfig, ...]
    grades: Dict[str, GradeConfig] = field(default_factory=dict)

    def day_names(self) -> Tuple[DayName, ...]:
        return tuple(d.name for d in self.days)

    def grade_config(self, grade: str) -> Optional[GradeConfig]:
        return self.grades.get(str(grade))


# ---------- Entidades ----------

@dataclass(frozen=True)
class Capability:
    subject_id: str
    grades: FrozenSet[str] = field(default_factory=frozenset)


@dataclass(frozen=True)
class Teacher:
    id: str
    name: str = ""
    capabilities: Tuple[Capability, ...] = ()
    main_subject: Optional[str] = None
    max_classes: int = DEFAULT_MAX_CLASSES
    max_class_per_grade: Dict[str, int] = field(default_factory=dict)
    effective_weekly_lessons: int = DEFAULT_WEEKLY_LESSONS
    # day_index x period_index -> True/None libre, False ocupado
    availability: Tuple[Tuple[Optional[bool], ...], ...] = ()
    status: TeacherStatus = TeacherStatus.ACTIVE
    is_leader: bool = False

    def is_available(self, day_idx: int, period_idx: int) -> bool:
        """Fuera de la matriz se considera libre."""
        if day_idx < 0 or day_idx >= len(self.availability):
            return True
        row = self.availability[day_idx]
        if period_idx < 0 or period_idx >= len(row):
            return True
        return row[period_idx] is not False

    def has_any_free_cell(self) -> bool:
        cells = [v for row in self.availability for v in row]
        if not cells:
            return True
        return any(v is not False for v in cells)

    def grades_for(self, subject_id: str) -> FrozenSet[str]:
        out: set = set()
        for cap in self.capabilities:
            if cap.subject_id == subject_id:
                out |= cap.grades
        return frozenset(out)

    def teaches_subject(self, subject_id: str) -> bool:
        return self.main_subject == subject_id or any(
            cap.subject_id == subject_id for cap in self.capabilities
        )

    def grade_cap(self, grade: str) -> int:
        return int(self.max_class_per_grade.get(str(grade), 0) or 0)

    @property
    def is_assignable(self) -> bool:
        return self.status == TeacherStatus.ACTIVE and not self.is_leader


@dataclass(frozen=True)
class ClassSection:
    id: str
    grade: str
    year: str
    name: str = ""
    room_id: Optional[str] = None

    @property
    def label(self) -> str:
        return self.name or self.id


@dataclass(frozen=True)
class Subject:
    id: str
    name: str = ""
    grades: FrozenSet[str] = field(default_factory=frozenset)
    is_active: bool = True


@dataclass(frozen=True)
class Activity:
    id: str
    name: str = ""
    grades: FrozenSet[str] = field(default_factory=frozenset)
    is_active: bool = True


@dataclass(frozen=True)
class ClassPeriodsOverride:
    class_id: str
    year: str
    semester: str
    subject_periods: Dict[str, int] = field(default_factory=dict)
    activity_periods: Dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class TeachingAssignment:
    """Único por (subject_id, class_id, year, semester)."""
    teacher_id: str
    subject_id: str
    class_id: str
    year: str
    semester: str

    @property
    def key(self) -> Tuple[str, str, str, str]:
        return (self.subject_id, self.class_id, self.year, self.semester)


# ---------- Salida: horario persistido ----------

@dataclass(frozen=True)
class ScheduledPeriod:
    period: int  # 1-based
    subject_id: Optional[str] = None
    teacher_id: Optional[str] = None
    label: str = ""
    locked: bool = False


@dataclass(frozen=True)
class ScheduleDay:
    day: DayName
    periods: Tuple[ScheduledPeriod, ...]


@dataclass(frozen=True)
class Schedule:
    class_id: str
    year: str
    semester: str
    timetable: Tuple[ScheduleDay, ...]
    class_name: str = ""

    @property
    def key(self) -> Tuple[str, str, str]:
        return (self.class_id, self.year, self.semester)


# ---------- Dataset completo (lo que entrega el sistema externo) ----------

@dataclass(frozen=True)
class SchoolDataset:
    config: Optional[ScheduleConfig]
    teachers: Tuple[Teacher, ...] = ()
    classes: Tuple[ClassSection, ...] = ()
    subjects: Tuple[Subject, ...] = ()
    activities: Tuple[Activity, ...] = ()
    class_periods: Tuple[ClassPeriodsOverride, ...] = ()

    def index_teachers(self) -> Dict[str, Teacher]:
        return {t.id: t for t in self.teachers}

    def index_classes(self) -> Dict[str, ClassSection]:
        return {c.id: c for c in self.classes}

    def index_subjects(self) -> Dict[str, Subject]:
        return {s.id: s for s in self.subjects}

    def index_activities(self) -> Dict[str, Activity]:
        return {a.id: a for a in self.activities}

    def classes_for(self, year: str, grades: List[str]) -> List[ClassSection]:
        wanted = {str(g) for g in grades}
        return [c for c in self.classes if c.year == year and str(c.grade) in wanted]

    def override_for(self, class_id: str, year: str, semester: str) -> Optional[ClassPeriodsOverride]:
        for o in self.class_periods:
            if o.class_id == class_id and o.year == year and o.semester == semester:
                return o
        return None
