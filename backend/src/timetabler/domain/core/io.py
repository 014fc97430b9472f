# core/io.py
# Normaliza el dataset crudo (JSON del sistema externo) a los tipos de schema.py.
# Los mapas pueden llegar como objeto {"id": valor} o como lista de pares;
# se resuelve aquí una vez y el resto del dominio solo ve tipos normalizados.

from __future__ import annotations

from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Tuple

from timetabler.domain.core.schema import (
    DEFAULT_DAYS,
    DEFAULT_MAX_CLASSES,
    DEFAULT_MAX_PER_DAY,
    DEFAULT_SESSION_PERIODS,
    DEFAULT_WEEKLY_LESSONS,
    Activity,
    ActivityRule,
    Capability,
    ClassPeriodsOverride,
    ClassSection,
    DayConfig,
    FixedSlot,
    GradeConfig,
    RestPeriod,
    Schedule,
    ScheduleConfig,
    ScheduleDay,
    ScheduledPeriod,
    SchoolDataset,
    Session,
    SessionRule,
    Subject,
    SubjectRule,
    Teacher,
    TeacherStatus,
    TeachingAssignment,
)


# ---------- Helpers de forma ----------

def _get(d: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    """Primer valor no-None entre varios alias (snake_case / camelCase)."""
    for k in keys:
        if k in d and d[k] is not None:
            return d[k]
    return default


def _as_mapping(value: Any, *key_fields: str) -> Dict[str, Any]:
    """
    Acepta {"k": v}, [{"id": k, ...}, ...] o [[k, v], ...] y devuelve dict[str, Any].
    """
    if value is None:
        return {}
    if isinstance(value, dict):
        return {str(k): v for k, v in value.items()}
    out: Dict[str, Any] = {}
    for item in value:
        if isinstance(item, dict):
            key = _get(item, *key_fields, "key", "id")
            if key is None:
                continue
            out[str(key)] = item.get("value", item) if set(item) <= {"key", "value"} else item
        elif isinstance(item, (list, tuple)) and len(item) == 2:
            out[str(item[0])] = item[1]
    return out


def _int_map(value: Any) -> Dict[str, int]:
    return {k: int(v) for k, v in _as_mapping(value).items() if v is not None}


def _str_set(xs: Optional[Iterable[Any]]) -> frozenset[str]:
    if not xs:
        return frozenset()
    return frozenset(str(x) for x in xs)


def _date(v: Any) -> Optional[date]:
    if v is None or v == "":
        return None
    if isinstance(v, date):
        return v
    return date.fromisoformat(str(v)[:10])


def _session(v: Any) -> Session:
    return Session.EXTRA if str(v or "main").lower() == "extra" else Session.MAIN


def _session_rule(v: Any) -> SessionRule:
    try:
        return SessionRule(str(v or "morning").lower())
    except ValueError:
        return SessionRule.MORNING


# ---------- Configuración ----------

def _day_from(name: str, d: Dict[str, Any]) -> DayConfig:
    morning = int(_get(d, "morning_periods", "morningPeriods", default=DEFAULT_SESSION_PERIODS))
    total = _get(d, "total_periods", "totalPeriods")
    afternoon = _get(d, "afternoon_periods", "afternoonPeriods")
    if afternoon is None:
        afternoon = max(0, int(total) - morning) if total is not None else DEFAULT_SESSION_PERIODS
    return DayConfig(name=name, morning_periods=morning, afternoon_periods=int(afternoon))


def _days_from(raw: Any) -> Tuple[DayConfig, ...]:
    if not raw:
        return tuple(DayConfig(name=n) for n in DEFAULT_DAYS)
    if isinstance(raw, list) and all(isinstance(x, str) for x in raw):
        return tuple(DayConfig(name=n) for n in raw)
    return tuple(_day_from(name, cfg or {}) for name, cfg in _as_mapping(raw, "name", "day").items())


def _fixed_slot(raw: Any) -> Optional[FixedSlot]:
    if not raw:
        return None
    if isinstance(raw, list):
        raw = raw[0] if raw else None
        if not raw:
            return None
    day = _get(raw, "day", "dayOfWeek", "day_of_week")
    period = _get(raw, "period", "timeSlot", "time_slot")
    if not day or period is None:
        return None
    return FixedSlot(day=str(day), period=int(period))


def _subject_rule(subject_id: str, d: Dict[str, Any]) -> SubjectRule:
    return SubjectRule(
        subject_id=subject_id,
        periods_per_week=int(_get(d, "periods_per_week", "periodsPerWeek", default=0)),
        session=_session(d.get("session")),
        max_per_day=int(_get(d, "max_per_day", "maxPerDay", "maxPeriodsPerDay", default=DEFAULT_MAX_PER_DAY)),
        allow_consecutive=bool(_get(d, "allow_consecutive", "allowConsecutive", default=True)),
        class_periods=_int_map(_get(d, "class_periods", "classPeriods")),
        fixed_slot=_fixed_slot(_get(d, "fixed_slot", "fixedSlots", "fixed_slots")),
    )


def _activity_rule(d: Dict[str, Any]) -> ActivityRule:
    return ActivityRule(
        activity_id=str(_get(d, "activity_id", "activityId")),
        periods_per_week=int(_get(d, "periods_per_week", "periodsPerWeek", default=0)),
        session=_session(d.get("session")),
        max_per_day=int(_get(d, "max_per_day", "maxPerDay", default=1)),
        allow_consecutive=bool(_get(d, "allow_consecutive", "allowConsecutive", default=False)),
        class_periods=_int_map(_get(d, "class_periods", "classPeriods")),
        fixed_slot=_fixed_slot(_get(d, "fixed_slot", "fixedSlots", "fixed_slots")),
        is_permanent=bool(_get(d, "is_permanent", "isPermanent", default=True)),
        start_date=_date(_get(d, "start_date", "startDate")),
        end_date=_date(_get(d, "end_date", "endDate")),
    )


def _rest_periods(raw: Any) -> Tuple[RestPeriod, ...]:
    out: List[RestPeriod] = []
    for r in raw or []:
        day = r.get("day") if isinstance(r, dict) else None
        period = r.get("period") if isinstance(r, dict) else None
        if not day or not isinstance(period, int):
            continue
        out.append(RestPeriod(day=str(day), period=period))
    return tuple(out)


def _grade_config(grade: str, d: Dict[str, Any]) -> GradeConfig:
    rules = d.get("rules") or {}
    subjects = {
        sid: _subject_rule(sid, cfg or {})
        for sid, cfg in _as_mapping(d.get("subjects"), "subject_id", "subjectId").items()
    }
    return GradeConfig(
        grade=grade,
        session_rule=_session_rule(_get(d, "session", default=rules.get("session"))),
        subjects=subjects,
        activities=tuple(_activity_rule(a) for a in (d.get("activities") or []) if _get(a, "activity_id", "activityId")),
        rest_periods=_rest_periods(_get(d, "rest_periods", "restPeriods")),
    )


def config_from_dict(d: Optional[Dict[str, Any]]) -> Optional[ScheduleConfig]:
    if not d:
        return None
    grades_raw = _as_mapping(_get(d, "grades", "grade_configs", "gradeConfigs"), "grade")
    return ScheduleConfig(
        days=_days_from(d.get("days")),
        grades={str(g): _grade_config(str(g), cfg or {}) for g, cfg in grades_raw.items()},
    )


# ---------- Entidades ----------

def _availability(raw: Any) -> Tuple[Tuple[Optional[bool], ...], ...]:
    if not raw:
        return tuple()
    return tuple(
        tuple(None if v is None else bool(v) for v in (row or []))
        for row in raw
    )


def teacher_from_dict(t: Dict[str, Any]) -> Teacher:
    caps = tuple(
        Capability(
            subject_id=str(_get(c, "subject_id", "subjectId")),
            grades=_str_set(c.get("grades")),
        )
        for c in _get(t, "capabilities", "subjects", default=[])
        if _get(c, "subject_id", "subjectId") is not None
    )
    status = str(t.get("status", "active")).lower()
    main_subject = _get(t, "main_subject", "mainSubject")
    return Teacher(
        id=str(_get(t, "id", "_id")),
        name=str(t.get("name", "")),
        capabilities=caps,
        main_subject=str(main_subject) if main_subject is not None else None,
        max_classes=int(_get(t, "max_classes", "maxClasses", default=DEFAULT_MAX_CLASSES)),
        max_class_per_grade=_int_map(_get(t, "max_class_per_grade", "maxClassPerGrade")),
        effective_weekly_lessons=int(
            _get(t, "effective_weekly_lessons", "effectiveWeeklyLessons", default=DEFAULT_WEEKLY_LESSONS)
        ),
        availability=_availability(_get(t, "availability", "availableMatrix", "available_matrix")),
        status=TeacherStatus.INACTIVE if status == "inactive" else TeacherStatus.ACTIVE,
        is_leader=bool(_get(t, "is_leader", "isLeader", default=False)),
    )


def class_from_dict(c: Dict[str, Any]) -> ClassSection:
    room = _get(c, "room_id", "roomId")
    return ClassSection(
        id=str(_get(c, "id", "_id")),
        grade=str(c["grade"]),
        year=str(c["year"]),
        name=str(_get(c, "name", "className", default="")),
        room_id=str(room) if room else None,
    )


def subject_from_dict(s: Dict[str, Any]) -> Subject:
    return Subject(
        id=str(_get(s, "id", "_id")),
        name=str(s.get("name", "")),
        grades=_str_set(s.get("grades")),
        is_active=s.get("is_active", s.get("isActive", True)) is not False,
    )


def activity_from_dict(a: Dict[str, Any]) -> Activity:
    return Activity(
        id=str(_get(a, "id", "_id")),
        name=str(a.get("name", "")),
        grades=_str_set(a.get("grades")),
        is_active=a.get("is_active", a.get("isActive", True)) is not False,
    )


def override_from_dict(o: Dict[str, Any]) -> ClassPeriodsOverride:
    return ClassPeriodsOverride(
        class_id=str(_get(o, "class_id", "classId")),
        year=str(o["year"]),
        semester=str(o["semester"]),
        subject_periods=_int_map(_get(o, "subject_periods", "subjectPeriods")),
        activity_periods=_int_map(_get(o, "activity_periods", "activityPeriods")),
    )


def dataset_from_dict(d: Dict[str, Any]) -> SchoolDataset:
    return SchoolDataset(
        config=config_from_dict(d.get("config")),
        teachers=tuple(teacher_from_dict(t) for t in d.get("teachers", [])),
        classes=tuple(class_from_dict(c) for c in d.get("classes", [])),
        subjects=tuple(subject_from_dict(s) for s in d.get("subjects", [])),
        activities=tuple(activity_from_dict(a) for a in d.get("activities", [])),
        class_periods=tuple(override_from_dict(o) for o in _get(d, "class_periods", "classPeriods", default=[])),
    )


# ---------- Registros persistidos ----------

def assignment_to_dict(a: TeachingAssignment) -> Dict[str, Any]:
    return {
        "teacher_id": a.teacher_id,
        "subject_id": a.subject_id,
        "class_id": a.class_id,
        "year": a.year,
        "semester": a.semester,
    }


def assignment_from_dict(d: Dict[str, Any]) -> TeachingAssignment:
    return TeachingAssignment(
        teacher_id=str(_get(d, "teacher_id", "teacherId")),
        subject_id=str(_get(d, "subject_id", "subjectId")),
        class_id=str(_get(d, "class_id", "classId")),
        year=str(d["year"]),
        semester=str(d["semester"]),
    )


def schedule_to_dict(s: Schedule) -> Dict[str, Any]:
    return {
        "class_id": s.class_id,
        "class_name": s.class_name,
        "year": s.year,
        "semester": s.semester,
        "timetable": [
            {
                "day": day.day,
                "periods": [
                    {
                        "period": p.period,
                        "subject_id": p.subject_id,
                        "teacher_id": p.teacher_id,
                        "label": p.label,
                        "locked": p.locked,
                    }
                    for p in day.periods
                ],
            }
            for day in s.timetable
        ],
    }


def schedule_from_dict(d: Dict[str, Any]) -> Schedule:
    timetable = tuple(
        ScheduleDay(
            day=str(day["day"]),
            periods=tuple(
                ScheduledPeriod(
                    period=int(p["period"]),
                    subject_id=_get(p, "subject_id", "subjectId"),
                    teacher_id=_get(p, "teacher_id", "teacherId"),
                    label=str(_get(p, "label", "subject", default="")),
                    locked=bool(p.get("locked", False)),
                )
                for p in day.get("periods", [])
            ),
        )
        for day in d.get("timetable", [])
    )
    return Schedule(
        class_id=str(_get(d, "class_id", "classId")),
        year=str(d["year"]),
        semester=str(d["semester"]),
        timetable=timetable,
        class_name=str(_get(d, "class_name", "className", default="")),
    )
